"""Built-in objects of the JavaScript runtime.

Each built-in is a plain function ``fn(interp, this, args) -> value``; the
tables below group them by the object they are installed on, and ``Realm``
wires the tables into prototypes and global constructors for one run.
"""

from __future__ import annotations

import json
import math
import random
import re
import time
from datetime import datetime, timezone
from functools import cmp_to_key
from typing import TYPE_CHECKING, Any, Callable

from .control import JSError
from .operators import (
    JS_WHITESPACE,
    Operators,
    number_to_string,
    same_value_zero,
    strict_equals,
    to_boolean,
    to_integer,
)
from .values import (
    ABSENT,
    UNDEFINED,
    Accessor,
    JSArray,
    JSDate,
    JSFunction,
    JSMap,
    JSObject,
    JSSet,
    NativeFunction,
    is_callable,
    is_nullish,
    same_value_key,
)

if TYPE_CHECKING:
    from .interpreter import Interpreter

ERROR_NAMES: tuple[str, ...] = (
    "Error",
    "TypeError",
    "RangeError",
    "ReferenceError",
    "SyntaxError",
    "EvalError",
)

_FLOAT_PREFIX = re.compile(r"^[+-]?(Infinity|(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?)")

_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyz"


def _arg(args: list, index: int) -> Any:
    return args[index] if index < len(args) else UNDEFINED


def _callback(interp: Interpreter, fn: Any) -> Any:
    if not is_callable(fn):
        raise JSError("TypeError", f"{interp.to_string(fn)} is not a function")
    return fn


def _this_array(this: Any, method: str) -> JSArray:
    if not isinstance(this, JSArray):
        raise JSError("TypeError", f"Array.prototype.{method} called on non-array")
    return this


def _writable(array: JSArray) -> JSArray:
    if array.frozen:
        raise JSError("TypeError", "Cannot add property, object is not extensible")
    return array


def _relative(value: Any, length: int, default: int) -> int:
    """Resolve a possibly negative start/end argument against *length*."""
    if value is UNDEFINED:
        return default
    index = to_integer(value)
    if index < 0:
        return max(0, length + index)
    return min(index, length)


# ── global functions ─────────────────────────────────────────────


def parse_int(text: str, radix: int = 0) -> float:
    """JavaScript ``parseInt``: longest valid digit prefix, or NaN."""
    stripped = text.strip(JS_WHITESPACE)
    sign = 1.0
    if stripped[:1] in ("+", "-"):
        sign = -1.0 if stripped[0] == "-" else 1.0
        stripped = stripped[1:]
    if radix in (0, 16) and stripped[:2].lower() == "0x":
        stripped = stripped[2:]
        radix = 16
    if radix == 0:
        radix = 10
    if not 2 <= radix <= 36:
        return math.nan
    digits = _DIGITS[:radix]
    end = 0
    while end < len(stripped) and stripped[end].lower() in digits:
        end += 1
    if end == 0:
        return math.nan
    return sign * float(int(stripped[:end], radix))


def parse_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text.strip(JS_WHITESPACE))
    if match is None:
        return math.nan
    literal = match.group(0)
    if literal.lstrip("+-") == "Infinity":
        return -math.inf if literal.startswith("-") else math.inf
    return float(literal)


def _global_parse_int(interp, this, args):
    radix = _arg(args, 1)
    return parse_int(
        interp.to_string(_arg(args, 0)),
        0 if radix is UNDEFINED else to_integer(interp.to_number(radix)),
    )


def _global_parse_float(interp, this, args):
    return parse_float(interp.to_string(_arg(args, 0)))


def _global_is_nan(interp, this, args):
    return math.isnan(interp.to_number(_arg(args, 0)))


def _global_is_finite(interp, this, args):
    return math.isfinite(interp.to_number(_arg(args, 0)))


GLOBAL_FUNCTIONS: dict[str, Callable] = {
    "parseInt": _global_parse_int,
    "parseFloat": _global_parse_float,
    "isNaN": _global_is_nan,
    "isFinite": _global_is_finite,
}


# ── Object ───────────────────────────────────────────────────────


def _object_keys(interp, this, args):
    return interp.new_array(interp.enumerable_keys(_arg(args, 0)))


def _object_values(interp, this, args):
    obj = _arg(args, 0)
    return interp.new_array(
        [interp.get_property(obj, k) for k in interp.enumerable_keys(obj)]
    )


def _object_entries(interp, this, args):
    obj = _arg(args, 0)
    return interp.new_array(
        [
            interp.new_array([k, interp.get_property(obj, k)])
            for k in interp.enumerable_keys(obj)
        ]
    )


def _object_assign(interp, this, args):
    target = _arg(args, 0)
    if is_nullish(target):
        raise JSError("TypeError", "Cannot convert undefined or null to object")
    for source in args[1:]:
        if is_nullish(source):
            continue
        for key in interp.enumerable_keys(source):
            interp.set_property(target, key, interp.get_property(source, key))
    return target


def _object_freeze(interp, this, args):
    obj = _arg(args, 0)
    if isinstance(obj, JSObject):
        obj.frozen = True
    return obj


def _object_is_frozen(interp, this, args):
    obj = _arg(args, 0)
    return not isinstance(obj, JSObject) or obj.frozen


def _object_create(interp, this, args):
    proto = _arg(args, 0)
    if proto is not None and not isinstance(proto, JSObject):
        raise JSError("TypeError", "Object prototype may only be an Object or null")
    return JSObject(proto=proto)


def _object_get_prototype_of(interp, this, args):
    obj = _arg(args, 0)
    if isinstance(obj, JSObject):
        return obj.proto
    if isinstance(obj, str):
        return interp.realm.string_prototype
    return None


def _object_from_entries(interp, this, args):
    result = interp.new_object()
    for entry in interp.iterate(_arg(args, 0)):
        key = interp.to_property_key(interp.get_property(entry, "0"))
        result.properties[key] = interp.get_property(entry, "1")
    return result


def _object_proto_has_own(interp, this, args):
    key = interp.to_property_key(_arg(args, 0))
    if isinstance(this, JSObject):
        return this.has_own(key)
    if isinstance(this, str):
        return key == "length" or (key.isdigit() and int(key) < len(this))
    return False


def _object_proto_to_string(interp, this, args):
    if this is UNDEFINED:
        return "[object Undefined]"
    if this is None:
        return "[object Null]"
    if isinstance(this, JSArray):
        return "[object Array]"
    if is_callable(this):
        return "[object Function]"
    return "[object Object]"


def _object_proto_value_of(interp, this, args):
    return this


OBJECT_STATICS: dict[str, Callable] = {
    "keys": _object_keys,
    "values": _object_values,
    "entries": _object_entries,
    "assign": _object_assign,
    "freeze": _object_freeze,
    "isFrozen": _object_is_frozen,
    "create": _object_create,
    "getPrototypeOf": _object_get_prototype_of,
    "fromEntries": _object_from_entries,
}

OBJECT_PROTOTYPE: dict[str, Callable] = {
    "hasOwnProperty": _object_proto_has_own,
    "toString": _object_proto_to_string,
    "valueOf": _object_proto_value_of,
}


def _object_call(interp, this, args):
    value = _arg(args, 0)
    if is_nullish(value):
        return interp.new_object()
    return value


def _object_construct(interp, args, new_target):
    value = _arg(args, 0)
    if isinstance(value, JSObject):
        return value
    return JSObject(proto=interp.prototype_for(new_target, interp.realm.object_prototype))


# ── Function.prototype ───────────────────────────────────────────


def _function_call(interp, this, args):
    return interp.call(_callback(interp, this), _arg(args, 0), args[1:])


def _function_apply(interp, this, args):
    arg_list = _arg(args, 1)
    values = [] if is_nullish(arg_list) else interp.iterate(arg_list)
    return interp.call(_callback(interp, this), _arg(args, 0), values)


def _function_bind(interp, this, args):
    target = _callback(interp, this)
    bound_this = _arg(args, 0)
    bound_args = list(args[1:])

    def bound(interp, this, call_args):
        return interp.call(target, bound_this, bound_args + call_args)

    def construct(interp, call_args, new_target):
        return interp.construct(target, bound_args + call_args)

    return interp.new_function(f"bound {target.name}", bound, construct)


def _function_to_string(interp, this, args):
    if isinstance(this, JSFunction) and this.node is not None:
        return interp.source_text(this.node)
    if is_callable(this):
        return f"function {this.name}() {{ [native code] }}"
    raise JSError("TypeError", "Function.prototype.toString requires that 'this' be a Function")


FUNCTION_PROTOTYPE: dict[str, Callable] = {
    "call": _function_call,
    "apply": _function_apply,
    "bind": _function_bind,
    "toString": _function_to_string,
}


# ── Array ────────────────────────────────────────────────────────


def _array_create(interp, args):
    if len(args) == 1 and isinstance(args[0], float):
        length = args[0]
        if length < 0 or not length.is_integer():
            raise JSError("RangeError", "Invalid array length")
        return interp.new_array([UNDEFINED] * int(length))
    return interp.new_array(args)


def _array_call(interp, this, args):
    return _array_create(interp, args)


def _array_construct(interp, args, new_target):
    array = _array_create(interp, args)
    array.proto = interp.prototype_for(new_target, interp.realm.array_prototype)
    return array


def _array_is_array(interp, this, args):
    return isinstance(_arg(args, 0), JSArray)


def _array_from(interp, this, args):
    source = _arg(args, 0)
    mapper = _arg(args, 1)
    if isinstance(source, JSObject) and not isinstance(source, (JSArray, JSMap, JSSet)):
        length = to_integer(interp.to_number(interp.get_property(source, "length")))
        items = [interp.get_property(source, str(i)) for i in range(max(0, length))]
    elif is_nullish(source):
        raise JSError("TypeError", f"{interp.to_string(source)} is not iterable")
    else:
        items = interp.iterate(source)
    if mapper is not UNDEFINED:
        _callback(interp, mapper)
        items = [interp.call(mapper, UNDEFINED, [v, float(i)]) for i, v in enumerate(items)]
    return interp.new_array(items)


def _array_of(interp, this, args):
    return interp.new_array(args)


def _array_push(interp, this, args):
    array = _writable(_this_array(this, "push"))
    array.elements.extend(args)
    return float(len(array.elements))


def _array_pop(interp, this, args):
    array = _writable(_this_array(this, "pop"))
    return array.elements.pop() if array.elements else UNDEFINED


def _array_shift(interp, this, args):
    array = _writable(_this_array(this, "shift"))
    return array.elements.pop(0) if array.elements else UNDEFINED


def _array_unshift(interp, this, args):
    array = _writable(_this_array(this, "unshift"))
    array.elements[0:0] = args
    return float(len(array.elements))


def _array_slice(interp, this, args):
    elements = _this_array(this, "slice").elements
    start = _relative(_arg(args, 0), len(elements), 0)
    end = _relative(_arg(args, 1), len(elements), len(elements))
    return interp.new_array(elements[start:end])


def _array_splice(interp, this, args):
    array = _writable(_this_array(this, "splice"))
    length = len(array.elements)
    start = _relative(_arg(args, 0), length, 0)
    if len(args) < 2:
        count = length - start
    else:
        count = min(max(to_integer(interp.to_number(args[1])), 0), length - start)
    removed = array.elements[start:start + count]
    array.elements[start:start + count] = args[2:]
    return interp.new_array(removed)


def _array_concat(interp, this, args):
    result = list(_this_array(this, "concat").elements)
    for item in args:
        if isinstance(item, JSArray):
            result.extend(item.elements)
        else:
            result.append(item)
    return interp.new_array(result)


def _array_join(interp, this, args):
    separator = _arg(args, 0)
    sep = "," if separator is UNDEFINED else interp.to_string(separator)
    return sep.join(
        "" if is_nullish(v) else interp.to_string(v)
        for v in _this_array(this, "join").elements
    )


def _array_to_string(interp, this, args):
    if not isinstance(this, JSArray):
        return _object_proto_to_string(interp, this, args)
    return _array_join(interp, this, [])


def _array_reverse(interp, this, args):
    array = _writable(_this_array(this, "reverse"))
    array.elements.reverse()
    return array


def _array_index_of(interp, this, args):
    elements = _this_array(this, "indexOf").elements
    target = _arg(args, 0)
    start = _relative(_arg(args, 1), len(elements), 0)
    for index in range(start, len(elements)):
        if strict_equals(elements[index], target):
            return float(index)
    return -1.0


def _array_last_index_of(interp, this, args):
    elements = _this_array(this, "lastIndexOf").elements
    target = _arg(args, 0)
    for index in range(len(elements) - 1, -1, -1):
        if strict_equals(elements[index], target):
            return float(index)
    return -1.0


def _array_includes(interp, this, args):
    target = _arg(args, 0)
    return any(
        same_value_zero(v, target) for v in _this_array(this, "includes").elements
    )


def _iterate_callback(interp, this, args, method):
    """Yield ``(index, element, result)`` for the usual array callbacks."""
    array = _this_array(this, method)
    fn = _callback(interp, _arg(args, 0))
    this_arg = _arg(args, 1)
    index = 0
    while index < len(array.elements):
        element = array.elements[index]
        yield index, element, interp.call(fn, this_arg, [element, float(index), array])
        index += 1


def _array_find(interp, this, args):
    for _, element, result in _iterate_callback(interp, this, args, "find"):
        if to_boolean(result):
            return element
    return UNDEFINED


def _array_find_index(interp, this, args):
    for index, _, result in _iterate_callback(interp, this, args, "findIndex"):
        if to_boolean(result):
            return float(index)
    return -1.0


def _array_filter(interp, this, args):
    return interp.new_array(
        [e for _, e, r in _iterate_callback(interp, this, args, "filter") if to_boolean(r)]
    )


def _array_map(interp, this, args):
    return interp.new_array([r for _, _, r in _iterate_callback(interp, this, args, "map")])


def _array_for_each(interp, this, args):
    for _ in _iterate_callback(interp, this, args, "forEach"):
        pass
    return UNDEFINED


def _array_some(interp, this, args):
    return any(to_boolean(r) for _, _, r in _iterate_callback(interp, this, args, "some"))


def _array_every(interp, this, args):
    return all(to_boolean(r) for _, _, r in _iterate_callback(interp, this, args, "every"))


def _reduce(interp, array: JSArray, args, indices):
    fn = _callback(interp, _arg(args, 0))
    indices = list(indices)
    if len(args) > 1:
        accumulator = args[1]
    elif indices:
        accumulator = array.elements[indices.pop(0)]
    else:
        raise JSError("TypeError", "Reduce of empty array with no initial value")
    for index in indices:
        if index < len(array.elements):
            accumulator = interp.call(
                fn, UNDEFINED, [accumulator, array.elements[index], float(index), array]
            )
    return accumulator


def _array_reduce(interp, this, args):
    array = _this_array(this, "reduce")
    return _reduce(interp, array, args, range(len(array.elements)))


def _array_reduce_right(interp, this, args):
    array = _this_array(this, "reduceRight")
    return _reduce(interp, array, args, range(len(array.elements) - 1, -1, -1))


def _array_sort(interp, this, args):
    array = _writable(_this_array(this, "sort"))
    comparator = _arg(args, 0)
    if comparator is not UNDEFINED:
        _callback(interp, comparator)

    def compare(a, b):
        if comparator is not UNDEFINED:
            result = interp.to_number(interp.call(comparator, UNDEFINED, [a, b]))
            if math.isnan(result):
                return 0
            return -1 if result < 0 else (1 if result > 0 else 0)
        left, right = interp.to_string(a), interp.to_string(b)
        return -1 if left < right else (1 if left > right else 0)

    defined = [v for v in array.elements if v is not UNDEFINED]
    missing = len(array.elements) - len(defined)
    array.elements[:] = sorted(defined, key=cmp_to_key(compare)) + [UNDEFINED] * missing
    return array


def _flatten(elements: list, depth: float) -> list:
    result: list[Any] = []
    for element in elements:
        if isinstance(element, JSArray) and depth >= 1:
            result.extend(_flatten(element.elements, depth - 1))
        else:
            result.append(element)
    return result


def _array_flat(interp, this, args):
    depth = _arg(args, 0)
    levels = 1.0 if depth is UNDEFINED else interp.to_number(depth)
    return interp.new_array(_flatten(_this_array(this, "flat").elements, levels))


def _array_flat_map(interp, this, args):
    mapped = [r for _, _, r in _iterate_callback(interp, this, args, "flatMap")]
    return interp.new_array(_flatten(mapped, 1))


def _array_fill(interp, this, args):
    array = _writable(_this_array(this, "fill"))
    length = len(array.elements)
    start = _relative(_arg(args, 1), length, 0)
    end = _relative(_arg(args, 2), length, length)
    for index in range(start, end):
        array.elements[index] = _arg(args, 0)
    return array


def _array_at(interp, this, args):
    elements = _this_array(this, "at").elements
    index = to_integer(interp.to_number(_arg(args, 0)))
    if index < 0:
        index += len(elements)
    return elements[index] if 0 <= index < len(elements) else UNDEFINED


def _array_keys(interp, this, args):
    return interp.new_array(float(i) for i in range(len(_this_array(this, "keys").elements)))


ARRAY_STATICS: dict[str, Callable] = {
    "isArray": _array_is_array,
    "from": _array_from,
    "of": _array_of,
}

ARRAY_PROTOTYPE: dict[str, Callable] = {
    "push": _array_push,
    "pop": _array_pop,
    "shift": _array_shift,
    "unshift": _array_unshift,
    "slice": _array_slice,
    "splice": _array_splice,
    "concat": _array_concat,
    "join": _array_join,
    "reverse": _array_reverse,
    "indexOf": _array_index_of,
    "lastIndexOf": _array_last_index_of,
    "includes": _array_includes,
    "find": _array_find,
    "findIndex": _array_find_index,
    "filter": _array_filter,
    "map": _array_map,
    "forEach": _array_for_each,
    "reduce": _array_reduce,
    "reduceRight": _array_reduce_right,
    "some": _array_some,
    "every": _array_every,
    "sort": _array_sort,
    "flat": _array_flat,
    "flatMap": _array_flat_map,
    "fill": _array_fill,
    "at": _array_at,
    "keys": _array_keys,
    "toString": _array_to_string,
}


# ── String ───────────────────────────────────────────────────────


def _this_string(interp, this) -> str:
    if is_nullish(this):
        raise JSError("TypeError", "String.prototype method called on null or undefined")
    return this if isinstance(this, str) else interp.to_string(this)


def _string_call(interp, this, args):
    return interp.to_string(args[0]) if args else ""


def _string_from_char_code(interp, this, args):
    return "".join(chr(to_integer(interp.to_number(a)) & 0xFFFF) for a in args)


def _string_char_at(interp, this, args):
    text = _this_string(interp, this)
    index = to_integer(interp.to_number(_arg(args, 0)))
    return text[index] if 0 <= index < len(text) else ""


def _string_char_code_at(interp, this, args):
    text = _this_string(interp, this)
    index = to_integer(interp.to_number(_arg(args, 0)))
    return float(ord(text[index])) if 0 <= index < len(text) else math.nan


def _string_index_of(interp, this, args):
    text = _this_string(interp, this)
    start = min(max(to_integer(interp.to_number(_arg(args, 1))), 0), len(text))
    return float(text.find(interp.to_string(_arg(args, 0)), start))


def _string_last_index_of(interp, this, args):
    return float(_this_string(interp, this).rfind(interp.to_string(_arg(args, 0))))


def _string_includes(interp, this, args):
    return interp.to_string(_arg(args, 0)) in _this_string(interp, this)


def _string_starts_with(interp, this, args):
    text = _this_string(interp, this)
    start = _relative(_arg(args, 1), len(text), 0)
    return text.startswith(interp.to_string(_arg(args, 0)), start)


def _string_ends_with(interp, this, args):
    text = _this_string(interp, this)
    end = _relative(_arg(args, 1), len(text), len(text))
    return text[:end].endswith(interp.to_string(_arg(args, 0)))


def _string_slice(interp, this, args):
    text = _this_string(interp, this)
    start = _relative(_arg(args, 0), len(text), 0)
    end = _relative(_arg(args, 1), len(text), len(text))
    return text[start:end]


def _string_substring(interp, this, args):
    text = _this_string(interp, this)

    def clamp(value, default):
        if value is UNDEFINED:
            return default
        return min(max(to_integer(interp.to_number(value)), 0), len(text))

    start, end = clamp(_arg(args, 0), 0), clamp(_arg(args, 1), len(text))
    if start > end:
        start, end = end, start
    return text[start:end]


def _string_substr(interp, this, args):
    text = _this_string(interp, this)
    start = _relative(_arg(args, 0), len(text), 0)
    length = _arg(args, 1)
    count = len(text) - start if length is UNDEFINED else max(0, to_integer(interp.to_number(length)))
    return text[start:start + count]


def _string_to_upper(interp, this, args):
    return _this_string(interp, this).upper()


def _string_to_lower(interp, this, args):
    return _this_string(interp, this).lower()


def _string_trim(interp, this, args):
    return _this_string(interp, this).strip(JS_WHITESPACE)


def _string_trim_start(interp, this, args):
    return _this_string(interp, this).lstrip(JS_WHITESPACE)


def _string_trim_end(interp, this, args):
    return _this_string(interp, this).rstrip(JS_WHITESPACE)


def _string_split(interp, this, args):
    text = _this_string(interp, this)
    separator = _arg(args, 0)
    limit = _arg(args, 1)
    if separator is UNDEFINED:
        parts = [text]
    else:
        sep = interp.to_string(separator)
        parts = list(text) if sep == "" else text.split(sep)
    if limit is not UNDEFINED:
        parts = parts[: max(0, to_integer(interp.to_number(limit)))]
    return interp.new_array(parts)


def _replacement(interp, replacer, match: str, index: int, text: str) -> str:
    if is_callable(replacer):
        return interp.to_string(interp.call(replacer, UNDEFINED, [match, float(index), text]))
    template = interp.to_string(replacer)
    return template.replace("$&", match).replace("$$", "$")


def _string_replace(interp, this, args):
    text = _this_string(interp, this)
    pattern = interp.to_string(_arg(args, 0))
    index = text.find(pattern)
    if index < 0:
        return text
    replaced = _replacement(interp, _arg(args, 1), pattern, index, text)
    return text[:index] + replaced + text[index + len(pattern):]


def _string_replace_all(interp, this, args):
    text = _this_string(interp, this)
    pattern = interp.to_string(_arg(args, 0))
    replacer = _arg(args, 1)
    if pattern == "":
        positions = list(range(len(text) + 1))
    else:
        positions = []
        index = text.find(pattern)
        while index >= 0:
            positions.append(index)
            index = text.find(pattern, index + len(pattern))
    pieces: list[str] = []
    last = 0
    for position in positions:
        pieces.append(text[last:position])
        pieces.append(_replacement(interp, replacer, pattern, position, text))
        last = position + len(pattern)
    pieces.append(text[last:])
    return "".join(pieces)


def _string_repeat(interp, this, args):
    count = interp.to_number(_arg(args, 0))
    if count < 0 or math.isinf(count):
        raise JSError("RangeError", f"Invalid count value: {number_to_string(count)}")
    return _this_string(interp, this) * to_integer(count)


def _pad(interp, this, args, at_start: bool) -> str:
    text = _this_string(interp, this)
    target = to_integer(interp.to_number(_arg(args, 0)))
    filler = _arg(args, 1)
    pad = " " if filler is UNDEFINED else interp.to_string(filler)
    if target <= len(text) or pad == "":
        return text
    needed = target - len(text)
    padding = (pad * (needed // len(pad) + 1))[:needed]
    return padding + text if at_start else text + padding


def _string_pad_start(interp, this, args):
    return _pad(interp, this, args, True)


def _string_pad_end(interp, this, args):
    return _pad(interp, this, args, False)


def _string_concat(interp, this, args):
    return _this_string(interp, this) + "".join(interp.to_string(a) for a in args)


def _string_at(interp, this, args):
    text = _this_string(interp, this)
    index = to_integer(interp.to_number(_arg(args, 0)))
    if index < 0:
        index += len(text)
    return text[index] if 0 <= index < len(text) else UNDEFINED


def _string_locale_compare(interp, this, args):
    text = _this_string(interp, this)
    other = interp.to_string(_arg(args, 0))
    return -1.0 if text < other else (1.0 if text > other else 0.0)


def _string_value_of(interp, this, args):
    return _this_string(interp, this)


STRING_STATICS: dict[str, Callable] = {
    "fromCharCode": _string_from_char_code,
}

STRING_PROTOTYPE: dict[str, Callable] = {
    "charAt": _string_char_at,
    "charCodeAt": _string_char_code_at,
    "indexOf": _string_index_of,
    "lastIndexOf": _string_last_index_of,
    "includes": _string_includes,
    "startsWith": _string_starts_with,
    "endsWith": _string_ends_with,
    "slice": _string_slice,
    "substring": _string_substring,
    "substr": _string_substr,
    "toUpperCase": _string_to_upper,
    "toLowerCase": _string_to_lower,
    "trim": _string_trim,
    "trimStart": _string_trim_start,
    "trimEnd": _string_trim_end,
    "split": _string_split,
    "replace": _string_replace,
    "replaceAll": _string_replace_all,
    "repeat": _string_repeat,
    "padStart": _string_pad_start,
    "padEnd": _string_pad_end,
    "concat": _string_concat,
    "at": _string_at,
    "localeCompare": _string_locale_compare,
    "toString": _string_value_of,
    "valueOf": _string_value_of,
}


# ── Number and Boolean ───────────────────────────────────────────


def _this_number(this) -> float:
    if isinstance(this, bool) or not isinstance(this, (int, float)):
        raise JSError("TypeError", "Number.prototype method called on incompatible receiver")
    return float(this)


def _number_call(interp, this, args):
    return interp.to_number(args[0]) if args else 0.0


def _number_is_integer(interp, this, args):
    value = _arg(args, 0)
    return (
        isinstance(value, float)
        and math.isfinite(value)
        and value.is_integer()
    )


def _number_is_safe_integer(interp, this, args):
    return _number_is_integer(interp, this, args) and abs(args[0]) <= 2**53 - 1


def _number_is_finite(interp, this, args):
    value = _arg(args, 0)
    return isinstance(value, float) and math.isfinite(value)


def _number_is_nan(interp, this, args):
    value = _arg(args, 0)
    return isinstance(value, float) and math.isnan(value)


def _number_to_fixed(interp, this, args):
    value = _this_number(this)
    digits = to_integer(interp.to_number(_arg(args, 0)))
    if not 0 <= digits <= 100:
        raise JSError("RangeError", "toFixed() digits argument must be between 0 and 100")
    if not math.isfinite(value) or abs(value) >= 1e21:
        return number_to_string(value)
    return f"{value:.{digits}f}"


def _integer_to_radix(number: int, radix: int) -> str:
    if number == 0:
        return "0"
    digits: list[str] = []
    n = abs(number)
    while n:
        n, remainder = divmod(n, radix)
        digits.append(_DIGITS[remainder])
    return ("-" if number < 0 else "") + "".join(reversed(digits))


def _number_to_string(interp, this, args):
    value = _this_number(this)
    radix_arg = _arg(args, 0)
    radix = 10 if radix_arg is UNDEFINED else to_integer(interp.to_number(radix_arg))
    if not 2 <= radix <= 36:
        raise JSError("RangeError", "toString() radix must be between 2 and 36")
    if radix == 10 or not math.isfinite(value):
        return number_to_string(value)
    whole = int(math.trunc(value))
    text = _integer_to_radix(whole, radix)
    fraction = abs(value - whole)
    if fraction:
        digits: list[str] = []
        while fraction and len(digits) < 20:
            fraction *= radix
            digit = int(fraction)
            digits.append(_DIGITS[digit])
            fraction -= digit
        text += "." + "".join(digits)
    return text


def _number_value_of(interp, this, args):
    return _this_number(this)


NUMBER_STATICS: dict[str, Callable] = {
    "isInteger": _number_is_integer,
    "isSafeInteger": _number_is_safe_integer,
    "isFinite": _number_is_finite,
    "isNaN": _number_is_nan,
    "parseFloat": _global_parse_float,
    "parseInt": _global_parse_int,
}

NUMBER_CONSTANTS: dict[str, float] = {
    "MAX_SAFE_INTEGER": float(2**53 - 1),
    "MIN_SAFE_INTEGER": float(-(2**53 - 1)),
    "EPSILON": 2.0**-52,
    "MAX_VALUE": 1.7976931348623157e308,
    "MIN_VALUE": 5e-324,
    "POSITIVE_INFINITY": math.inf,
    "NEGATIVE_INFINITY": -math.inf,
    "NaN": math.nan,
}

NUMBER_PROTOTYPE: dict[str, Callable] = {
    "toFixed": _number_to_fixed,
    "toString": _number_to_string,
    "valueOf": _number_value_of,
}


def _boolean_call(interp, this, args):
    return to_boolean(_arg(args, 0))


def _boolean_to_string(interp, this, args):
    if not isinstance(this, bool):
        raise JSError("TypeError", "Boolean.prototype.toString requires that 'this' be a Boolean")
    return "true" if this else "false"


def _boolean_value_of(interp, this, args):
    if not isinstance(this, bool):
        raise JSError("TypeError", "Boolean.prototype.valueOf requires that 'this' be a Boolean")
    return this


BOOLEAN_PROTOTYPE: dict[str, Callable] = {
    "toString": _boolean_to_string,
    "valueOf": _boolean_value_of,
}


# ── Math ─────────────────────────────────────────────────────────


def _unary_math(fn: Callable[[float], float]) -> Callable:
    def method(interp, this, args):
        value = interp.to_number(_arg(args, 0))
        try:
            return float(fn(value))
        except (ValueError, OverflowError):
            return math.nan

    return method


def _js_round(x: float) -> float:
    if not math.isfinite(x):
        return x
    return float(math.floor(x + 0.5))


def _js_sign(x: float) -> float:
    if math.isnan(x) or x == 0:
        return x
    return 1.0 if x > 0 else -1.0


def _js_log(x: float) -> float:
    if x == 0:
        return -math.inf
    return math.log(x)


def _js_log2(x: float) -> float:
    if x == 0:
        return -math.inf
    return math.log2(x)


def _js_log10(x: float) -> float:
    if x == 0:
        return -math.inf
    return math.log10(x)


def _js_floor(x: float) -> float:
    return x if not math.isfinite(x) else float(math.floor(x))


def _js_ceil(x: float) -> float:
    return x if not math.isfinite(x) else float(math.ceil(x))


def _js_trunc(x: float) -> float:
    return x if not math.isfinite(x) else float(math.trunc(x))


def _math_max(interp, this, args):
    values = [interp.to_number(a) for a in args]
    if any(math.isnan(v) for v in values):
        return math.nan
    return max(values, default=-math.inf)


def _math_min(interp, this, args):
    values = [interp.to_number(a) for a in args]
    if any(math.isnan(v) for v in values):
        return math.nan
    return min(values, default=math.inf)


def _math_pow(interp, this, args):
    return Operators.eval_numeric("**", interp.to_number(_arg(args, 0)), interp.to_number(_arg(args, 1)))


def _math_atan2(interp, this, args):
    return math.atan2(interp.to_number(_arg(args, 0)), interp.to_number(_arg(args, 1)))


def _math_hypot(interp, this, args):
    return math.hypot(*(interp.to_number(a) for a in args))


def _math_random(interp, this, args):
    return random.random()


MATH_FUNCTIONS: dict[str, Callable] = {
    "abs": _unary_math(abs),
    "floor": _unary_math(_js_floor),
    "ceil": _unary_math(_js_ceil),
    "round": _unary_math(_js_round),
    "trunc": _unary_math(_js_trunc),
    "sign": _unary_math(_js_sign),
    "sqrt": _unary_math(math.sqrt),
    "cbrt": _unary_math(lambda x: math.copysign(abs(x) ** (1 / 3), x)),
    "exp": _unary_math(math.exp),
    "log": _unary_math(_js_log),
    "log2": _unary_math(_js_log2),
    "log10": _unary_math(_js_log10),
    "sin": _unary_math(math.sin),
    "cos": _unary_math(math.cos),
    "tan": _unary_math(math.tan),
    "asin": _unary_math(math.asin),
    "acos": _unary_math(math.acos),
    "atan": _unary_math(math.atan),
    "max": _math_max,
    "min": _math_min,
    "pow": _math_pow,
    "atan2": _math_atan2,
    "hypot": _math_hypot,
    "random": _math_random,
}

MATH_CONSTANTS: dict[str, float] = {
    "PI": math.pi,
    "E": math.e,
    "LN2": math.log(2),
    "LN10": math.log(10),
    "LOG2E": math.log2(math.e),
    "LOG10E": math.log10(math.e),
    "SQRT2": math.sqrt(2),
    "SQRT1_2": math.sqrt(0.5),
}


# ── JSON ─────────────────────────────────────────────────────────


class _JSONWriter:
    """``JSON.stringify`` over interpreter values."""

    def __init__(self, interp: Interpreter, indent: str):
        self.interp = interp
        self.indent = indent
        self.stack: list[int] = []

    def write(self, value: Any, prefix: str = "") -> str | None:
        interp = self.interp
        if isinstance(value, JSObject) and not is_callable(value):
            to_json = interp.get_property(value, "toJSON")
            if is_callable(to_json):
                value = interp.call(to_json, value, [])
        if value is None:
            return "null"
        if value is UNDEFINED or is_callable(value):
            return None
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, (int, float)):
            return number_to_string(float(value)) if math.isfinite(value) else "null"
        if isinstance(value, str):
            return json.dumps(value, ensure_ascii=False)
        if id(value) in self.stack:
            raise JSError("TypeError", "Converting circular structure to JSON")
        self.stack.append(id(value))
        try:
            if isinstance(value, JSArray):
                return self._array(value, prefix)
            return self._object(value, prefix)
        finally:
            self.stack.pop()

    def _array(self, value: JSArray, prefix: str) -> str:
        inner = prefix + self.indent
        items = [self.write(v, inner) or "null" for v in value.elements]
        return self._wrap("[", "]", items, prefix)

    def _object(self, value: JSObject, prefix: str) -> str:
        inner = prefix + self.indent
        separator = ": " if self.indent else ":"
        items: list[str] = []
        if isinstance(value, (JSMap, JSSet)):
            keys: list[str] = []
        else:
            keys = self.interp.enumerable_keys(value)
        for key in keys:
            text = self.write(self.interp.get_property(value, key), inner)
            if text is not None:
                items.append(json.dumps(key, ensure_ascii=False) + separator + text)
        return self._wrap("{", "}", items, prefix)

    def _wrap(self, open_: str, close: str, items: list[str], prefix: str) -> str:
        if not items:
            return open_ + close
        if not self.indent:
            return open_ + ",".join(items) + close
        inner = prefix + self.indent
        body = (",\n" + inner).join(items)
        return f"{open_}\n{inner}{body}\n{prefix}{close}"


def json_stringify(interp: Interpreter, value: Any, indent: Any = UNDEFINED) -> str | None:
    if isinstance(indent, float):
        spaces = " " * max(0, min(10, to_integer(indent)))
    elif isinstance(indent, str):
        spaces = indent[:10]
    else:
        spaces = ""
    return _JSONWriter(interp, spaces).write(value)


def _json_stringify(interp, this, args):
    result = json_stringify(interp, _arg(args, 0), _arg(args, 2))
    return UNDEFINED if result is None else result


def _from_json(interp, data: Any) -> Any:
    if isinstance(data, dict):
        obj = interp.new_object()
        for key, item in data.items():
            obj.properties[key] = _from_json(interp, item)
        return obj
    if isinstance(data, list):
        return interp.new_array(_from_json(interp, item) for item in data)
    if isinstance(data, bool) or data is None or isinstance(data, str):
        return data
    return float(data)


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Unexpected token {name[0]}")


def _json_parse(interp, this, args):
    text = interp.to_string(_arg(args, 0))
    try:
        data = json.loads(text, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        raise JSError("SyntaxError", f"{exc.msg} in JSON at position {exc.pos}") from exc
    except ValueError as exc:
        raise JSError("SyntaxError", f"{exc} in JSON") from exc
    return _from_json(interp, data)


JSON_FUNCTIONS: dict[str, Callable] = {
    "stringify": _json_stringify,
    "parse": _json_parse,
}


# ── Map and Set ──────────────────────────────────────────────────


def _this_map(this, method: str) -> JSMap:
    if not isinstance(this, JSMap):
        raise JSError("TypeError", f"Method Map.prototype.{method} called on incompatible receiver")
    return this


def _this_set(this, method: str) -> JSSet:
    if not isinstance(this, JSSet):
        raise JSError("TypeError", f"Method Set.prototype.{method} called on incompatible receiver")
    return this


def _requires_new(name: str) -> Callable:
    def call(interp, this, args):
        raise JSError("TypeError", f"Constructor {name} requires 'new'")

    return call


def _map_construct(interp, args, new_target):
    result = JSMap(proto=interp.prototype_for(new_target, interp.realm.map_prototype))
    source = _arg(args, 0)
    if not is_nullish(source):
        for entry in interp.iterate(source):
            key = interp.get_property(entry, "0")
            result.entries[same_value_key(key)] = (key, interp.get_property(entry, "1"))
    return result


def _map_get(interp, this, args):
    entry = _this_map(this, "get").entries.get(same_value_key(_arg(args, 0)))
    return UNDEFINED if entry is None else entry[1]


def _map_set(interp, this, args):
    key = _arg(args, 0)
    _this_map(this, "set").entries[same_value_key(key)] = (key, _arg(args, 1))
    return this


def _map_has(interp, this, args):
    return same_value_key(_arg(args, 0)) in _this_map(this, "has").entries


def _map_delete(interp, this, args):
    return _this_map(this, "delete").entries.pop(same_value_key(_arg(args, 0)), None) is not None


def _map_clear(interp, this, args):
    _this_map(this, "clear").entries.clear()
    return UNDEFINED


def _map_for_each(interp, this, args):
    fn = _callback(interp, _arg(args, 0))
    for key, value in list(_this_map(this, "forEach").entries.values()):
        interp.call(fn, _arg(args, 1), [value, key, this])
    return UNDEFINED


def _map_keys(interp, this, args):
    return interp.new_array(k for k, _ in _this_map(this, "keys").entries.values())


def _map_values(interp, this, args):
    return interp.new_array(v for _, v in _this_map(this, "values").entries.values())


def _map_entries(interp, this, args):
    return interp.new_array(interp.iterate(_this_map(this, "entries")))


def _map_size(interp, this, args):
    return float(len(_this_map(this, "size").entries))


MAP_PROTOTYPE: dict[str, Callable] = {
    "get": _map_get,
    "set": _map_set,
    "has": _map_has,
    "delete": _map_delete,
    "clear": _map_clear,
    "forEach": _map_for_each,
    "keys": _map_keys,
    "values": _map_values,
    "entries": _map_entries,
}


def _set_construct(interp, args, new_target):
    result = JSSet(proto=interp.prototype_for(new_target, interp.realm.set_prototype))
    source = _arg(args, 0)
    if not is_nullish(source):
        for value in interp.iterate(source):
            result.entries.setdefault(same_value_key(value), value)
    return result


def _set_add(interp, this, args):
    value = _arg(args, 0)
    _this_set(this, "add").entries.setdefault(same_value_key(value), value)
    return this


def _set_has(interp, this, args):
    return same_value_key(_arg(args, 0)) in _this_set(this, "has").entries


def _set_delete(interp, this, args):
    return _this_set(this, "delete").entries.pop(same_value_key(_arg(args, 0)), ABSENT) is not ABSENT


def _set_clear(interp, this, args):
    _this_set(this, "clear").entries.clear()
    return UNDEFINED


def _set_for_each(interp, this, args):
    fn = _callback(interp, _arg(args, 0))
    for value in list(_this_set(this, "forEach").entries.values()):
        interp.call(fn, _arg(args, 1), [value, value, this])
    return UNDEFINED


def _set_values(interp, this, args):
    return interp.new_array(_this_set(this, "values").entries.values())


def _set_entries(interp, this, args):
    return interp.new_array(
        interp.new_array([v, v]) for v in _this_set(this, "entries").entries.values()
    )


def _set_size(interp, this, args):
    return float(len(_this_set(this, "size").entries))


SET_PROTOTYPE: dict[str, Callable] = {
    "add": _set_add,
    "has": _set_has,
    "delete": _set_delete,
    "clear": _set_clear,
    "forEach": _set_for_each,
    "values": _set_values,
    "keys": _set_values,
    "entries": _set_entries,
}


# ── Date ─────────────────────────────────────────────────────────


def _now() -> float:
    return float(math.floor(time.time() * 1000))


def _date_call(interp, this, args):
    return _date_string(JSDate(_now()))


def _parse_date(text: str) -> float:
    try:
        moment = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return math.nan
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return float(math.floor(moment.timestamp() * 1000))


def _date_construct(interp, args, new_target):
    if not args:
        moment = _now()
    elif isinstance(args[0], str):
        moment = _parse_date(args[0])
    else:
        moment = interp.to_number(args[0])
    return JSDate(moment, proto=interp.prototype_for(new_target, interp.realm.date_prototype))


def _date_now(interp, this, args):
    return _now()


def _this_date(this) -> JSDate:
    if not isinstance(this, JSDate):
        raise JSError("TypeError", "this is not a Date object.")
    return this


def _utc(date: JSDate) -> datetime:
    if not math.isfinite(date.time):
        raise JSError("RangeError", "Invalid time value")
    return datetime.fromtimestamp(date.time / 1000, tz=timezone.utc)


def _date_string(date: JSDate) -> str:
    if not math.isfinite(date.time):
        return "Invalid Date"
    return _utc(date).strftime("%a %b %d %Y %H:%M:%S GMT+0000")


def _date_get_time(interp, this, args):
    return _this_date(this).time


def _date_to_iso(interp, this, args):
    moment = _utc(_this_date(this))
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def _date_to_string(interp, this, args):
    return _date_string(_this_date(this))


def _date_part(extract: Callable[[datetime], int]) -> Callable:
    def method(interp, this, args):
        date = _this_date(this)
        if not math.isfinite(date.time):
            return math.nan
        return float(extract(_utc(date)))

    return method


DATE_STATICS: dict[str, Callable] = {
    "now": _date_now,
}

DATE_PROTOTYPE: dict[str, Callable] = {
    "getTime": _date_get_time,
    "valueOf": _date_get_time,
    "toISOString": _date_to_iso,
    "toJSON": _date_to_iso,
    "toString": _date_to_string,
    "getFullYear": _date_part(lambda d: d.year),
    "getMonth": _date_part(lambda d: d.month - 1),
    "getDate": _date_part(lambda d: d.day),
    "getDay": _date_part(lambda d: (d.weekday() + 1) % 7),
    "getHours": _date_part(lambda d: d.hour),
    "getMinutes": _date_part(lambda d: d.minute),
    "getSeconds": _date_part(lambda d: d.second),
    "getMilliseconds": _date_part(lambda d: d.microsecond // 1000),
}


# ── Errors ───────────────────────────────────────────────────────


def _error_to_string(interp, this, args):
    if not isinstance(this, JSObject):
        raise JSError("TypeError", "Error.prototype.toString called on non-object")
    name = interp.get_property(this, "name")
    message = interp.get_property(this, "message")
    name = "Error" if name is UNDEFINED else interp.to_string(name)
    message = "" if message is UNDEFINED else interp.to_string(message)
    if not message:
        return name
    if not name:
        return message
    return f"{name}: {message}"


def _error_factory(name: str) -> tuple[Callable, Callable]:
    def construct(interp, args, new_target):
        fallback = interp.realm.error_constructors[name].properties["prototype"]
        error = JSObject(proto=interp.prototype_for(new_target, fallback), class_name="Error")
        message = _arg(args, 0)
        text = "" if message is UNDEFINED else interp.to_string(message)
        if message is not UNDEFINED:
            error.properties["message"] = text
        error.properties["stack"] = f"{name}: {text}"
        return error

    def call(interp, this, args):
        return construct(interp, args, None)

    return call, construct


# ── Realm ────────────────────────────────────────────────────────


class Realm:
    """The set of built-in objects for one program run."""

    def __init__(self, interp: Interpreter):
        self.interp = interp
        self.object_prototype = JSObject(proto=None)
        self.function_prototype = JSObject(proto=self.object_prototype, class_name="Function")
        self.array_prototype = JSObject(proto=self.object_prototype, class_name="Array")
        self.string_prototype = JSObject(proto=self.object_prototype, class_name="String")
        self.number_prototype = JSObject(proto=self.object_prototype, class_name="Number")
        self.boolean_prototype = JSObject(proto=self.object_prototype, class_name="Boolean")
        self.map_prototype = JSObject(proto=self.object_prototype, class_name="Map")
        self.set_prototype = JSObject(proto=self.object_prototype, class_name="Set")
        self.date_prototype = JSObject(proto=self.object_prototype, class_name="Date")

        self._install(self.object_prototype, OBJECT_PROTOTYPE)
        self._install(self.function_prototype, FUNCTION_PROTOTYPE)
        self._install(self.array_prototype, ARRAY_PROTOTYPE)
        self._install(self.string_prototype, STRING_PROTOTYPE)
        self._install(self.number_prototype, NUMBER_PROTOTYPE)
        self._install(self.boolean_prototype, BOOLEAN_PROTOTYPE)
        self._install(self.map_prototype, MAP_PROTOTYPE)
        self._install(self.set_prototype, SET_PROTOTYPE)
        self._install(self.date_prototype, DATE_PROTOTYPE)
        self.map_prototype.properties["size"] = Accessor(getter=self._native("size", _map_size))
        self.set_prototype.properties["size"] = Accessor(getter=self._native("size", _set_size))

        self.error_constructors: dict[str, NativeFunction] = {}
        self._build_errors()

        self._globals: dict[str, Any] = {
            "Object": self._constructor(
                "Object", _object_call, _object_construct, self.object_prototype, OBJECT_STATICS
            ),
            "Function": self._constructor(
                "Function", _requires_new("Function"), None, self.function_prototype, {}
            ),
            "Array": self._constructor(
                "Array", _array_call, _array_construct, self.array_prototype, ARRAY_STATICS
            ),
            "String": self._constructor(
                "String", _string_call, None, self.string_prototype, STRING_STATICS
            ),
            "Number": self._constructor(
                "Number", _number_call, None, self.number_prototype, NUMBER_STATICS
            ),
            "Boolean": self._constructor(
                "Boolean", _boolean_call, None, self.boolean_prototype, {}
            ),
            "Map": self._constructor(
                "Map", _requires_new("Map"), _map_construct, self.map_prototype, {}
            ),
            "Set": self._constructor(
                "Set", _requires_new("Set"), _set_construct, self.set_prototype, {}
            ),
            "Date": self._constructor(
                "Date", _date_call, _date_construct, self.date_prototype, DATE_STATICS
            ),
            "Math": self._namespace(MATH_FUNCTIONS, MATH_CONSTANTS),
            "JSON": self._namespace(JSON_FUNCTIONS, {}),
            "NaN": math.nan,
            "Infinity": math.inf,
        }
        self._globals["Number"].properties.update(NUMBER_CONSTANTS)
        self._globals.update(self.error_constructors)
        for name, fn in GLOBAL_FUNCTIONS.items():
            self._globals[name] = self._native(name, fn)

    def globals(self) -> dict[str, Any]:
        return dict(self._globals)

    def _native(self, name: str, fn: Callable, construct: Callable | None = None) -> NativeFunction:
        return NativeFunction(name, fn, proto=self.function_prototype, construct=construct)

    def _install(self, target: JSObject, table: dict[str, Callable]) -> None:
        for name, fn in table.items():
            target.properties[name] = self._native(name, fn)

    def _constructor(
        self,
        name: str,
        call: Callable,
        construct: Callable | None,
        prototype: JSObject,
        statics: dict[str, Callable],
    ) -> NativeFunction:
        ctor = self._native(name, call, construct)
        ctor.properties["prototype"] = prototype
        prototype.properties["constructor"] = ctor
        self._install(ctor, statics)
        return ctor

    def _namespace(self, functions: dict[str, Callable], values: dict[str, Any]) -> JSObject:
        namespace = JSObject(proto=self.object_prototype)
        self._install(namespace, functions)
        namespace.properties.update(values)
        return namespace

    def _build_errors(self) -> None:
        base_prototype = JSObject(proto=self.object_prototype, class_name="Error")
        for name in ERROR_NAMES:
            prototype = (
                base_prototype
                if name == "Error"
                else JSObject(proto=base_prototype, class_name="Error")
            )
            prototype.properties["name"] = name
            prototype.properties["message"] = ""
            call, construct = _error_factory(name)
            ctor = self._constructor(name, call, construct, prototype, {})
            if name != "Error":
                ctor.proto = self.error_constructors["Error"]
            self.error_constructors[name] = ctor
        base_prototype.properties["toString"] = self._native("toString", _error_to_string)
