"""JavaScript type conversions and operators over primitive values.

Objects are converted to primitives by the interpreter before they reach the
tables here; ``default_to_string`` only covers the built-in conversions.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable

from .values import (
    ABSENT,
    UNDEFINED,
    Accessor,
    JSArray,
    JSDate,
    JSFunction,
    JSObject,
    NativeFunction,
    function_name,
    is_nullish,
    type_of,
)

JS_WHITESPACE = " \t\n\r\x0b\x0c\xa0\ufeff\u2028\u2029"

_DECIMAL_LITERAL = re.compile(
    r"^[+-]?(\d+\.?\d*([eE][+-]?\d+)?|\.\d+([eE][+-]?\d+)?)$"
)

_RADIX_PREFIXES = {"0x": 16, "0o": 8, "0b": 2}


# ── conversions ──────────────────────────────────────────────────


def number_to_string(x: float) -> str:
    """Format a number the way JavaScript's ``String(x)`` does."""
    if math.isnan(x):
        return "NaN"
    if math.isinf(x):
        return "Infinity" if x > 0 else "-Infinity"
    if x == 0:
        return "0"
    if float(x).is_integer() and abs(x) < 2**53:
        return str(int(x))
    text = repr(float(x))
    if "e" not in text:
        return text[:-2] if text.endswith(".0") else text
    mantissa, exp = text.split("e")
    exponent = int(exp)
    sign = "-" if mantissa.startswith("-") else ""
    digits = mantissa.lstrip("-").replace(".", "")
    if 0 <= exponent < 21:
        # shortest round-trip digits, zero padded like JavaScript
        return f"{sign}{digits.ljust(exponent + 1, '0')}"
    if -7 < exponent < 0:
        return f"{sign}0.{'0' * (-exponent - 1)}{digits}"
    return f"{mantissa}e{'+' if exponent > 0 else '-'}{abs(exponent)}"


def string_to_number(text: str) -> float:
    stripped = text.strip(JS_WHITESPACE)
    if not stripped:
        return 0.0
    if stripped in ("Infinity", "+Infinity"):
        return math.inf
    if stripped == "-Infinity":
        return -math.inf
    radix = _RADIX_PREFIXES.get(stripped[:2].lower())
    if radix is not None:
        try:
            return float(int(stripped[2:], radix))
        except ValueError:
            return math.nan
    if _DECIMAL_LITERAL.match(stripped):
        return float(stripped)
    return math.nan


def to_number(value: Any) -> float:
    if value is UNDEFINED:
        return math.nan
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return string_to_number(value)
    if isinstance(value, JSDate):
        return value.time
    if isinstance(value, JSArray):
        return string_to_number(default_to_string(value))
    return math.nan


def to_boolean(value: Any) -> bool:
    if value is UNDEFINED or value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return not (value == 0 or math.isnan(value))
    if isinstance(value, str):
        return value != ""
    return True


def default_to_string(value: Any) -> str:
    """``String(value)`` using built-in conversions only."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return number_to_string(float(value))
    if isinstance(value, str):
        return value
    if isinstance(value, JSArray):
        return ",".join(
            "" if is_nullish(v) else default_to_string(v) for v in value.elements
        )
    if isinstance(value, (JSFunction, NativeFunction)):
        return f"function {function_name(value)}() {{ [native code] }}"
    if isinstance(value, JSObject) and _is_error(value):
        name = default_to_string(_lookup_plain(value, "name", "Error"))
        message = default_to_string(_lookup_plain(value, "message", ""))
        return f"{name}: {message}" if message else name
    return "[object Object]"


def _lookup_plain(obj: JSObject, key: str, fallback: Any) -> Any:
    slot = obj.lookup(key)
    return fallback if slot is ABSENT or isinstance(slot, Accessor) else slot


def _is_error(obj: JSObject) -> bool:
    current = obj
    while current is not None:
        if current.class_name == "Error":
            return True
        current = current.proto
    return False


def to_int32(value: Any) -> int:
    number = to_number(value)
    if math.isnan(number) or math.isinf(number):
        return 0
    n = int(math.trunc(number)) & 0xFFFFFFFF
    return n - 0x100000000 if n >= 0x80000000 else n


def to_uint32(value: Any) -> int:
    number = to_number(value)
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(math.trunc(number)) & 0xFFFFFFFF


def to_integer(value: Any) -> int:
    number = to_number(value)
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 2**53 if number > 0 else -(2**53)
    return int(math.trunc(number))


# ── equality ─────────────────────────────────────────────────────


def strict_equals(a: Any, b: Any) -> bool:
    ta, tb = type_of(a), type_of(b)
    if ta != tb:
        return False
    if ta == "number":
        return float(a) == float(b)
    if ta in ("object", "function"):
        return a is b
    if ta == "undefined":
        return True
    return a == b


def same_value_zero(a: Any, b: Any) -> bool:
    """Equality used by ``includes``: like ``===`` but NaN equals NaN."""
    if isinstance(a, float) and isinstance(b, float) and math.isnan(a) and math.isnan(b):
        return True
    return strict_equals(a, b)


def loose_equals(a: Any, b: Any, to_primitive: Callable[[Any], Any]) -> bool:
    if is_nullish(a) and is_nullish(b):
        return True
    if is_nullish(a) or is_nullish(b):
        return False
    ta, tb = type_of(a), type_of(b)
    if ta == tb:
        return strict_equals(a, b)
    if ta == "boolean":
        return loose_equals(to_number(a), b, to_primitive)
    if tb == "boolean":
        return loose_equals(a, to_number(b), to_primitive)
    if ta == "number" and tb == "string":
        return float(a) == string_to_number(b)
    if ta == "string" and tb == "number":
        return string_to_number(a) == float(b)
    if isinstance(a, JSObject) and not isinstance(b, JSObject):
        return loose_equals(to_primitive(a), b, to_primitive)
    if isinstance(b, JSObject) and not isinstance(a, JSObject):
        return loose_equals(a, to_primitive(b), to_primitive)
    return False


# ── arithmetic on primitives ─────────────────────────────────────


def _divide(a: float, b: float) -> float:
    if b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        sign = math.copysign(1.0, a) * math.copysign(1.0, b)
        return math.inf if sign > 0 else -math.inf
    return a / b


def _remainder(a: float, b: float) -> float:
    if b == 0 or math.isnan(a) or math.isnan(b) or math.isinf(a):
        return math.nan
    if math.isinf(b):
        return a
    return math.fmod(a, b)


def _power(a: float, b: float) -> float:
    if math.isnan(b):
        return math.nan
    if abs(a) == 1 and math.isinf(b):
        return math.nan
    if a == 0 and b < 0:
        return math.inf
    try:
        return math.pow(a, b)
    except OverflowError:
        return math.inf
    except ValueError:
        return math.nan


def _shift_left(a: Any, b: Any) -> float:
    result = (to_int32(a) << (to_uint32(b) & 31)) & 0xFFFFFFFF
    return float(result - 0x100000000 if result >= 0x80000000 else result)


class Operators:
    """Numeric and bitwise operator tables over primitive operands."""

    NUMERIC_TABLE: dict[str, Callable[[float, float], float]] = {
        "-": lambda a, b: a - b,
        "*": lambda a, b: a * b,
        "/": _divide,
        "%": _remainder,
        "**": _power,
    }

    BITWISE_TABLE: dict[str, Callable[[Any, Any], float]] = {
        "&": lambda a, b: float(to_int32(to_int32(a) & to_int32(b))),
        "|": lambda a, b: float(to_int32(to_int32(a) | to_int32(b))),
        "^": lambda a, b: float(to_int32(to_int32(a) ^ to_int32(b))),
        "<<": _shift_left,
        ">>": lambda a, b: float(to_int32(a) >> (to_uint32(b) & 31)),
        ">>>": lambda a, b: float(to_uint32(a) >> (to_uint32(b) & 31)),
    }

    RELATIONAL_OPERATORS: frozenset[str] = frozenset({"<", ">", "<=", ">="})

    @classmethod
    def add(cls, a: Any, b: Any) -> Any:
        if isinstance(a, str) or isinstance(b, str):
            return default_to_string(a) + default_to_string(b)
        return to_number(a) + to_number(b)

    @classmethod
    def eval_numeric(cls, op: str, a: Any, b: Any) -> float:
        x, y = to_number(a), to_number(b)
        try:
            return cls.NUMERIC_TABLE[op](x, y)
        except OverflowError:
            return math.nan

    @classmethod
    def eval_bitwise(cls, op: str, a: Any, b: Any) -> float:
        return cls.BITWISE_TABLE[op](a, b)

    @classmethod
    def compare(cls, op: str, a: Any, b: Any) -> bool:
        if isinstance(a, str) and isinstance(b, str):
            x, y = a, b
        else:
            x, y = to_number(a), to_number(b)
            if math.isnan(x) or math.isnan(y):
                return False
        if op == "<":
            return x < y
        if op == ">":
            return x > y
        if op == "<=":
            return x <= y
        return x >= y

    @classmethod
    def eval_unary(cls, op: str, operand: Any) -> Any:
        if op == "!":
            return not to_boolean(operand)
        if op == "-":
            return -to_number(operand)
        if op == "+":
            return to_number(operand)
        if op == "~":
            return float(to_int32(~to_int32(operand)))
        if op == "void":
            return UNDEFINED
        raise ValueError(f"Unknown unary operator {op!r}")
