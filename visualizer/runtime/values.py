"""JavaScript value model.

Primitives map onto Python values: ``None`` is ``null``, every number is a
``float``, strings are ``str`` and booleans ``bool``.  ``UNDEFINED`` is a
singleton sentinel.  Everything else is a JSObject.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable


class _Undefined:
    """The JavaScript ``undefined`` value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "undefined"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()


class _Absent:
    def __repr__(self) -> str:
        return "<absent>"


# Returned by JSObject.lookup for a missing property (None is JavaScript null).
ABSENT = _Absent()


class JSObject:
    def __init__(self, proto: JSObject | None = None, class_name: str = "Object"):
        self.properties: dict[str, Any] = {}
        self.proto = proto
        self.class_name = class_name
        self.frozen = False

    def lookup(self, key: str) -> Any:
        """Raw slot for *key* along the prototype chain (value or Accessor), or ABSENT."""
        obj: JSObject | None = self
        while obj is not None:
            if key in obj.properties:
                return obj.properties[key]
            obj = obj.proto
        return ABSENT

    def has_own(self, key: str) -> bool:
        return key in self.properties

    def has_property(self, key: str) -> bool:
        obj: JSObject | None = self
        while obj is not None:
            if obj.has_own(key):
                return True
            obj = obj.proto
        return False

    def own_keys(self) -> list[str]:
        integer_keys = sorted(
            (k for k in self.properties if _is_index(k)), key=int
        )
        return integer_keys + [k for k in self.properties if not _is_index(k)]

    def __repr__(self) -> str:
        return f"<{self.class_name}>"


class JSArray(JSObject):
    def __init__(self, elements: list | None = None, proto: JSObject | None = None):
        super().__init__(proto, "Array")
        self.elements: list[Any] = list(elements) if elements is not None else []

    def has_own(self, key: str) -> bool:
        index = array_index(key)
        if index is not None:
            return index < len(self.elements)
        return key == "length" or key in self.properties

    def own_keys(self) -> list[str]:
        return [str(i) for i in range(len(self.elements))] + super().own_keys()


@dataclass
class Accessor:
    getter: Any = None
    setter: Any = None


class JSFunction(JSObject):
    """A function defined in the program: closure over its defining environment."""

    def __init__(
        self,
        name: str,
        node,
        closure,
        proto: JSObject | None = None,
        is_arrow: bool = False,
        is_method: bool = False,
    ):
        super().__init__(proto, "Function")
        self.name = name
        self.node = node
        self.closure = closure
        self.is_arrow = is_arrow
        self.is_method = is_method
        self.is_class_constructor = False
        self.is_derived = False
        self.home_object: JSObject | None = None
        self.fields: list[tuple[str, Any]] = []

    @property
    def body(self):
        return self.node.child_by_field_name("body") if self.node is not None else None

    def __repr__(self) -> str:
        return f"<Function {self.name}>"


class NativeFunction(JSObject):
    """A built-in implemented in Python: ``fn(interp, this, args) -> value``."""

    def __init__(
        self,
        name: str,
        fn: Callable,
        proto: JSObject | None = None,
        construct: Callable | None = None,
    ):
        super().__init__(proto, "Function")
        self.name = name
        self.fn = fn
        self.construct = construct

    def __repr__(self) -> str:
        return f"<Native {self.name}>"


class JSMap(JSObject):
    def __init__(self, proto: JSObject | None = None):
        super().__init__(proto, "Map")
        self.entries: dict[Any, tuple[Any, Any]] = {}


class JSSet(JSObject):
    def __init__(self, proto: JSObject | None = None):
        super().__init__(proto, "Set")
        self.entries: dict[Any, Any] = {}


class JSDate(JSObject):
    def __init__(self, time: float, proto: JSObject | None = None):
        super().__init__(proto, "Date")
        self.time = time


def _is_index(key: str) -> bool:
    return key.isdigit() and (key == "0" or not key.startswith("0"))


def array_index(key: str) -> int | None:
    return int(key) if _is_index(key) else None


def is_callable(value: Any) -> bool:
    return isinstance(value, (JSFunction, NativeFunction))


def is_primitive(value: Any) -> bool:
    return not isinstance(value, JSObject)


def is_nullish(value: Any) -> bool:
    return value is None or value is UNDEFINED


def type_of(value: Any) -> str:
    """The JavaScript ``typeof`` result."""
    if value is UNDEFINED:
        return "undefined"
    if value is None:
        return "object"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if is_callable(value):
        return "function"
    return "object"


def same_value_key(value: Any) -> tuple:
    """Hashable key implementing SameValueZero, for Map and Set storage."""
    if isinstance(value, JSObject):
        return ("object", id(value))
    if isinstance(value, bool):
        return ("boolean", value)
    if isinstance(value, (int, float)):
        number = float(value)
        if math.isnan(number):
            return ("number", "NaN")
        return ("number", number + 0.0)
    if value is UNDEFINED:
        return ("undefined",)
    return (type_of(value), value)


def function_name(value: Any) -> str:
    if isinstance(value, (JSFunction, NativeFunction)):
        return value.name or "anonymous"
    return ""


def to_python(value: Any, _seen: set[int] | None = None) -> Any:
    """Convert a JavaScript value to plain Python data for snapshots and JSON.

    Integral numbers become ``int``; arrays become lists, objects dicts;
    functions are rendered as ``"[Function: name]"``; cycles as
    ``"[Circular]"``.
    """
    if value is UNDEFINED:
        return None
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, float):
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, int):
        return value
    if is_callable(value):
        return f"[Function: {function_name(value)}]"
    seen = _seen if _seen is not None else set()
    if id(value) in seen:
        return "[Circular]"
    seen.add(id(value))
    try:
        if isinstance(value, JSArray):
            return [to_python(v, seen) for v in value.elements]
        if isinstance(value, JSMap):
            return {str(to_python(k, seen)): to_python(v, seen) for k, v in value.entries.values()}
        if isinstance(value, JSSet):
            return [to_python(v, seen) for v in value.entries.values()]
        result: dict[str, Any] = {}
        for key in value.own_keys():
            slot = value.properties[key]
            if isinstance(slot, Accessor):
                continue
            result[key] = to_python(slot, seen)
        return result
    finally:
        seen.discard(id(value))
