"""JavaScript runtime: values, environments, built-ins and the tree-walking interpreter."""

from .control import ExecutionStopped, JSError, JSThrow  # noqa: F401
from .interpreter import ExecutionContext, Interpreter  # noqa: F401
from .operators import default_to_string, number_to_string  # noqa: F401
from .values import (  # noqa: F401
    UNDEFINED,
    JSArray,
    JSFunction,
    JSObject,
    NativeFunction,
    is_primitive,
    to_python,
    type_of,
)
