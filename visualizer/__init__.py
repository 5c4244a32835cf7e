"""JavaScript step visualizer package."""

from .api import (  # noqa: F401
    analyze_source,
    execute_source,
    execute_traced,
    instrument_source,
    parse_source,
)
from .engine import EngineBusyError, ExecutionEngine  # noqa: F401
from .parser import SourceSyntaxError  # noqa: F401
from .run_types import ExecutionOptions, ExecutionState  # noqa: F401
