"""Named constants for hook names, thresholds and execution defaults."""

from __future__ import annotations

LANGUAGE = "javascript"

# ── instrumentation hook names ───────────────────────────────────

STEP_HOOK = "__step"
TRACK_VARIABLE_HOOK = "__trackVariable"
ENTER_FUNCTION_HOOK = "__enterFunction"
EXIT_FUNCTION_HOOK = "__exitFunction"
UPDATE_MEMORY_HOOK = "__updateMemory"

HOOK_NAMES: tuple[str, ...] = (
    STEP_HOOK,
    TRACK_VARIABLE_HOOK,
    ENTER_FUNCTION_HOOK,
    EXIT_FUNCTION_HOOK,
    UPDATE_MEMORY_HOOK,
)

UNSUPPORTED_NODE_TEMPLATE = "/* Unsupported node type: {kind} */"

STRATEGY_STRUCTURAL = "structural"
STRATEGY_SYNTHESIS = "synthesis"

# ── analysis ─────────────────────────────────────────────────────

COMPLEXITY_THRESHOLD = 10

BUILTIN_FUNCTIONS: frozenset[str] = frozenset(
    {"parseInt", "parseFloat", "isNaN", "isFinite", "setTimeout", "setInterval"}
)

GLOBAL_OBJECTS: frozenset[str] = frozenset(
    {"console", "Math", "Date", "Array", "Object", "String", "Number", "JSON"}
)

ANONYMOUS_FUNCTION = "anonymous"
ARROW_FUNCTION_NAME = "arrow function"

# ── execution ────────────────────────────────────────────────────

DEFAULT_SPEED = 1000.0
PAUSE_POLL_INTERVAL = 0.05

VARIABLE_MEMORY_COST = 8
FRAME_MEMORY_COST = 16

MAX_CALL_DEPTH = 200

CONSOLE_KINDS: tuple[str, ...] = ("log", "warn", "error", "info")
