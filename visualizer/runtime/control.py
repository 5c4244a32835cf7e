"""Control-flow signals and error types raised while a program runs."""

from __future__ import annotations

from typing import Any


class ExecutionStopped(Exception):
    """The engine asked the program to stop at a step boundary.

    Not a JavaScript exception: ``catch`` and ``finally`` blocks never see it.
    """


class JSError(Exception):
    """A runtime error the interpreter turns into a JavaScript error object.

    Raised from places that have no interpreter at hand (environments,
    operators); the interpreter materialises it as a ``TypeError`` /
    ``ReferenceError`` / ... instance when user code catches it.
    """

    def __init__(self, name: str, message: str):
        super().__init__(f"{name}: {message}")
        self.name = name
        self.message = message


class JSThrow(Exception):
    """A JavaScript ``throw`` carrying an arbitrary JavaScript value."""

    def __init__(self, value: Any):
        super().__init__(value)
        self.value = value


class ReturnSignal(Exception):
    def __init__(self, value: Any):
        self.value = value


class BreakSignal(Exception):
    def __init__(self, label: str | None = None):
        self.label = label


class ContinueSignal(Exception):
    def __init__(self, label: str | None = None):
        self.label = label


class OptionalChainShortCircuit(Exception):
    """``a?.b`` met a nullish ``a``; the whole chain evaluates to undefined."""
