"""Lexical environments: bindings, hoisting targets and ``this`` resolution."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .control import JSError
from .values import UNDEFINED


class _Uninitialized:
    def __repr__(self) -> str:
        return "<uninitialized>"


UNINITIALIZED = _Uninitialized()


@dataclass
class Binding:
    value: Any
    kind: str  # var | let | const | function | param | class

    @property
    def mutable(self) -> bool:
        return self.kind != "const"

    @property
    def initialized(self) -> bool:
        return self.value is not UNINITIALIZED


class Environment:
    """One scope in the chain.

    Function environments (``has_this``) also hold the call's ``this``,
    the home object used by ``super`` and the function being run.
    """

    def __init__(
        self,
        parent: Environment | None = None,
        *,
        has_this: bool = False,
        this: Any = UNDEFINED,
        function=None,
        home_object=None,
        new_target=None,
    ):
        self.parent = parent
        self.bindings: dict[str, Binding] = {}
        self.has_this = has_this
        self.this = this
        self.function = function
        self.home_object = home_object
        self.new_target = new_target

    # ── declarations ─────────────────────────────────────────────

    def declare(self, name: str, kind: str, value: Any = UNDEFINED) -> None:
        existing = self.bindings.get(name)
        if existing is not None and kind == "var":
            return
        self.bindings[name] = Binding(value=value, kind=kind)

    def initialize(self, name: str, value: Any) -> None:
        binding = self.bindings.get(name)
        if binding is None:
            self.bindings[name] = Binding(value=value, kind="let")
            return
        binding.value = value

    # ── lookups ──────────────────────────────────────────────────

    def resolve(self, name: str) -> Binding | None:
        env: Environment | None = self
        while env is not None:
            binding = env.bindings.get(name)
            if binding is not None:
                return binding
            env = env.parent
        return None

    def get(self, name: str) -> Any:
        binding = self.resolve(name)
        if binding is None:
            raise JSError("ReferenceError", f"{name} is not defined")
        if not binding.initialized:
            raise JSError(
                "ReferenceError", f"Cannot access '{name}' before initialization"
            )
        return binding.value

    def assign(self, name: str, value: Any) -> None:
        binding = self.resolve(name)
        if binding is None:
            self.global_env().bindings[name] = Binding(value=value, kind="var")
            return
        if not binding.initialized:
            raise JSError(
                "ReferenceError", f"Cannot access '{name}' before initialization"
            )
        if not binding.mutable:
            raise JSError("TypeError", "Assignment to constant variable.")
        binding.value = value

    def global_env(self) -> Environment:
        env = self
        while env.parent is not None:
            env = env.parent
        return env

    def function_env(self) -> Environment:
        """Nearest environment that owns a ``this`` binding (arrows have none)."""
        env = self
        while not env.has_this and env.parent is not None:
            env = env.parent
        return env

    def lookup_this(self) -> Any:
        env = self.function_env()
        if env.this is UNINITIALIZED:
            raise JSError(
                "ReferenceError",
                "Must call super constructor in derived class before "
                "accessing 'this' or returning from derived constructor",
            )
        return env.this

    def names(self) -> list[str]:
        return list(self.bindings)
