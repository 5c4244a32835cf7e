"""Static analysis report schema (pure data, no business logic)."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class FunctionInfo(_Frozen):
    kind: str  # declaration | expression | arrow | method
    name: str
    params: list[str] = []
    line: int
    column: int
    complexity: int = 1
    is_recursive: bool = False


class VariableInfo(_Frozen):
    name: str
    kind: str  # var | let | const
    line: int
    column: int
    has_initializer: bool = False
    reassigned: bool = False
    scope: str = "global"  # global | function | block


class LoopInfo(_Frozen):
    kind: str  # for | while | do-while | for-in | for-of
    line: int
    column: int
    has_init: Optional[bool] = None
    has_test: Optional[bool] = None
    has_update: Optional[bool] = None
    is_infinite: bool = False


class ConditionalInfo(_Frozen):
    kind: str  # if | ternary | switch
    line: int
    column: int
    has_else: Optional[bool] = None
    is_else_if: Optional[bool] = None
    complexity: Optional[int] = None
    case_count: Optional[int] = None
    has_default: Optional[bool] = None


class ImportInfo(_Frozen):
    source: str
    specifiers: list[str] = []


class DependencySummary(_Frozen):
    builtins: list[str] = []
    globals: list[str] = []
    imports: list[ImportInfo] = []


class Suggestion(_Frozen):
    kind: str  # warning | error
    message: str
    line: int
    severity: Severity


class CodeMetrics(_Frozen):
    lines_of_code: int = 0
    statements: int = 0
    expressions: int = 0
    functions: int = 0
    variables: int = 0
    complexity: int = 0


class AnalysisReport(_Frozen):
    functions: list[FunctionInfo] = []
    variables: list[VariableInfo] = []
    loops: list[LoopInfo] = []
    conditionals: list[ConditionalInfo] = []
    complexity: int = 1
    dependencies: DependencySummary = DependencySummary()
    suggestions: list[Suggestion] = []
    metrics: CodeMetrics = CodeMetrics()

    def function(self, name: str) -> Optional[FunctionInfo]:
        return next((f for f in self.functions if f.name == name), None)

    def suggestions_with(self, severity: Severity) -> list[Suggestion]:
        return [s for s in self.suggestions if s.severity == severity]
