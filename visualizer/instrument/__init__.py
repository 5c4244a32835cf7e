"""Instrumenter: inserts step, variable and call hooks into JavaScript source."""

from __future__ import annotations

import logging

from .. import constants
from ..parser import SyntaxTree
from ._base import (  # noqa: F401
    AnnotatedTree,
    Annotator,
    FunctionMarker,
    InstrumentationError,
    InstrumentationStrategy,
    StepMarker,
)
from .structural import StructuralStrategy
from .synthesis import SynthesisStrategy

logger = logging.getLogger(__name__)

_STRATEGIES: dict[str, type[InstrumentationStrategy]] = {
    constants.STRATEGY_STRUCTURAL: StructuralStrategy,
    constants.STRATEGY_SYNTHESIS: SynthesisStrategy,
}

SUPPORTED_STRATEGIES: tuple[str, ...] = tuple(_STRATEGIES)


def get_strategy(name: str) -> InstrumentationStrategy:
    """Return a strategy instance for *name*.

    Raises:
        ValueError: If the strategy name is not recognised.
    """
    strategy_cls = _STRATEGIES.get(name.lower())
    if strategy_cls is None:
        raise ValueError(
            f"Unsupported instrumentation strategy: {name!r}. "
            f"Supported: {', '.join(SUPPORTED_STRATEGIES)}"
        )
    return strategy_cls()


def instrument(tree: SyntaxTree, strategy: str = "") -> str:
    """Instrument *tree* and return executable source text.

    With no *strategy*, the structural strategy is tried first and synthesis
    is used when it raises InstrumentationError.  A named strategy is used
    on its own and its errors propagate.
    """
    annotated = Annotator().annotate(tree)
    if strategy:
        return get_strategy(strategy).generate(annotated)
    try:
        return StructuralStrategy().generate(annotated)
    except InstrumentationError as exc:
        logger.warning("Structural instrumentation failed (%s); using synthesis", exc)
        return SynthesisStrategy().generate(annotated)
