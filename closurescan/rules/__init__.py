"""Rule registry for the closure scanner."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Protocol

from closurescan.graph import ScopeGraph
from closurescan.result import AnalysisResult


class Rule(Protocol):
    """Protocol implemented by all rule evaluators."""

    name: str

    def scan(self, context: "AnalysisContext", result: AnalysisResult) -> None:
        """Analyze one program unit and append reports to ``result``."""


@dataclass
class AnalysisContext:
    """Bundle the inputs of one analysis pass over a program unit."""

    graph: ScopeGraph
    path: str = "<unknown>"


def available_rules() -> Dict[str, Any]:
    """Map rule names to rule classes."""

    from .implicit_closures import ImplicitClosureRule

    return {ImplicitClosureRule.name: ImplicitClosureRule}
