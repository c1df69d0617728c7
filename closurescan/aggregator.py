"""Pass-scoped report state for the implicit closure rule."""

from __future__ import annotations

from typing import Dict, Tuple

from .analysis import Capture, summarize_variables
from .config import ReportOptions
from .graph import Definition, FunctionNode, SourceRange, Variable
from .report_kind import ReportKind
from .result import AnalysisResult, Report

MESSAGES: Dict[ReportKind, str] = {
    ReportKind.NO_SCOPE: "tagged a function without a scope",
    ReportKind.REFERENCE: "reference to variable {variable} in a `{tag}` function",
    ReportKind.FUNCTION: "function tagged with `{tag}` closes variables: {variables}",
    ReportKind.DECLARATION: "declared variable {variable} referenced in a `{tag}` function",
}


class ReportAggregator:
    """Collect captures for one program unit and emit them into ``result``.

    Reference reports go out as soon as they are recorded. Function and
    declaration reports are buffered, deduplicated by node and by definition,
    and emitted by :meth:`flush` in first-seen order.
    """

    def __init__(
        self,
        result: AnalysisResult,
        options: ReportOptions,
        path: str,
        tag: str,
        rule: str,
    ) -> None:
        self.result = result
        self.options = options
        self.path = path
        self.tag = tag
        self.rule = rule
        self._functions: Dict[int, Tuple[FunctionNode, Dict[int, Variable]]] = {}
        self._definitions: Dict[int, Definition] = {}

    def missing_scope(self, function: FunctionNode) -> None:
        self._emit(ReportKind.NO_SCOPE, function.range, {"function": function.name})

    def record(self, function: FunctionNode, capture: Capture) -> None:
        if self.options.enabled(ReportKind.REFERENCE):
            self._emit(ReportKind.REFERENCE, capture.reference.range, {"variable": capture.variable.name})
        if self.options.enabled(ReportKind.FUNCTION):
            _, variables = self._functions.setdefault(function.id, (function, {}))
            variables.setdefault(capture.variable.id, capture.variable)
        if self.options.enabled(ReportKind.DECLARATION):
            for definition in capture.definitions:
                self._definitions.setdefault(definition.id, definition)

    def flush(self) -> None:
        """Emit buffered function and declaration reports, then forget them."""

        functions, definitions = self._functions, self._definitions
        self._functions, self._definitions = {}, {}
        for function, variables in functions.values():
            self._emit(
                ReportKind.FUNCTION,
                function.range,
                {"function": function.name, "variables": summarize_variables(variables.values())},
            )
        for definition in definitions.values():
            self._emit(ReportKind.DECLARATION, definition.range, {"variable": definition.name})

    def _emit(self, kind: ReportKind, source_range: SourceRange, data: Dict[str, str]) -> None:
        message = MESSAGES[kind].format(tag=self.tag, **data)
        self.result.add_report(
            Report(
                kind=kind,
                message=message,
                path=self.path,
                line=source_range.start.line,
                column=source_range.start.column,
                rule=self.rule,
                data=data,
            )
        )
