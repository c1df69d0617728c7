"""Report variables that tagged functions close over without declaring them."""

from __future__ import annotations

import logging
from typing import Optional

from closurescan.aggregator import ReportAggregator
from closurescan.analysis import collect_captures
from closurescan.annotations import DEFAULT_TAG, AnnotationResolver, TagGrammar
from closurescan.config import ReportOptions
from closurescan.graph import FunctionNode
from closurescan.result import AnalysisResult

from . import AnalysisContext

logger = logging.getLogger(__name__)


class ImplicitClosureRule:
    """Flag outer-scope variables read or written by tagged functions.

    Functions opt in with a tag comment; names listed in the tag's allow-list
    may be captured freely.
    """

    name = "no-implicit-closures"

    def __init__(self, options: Optional[ReportOptions] = None, tag: str = DEFAULT_TAG) -> None:
        self.options = options or ReportOptions()
        self.grammar = TagGrammar(tag)

    @property
    def tag(self) -> str:
        return self.grammar.keyword

    def scan(self, context: AnalysisContext, result: AnalysisResult) -> None:
        resolver = AnnotationResolver(context.graph, self.grammar)
        aggregator = ReportAggregator(result, self.options, context.path, self.tag, self.name)
        try:
            for function in context.graph.functions:
                self._check_function(context, resolver, aggregator, function)
        finally:
            aggregator.flush()

    def _check_function(
        self,
        context: AnalysisContext,
        resolver: AnnotationResolver,
        aggregator: ReportAggregator,
        function: FunctionNode,
    ) -> None:
        annotation = resolver.resolve(function)
        if annotation is None:
            return

        scope = context.graph.acquire(function)
        if scope is None:
            logger.debug("%s: tagged function %s has no scope", context.path, function.name)
            aggregator.missing_scope(function)
            return

        logger.debug(
            "%s:%d: checking tagged function %s (allow: %s)",
            context.path,
            function.range.start.line,
            function.name,
            ", ".join(annotation.allow) or "-",
        )
        captured = 0
        for capture in collect_captures(context.graph, scope.id, function.range, annotation.allow):
            aggregator.record(function, capture)
            captured += 1
        if captured:
            logger.debug("%s: %s captures %d reference(s)", context.path, function.name, captured)
