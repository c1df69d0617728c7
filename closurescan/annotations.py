"""Recognize tag comments on function-like nodes and extract their allow-lists.

A tag is a single-line comment of the form::

    # no-implicit-closure
    # no-implicit-closure (config, logger)

The keyword is configurable; the parenthesized list names variables the
function is allowed to close over.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Tuple

from .graph import FunctionNode, ScopeGraph, Token

DEFAULT_TAG = "no-implicit-closure"


@dataclass(frozen=True)
class AnnotationTag:
    """A resolved tag: the allow-list plus the comment it came from."""

    allow: Tuple[str, ...] = ()
    comment: Optional[Token] = None


class TagGrammar:
    """Parse the ``KEYWORD`` / ``KEYWORD (name, ...)`` comment grammar."""

    def __init__(self, keyword: str = DEFAULT_TAG) -> None:
        self.keyword = keyword
        self._pattern: Pattern[str] = re.compile(r"^\s*" + re.escape(keyword) + r"(\s*\((.*)\))?")

    def parse(self, comment: str) -> Optional[Tuple[str, ...]]:
        """Return the allow-list for a tag comment, or ``None`` if it is not one."""

        match = self._pattern.match(comment)
        if match is None:
            return None
        names = match.group(2)
        if not names:
            return ()
        return tuple(name.strip() for name in names.split(",") if name.strip())


class AnnotationResolver:
    """Decide whether a function-like node is tagged.

    Comments attached to the node by the binder are checked first. Attachment
    is unreliable for expressions such as lambdas, so the raw token stream is
    scanned backward from the node as a fallback: only a comment ending on the
    line directly above the node counts.
    """

    def __init__(self, graph: ScopeGraph, grammar: Optional[TagGrammar] = None) -> None:
        self.graph = graph
        self.grammar = grammar or TagGrammar()

    def resolve(self, function: FunctionNode) -> Optional[AnnotationTag]:
        for comment in function.comments:
            allow = self.grammar.parse(comment.value)
            if allow is not None:
                return AnnotationTag(allow, comment)
        return self._scan_preceding(function)

    def _scan_preceding(self, function: FunctionNode) -> Optional[AnnotationTag]:
        start_line = function.range.start.line
        stop: Optional[Token] = None
        for token in self.graph.tokens_before(function.range.start):
            if token.is_comment or token.range.end.line + 1 < start_line:
                stop = token
                break
        if stop is None or not stop.is_comment or stop.range.end.line + 1 != start_line:
            return None
        allow = self.grammar.parse(stop.value)
        if allow is None:
            return None
        return AnnotationTag(allow, stop)
