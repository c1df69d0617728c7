"""Walk a tagged function's scopes and classify the references found there."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple

from .graph import Definition, Reference, ScopeGraph, SourceRange, Variable

SUMMARY_LIMIT = 4
SUMMARY_SEPARATOR = ", "
SUMMARY_ELLIPSIS = "..."


@dataclass(frozen=True)
class Capture:
    """A reference that closes over a variable defined outside the function."""

    reference: Reference
    variable: Variable
    definitions: Tuple[Definition, ...]


def iter_references(graph: ScopeGraph, root_scope: int) -> Iterator[Reference]:
    """Yield every reference in ``root_scope`` and all scopes nested in it."""

    stack: List[int] = [root_scope]
    while stack:
        scope = graph.scope(stack.pop())
        stack.extend(scope.children)
        for reference_id in scope.references:
            yield graph.reference(reference_id)


def classify(
    graph: ScopeGraph,
    reference: Reference,
    function_range: SourceRange,
    allow: Sequence[str] = (),
) -> Optional[Capture]:
    """Return a :class:`Capture` if ``reference`` closes over an outer variable.

    Exemptions are checked in order: unresolved names, allow-listed names, and
    variables whose every runtime definition lies inside ``function_range``.
    A variable redeclared both inside and outside the function is captured
    through its outer definitions only.
    """

    if reference.resolved is None:
        return None
    variable = graph.variable(reference.resolved)
    if variable.name in allow:
        return None
    outer = tuple(
        definition
        for definition in (graph.definition(def_id) for def_id in variable.definitions)
        if not function_range.contains(definition.range) and not definition.kind.type_only
    )
    if not outer:
        return None
    return Capture(reference, variable, outer)


def collect_captures(
    graph: ScopeGraph,
    root_scope: int,
    function_range: SourceRange,
    allow: Sequence[str] = (),
) -> Iterator[Capture]:
    for reference in iter_references(graph, root_scope):
        capture = classify(graph, reference, function_range, allow)
        if capture is not None:
            yield capture


def summarize_variables(variables: Iterable[Variable]) -> str:
    """Sorted, comma separated names; long lists keep the first two and the last."""

    names = sorted(variable.name for variable in variables)
    if len(names) > SUMMARY_LIMIT:
        names = names[:2] + [SUMMARY_ELLIPSIS] + names[-1:]
    return SUMMARY_SEPARATOR.join(names)
