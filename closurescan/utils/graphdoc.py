"""Load a serialized scope graph produced by an external binder.

The document is YAML or JSON with top-level lists ``scopes``, ``variables``,
``definitions``, ``references``, ``tokens`` and ``functions``. Entries refer
to each other by their document ``id``; ranges are ``[[line, column], [line, column]]``.
"""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

import yaml

from closurescan.exceptions import GraphError
from closurescan.graph import GraphBuilder, ScopeGraph, SourceRange, Token, TokenKind

from .fileio import read_yaml_file


def load_graph(path: Path) -> ScopeGraph:
    """Load a scope graph document into a :class:`ScopeGraph`."""

    try:
        data = read_yaml_file(path)
    except yaml.YAMLError as exc:
        raise GraphError(f"Scope graph at {path} is not valid YAML/JSON: {exc}") from exc
    if data is None:
        raise GraphError(f"Scope graph not found: {path}")
    if not isinstance(data, dict):
        raise GraphError(f"Scope graph at {path} is not a mapping")
    return graph_from_document(data)


def graph_from_document(document: Mapping[str, Any]) -> ScopeGraph:
    builder = GraphBuilder()
    scope_ids: Dict[Any, int] = {}
    variable_ids: Dict[Any, int] = {}

    for index, entry in _entries(document, "scopes"):
        with _entry_errors("scopes", index):
            parent = entry.get("parent")
            parent_id = None if parent is None else _lookup(scope_ids, parent, "scope")
            key = _unique(scope_ids, entry["id"])
            scope_ids[key] = builder.add_scope(entry.get("kind", "function"), parent_id)

    for index, entry in _entries(document, "variables"):
        with _entry_errors("variables", index):
            key = _unique(variable_ids, entry["id"])
            variable_ids[key] = builder.add_variable(str(entry["name"]), _lookup(scope_ids, entry["scope"], "scope"))

    for index, entry in _entries(document, "definitions"):
        with _entry_errors("definitions", index):
            builder.add_definition(
                _lookup(variable_ids, entry["variable"], "variable"),
                _parse_range(entry["range"]),
                entry.get("kind", "variable"),
            )

    for index, entry in _entries(document, "references"):
        with _entry_errors("references", index):
            resolved = entry.get("resolved")
            builder.add_reference(
                str(entry["name"]),
                _lookup(scope_ids, entry["scope"], "scope"),
                _parse_range(entry["range"]),
                None if resolved is None else _lookup(variable_ids, resolved, "variable"),
            )

    for index, entry in _entries(document, "tokens"):
        with _entry_errors("tokens", index):
            builder.add_token(entry.get("kind", "code"), str(entry.get("value", "")), _parse_range(entry["range"]))

    for index, entry in _entries(document, "functions"):
        with _entry_errors("functions", index):
            scope = entry.get("scope")
            comments = [
                Token(TokenKind.COMMENT, str(comment.get("value", "")), _parse_range(comment["range"]))
                for comment in entry.get("comments") or []
            ]
            builder.add_function(
                entry.get("kind", "function"),
                str(entry.get("name", "<anonymous>")),
                _parse_range(entry["range"]),
                None if scope is None else _lookup(scope_ids, scope, "scope"),
                comments,
            )

    return builder.build()


def _entries(document: Mapping[str, Any], section: str) -> Iterator[Tuple[int, Mapping[str, Any]]]:
    entries: Optional[List[Any]] = document.get(section)
    if entries is None:
        return
    if not isinstance(entries, list):
        raise GraphError(f"{section}: expected a list")
    for index, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise GraphError(f"{section}[{index}]: expected a mapping")
        yield index, entry


@contextmanager
def _entry_errors(section: str, index: int) -> Iterator[None]:
    try:
        yield
    except KeyError as exc:
        raise GraphError(f"{section}[{index}]: missing key {exc}") from exc
    except (IndexError, TypeError, ValueError) as exc:
        raise GraphError(f"{section}[{index}]: {exc}") from exc


def _lookup(ids: Mapping[Any, int], key: Any, label: str) -> int:
    if key not in ids:
        raise GraphError(f"unknown {label} id {key!r}")
    return ids[key]


def _unique(ids: Mapping[Any, int], key: Any) -> Any:
    if key in ids:
        raise GraphError(f"duplicate id {key!r}")
    return key


def _parse_range(value: Any) -> SourceRange:
    if not isinstance(value, (list, tuple)) or len(value) != 2:
        raise ValueError(f"range must be [[line, column], [line, column]], got {value!r}")
    start, end = value
    return SourceRange.from_pairs(start, end)
