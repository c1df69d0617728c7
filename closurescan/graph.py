"""Arena-backed scope graph consumed by the closure rule.

Every entity lives in a list on :class:`ScopeGraph` and is addressed by its
integer id. Scopes point at their parent by id only; the graph is built once by
:class:`GraphBuilder` and never mutated afterwards.
"""

from __future__ import annotations

from bisect import bisect_left
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Sequence, Tuple

from .exceptions import GraphError


@dataclass(frozen=True, order=True)
class Location:
    """A position in source: 1-based line, 0-based column."""

    line: int
    column: int = 0


@dataclass(frozen=True)
class SourceRange:
    """Start and end positions of a node, both inclusive for containment."""

    start: Location
    end: Location

    def contains(self, other: "SourceRange") -> bool:
        return self.start <= other.start and other.end <= self.end

    @classmethod
    def from_pairs(cls, start: Sequence[int], end: Sequence[int]) -> "SourceRange":
        return cls(Location(int(start[0]), int(start[1])), Location(int(end[0]), int(end[1])))


class ScopeKind(str, Enum):
    MODULE = "module"
    CLASS = "class"
    FUNCTION = "function"
    COMPREHENSION = "comprehension"


class DefinitionKind(str, Enum):
    VARIABLE = "variable"
    PARAMETER = "parameter"
    FUNCTION = "function"
    CLASS = "class"
    IMPORT = "import"
    TYPE = "type"

    @property
    def type_only(self) -> bool:
        """Type-level declarations never bind a runtime value."""

        return self is DefinitionKind.TYPE


class FunctionKind(str, Enum):
    FUNCTION = "function"
    LAMBDA = "lambda"
    METHOD = "method"


class TokenKind(str, Enum):
    COMMENT = "comment"
    CODE = "code"


@dataclass(frozen=True)
class Scope:
    id: int
    kind: ScopeKind
    parent: Optional[int]
    children: Tuple[int, ...] = ()
    variables: Tuple[int, ...] = ()
    references: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Variable:
    id: int
    name: str
    scope: int
    definitions: Tuple[int, ...] = ()


@dataclass(frozen=True)
class Definition:
    id: int
    variable: int
    name: str
    range: SourceRange
    kind: DefinitionKind = DefinitionKind.VARIABLE


@dataclass(frozen=True)
class Reference:
    """One identifier occurrence; ``resolved`` is ``None`` for globals/builtins."""

    id: int
    name: str
    scope: int
    range: SourceRange
    resolved: Optional[int] = None


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    value: str
    range: SourceRange

    @property
    def is_comment(self) -> bool:
        return self.kind is TokenKind.COMMENT


@dataclass(frozen=True)
class FunctionNode:
    """A function-like construct handed to the rule one at a time."""

    id: int
    kind: FunctionKind
    name: str
    range: SourceRange
    scope: Optional[int] = None
    comments: Tuple[Token, ...] = ()


@dataclass(frozen=True)
class ScopeGraph:
    """Read-only scope graph for one program unit."""

    scopes: Tuple[Scope, ...] = ()
    variables: Tuple[Variable, ...] = ()
    definitions: Tuple[Definition, ...] = ()
    references: Tuple[Reference, ...] = ()
    tokens: Tuple[Token, ...] = ()
    functions: Tuple[FunctionNode, ...] = ()
    _token_starts: Tuple[Location, ...] = field(default=(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_token_starts", tuple(token.range.start for token in self.tokens))

    def scope(self, scope_id: int) -> Scope:
        return self.scopes[scope_id]

    def variable(self, variable_id: int) -> Variable:
        return self.variables[variable_id]

    def definition(self, definition_id: int) -> Definition:
        return self.definitions[definition_id]

    def reference(self, reference_id: int) -> Reference:
        return self.references[reference_id]

    def acquire(self, function: FunctionNode) -> Optional[Scope]:
        """Return the scope a function-like node opens, if the binder gave it one."""

        if function.scope is None or not 0 <= function.scope < len(self.scopes):
            return None
        return self.scopes[function.scope]

    def tokens_before(self, location: Location) -> Iterator[Token]:
        """Yield tokens starting before ``location``, nearest first."""

        index = bisect_left(self._token_starts, location)
        for position in range(index - 1, -1, -1):
            yield self.tokens[position]


@dataclass
class _ScopeDraft:
    kind: ScopeKind
    parent: Optional[int]
    children: List[int] = field(default_factory=list)
    variables: List[int] = field(default_factory=list)
    references: List[int] = field(default_factory=list)


@dataclass
class _VariableDraft:
    name: str
    scope: int
    definitions: List[int] = field(default_factory=list)


class GraphBuilder:
    """Assemble a :class:`ScopeGraph`, handing out ids as entities are added.

    A parent scope has to exist before its children are added and only the
    first scope may lack a parent, so the scopes always form a rooted tree.
    """

    def __init__(self) -> None:
        self._scopes: List[_ScopeDraft] = []
        self._variables: List[_VariableDraft] = []
        self._definitions: List[Definition] = []
        self._references: List[Reference] = []
        self._tokens: List[Token] = []
        self._functions: List[FunctionNode] = []

    def add_scope(self, kind: ScopeKind, parent: Optional[int] = None) -> int:
        if parent is not None:
            self._check_scope(parent)
        elif self._scopes:
            raise GraphError("scope graph already has a root scope")
        scope_id = len(self._scopes)
        self._scopes.append(_ScopeDraft(ScopeKind(kind), parent))
        if parent is not None:
            self._scopes[parent].children.append(scope_id)
        return scope_id

    def add_variable(self, name: str, scope: int) -> int:
        self._check_scope(scope)
        variable_id = len(self._variables)
        self._variables.append(_VariableDraft(name, scope))
        self._scopes[scope].variables.append(variable_id)
        return variable_id

    def add_definition(
        self,
        variable: int,
        source_range: SourceRange,
        kind: DefinitionKind = DefinitionKind.VARIABLE,
    ) -> int:
        self._check_variable(variable)
        definition_id = len(self._definitions)
        draft = self._variables[variable]
        self._definitions.append(Definition(definition_id, variable, draft.name, source_range, DefinitionKind(kind)))
        draft.definitions.append(definition_id)
        return definition_id

    def add_reference(
        self,
        name: str,
        scope: int,
        source_range: SourceRange,
        resolved: Optional[int] = None,
    ) -> int:
        self._check_scope(scope)
        if resolved is not None:
            self._check_variable(resolved)
        reference_id = len(self._references)
        self._references.append(Reference(reference_id, name, scope, source_range, resolved))
        self._scopes[scope].references.append(reference_id)
        return reference_id

    def add_token(self, kind: TokenKind, value: str, source_range: SourceRange) -> Token:
        token = Token(TokenKind(kind), value, source_range)
        self._tokens.append(token)
        return token

    def add_function(
        self,
        kind: FunctionKind,
        name: str,
        source_range: SourceRange,
        scope: Optional[int] = None,
        comments: Sequence[Token] = (),
    ) -> int:
        if scope is not None:
            self._check_scope(scope)
        function_id = len(self._functions)
        self._functions.append(
            FunctionNode(function_id, FunctionKind(kind), name, source_range, scope, tuple(comments))
        )
        return function_id

    def build(self) -> ScopeGraph:
        scopes = tuple(
            Scope(
                id=index,
                kind=draft.kind,
                parent=draft.parent,
                children=tuple(draft.children),
                variables=tuple(draft.variables),
                references=tuple(draft.references),
            )
            for index, draft in enumerate(self._scopes)
        )
        variables = []
        for index, draft in enumerate(self._variables):
            if not draft.definitions:
                raise GraphError(f"variable {draft.name!r} (id {index}) has no definitions")
            variables.append(Variable(index, draft.name, draft.scope, tuple(draft.definitions)))
        tokens = tuple(sorted(self._tokens, key=lambda token: (token.range.start, token.range.end)))
        return ScopeGraph(
            scopes=scopes,
            variables=tuple(variables),
            definitions=tuple(self._definitions),
            references=tuple(self._references),
            tokens=tokens,
            functions=tuple(self._functions),
        )

    def _check_scope(self, scope_id: int) -> None:
        if not 0 <= scope_id < len(self._scopes):
            raise GraphError(f"unknown scope id {scope_id}")

    def _check_variable(self, variable_id: int) -> None:
        if not 0 <= variable_id < len(self._variables):
            raise GraphError(f"unknown variable id {variable_id}")
