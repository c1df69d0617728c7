"""Bind a Python module into a scope graph.

Only what the closure rule needs is computed: scopes, the variables bound in
them, every name occurrence with its resolution, the comment/token stream and
the function-like nodes (``def``, ``async def``, ``lambda``).
"""

from __future__ import annotations

import ast
import io
import logging
import tokenize
from bisect import bisect_left
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple, Union

from closurescan.graph import (
    DefinitionKind,
    FunctionKind,
    GraphBuilder,
    Location,
    ScopeGraph,
    ScopeKind,
    SourceRange,
    Token,
    TokenKind,
)

from .fileio import read_source_file

logger = logging.getLogger(__name__)

SKIPPED_TOKENS = frozenset(
    {
        tokenize.NL,
        tokenize.NEWLINE,
        tokenize.INDENT,
        tokenize.DEDENT,
        tokenize.ENCODING,
        tokenize.ENDMARKER,
    }
)

FunctionDef = Union[ast.FunctionDef, ast.AsyncFunctionDef]


@dataclass
class _ScopeInfo:
    id: int
    kind: ScopeKind
    parent: Optional["_ScopeInfo"]
    bindings: Dict[str, List[Tuple[SourceRange, DefinitionKind]]] = field(default_factory=dict)
    globals: Set[str] = field(default_factory=set)
    nonlocals: Set[str] = field(default_factory=set)
    references: List[Tuple[str, SourceRange]] = field(default_factory=list)


class _Binder(ast.NodeVisitor):
    """Collect scopes and names in one pass, then resolve references."""

    def __init__(self, source: str) -> None:
        self.lines = source.split("\n")
        self.builder = GraphBuilder()
        self.scopes: List[_ScopeInfo] = []
        self.current: Optional[_ScopeInfo] = None
        self.tokens: List[Token] = []
        self._variables: Dict[Tuple[int, str], int] = {}
        for token in _tokenize(source):
            self.tokens.append(self.builder.add_token(token.kind, token.value, token.range))
        self._token_starts = [token.range.start for token in self.tokens]

    # ------------------------------------------------------------------
    # Scopes and functions
    # ------------------------------------------------------------------
    def visit_Module(self, node: ast.Module) -> None:
        self._push(ScopeKind.MODULE)
        for statement in node.body:
            self.visit(statement)
        self._pop()

    def visit_FunctionDef(self, node: FunctionDef) -> None:
        scope = self._scope()
        kind = FunctionKind.METHOD if scope.kind is ScopeKind.CLASS else FunctionKind.FUNCTION
        full_range = self._decorated_range(node)
        self._bind(node.name, full_range, DefinitionKind.FUNCTION)
        function_scope = self._push(ScopeKind.FUNCTION, enter=False)
        self._add_function(kind, node.name, full_range, function_scope)

        for decorator in node.decorator_list:
            self.visit(decorator)
        self._visit_defaults(node.args)

        self.current = function_scope
        self._bind_arguments(node.args)
        for statement in node.body:
            self.visit(statement)
        self._pop()

    visit_AsyncFunctionDef = visit_FunctionDef

    def visit_Lambda(self, node: ast.Lambda) -> None:
        function_scope = self._push(ScopeKind.FUNCTION, enter=False)
        self._add_function(FunctionKind.LAMBDA, "<lambda>", self._range(node), function_scope)
        self._visit_defaults(node.args)

        self.current = function_scope
        self._bind_arguments(node.args)
        self.visit(node.body)
        self._pop()

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._bind(node.name, self._decorated_range(node), DefinitionKind.CLASS)
        for decorator in node.decorator_list:
            self.visit(decorator)
        for base in node.bases:
            self.visit(base)
        for keyword in node.keywords:
            self.visit(keyword)
        self._push(ScopeKind.CLASS)
        for statement in node.body:
            self.visit(statement)
        self._pop()

    def visit_ListComp(self, node: ast.ListComp) -> None:
        self._visit_comprehension(node.generators, node.elt)

    def visit_SetComp(self, node: ast.SetComp) -> None:
        self._visit_comprehension(node.generators, node.elt)

    def visit_GeneratorExp(self, node: ast.GeneratorExp) -> None:
        self._visit_comprehension(node.generators, node.elt)

    def visit_DictComp(self, node: ast.DictComp) -> None:
        self._visit_comprehension(node.generators, node.key, node.value)

    def _visit_comprehension(self, generators: List[ast.comprehension], *elements: ast.expr) -> None:
        # the outermost iterable is evaluated in the enclosing scope
        self.visit(generators[0].iter)
        self._push(ScopeKind.COMPREHENSION)
        for index, generator in enumerate(generators):
            if index:
                self.visit(generator.iter)
            self.visit(generator.target)
            for condition in generator.ifs:
                self.visit(condition)
        for element in elements:
            self.visit(element)
        self._pop()

    # ------------------------------------------------------------------
    # Bindings and references
    # ------------------------------------------------------------------
    def visit_Name(self, node: ast.Name) -> None:
        name_range = self._range(node)
        if isinstance(node.ctx, (ast.Store, ast.Del)):
            self._bind(node.id, name_range, DefinitionKind.VARIABLE)
        self._reference(node.id, name_range)

    def visit_NamedExpr(self, node: ast.NamedExpr) -> None:
        self.visit(node.value)
        target_scope = self._scope()
        while target_scope.kind is ScopeKind.COMPREHENSION and target_scope.parent is not None:
            target_scope = target_scope.parent
        name_range = self._range(node.target)
        self._bind(node.target.id, name_range, DefinitionKind.VARIABLE, target_scope)
        self._reference(node.target.id, name_range)

    def visit_AnnAssign(self, node: ast.AnnAssign) -> None:
        # annotations are never evaluated for locals, so they add no references
        if node.value is not None:
            self.visit(node.value)
        if isinstance(node.target, ast.Name):
            name_range = self._range(node.target)
            if node.value is None:
                self._bind(node.target.id, name_range, DefinitionKind.TYPE)
            else:
                self._bind(node.target.id, name_range, DefinitionKind.VARIABLE)
                self._reference(node.target.id, name_range)
        else:
            self.visit(node.target)

    def visit_TypeAlias(self, node: ast.AST) -> None:
        name = getattr(node, "name")
        self._bind(name.id, self._range(node), DefinitionKind.TYPE)

    def visit_Import(self, node: ast.Import) -> None:
        for alias in node.names:
            name = alias.asname or alias.name.split(".")[0]
            self._bind(name, self._alias_range(alias, node), DefinitionKind.IMPORT)

    def visit_ImportFrom(self, node: ast.ImportFrom) -> None:
        for alias in node.names:
            if alias.name == "*":
                continue
            self._bind(alias.asname or alias.name, self._alias_range(alias, node), DefinitionKind.IMPORT)

    def visit_Global(self, node: ast.Global) -> None:
        self._scope().globals.update(node.names)

    def visit_Nonlocal(self, node: ast.Nonlocal) -> None:
        self._scope().nonlocals.update(node.names)

    def visit_ExceptHandler(self, node: ast.ExceptHandler) -> None:
        if node.type is not None:
            self.visit(node.type)
        if node.name:
            self._bind(node.name, self._range(node), DefinitionKind.VARIABLE)
        for statement in node.body:
            self.visit(statement)

    def visit_MatchAs(self, node: ast.AST) -> None:
        self.generic_visit(node)
        name = getattr(node, "name", None)
        if name:
            self._bind(name, self._range(node), DefinitionKind.VARIABLE)

    visit_MatchStar = visit_MatchAs

    def visit_MatchMapping(self, node: ast.AST) -> None:
        self.generic_visit(node)
        rest = getattr(node, "rest", None)
        if rest:
            self._bind(rest, self._range(node), DefinitionKind.VARIABLE)

    def _visit_defaults(self, arguments: ast.arguments) -> None:
        for default in arguments.defaults:
            self.visit(default)
        for default in arguments.kw_defaults:
            if default is not None:
                self.visit(default)

    def _bind_arguments(self, arguments: ast.arguments) -> None:
        params = [*arguments.posonlyargs, *arguments.args, *arguments.kwonlyargs]
        for extra in (arguments.vararg, arguments.kwarg):
            if extra is not None:
                params.append(extra)
        for param in params:
            self._bind(param.arg, self._range(param), DefinitionKind.PARAMETER)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def build(self) -> ScopeGraph:
        for scope in self.scopes:
            for name, sites in scope.bindings.items():
                target = self._binding_scope(scope, name)
                if target is None:
                    continue
                variable = self._variable(target, name)
                for site_range, kind in sites:
                    self.builder.add_definition(variable, site_range, kind)
        for scope in self.scopes:
            for name, name_range in scope.references:
                self.builder.add_reference(name, scope.id, name_range, self._resolve(scope, name))
        return self.builder.build()

    def _binding_scope(self, scope: _ScopeInfo, name: str) -> Optional[_ScopeInfo]:
        """Return the scope that owns ``name`` when it is bound in ``scope``."""

        if name in scope.globals:
            return self.scopes[0]
        if name not in scope.nonlocals:
            return scope
        parent = scope.parent
        while parent is not None and parent.kind is not ScopeKind.MODULE:
            if parent.kind is not ScopeKind.CLASS and self._declares(parent, name):
                return self._binding_scope(parent, name)
            parent = parent.parent
        return None

    def _resolve(self, scope: _ScopeInfo, name: str) -> Optional[int]:
        candidate: Optional[_ScopeInfo] = scope
        while candidate is not None:
            # class bodies are invisible to the scopes nested in them
            visible = candidate is scope or candidate.kind is not ScopeKind.CLASS
            if visible and self._declares(candidate, name):
                target = self._binding_scope(candidate, name)
                if target is None:
                    return None
                return self._variables.get((target.id, name))
            candidate = candidate.parent
        return None

    def _declares(self, scope: _ScopeInfo, name: str) -> bool:
        return (
            name in scope.bindings
            or name in scope.globals
            or name in scope.nonlocals
            or (scope.id, name) in self._variables
        )

    def _variable(self, scope: _ScopeInfo, name: str) -> int:
        key = (scope.id, name)
        if key not in self._variables:
            self._variables[key] = self.builder.add_variable(name, scope.id)
        return self._variables[key]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _push(self, kind: ScopeKind, enter: bool = True) -> _ScopeInfo:
        parent = self.current
        scope_id = self.builder.add_scope(kind, parent.id if parent is not None else None)
        scope = _ScopeInfo(scope_id, kind, parent)
        self.scopes.append(scope)
        if enter:
            self.current = scope
        return scope

    def _pop(self) -> None:
        self.current = self._scope().parent

    def _scope(self) -> _ScopeInfo:
        if self.current is None:
            raise RuntimeError("name visited outside of a module scope")
        return self.current

    def _bind(
        self,
        name: str,
        name_range: SourceRange,
        kind: DefinitionKind,
        scope: Optional[_ScopeInfo] = None,
    ) -> None:
        target = scope or self._scope()
        target.bindings.setdefault(name, []).append((name_range, kind))

    def _reference(self, name: str, name_range: SourceRange) -> None:
        self._scope().references.append((name, name_range))

    def _add_function(self, kind: FunctionKind, name: str, function_range: SourceRange, scope: _ScopeInfo) -> None:
        comments = self._leading_comments(function_range.start)
        self.builder.add_function(kind, name, function_range, scope.id, comments)

    def _leading_comments(self, start: Location) -> List[Token]:
        """Comments directly above ``start`` with no code token in between."""

        comments: List[Token] = []
        index = bisect_left(self._token_starts, start) - 1
        while index >= 0 and self.tokens[index].is_comment:
            comments.append(self.tokens[index])
            index -= 1
        comments.reverse()
        return comments

    def _decorated_range(self, node: Union[FunctionDef, ast.ClassDef]) -> SourceRange:
        node_range = self._range(node)
        if not node.decorator_list:
            return node_range
        first = node.decorator_list[0]
        return SourceRange(Location(first.lineno, node_range.start.column), node_range.end)

    def _alias_range(self, alias: ast.alias, statement: ast.stmt) -> SourceRange:
        if getattr(alias, "lineno", None) is not None:
            return self._range(alias)
        return self._range(statement)

    def _range(self, node: ast.AST) -> SourceRange:
        lineno = getattr(node, "lineno")
        end_lineno = getattr(node, "end_lineno", None) or lineno
        end_col = getattr(node, "end_col_offset", None)
        start = Location(lineno, self._column(lineno, getattr(node, "col_offset")))
        end = Location(end_lineno, self._column(end_lineno, end_col if end_col is not None else 0))
        return SourceRange(start, end)

    def _column(self, lineno: int, byte_offset: int) -> int:
        # ast reports UTF-8 byte offsets, tokenize reports characters
        if not 0 < lineno <= len(self.lines):
            return byte_offset
        line = self.lines[lineno - 1]
        if line.isascii():
            return byte_offset
        return len(line.encode("utf-8")[:byte_offset].decode("utf-8", errors="ignore"))


def _tokenize(source: str) -> List[Token]:
    tokens: List[Token] = []
    for token in tokenize.generate_tokens(io.StringIO(source).readline):
        if token.type in SKIPPED_TOKENS:
            continue
        token_range = SourceRange(Location(*token.start), Location(*token.end))
        if token.type == tokenize.COMMENT:
            tokens.append(Token(TokenKind.COMMENT, token.string[1:], token_range))
        else:
            tokens.append(Token(TokenKind.CODE, token.string, token_range))
    return tokens


def bind_source(source: str, filename: str = "<unknown>") -> ScopeGraph:
    """Parse ``source`` and return its scope graph; syntax errors propagate."""

    tree = ast.parse(source, filename=filename)
    binder = _Binder(source)
    binder.visit(tree)
    return binder.build()


def load_source_graph(path: Path) -> Optional[ScopeGraph]:
    """Bind a Python file, or return ``None`` if it cannot be parsed."""

    try:
        source = read_source_file(path)
        return bind_source(source, filename=str(path))
    except (SyntaxError, UnicodeDecodeError, tokenize.TokenError) as exc:
        logger.warning("Skipping %s: %s", path, exc)
        return None
