from closurescan.analysis import classify, iter_references, summarize_variables
from closurescan.graph import DefinitionKind, GraphBuilder, ScopeKind, SourceRange, Variable

FUNCTION_RANGE = SourceRange.from_pairs((10, 0), (20, 0))
INSIDE = SourceRange.from_pairs((12, 4), (12, 9))
OUTSIDE = SourceRange.from_pairs((2, 0), (2, 5))
USE = SourceRange.from_pairs((15, 8), (15, 9))


def build_nested():
    builder = GraphBuilder()
    module = builder.add_scope(ScopeKind.MODULE)
    function = builder.add_scope(ScopeKind.FUNCTION, module)
    inner = builder.add_scope(ScopeKind.FUNCTION, function)
    deepest = builder.add_scope(ScopeKind.COMPREHENSION, inner)
    sibling = builder.add_scope(ScopeKind.FUNCTION, module)
    for name, scope in (("module", module), ("function", function), ("inner", inner), ("deep", deepest), ("sibling", sibling)):
        builder.add_reference(name, scope, USE)
    return builder.build(), function


def single_variable(*definitions):
    builder = GraphBuilder()
    module = builder.add_scope(ScopeKind.MODULE)
    function = builder.add_scope(ScopeKind.FUNCTION, module)
    variable = builder.add_variable("x", module)
    for source_range, kind in definitions:
        builder.add_definition(variable, source_range, kind)
    builder.add_reference("x", function, USE, resolved=variable)
    graph = builder.build()
    return graph, graph.references[0]


def test_walker_visits_whole_subtree_only():
    graph, function = build_nested()

    names = sorted(reference.name for reference in iter_references(graph, function))

    assert names == ["deep", "function", "inner"]


def test_unresolved_reference_is_exempt():
    builder = GraphBuilder()
    scope = builder.add_scope(ScopeKind.MODULE)
    builder.add_reference("print", scope, USE)
    graph = builder.build()

    assert classify(graph, graph.references[0], FUNCTION_RANGE) is None


def test_outer_definition_is_a_capture():
    graph, reference = single_variable((OUTSIDE, DefinitionKind.VARIABLE))

    capture = classify(graph, reference, FUNCTION_RANGE)

    assert capture.variable.name == "x"
    assert [definition.range for definition in capture.definitions] == [OUTSIDE]


def test_allow_listed_name_is_exempt():
    graph, reference = single_variable((OUTSIDE, DefinitionKind.VARIABLE))

    assert classify(graph, reference, FUNCTION_RANGE, ("y", "x")) is None


def test_self_declared_variable_is_exempt():
    graph, reference = single_variable((INSIDE, DefinitionKind.VARIABLE))

    assert classify(graph, reference, FUNCTION_RANGE) is None


def test_definition_spanning_whole_function_is_inside():
    graph, reference = single_variable((FUNCTION_RANGE, DefinitionKind.FUNCTION))

    assert classify(graph, reference, FUNCTION_RANGE) is None


def test_type_only_definitions_are_exempt():
    graph, reference = single_variable((OUTSIDE, DefinitionKind.TYPE))

    assert classify(graph, reference, FUNCTION_RANGE) is None


def test_mixed_definitions_keep_only_outer_runtime_ones():
    graph, reference = single_variable(
        (OUTSIDE, DefinitionKind.VARIABLE),
        (INSIDE, DefinitionKind.VARIABLE),
        (SourceRange.from_pairs((3, 0), (3, 5)), DefinitionKind.TYPE),
    )

    capture = classify(graph, reference, FUNCTION_RANGE)

    assert [definition.range for definition in capture.definitions] == [OUTSIDE]


def make_variables(*names):
    return [Variable(id=index, name=name, scope=0) for index, name in enumerate(names)]


def test_summary_sorts_short_lists():
    assert summarize_variables(make_variables("b", "a")) == "a, b"
    assert summarize_variables(make_variables("d", "c", "b", "a")) == "a, b, c, d"


def test_summary_collapses_long_lists():
    names = make_variables("zeta", "alpha", "eta", "beta", "gamma")

    assert summarize_variables(names) == "alpha, beta, ..., zeta"


def test_summary_keeps_duplicate_names_of_distinct_variables():
    assert summarize_variables(make_variables("x", "x")) == "x, x"
