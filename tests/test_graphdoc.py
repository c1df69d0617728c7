import json

import pytest

from closurescan.exceptions import GraphError
from closurescan.result import AnalysisResult
from closurescan.rules import AnalysisContext
from closurescan.rules.implicit_closures import ImplicitClosureRule
from closurescan.utils.graphdoc import graph_from_document, load_graph

TAGGED_CLOSURE_GRAPH = """
scopes:
  - {id: global, kind: module}
  - {id: outer, kind: function, parent: global}
  - {id: foo, kind: function, parent: outer}
variables:
  - {id: x, name: x, scope: outer}
definitions:
  - {variable: x, range: [[2, 8], [2, 13]]}
references:
  - {name: x, scope: foo, resolved: x, range: [[5, 11], [5, 12]]}
  - {name: console, scope: foo, range: [[5, 0], [5, 7]]}
tokens:
  - {kind: comment, value: " eslint-no-implicit-closure", range: [[3, 2], [3, 31]]}
  - {kind: code, value: function, range: [[4, 2], [4, 10]]}
functions:
  - {kind: function, name: outer, scope: outer, range: [[1, 0], [7, 1]]}
  - {kind: function, name: foo, scope: foo, range: [[4, 2], [6, 3]]}
"""


def scan_graph(graph):
    result = AnalysisResult()
    ImplicitClosureRule(tag="eslint-no-implicit-closure").scan(AnalysisContext(graph=graph, path="input.js"), result)
    return result


def test_load_graph_from_yaml(tmp_path):
    path = tmp_path / "graph.yaml"
    path.write_text(TAGGED_CLOSURE_GRAPH, encoding="utf-8")

    result = scan_graph(load_graph(path))

    assert [(report.kind.value, report.line) for report in result.reports] == [
        ("reference", 5),
        ("function", 4),
        ("declaration", 2),
    ]


def test_load_graph_from_json(tmp_path):
    document = {
        "scopes": [{"id": 0, "kind": "module"}, {"id": 1, "kind": "function", "parent": 0}],
        "variables": [{"id": 0, "name": "y", "scope": 0}],
        "definitions": [{"variable": 0, "range": [[1, 0], [1, 5]]}],
        "references": [{"name": "y", "scope": 1, "resolved": 0, "range": [[3, 9], [3, 10]]}],
        "functions": [
            {
                "name": "bar",
                "kind": "method",
                "scope": 1,
                "range": [[2, 0], [3, 10]],
                "comments": [{"value": " eslint-no-implicit-closure", "range": [[1, 10], [1, 40]]}],
            }
        ],
    }
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(document), encoding="utf-8")

    result = scan_graph(load_graph(path))

    assert result.summary.to_dict() == {"no_scope": 0, "reference": 1, "function": 1, "declaration": 1}


def test_function_without_scope_reports_no_scope():
    graph = graph_from_document(
        {
            "tokens": [{"kind": "comment", "value": " eslint-no-implicit-closure", "range": [[1, 0], [1, 29]]}],
            "functions": [{"name": "odd", "scope": None, "range": [[2, 0], [2, 9]]}],
        }
    )

    result = scan_graph(graph)

    assert [report.kind.value for report in result.reports] == ["noScope"]


def test_missing_file_raises(tmp_path):
    with pytest.raises(GraphError, match="not found"):
        load_graph(tmp_path / "missing.yaml")


def test_non_mapping_document_raises(tmp_path):
    path = tmp_path / "graph.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(GraphError, match="not a mapping"):
        load_graph(path)


def test_dangling_id_names_the_entry():
    with pytest.raises(GraphError, match=r"variables\[0\]: unknown scope id 9"):
        graph_from_document({"scopes": [{"id": 0}], "variables": [{"id": 0, "name": "x", "scope": 9}]})


def test_missing_key_names_the_entry():
    with pytest.raises(GraphError, match=r"references\[0\]: missing key 'range'"):
        graph_from_document({"scopes": [{"id": 0}], "references": [{"name": "x", "scope": 0}]})


def test_child_scope_before_parent_is_rejected():
    with pytest.raises(GraphError, match=r"scopes\[0\]"):
        graph_from_document({"scopes": [{"id": 1, "parent": 0}, {"id": 0}]})


def test_variable_without_definitions_is_rejected():
    with pytest.raises(GraphError, match="has no definitions"):
        graph_from_document({"scopes": [{"id": 0}], "variables": [{"id": 0, "name": "x", "scope": 0}]})


def test_malformed_range_is_rejected():
    with pytest.raises(GraphError, match=r"tokens\[0\]"):
        graph_from_document({"tokens": [{"kind": "code", "value": "x", "range": [1, 2, 3]}]})


def test_duplicate_scope_id_is_rejected():
    document = {
        "scopes": [{"id": 1, "kind": "module"}, {"id": 1, "kind": "function"}],
        "variables": [{"id": 0, "name": "x", "scope": 1}],
    }

    with pytest.raises(GraphError, match=r"scopes\[1\]: duplicate id 1"):
        graph_from_document(document)


def test_duplicate_variable_id_is_rejected():
    document = {
        "scopes": [{"id": 0, "kind": "module"}],
        "variables": [{"id": "x", "name": "x", "scope": 0}, {"id": "x", "name": "y", "scope": 0}],
    }

    with pytest.raises(GraphError, match=r"variables\[1\]: duplicate id 'x'"):
        graph_from_document(document)


def test_second_root_scope_is_rejected():
    document = {"scopes": [{"id": 0, "kind": "module"}, {"id": 1, "kind": "module"}]}

    with pytest.raises(GraphError, match=r"scopes\[1\]: scope graph already has a root scope"):
        graph_from_document(document)
