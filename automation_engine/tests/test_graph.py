import pytest

from automation_engine.core.conditions import evaluate_condition
from automation_engine.core.exceptions import CycleError, MissingTriggerError, MultipleTriggerError
from automation_engine.core.graph import ExecutionGraph


def _noop(node_id):
    return (node_id, "template", {"template": node_id})


class TestExecutionGraph:
    def test_find_trigger(self, make_graph):
        graph = ExecutionGraph(make_graph([("t", "trigger"), _noop("a")], [("t", "a")]))
        assert graph.find_trigger().id == "t"

    def test_missing_and_multiple_triggers(self, make_graph):
        with pytest.raises(MissingTriggerError):
            ExecutionGraph(make_graph([_noop("a")], [])).find_trigger()
        with pytest.raises(MultipleTriggerError):
            ExecutionGraph(make_graph([("t1", "trigger"), ("t2", "trigger")], [])).find_trigger()

    def test_ties_follow_edge_declaration_order(self, make_graph):
        graph = ExecutionGraph(
            make_graph(
                [("t", "trigger"), _noop("a"), _noop("b"), _noop("c")],
                [("t", "b"), ("t", "a"), ("a", "c"), ("b", "c")],
            )
        )
        assert graph.topo_order("t") == ["t", "b", "a", "c"]

    def test_join_waits_for_every_predecessor(self, make_graph):
        graph = ExecutionGraph(
            make_graph(
                [("t", "trigger"), _noop("a"), _noop("b"), _noop("d")],
                [("t", "a"), ("t", "d"), ("a", "b"), ("b", "d")],
            )
        )
        assert graph.topo_order("t") == ["t", "a", "b", "d"]

    def test_unreachable_nodes_are_excluded(self, make_graph):
        graph = ExecutionGraph(make_graph([("t", "trigger"), _noop("a"), _noop("island")], [("t", "a")]))
        assert graph.topo_order("t") == ["t", "a"]

    def test_cycle(self, make_graph):
        graph = ExecutionGraph(
            make_graph([("t", "trigger"), _noop("a"), _noop("b")], [("t", "a"), ("a", "b"), ("b", "a")])
        )
        with pytest.raises(CycleError, match="a, b"):
            graph.topo_order("t")

    def test_execution_order_drops_drop_nodes(self, make_graph):
        graph = ExecutionGraph(
            make_graph([("t", "trigger"), ("d", "drop"), _noop("a")], [("t", "d"), ("d", "a")])
        )
        assert graph.topo_order("t") == ["t", "d", "a"]
        assert graph.execution_order("t") == ["t", "a"]

    def test_successors_and_predecessors(self, make_graph):
        graph = ExecutionGraph(make_graph([("t", "trigger"), _noop("a")], [("t", "a", "out")]))
        assert [e.target for e in graph.successors("t")] == ["a"]
        assert graph.predecessors("a")[0].source_handle == "out"
        assert graph.successors("a") == []


@pytest.mark.parametrize(
    "value,operator,compare,expected",
    [
        ("high", "equals", "high", True),
        (5, "equals", "5", True),
        ("a", "notEquals", "b", True),
        ("Hello World", "contains", "world", True),
        ("Hello", "notContains", "x", True),
        ("Invoice 42", "startsWith", "invoice", True),
        ("report.pdf", "endsWith", ".PDF", True),
        ("10", "gt", 9, True),
        ("abc", "gt", 1, False),
        (3, "lte", 3, True),
        (None, "exists", None, False),
        ("", "isEmpty", None, True),
        ([], "isNotEmpty", None, False),
        ({}, "isEmpty", None, False),
        ({"a": 1}, "isNotEmpty", None, True),
        ("order-123", "regex", r"order-\d+", True),
        ("x", "regex", "(", False),
        ("x", "unknownOperator", "x", False),
    ],
)
def test_evaluate_condition(value, operator, compare, expected):
    assert evaluate_condition(value, operator, compare) is expected
