import pytest

from automation_engine.core.context import ExecutionContext, LoopFrame
from automation_engine.core.expr import get_path
from automation_engine.core.interpolation import (
    extract_references,
    find_unresolved,
    has_placeholders,
    interpolate,
    interpolate_string,
    render_with_variables,
    to_display_string,
)
from automation_engine.models import OperationResult


@pytest.fixture
def context():
    ctx = ExecutionContext({"user": {"name": "Ada", "tags": ["x", "y"]}, "count": 3, "vip": True})
    ctx.record_output("fetch", OperationResult.ok({"status": 200, "items": [{"id": 1}, {"id": 2}]}))
    return ctx


class TestInterpolateString:
    def test_trigger_paths(self, context):
        assert interpolate_string("Hello {{trigger.user.name}}", context) == "Hello Ada"
        assert interpolate_string("{{ trigger.count }}", context) == "3"
        assert interpolate_string("{{trigger.vip}}", context) == "true"

    def test_structures_render_as_compact_json(self, context):
        assert interpolate_string("{{trigger.user.tags}}", context) == '["x","y"]'

    def test_missing_paths_render_empty(self, context):
        assert interpolate_string("[{{trigger.nope.deeper}}]", context) == "[]"
        assert interpolate_string("[{{nodes.ghost.value}}]", context) == "[]"

    def test_previous_and_output_prefix(self, context):
        assert interpolate_string("{{previous.status}}", context) == "200"
        assert interpolate_string("{{previous.output.status}}", context) == "200"

    def test_node_outputs(self, context):
        assert interpolate_string("{{nodes.fetch.status}}", context) == "200"
        assert interpolate_string("{{nodes.fetch.output.items[1].id}}", context) == "2"
        assert interpolate_string("{{nodes.fetch.items.0.id}}", context) == "1"

    def test_array_expansion(self, context):
        assert interpolate_string("{{nodes.fetch.items[].id}}", context) == "[1,2]"

    def test_case_insensitive_keys(self, context):
        assert interpolate_string("{{trigger.USER.Name}}", context) == "Ada"

    def test_flow_and_vars(self, context):
        context.push_frame(LoopFrame(node_id="it", items=["p", "q"], cursor=1))
        context.set_variable("item", "q")

        assert interpolate_string("{{flow.item}}-{{flow.index}}-{{flow.totalItems}}", context) == "q-1-2"
        assert interpolate_string("{{flow.isLastItem}}", context) == "true"
        assert interpolate_string("{{vars.item}}", context) == "q"

    def test_flow_without_frame_is_empty(self, context):
        assert interpolate_string("{{flow.item}}", context) == ""

    def test_unknown_root_is_empty(self, context):
        assert interpolate_string("home={{env.HOME}}", context) == "home="

    def test_text_without_placeholders_is_untouched(self, context):
        assert interpolate_string("plain {text}", context) == "plain {text}"


class TestInterpolate:
    def test_recurses_into_structures(self, context):
        value = {"to": ["{{trigger.user.name}}"], "limit": 5, "nested": {"n": "{{trigger.count}}"}}

        assert interpolate(value, context) == {"to": ["Ada"], "limit": 5, "nested": {"n": "3"}}

    def test_preserve_types_for_single_placeholder(self, context):
        assert interpolate("{{trigger.user.tags}}", context, preserve_types=True) == ["x", "y"]
        assert interpolate("{{ trigger.count }}", context, preserve_types=True) == 3
        assert interpolate("n={{trigger.count}}", context, preserve_types=True) == "n=3"

    def test_does_not_mutate_input(self, context):
        value = {"a": "{{trigger.count}}"}
        interpolate(value, context)
        assert value == {"a": "{{trigger.count}}"}


class TestHelpers:
    def test_render_with_variables(self, context):
        rendered = render_with_variables(
            "Hi {{name}} from {{trigger.user.name}}", {"name": "Bob"}, context
        )
        assert rendered == "Hi Bob from Ada"

    def test_placeholder_detection(self):
        assert has_placeholders("Hi {{ trigger.name }}")
        assert not has_placeholders("Hi {name}")
        assert not has_placeholders(42)
        assert extract_references("{{ a.b }} and {{c}}") == ["a.b", "c"]
        assert extract_references(None) == []

    def test_find_unresolved(self, context):
        config = {"subject": "{{trigger.user.name}}", "body": ["{{nodes.ghost.text}}"], "x": "{{custom}}"}

        assert find_unresolved(config, context) == ["body[0]: nodes.ghost.text"]

    def test_display_strings(self):
        assert to_display_string(None) == ""
        assert to_display_string(2.0) == "2"
        assert to_display_string(2.5) == "2.5"
        assert to_display_string({"b": 1}) == '{"b":1}'

    def test_get_path(self):
        data = {"a": [{"b": 1}, {"c": 2}]}
        assert get_path(data, "a[0].b") == 1
        assert get_path(data, "a[5].b") is None
        assert get_path(data, "a[].c") == [2]
        assert get_path(data, "") == data


class TestExecutionContext:
    def test_trigger_input_is_copied(self):
        payload = {"a": {"b": 1}}
        ctx = ExecutionContext(payload)
        payload["a"]["b"] = 2
        assert ctx.trigger_input == {"a": {"b": 1}}

    def test_failed_result_does_not_update_previous(self):
        ctx = ExecutionContext({"seed": 1})
        ctx.record_output("bad", OperationResult.fail("nope"))
        assert ctx.previous_output == {"seed": 1}
        assert not ctx.has_output("bad")
        assert ctx.get_output("bad") is None

    def test_deadline(self):
        assert ExecutionContext().remaining_seconds() is None
        assert ExecutionContext(deadline_seconds=0.0).deadline_exceeded()
