import pytest

from automation_engine.core.context import ExecutionContext
from automation_engine.runners.transform import TransformAdapter, load_json_value


@pytest.fixture
def adapter():
    return TransformAdapter()


@pytest.fixture
def context():
    return ExecutionContext({"customer": "Ada"})


class TestJsonOperations:
    def test_parse_with_path(self, adapter, context):
        result = adapter.execute("json.parse", {"data": '{"a": {"b": [1, 2]}}', "path": "a.b"}, None, context)

        assert result.success
        assert result.output == [1, 2]

    def test_parse_passes_structures_through(self, adapter, context):
        result = adapter.execute("json.parse", {"data": {"k": "v"}}, None, context)
        assert result.output == {"k": "v"}

    def test_parse_errors(self, adapter, context):
        invalid = adapter.execute("json.parse", {"data": "{oops"}, None, context)
        missing = adapter.execute("json.parse", {}, None, context)

        assert invalid.error.code == "PARSE_ERROR"
        assert invalid.error.message.startswith("Failed to parse JSON")
        assert missing.error.code == "VALIDATION_ERROR"
        assert missing.error.message == "Data is required for JSON parse"

    def test_stringify(self, adapter, context):
        compact = adapter.execute("json.stringify", {"data": {"a": [1, 2]}}, None, context)
        pretty = adapter.execute("json.stringify", {"data": '{"a": 1}', "pretty": "true"}, None, context)

        assert compact.output == '{"a":[1,2]}'
        assert pretty.output == '{\n  "a": 1\n}'


class TestTextTemplate:
    def test_variables_and_context(self, adapter, context):
        config = {"template": "Dear {{name}}, order for {{trigger.customer}}", "variables": {"name": "Bob"}}

        result = adapter.execute("text.template", config, None, context)

        assert result.output == "Dear Bob, order for Ada"

    def test_variables_as_json_string(self, adapter, context):
        config = {"template": "{{n}} items", "variables": '{"n": 3}'}
        assert adapter.execute("text.template", config, None, context).output == "3 items"

    def test_template_required(self, adapter, context):
        result = adapter.execute("text.template", {"template": ""}, None, context)
        assert result.error.message == "Template is required"


class TestArrayOperations:
    ITEMS = [
        {"name": "a", "status": "open", "meta": {"size": 1}},
        {"name": "b", "status": "closed", "meta": {"size": 2}},
        {"name": "c", "status": "open", "meta": {"size": 3}},
    ]

    def test_filter(self, adapter, context):
        config = {"array": self.ITEMS, "field": "status", "operator": "equals", "value": "open"}

        result = adapter.execute("array.filter", config, None, context)

        assert [item["name"] for item in result.output] == ["a", "c"]

    def test_filter_numeric(self, adapter, context):
        config = {"array": self.ITEMS, "field": "meta.size", "operator": "gte", "value": "2"}
        assert len(adapter.execute("array.filter", config, None, context).output) == 2

    def test_filter_accepts_json_array_string(self, adapter, context):
        config = {"array": "[1, 5, 9]", "operator": "gt", "value": 4}
        assert adapter.execute("array.filter", config, None, context).output == [5, 9]

    def test_map_fields(self, adapter, context):
        result = adapter.execute("array.map", {"array": self.ITEMS, "fields": "name, status"}, None, context)
        assert result.output[1] == {"name": "b", "status": "closed"}

    def test_map_rename(self, adapter, context):
        config = {"array": self.ITEMS, "transform": {"name": "label", "meta.size": "size"}}
        result = adapter.execute("array.map", config, None, context)
        assert result.output[0] == {"label": "a", "size": 1}

    def test_map_pluck(self, adapter, context):
        result = adapter.execute("array.map", {"array": self.ITEMS, "field": "name"}, None, context)
        assert result.output == ["a", "b", "c"]

    def test_array_required(self, adapter, context):
        result = adapter.execute("array.map", {"array": "nope"}, None, context)
        assert result.error.code == "VALIDATION_ERROR"
        assert result.error.message == "Array is required"

    def test_inputs_are_not_mutated(self, adapter, context):
        items = [{"name": "a", "meta": {"size": 1}}]
        result = adapter.execute("array.filter", {"array": items, "field": "name", "value": "a"}, None, context)

        result.output[0]["meta"]["size"] = 99
        assert items[0]["meta"]["size"] == 1


def test_unsupported_operation(adapter, context):
    result = adapter.execute("array.sort", {}, None, context)
    assert result.error.code == "UNSUPPORTED_OPERATION"


def test_load_json_value():
    assert load_json_value('{"a": 1}') == {"a": 1}
    assert load_json_value("[broken") == "[broken"
    assert load_json_value("plain") == "plain"
    assert load_json_value(5) == 5
