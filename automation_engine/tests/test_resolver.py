import pytest

from automation_engine.core import resolver
from automation_engine.core.resolver import known_node_types, register_node_type, resolve


class TestResolve:
    def test_default_operation_per_type(self):
        resolution = resolve("gmail")
        assert (resolution.provider, resolution.operation) == ("google", "gmail.send")
        assert resolve("httpRequest").operation == "webhook.request"
        assert resolve("trigger").operation == "webhook.trigger"

    def test_operation_override(self):
        assert resolve("gmail", "gmail.list").operation == "gmail.list"
        assert resolve("sheets", "findRow").operation == "sheets.findRow"
        assert resolve("openai", "stream").operation == "chat.stream"

    @pytest.mark.parametrize(
        "operation,expected",
        [
            ("transform.jsonParse", "json.parse"),
            ("transform.jsonStringify", "json.stringify"),
            ("transform.textTemplate", "text.template"),
            ("transform.arrayFilter", "array.filter"),
            ("transform.arrayMap", "array.map"),
        ],
    )
    def test_editor_transform_operations(self, operation, expected):
        resolution = resolve("transform", operation)
        assert resolution.provider == "transform"
        assert resolution.operation == expected

    def test_editor_gmail_search(self):
        assert resolve("gmail", "gmail.search").operation == "gmail.list"
        assert resolve("transform", "gmail.search") is None

    def test_unknown_type_or_operation(self):
        assert resolve("mystery") is None
        assert resolve("gmail", "bogus") is None
        assert resolve("email", "gmail.send") is None

    def test_flow_mode_wins(self):
        resolution = resolve("flow", "iterate", {"mode": "router"})
        assert resolution.operation == "flow.route"
        assert resolution.raw_fields == ("conditions",)
        assert resolve("flow", data={"mode": "warp"}) is None
        assert resolve("flow").operation == "flow.iterate"

    def test_requires_credentials(self):
        assert resolve("openai").requires_credentials
        assert resolve("email").requires_credentials
        assert not resolve("httpRequest").requires_credentials
        assert not resolve("jsonParse").requires_credentials
        assert not resolve("flowFilter").requires_credentials

    def test_missing_fields(self):
        resolution = resolve("sheetsFind")
        assert resolution.missing_fields({"spreadsheetId": "abc", "column": "  "}) == ("column", "value")
        assert resolution.missing_fields({"spreadsheetId": "abc", "column": "A", "value": 0}) == ()


class TestRegistry:
    @pytest.fixture(autouse=True)
    def isolated_registry(self, monkeypatch):
        monkeypatch.setattr(resolver, "_NODE_TYPE_REGISTRY", dict(resolver._NODE_TYPE_REGISTRY))

    def test_register_node_type(self):
        register_node_type("slackWebhook", "webhook", "webhook.request")

        assert "slackWebhook" in known_node_types()
        assert resolve("slackWebhook").operation == "webhook.request"

    def test_register_rejects_unknown_operation(self):
        with pytest.raises(ValueError):
            register_node_type("broken", "email", "gmail.send")
