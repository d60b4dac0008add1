import json
import logging

import pytest

from automation_engine.config import get_settings, reset_settings
from automation_engine.logging_config import (
    SimpleCloudWatchFormatter,
    StructuredCloudWatchFormatter,
    setup_logging,
)


@pytest.fixture
def restore_root_logger(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg="🚀 Starting run", **extra):
    record = logging.LogRecord(
        name="automation_engine.core.engine",
        level=logging.INFO,
        pathname="/app/automation_engine/core/engine.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    def test_simple_format(self):
        line = SimpleCloudWatchFormatter().format(_record(tracking_id="exec-1"))

        assert line.startswith("INFO:     ")
        assert "automation_engine.core.engine - [engine.py:42] [Trace:exec-1] - 🚀 Starting run" in line

    def test_simple_format_without_trace(self):
        assert "[Trace:" not in SimpleCloudWatchFormatter().format(_record())

    def test_structured_format(self):
        payload = json.loads(StructuredCloudWatchFormatter().format(_record(workflow_id="wf1")))

        assert payload["level"] == "INFO"
        assert payload["message"] == "🚀 Starting run"
        assert payload["file"] == "engine.py:42"
        assert payload["extra"] == {"workflow_id": "wf1"}

    def test_structured_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            import sys

            record = _record()
            record.exc_info = sys.exc_info()

        payload = json.loads(StructuredCloudWatchFormatter().format(record))

        assert payload["exception"]["type"] == "RuntimeError"
        assert payload["exception"]["message"] == "boom"


class TestSetupLogging:
    def test_json_format(self, restore_root_logger):
        logger = setup_logging("automation-engine", log_level="DEBUG", log_format="json")

        assert logger.name == "automation-engine"
        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, StructuredCloudWatchFormatter)
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.ERROR

    def test_environment_overrides(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        monkeypatch.setenv("LOG_FORMAT", "simple")

        setup_logging("automation-engine")

        assert restore_root_logger.level == logging.WARNING
        assert isinstance(restore_root_logger.handlers[0].formatter, SimpleCloudWatchFormatter)


class TestSettings:
    def test_defaults(self, settings):
        assert settings.port == 8010
        assert settings.max_run_seconds == 300
        assert settings.rate_limit == "100/minute"
        assert settings.preserve_placeholder_types is False

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("AUTOMATION_PORT", "9000")
        monkeypatch.setenv("AUTOMATION_PRESERVE_PLACEHOLDER_TYPES", "true")
        reset_settings()

        settings = get_settings()

        assert settings.port == 9000
        assert settings.preserve_placeholder_types is True
        assert get_settings() is settings

    def test_engine_picks_up_placeholder_setting(self, monkeypatch):
        from automation_engine import ExecutionEngine
        from automation_engine.models import Node
        from automation_engine.runners.transform import TransformAdapter

        monkeypatch.setenv("AUTOMATION_PRESERVE_PLACEHOLDER_TYPES", "true")
        reset_settings()
        engine = ExecutionEngine(adapters={"transform": TransformAdapter()})

        node = Node(id="n", type="jsonStringify", data={"data": "{{trigger.count}}"})
        result = engine.test_node(node, {"count": 3})

        assert engine.preserve_placeholder_types is True
        assert result.output == "3"
        assert result.metadata["operation"] == "json.stringify"
