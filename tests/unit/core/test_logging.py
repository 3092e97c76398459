"""Tests for structured logging."""

import json
import logging
import sys
from unittest.mock import MagicMock

import pytest

from analytics_store.core.logging import (
    JSONFormatter,
    correlation_id_var,
    correlation_scope,
    get_correlation_id,
    redact_sensitive_data,
    setup_logging,
)


@pytest.fixture
def mock_settings() -> MagicMock:
    """Create mock settings."""
    settings = MagicMock()
    settings.app_log_level = "DEBUG"
    return settings


def _record(msg: str = "hello", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="analytics_store.test",
        level=logging.INFO,
        pathname="/app/module.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRedactSensitiveData:
    """Tests for sensitive data redaction."""

    def test_redacts_password(self) -> None:
        result = redact_sensitive_data({"username": "user", "password": "secret123"})
        assert result["username"] == "user"
        assert result["password"] == "[REDACTED]"

    def test_redacts_database_url(self) -> None:
        result = redact_sensitive_data({"database_url": "postgresql://u:p@h/db"})
        assert result["database_url"] == "[REDACTED]"

    def test_redacts_nested_and_listed(self) -> None:
        data = {
            "config": {"pool": 5, "secret_key": "x"},
            "tokens": [{"name": "a", "token": "t"}],
        }
        result = redact_sensitive_data(data)
        assert result["config"] == {"pool": 5, "secret_key": "[REDACTED]"}
        assert result["tokens"] == "[REDACTED]"

    def test_preserves_non_sensitive_data(self) -> None:
        data = {"session_id": "abc", "deleted": 3}
        assert redact_sensitive_data(data) == data


class TestCorrelationId:
    def test_default_is_none(self) -> None:
        assert get_correlation_id() is None

    def test_scope_binds_and_resets(self) -> None:
        with correlation_scope("job-1") as value:
            assert value == "job-1"
            assert get_correlation_id() == "job-1"
        assert get_correlation_id() is None

    def test_scope_generates_id(self) -> None:
        with correlation_scope() as value:
            assert value
            assert correlation_id_var.get() == value


class TestJSONFormatter:
    """Tests for JSON log formatter."""

    def test_formats_basic_fields(self) -> None:
        output = json.loads(JSONFormatter().format(_record()))

        assert output["level"] == "INFO"
        assert output["logger"] == "analytics_store.test"
        assert output["message"] == "hello"
        assert output["location"]["line"] == 10
        assert "correlation_id" not in output

    def test_includes_correlation_id(self) -> None:
        with correlation_scope("abc"):
            output = json.loads(JSONFormatter().format(_record()))

        assert output["correlation_id"] == "abc"

    def test_includes_redacted_extra(self) -> None:
        output = json.loads(
            JSONFormatter().format(_record(session_id="s-1", password="pw"))
        )

        assert output["extra"]["session_id"] == "s-1"
        assert output["extra"]["password"] == "[REDACTED]"

    def test_includes_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            record = _record()
            record.exc_info = sys.exc_info()

        output = json.loads(JSONFormatter().format(record))

        assert output["exception"]["type"] == "ValueError"
        assert output["exception"]["message"] == "boom"


class TestSetupLogging:
    def test_configures_root_handler(self, mock_settings: MagicMock) -> None:
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(mock_settings)

            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
            assert logging.getLogger("analytics_store").level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
