"""
gatewaychat - Observability Tests

Tests for structured logging:
- JSON formatting and context injection
- Sensitive field redaction
- Scoped log context
- Structured logger extra fields
"""

import asyncio
import json
import logging

import pytest

from gatewaychat.observability.logging import (
    JSONFormatter,
    LogContext,
    get_logger,
    log_context,
    setup_logging,
)


def make_record(msg="Test message", **fields) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test",
        level=logging.INFO,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in fields.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def reset_log_context():
    yield
    LogContext.clear()


# ============================================================
# Formatter Tests
# ============================================================

class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_json_formatter(self):
        """Test JSON log formatting."""
        output = JSONFormatter().format(make_record())
        data = json.loads(output)

        assert data["message"] == "Test message"
        assert data["level"] == "INFO"
        assert data["logger"] == "test"
        assert "timestamp" in data

    def test_context_injected(self):
        """The current log context is merged into every line."""
        with log_context(request_id="req_123", model="gpt-4o-mini"):
            data = json.loads(JSONFormatter().format(make_record()))

        assert data["request_id"] == "req_123"
        assert data["model"] == "gpt-4o-mini"
        assert "endpoint" not in data

    def test_sensitive_field_redaction(self):
        """Test sensitive field redaction."""
        record = make_record(api_key="sk-secret", authorization="Bearer sk-secret", status_code=200)

        data = json.loads(JSONFormatter(redact_sensitive=True).format(record))

        assert data["api_key"] == "[REDACTED]"
        assert data["authorization"] == "[REDACTED]"
        assert data["status_code"] == 200

    def test_token_counters_not_redacted(self):
        """Counters named after tokens are not secrets."""
        record = make_record(tokens_delivered=12, access_token="abc")

        data = json.loads(JSONFormatter().format(record))

        assert data["tokens_delivered"] == 12
        assert data["access_token"] == "[REDACTED]"

    def test_redaction_disabled(self):
        """Redaction can be turned off."""
        data = json.loads(JSONFormatter(redact_sensitive=False).format(make_record(api_key="k")))
        assert data["api_key"] == "k"

    def test_location(self):
        """include_location adds filename:lineno."""
        data = json.loads(JSONFormatter(include_location=True).format(make_record()))
        assert data["location"] == "test.py:10"


# ============================================================
# Context Tests
# ============================================================

class TestLogContext:
    """Tests for scoped log context."""

    def test_context_restored_on_exit(self):
        """Nested scopes restore the parent context."""
        with log_context(request_id="req_outer"):
            with log_context(model="m") as inner:
                assert inner.request_id == "req_outer"
                assert inner.model == "m"
            current = LogContext.get_current()
            assert current.request_id == "req_outer"
            assert current.model == ""
        assert LogContext.get_current() is None

    def test_context_restored_on_error(self):
        """Exceptions do not leak context."""
        with pytest.raises(RuntimeError):
            with log_context(request_id="req_1"):
                raise RuntimeError("boom")
        assert LogContext.get_current() is None

    def test_unknown_fields_go_to_extra(self):
        """Fields without a slot land in extra."""
        with log_context(step="chat_stream") as ctx:
            assert ctx.to_dict() == {"step": "chat_stream"}

    @pytest.mark.asyncio
    async def test_concurrent_tasks_isolated(self):
        """Each task sees its own context."""
        seen = {}

        async def worker(request_id):
            with log_context(request_id=request_id):
                await asyncio.sleep(0)
                seen[request_id] = LogContext.get_current().request_id

        await asyncio.gather(worker("req_a"), worker("req_b"))

        assert seen == {"req_a": "req_a", "req_b": "req_b"}


# ============================================================
# Logger Tests
# ============================================================

class TestStructuredLogger:
    """Tests for StructuredLogger."""

    def test_kwargs_become_extra_fields(self, caplog):
        """Keyword arguments are attached to the record."""
        logger = get_logger("gatewaychat.test")

        with caplog.at_level(logging.INFO, logger="gatewaychat.test"):
            with log_context(request_id="req_42"):
                logger.info("Chat stream finished", tokens_delivered=3)

        record = caplog.records[-1]
        assert record.getMessage() == "Chat stream finished"
        assert record.tokens_delivered == 3
        assert record.request_id == "req_42"

    def test_disabled_level_skipped(self, caplog):
        """Records below the logger level are not built."""
        logger = get_logger("gatewaychat.quiet")

        with caplog.at_level(logging.WARNING, logger="gatewaychat.quiet"):
            logger.debug("hidden", detail="x")

        assert caplog.records == []

    def test_setup_logging_json(self, monkeypatch):
        """setup_logging installs the JSON formatter on the root logger."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")
        try:
            setup_logging()
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[-1].formatter, JSONFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
