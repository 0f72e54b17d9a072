"""Tests for logging configuration."""

from structlog.testing import capture_logs

from app.core.logging import (
    add_app_name,
    add_request_id,
    configure_logging,
    get_logger,
    request_id_ctx,
)


class TestProcessors:
    """Tests for the custom structlog processors."""

    def test_request_id_added_inside_request(self):
        token = request_id_ctx.set("req-42")
        try:
            event = add_request_id(None, "info", {"event": "sales.cache_hit"})
        finally:
            request_id_ctx.reset(token)

        assert event["request_id"] == "req-42"

    def test_request_id_omitted_outside_request(self):
        event = add_request_id(None, "info", {"event": "sales.cache_hit"})

        assert "request_id" not in event

    def test_app_name_added(self):
        event = add_app_name(None, "info", {"event": "app.startup_started"})

        assert event["app"] == "ChaiVision"

    def test_app_name_does_not_override_explicit_value(self):
        event = add_app_name(None, "info", {"event": "x", "app": "seeder"})

        assert event["app"] == "seeder"


def test_request_id_context_variable():
    assert request_id_ctx.get() is None

    token = request_id_ctx.set("test-id-123")
    assert request_id_ctx.get() == "test-id-123"

    request_id_ctx.reset(token)
    assert request_id_ctx.get() is None


def test_logger_emits_structured_events():
    configure_logging()
    logger = get_logger("sales")

    with capture_logs() as logs:
        logger.info("sales.batch_failed", batch=2, error="nope")

    assert logs == [
        {"event": "sales.batch_failed", "batch": 2, "error": "nope", "log_level": "info"}
    ]
