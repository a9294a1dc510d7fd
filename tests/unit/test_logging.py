"""
Tests for job log context and log processors.
"""

import structlog

from link_enricher.logging import (
    MAX_FIELD_LENGTH,
    job_context,
    step_context,
    truncate_long_fields,
)


class TestJobContext:
    """Tests for job_context and step_context."""

    def test_binds_job_identity(self) -> None:
        """task_id, preset and user_id are bound inside the block only."""
        with job_context("task-1", "feed", "user-1"):
            bound = structlog.contextvars.get_contextvars()
            assert bound == {"task_id": "task-1", "preset": "feed", "user_id": "user-1"}

        assert structlog.contextvars.get_contextvars() == {}

    def test_empty_task_id_is_not_bound(self) -> None:
        """Jobs without a task record do not log an empty task_id."""
        with job_context("", "csv_only", "user-1"):
            assert "task_id" not in structlog.contextvars.get_contextvars()

    def test_step_nests_inside_job(self) -> None:
        """step is added on top of the job fields and removed on exit."""
        with job_context("task-1", "feed", "user-1"):
            with step_context("scrape"):
                assert structlog.contextvars.get_contextvars()["step"] == "scrape"
            bound = structlog.contextvars.get_contextvars()
            assert "step" not in bound
            assert bound["preset"] == "feed"

    def test_bound_fields_reach_log_events(self) -> None:
        """merge_contextvars copies the job fields into each event."""
        with job_context("task-1", "feed", "user-1"), step_context("analyze"):
            event = structlog.contextvars.merge_contextvars(None, "info", {"event": "hello"})

        assert event == {
            "event": "hello",
            "task_id": "task-1",
            "preset": "feed",
            "user_id": "user-1",
            "step": "analyze",
        }


class TestTruncateLongFields:
    """Tests for truncate_long_fields."""

    def test_long_string_fields_are_shortened(self) -> None:
        """Values over the limit keep a prefix and their original length."""
        content = "x" * (MAX_FIELD_LENGTH + 50)

        event = truncate_long_fields(None, "info", {"event": "Scraped", "content": content})

        assert event["content"] == "x" * MAX_FIELD_LENGTH + f"...({len(content)} chars)"
        assert event["event"] == "Scraped"

    def test_short_and_non_string_fields_are_untouched(self) -> None:
        """Short strings and other types pass through."""
        event = truncate_long_fields(None, "info", {"event": "e", "error": "boom", "count": 3})

        assert event == {"event": "e", "error": "boom", "count": 3}

    def test_urls_are_never_truncated(self) -> None:
        """url fields stay whole even when very long."""
        url = "https://example.com/" + "a" * (MAX_FIELD_LENGTH * 2)

        event = truncate_long_fields(None, "info", {"event": "Fetch", "url": url})

        assert event["url"] == url
