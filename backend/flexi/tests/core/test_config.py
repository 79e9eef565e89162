"""
Unit tests for settings and observability helpers.
"""

import pytest
from prometheus_client import REGISTRY
from pydantic import ValidationError
from structlog.testing import capture_logs

from flexi.core.config import Settings
from flexi.core.observability import (
    get_correlation_id,
    get_logger,
    set_correlation_id,
    track_operation,
)


class TestSettings:
    """Test scheduling settings."""

    def test_defaults(self):
        settings = Settings()

        assert settings.SCHEDULING_LOOKAHEAD_DAYS == 7
        assert settings.SCHEDULING_MAX_SEGMENTS == 50
        assert settings.SCHEDULING_SLOT_MINUTES == 15

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("SCHEDULING_LOOKAHEAD_DAYS", "14")

        assert Settings().SCHEDULING_LOOKAHEAD_DAYS == 14

    @pytest.mark.parametrize(
        "field, value",
        [
            ("SCHEDULING_SLOT_MINUTES", 7),
            ("SCHEDULING_SLOT_MINUTES", 0),
            ("SCHEDULING_MAX_SEGMENTS", 0),
            ("SCHEDULING_LOOKAHEAD_DAYS", -1),
            ("QUEUE_LOCK_TIMEOUT_SECONDS", 0),
        ],
    )
    def test_rejects_bad_bounds(self, field, value):
        with pytest.raises(ValidationError):
            Settings(**{field: value})


def operations_count(operation_type: str, status: str) -> float:
    value = REGISTRY.get_sample_value(
        "flexi_scheduler_operations_total",
        {"operation_type": operation_type, "status": status},
    )
    return value or 0.0


class TestObservability:
    """Test metrics and correlation helpers."""

    def test_track_operation_counts_outcome(self):
        before = operations_count("test_op", "conflict")

        with track_operation("test_op") as outcome:
            outcome["status"] = "conflict"

        assert operations_count("test_op", "conflict") == before + 1

    def test_track_operation_records_errors(self):
        before = operations_count("test_fail", "error")

        with pytest.raises(RuntimeError):
            with track_operation("test_fail"):
                raise RuntimeError("boom")

        assert operations_count("test_fail", "error") == before + 1

    def test_correlation_id(self):
        correlation_id = set_correlation_id()

        assert get_correlation_id() == correlation_id
        assert set_correlation_id("abc") == "abc"

    def test_structured_logger(self):
        logger = get_logger("flexi.test")

        with capture_logs() as logs:
            logger.info("something_happened", machine_id="m-1")

        assert logs == [{"event": "something_happened", "machine_id": "m-1", "log_level": "info"}]
