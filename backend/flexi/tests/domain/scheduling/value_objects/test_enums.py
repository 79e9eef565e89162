"""
Unit tests for scheduling enums.
"""

import pytest

from flexi.domain.scheduling.value_objects.enums import JobStatus, ShuntDirection


class TestJobStatus:
    def test_stored_values(self):
        """Test status values match what the order backend stores."""
        assert JobStatus.SCHEDULED.value == "SCHEDULED"
        assert JobStatus.NOT_SCHEDULED.value == "NOT SCHEDULED"
        assert JobStatus("NOT SCHEDULED") is JobStatus.NOT_SCHEDULED

    def test_is_scheduled(self):
        assert JobStatus.SCHEDULED.is_scheduled
        assert not JobStatus.NOT_SCHEDULED.is_scheduled


class TestShuntDirection:
    """Test picking a shunt direction from the drop position."""

    @pytest.mark.parametrize(
        "fraction, expected",
        [
            (0.0, ShuntDirection.LEFT),
            (0.49, ShuntDirection.LEFT),
            (0.5, ShuntDirection.RIGHT),
            (1.0, ShuntDirection.RIGHT),
        ],
    )
    def test_from_cursor_position(self, fraction, expected):
        """Test the left half shunts left and the right half shunts right."""
        assert ShuntDirection.from_cursor_position(fraction) is expected

    @pytest.mark.parametrize("fraction", [-0.1, 1.5])
    def test_out_of_range_position(self, fraction):
        """Test positions outside the card are rejected."""
        with pytest.raises(ValueError):
            ShuntDirection.from_cursor_position(fraction)
