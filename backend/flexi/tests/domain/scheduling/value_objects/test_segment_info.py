"""
Unit tests for persisted segment metadata.
"""

import json

import pytest

from flexi.domain.scheduling.value_objects.segment import Segment
from flexi.domain.scheduling.value_objects.segment_info import SegmentInfo
from flexi.domain.shared.exceptions import ErrorType, SegmentMetadataError
from flexi.tests.factories import at


@pytest.fixture
def split_info() -> SegmentInfo:
    """Three hours split around an unavailable hour at 12:00."""
    return SegmentInfo.from_segments(
        [Segment.from_start(at(10), 2), Segment.from_start(at(13), 1)], 3.0
    )


class TestSegmentInfo:
    """Test the segment metadata value object."""

    def test_from_segments(self, split_info):
        """Test counts and split flag are derived from the segments."""
        assert split_info.total_segments == 2
        assert split_info.original_duration == 3.0
        assert split_info.was_split is True

    def test_single_segment_is_not_split(self):
        """Test a one-segment placement is not marked split."""
        info = SegmentInfo.from_segments([Segment.from_start(at(10), 2)], 2.0)

        assert info.was_split is False

    def test_wire_shape(self, split_info):
        """Test the persisted JSON uses the established camelCase keys."""
        payload = json.loads(split_info.to_json())

        assert set(payload) == {"totalSegments", "segments", "originalDuration", "wasSplit"}
        assert payload["totalSegments"] == 2
        assert payload["wasSplit"] is True
        assert set(payload["segments"][0]) == {"start", "end", "duration"}
        assert payload["segments"][0]["start"].startswith("2025-03-10T10:00:00")
        assert payload["segments"][1]["duration"] == 1.0

    def test_decodes_persisted_metadata(self):
        """Test metadata written by other writers is read back into segments."""
        payload = json.dumps(
            {
                "totalSegments": 1,
                "segments": [
                    {
                        "start": "2025-03-10T09:00:00.000Z",
                        "end": "2025-03-10T11:00:00.000Z",
                        "duration": 2,
                    }
                ],
                "originalDuration": 2,
                "wasSplit": False,
            }
        )

        segments = SegmentInfo.from_json(payload).to_segments()

        assert segments == [Segment(at(9), at(11), 2.0)]

    def test_to_segments_preserves_placement(self, split_info):
        """Test decoded segments equal the encoded ones."""
        decoded = SegmentInfo.from_json(split_info.to_json()).to_segments()

        assert decoded == [Segment.from_start(at(10), 2), Segment.from_start(at(13), 1)]

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            "{}",
            '{"totalSegments": 2, "segments": [], "originalDuration": 1, "wasSplit": true}',
        ],
    )
    def test_invalid_metadata_raises(self, payload):
        """Test malformed or inconsistent metadata is rejected."""
        with pytest.raises(SegmentMetadataError) as exc_info:
            SegmentInfo.from_json(payload)

        assert exc_info.value.error_type == ErrorType.DATA_INTEGRITY
