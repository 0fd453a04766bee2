"""Tests for the legacy fixed-record segment format.

Run: pytest tests/test_legacy.py -v
"""

import struct

import pytest

from contour_strips.codec import legacy
from contour_strips.errors import CoordinateRangeError, DecodeError
from contour_strips.tracing.types import LineSegment


class TestLegacySegments:
    def test_record_layout(self) -> None:
        data = legacy.encode_segments([LineSegment.from_coords(1, -2, 300, 4)])
        assert len(data) == legacy.RECORD_SIZE == 8
        assert data == struct.pack("<hhhh", 1, -2, 300, 4)

    def test_round_trip(self) -> None:
        segments = [LineSegment.from_coords(0, 0, 10, 10), LineSegment.from_coords(-5, 7, 959, 719)]
        decoded = legacy.decode_segments(legacy.encode_segments(segments))
        assert decoded == segments

    def test_empty(self) -> None:
        assert legacy.encode_segments([]) == b""
        assert legacy.decode_segments(b"") == []

    def test_trailing_bytes(self) -> None:
        data = legacy.encode_segments([LineSegment.from_coords(1, 2, 3, 4)]) + b"\x00\x00"
        with pytest.raises(DecodeError, match="2 trailing bytes"):
            legacy.decode_segments(data)

    def test_out_of_range(self) -> None:
        with pytest.raises(CoordinateRangeError, match="int16"):
            legacy.encode_segments([LineSegment.from_coords(0, 0, 40000, 0)])
