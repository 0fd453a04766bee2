"""End-to-end tests for the per-frame pipeline.

Run: pytest tests/test_pipeline.py -v
"""

from __future__ import annotations

import numpy as np
import pytest

from contour_strips.codec.strips import coordinate_codec, decode_frames, strips_to_segments
from contour_strips.errors import CoordinateRangeError
from contour_strips.tracing.pipeline import encode_frame_result, process_frame, trace_frame
from contour_strips.tracing.sampler import ArraySampler, FunctionSampler
from contour_strips.utils.validators import default_config, with_overrides


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def rectangle() -> np.ndarray:
    """64×64 black frame with a 1 px white rectangle outline."""
    img = np.zeros((64, 64), dtype=np.uint8)
    img[16, 16:48] = 255
    img[47, 16:48] = 255
    img[16:48, 16] = 255
    img[16:48, 47] = 255
    return img


@pytest.fixture
def wide_line() -> np.ndarray:
    """300 px wide frame with a vertical line beyond the 8-bit range."""
    img = np.zeros((24, 300), dtype=np.uint8)
    img[:, 280] = 200
    return img


def _coords(segments):
    return [(tuple(s.start), tuple(s.end)) for s in segments]


# ---------------------------------------------------------------------------
# Tests
# ---------------------------------------------------------------------------


class TestTraceFrame:
    def test_blank_frame(self) -> None:
        result, data = process_frame(ArraySampler(np.zeros((32, 32), dtype=np.uint8)))
        assert result.segments == []
        assert result.points == []
        assert data == b"\x00"
        assert result.stats.blocks_total == 16
        assert result.stats.blocks_skipped == 16

    def test_rectangle(self, rectangle) -> None:
        result = trace_frame(ArraySampler(rectangle))
        stats = result.stats

        assert stats.points == len(result.points) > 0
        assert stats.segments_traced == len(result.traced) > 0
        assert stats.segments_optimized == len(result.segments) > 0
        assert stats.segments_optimized <= stats.segments_traced
        assert result.size == (64, 64)
        for seg in result.segments:
            for x, y in (seg.start, seg.end):
                assert 14 <= x <= 49 and 14 <= y <= 49

    def test_stage_timings(self, rectangle) -> None:
        result, _ = process_frame(ArraySampler(rectangle))
        assert {"scan", "trace", "optimize", "encode"} <= set(result.stats.timings)
        assert all(t >= 0.0 for t in result.stats.timings.values())

    def test_optimize_disabled(self, rectangle) -> None:
        cfg = with_overrides(default_config(), optimize=False)
        result = trace_frame(ArraySampler(rectangle), cfg)
        assert result.segments == result.traced
        assert "optimize" not in result.stats.timings

    def test_decoded_segments_match(self, rectangle) -> None:
        cfg = default_config()
        result, data = process_frame(ArraySampler(rectangle), cfg)

        frames = decode_frames(data, coordinate_codec(cfg.coordinate_width))
        assert len(frames) == 1
        assert _coords(strips_to_segments(frames[0])) == _coords(result.segments)
        assert result.stats.strips == len(frames[0])
        assert result.stats.encoded_bytes == len(data)

    def test_function_sampler_equivalent(self, rectangle) -> None:
        func = FunctionSampler(lambda x, y: int(rectangle[y, x]), 64, 64)
        a = trace_frame(ArraySampler(rectangle))
        b = trace_frame(func)
        assert a.points == b.points
        assert _coords(a.segments) == _coords(b.segments)

    def test_deterministic(self, rectangle) -> None:
        _, first = process_frame(ArraySampler(rectangle))
        _, second = process_frame(ArraySampler(rectangle))
        assert first == second


class TestCoordinateWidth:
    def test_8bit_overflow(self, wide_line) -> None:
        result = trace_frame(ArraySampler(wide_line))
        assert any(seg.start.x > 255 for seg in result.segments)
        with pytest.raises(CoordinateRangeError):
            encode_frame_result(result)

    def test_16bit_fits(self, wide_line) -> None:
        cfg = with_overrides(default_config(), coordinate_width=16)
        result, data = process_frame(ArraySampler(wide_line), cfg)
        (frame,) = decode_frames(data, coordinate_codec(16))
        assert _coords(strips_to_segments(frame)) == _coords(result.segments)

    def test_rescale_into_8bit(self, wide_line) -> None:
        cfg = with_overrides(default_config(), rescale={"width": 150, "height": 12})
        result, data = process_frame(ArraySampler(wide_line), cfg)
        assert result.size == (150, 12)
        assert "rescale" in result.stats.timings
        for seg in result.segments:
            assert 139 <= seg.start.x <= 141
        assert decode_frames(data, coordinate_codec(8))
