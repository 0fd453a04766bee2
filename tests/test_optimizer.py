"""Tests for collinear segment merging and rescaling.

Run: pytest tests/test_optimizer.py -v
"""

from __future__ import annotations

import random

import pytest

from contour_strips.tracing.optimizer import optimize_segments, rescale_segments
from contour_strips.tracing.types import NO_INDEX, LineSegment
from contour_strips.utils.geometry import Point
from contour_strips.utils.validators import default_config, with_overrides


def seg(x1, y1, x2, y2, i1=NO_INDEX, i2=NO_INDEX) -> LineSegment:
    return LineSegment(Point(x1, y1), Point(x2, y2), i1, i2)


def _coords(segments):
    return [(tuple(s.start), tuple(s.end)) for s in segments]


@pytest.fixture
def cfg():
    return default_config()


# ---------------------------------------------------------------------------
# optimize_segments
# ---------------------------------------------------------------------------


class TestOptimize:
    def test_empty(self, cfg) -> None:
        assert optimize_segments([], cfg) == []

    def test_collinear_chain_merged(self, cfg) -> None:
        segments = [seg(0, 0, 5, 0, 0, 4), seg(5, 0, 10, 0, 4, 9), seg(10, 0, 15, 0, 9, 14)]
        out = optimize_segments(segments, cfg)
        assert _coords(out) == [((0, 0), (15, 0))]
        assert out[0].is_synthesized

    def test_corner_kept(self, cfg) -> None:
        segments = [seg(0, 0, 10, 0), seg(10, 0, 10, 10)]
        assert _coords(optimize_segments(segments, cfg)) == _coords(segments)

    def test_disconnected_not_merged(self, cfg) -> None:
        segments = [seg(0, 0, 10, 0), seg(11, 0, 20, 0)]
        assert len(optimize_segments(segments, cfg)) == 2

    def test_reference_direction_is_fixed(self, cfg) -> None:
        # Each turn is small, but the third segment drifts too far from the first
        segments = [seg(0, 0, 10, 0), seg(10, 0, 20, 2), seg(20, 2, 29, 6)]
        out = optimize_segments(segments, cfg)
        assert _coords(out) == [((0, 0), (20, 2)), ((20, 2), (29, 6))]

    def test_single_run_passes_through(self, cfg) -> None:
        original = seg(0, 0, 10, 0, 3, 7)
        out = optimize_segments([original, seg(10, 0, 10, 10)], cfg)
        assert out[0] is original
        assert (out[0].idx_start, out[0].idx_end) == (3, 7)

    def test_short_segments_dropped(self, cfg) -> None:
        segments = [seg(0, 0, 1, 0), seg(1, 0, 1, 10)]
        assert _coords(optimize_segments(segments, cfg)) == [((1, 0), (1, 10))]

    def test_min_length_zero_keeps_everything(self) -> None:
        cfg = with_overrides(default_config(), min_segment_length=0.0)
        segments = [seg(3, 3, 3, 3), seg(5, 5, 6, 5)]
        assert len(optimize_segments(segments, cfg)) == 2

    def test_never_longer_than_input(self, cfg) -> None:
        segments = [seg(i, 0, i + 3, (i % 2) * 3) for i in range(0, 60, 3)]
        assert len(optimize_segments(segments, cfg)) <= len(segments)

    @pytest.mark.parametrize("seed", range(20))
    def test_random_chains_reuse_input_endpoints(self, cfg, seed) -> None:
        rng = random.Random(seed)
        segments = []
        x, y = rng.randrange(50), rng.randrange(50)
        for _ in range(rng.randint(1, 40)):
            if rng.random() < 0.15:
                x, y = rng.randrange(200), rng.randrange(200)
            nx, ny = x + rng.randint(-6, 6), y + rng.randint(-6, 6)
            segments.append(seg(x, y, nx, ny))
            x, y = nx, ny

        out = optimize_segments(segments, cfg)
        endpoints = {s.start for s in segments} | {s.end for s in segments}
        assert len(out) <= len(segments)
        for s in out:
            assert s.start in endpoints
            assert s.end in endpoints

    def test_cutoff_angle_controls_merge(self) -> None:
        segments = [seg(0, 0, 10, 0), seg(10, 0, 20, 5)]
        loose = with_overrides(default_config(), optimization_cutoff_angle=0.5)
        strict = default_config()
        assert len(optimize_segments(segments, loose)) == 1
        assert len(optimize_segments(segments, strict)) == 2


# ---------------------------------------------------------------------------
# rescale_segments
# ---------------------------------------------------------------------------


class TestRescale:
    def test_corner_maps_inside_target(self) -> None:
        out = rescale_segments([seg(0, 0, 959, 719, 1, 2)], (960, 720), (256, 192))
        assert _coords(out) == [((0, 0), (255, 191))]
        assert out[0].is_synthesized

    def test_truncates_toward_zero(self) -> None:
        out = rescale_segments([seg(3, 3, 5, 5)], (10, 10), (4, 4))
        assert _coords(out) == [((1, 1), (2, 2))]

    def test_identity(self) -> None:
        segments = [seg(1, 2, 3, 4)]
        assert _coords(rescale_segments(segments, (50, 50), (50, 50))) == _coords(segments)

    @pytest.mark.parametrize("source,target", [((0, 10), (5, 5)), ((10, 10), (5, -1))])
    def test_invalid_sizes(self, source, target) -> None:
        with pytest.raises(ValueError, match="positive"):
            rescale_segments([], source, target)
