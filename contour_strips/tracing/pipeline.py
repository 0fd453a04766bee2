"""Per-frame pipeline: sampler → contour points → segments → strip bytes.

Provides:
    - trace_frame(): block scan, tracing, optional optimization and rescale
    - encode_frame_result(): strip stream bytes for a traced frame
    - process_frame(): both of the above

Every stage is timed into the frame's ``FrameStats``.  Nothing here
touches the file system; see ``contour_strips.batch`` for that.

Usage:
    from contour_strips.tracing import pipeline
    from contour_strips.tracing.sampler import ArraySampler

    result, data = pipeline.process_frame(ArraySampler(grey), cfg)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from ..codec import strips as strip_codec
from ..utils.geometry import Point
from ..utils.profiler import timer
from ..utils.validators import ContourConfigV1, default_config
from .cluster import ContourCluster
from .optimizer import optimize_segments, rescale_segments
from .tracer import LineTracer
from .types import FrameStats, LineSegment

logger = logging.getLogger(__name__)


@dataclass
class FrameResult:
    """Outputs of ``trace_frame``.

    Attributes
    ----------
    points : List[Point]
        Contour points in discovery order.
    segments : List[LineSegment]
        Final segments (optimized / rescaled per config).
    stats : FrameStats
        Counters and stage timings.
    traced : List[LineSegment]
        Segments straight from the tracer, before optimization.
    """

    points: List[Point]
    segments: List[LineSegment]
    stats: FrameStats
    traced: List[LineSegment] = field(default_factory=list)

    @property
    def size(self) -> Tuple[int, int]:
        """Coordinate space of ``segments`` as (width, height)."""
        return (self.stats.width, self.stats.height)


def trace_frame(sampler, config: Optional[ContourConfigV1] = None) -> FrameResult:
    """Extract segments from one greyscale frame.

    Parameters
    ----------
    sampler
        Pixel sampler (``ArraySampler`` / ``FunctionSampler``).
    config : Optional[ContourConfigV1]
        Tracer configuration (defaults when None).

    Returns
    -------
    FrameResult
        With ``stats.width/height`` set to the rescale target when
        rescaling is configured.
    """
    cfg = config if config is not None else default_config()
    stats = FrameStats(width=sampler.width, height=sampler.height)

    with timer("scan", sink=stats.record_timing):
        cluster, scan_stats = ContourCluster.from_sampler(
            sampler, cfg.grey_threshold, block_size=cfg.block_size
        )
    stats.blocks_total = scan_stats.blocks_total
    stats.blocks_scanned = scan_stats.blocks_scanned
    stats.blocks_skipped = scan_stats.blocks_skipped
    stats.points = scan_stats.points

    with timer("trace", sink=stats.record_timing):
        traced = LineTracer(cluster, cfg, stats).extract()
    stats.segments_traced = len(traced)

    segments = traced
    if cfg.optimize:
        with timer("optimize", sink=stats.record_timing):
            segments = optimize_segments(traced, cfg)
    stats.segments_optimized = len(segments)

    if cfg.rescale is not None:
        target = (cfg.rescale.width, cfg.rescale.height)
        with timer("rescale", sink=stats.record_timing):
            segments = rescale_segments(segments, (sampler.width, sampler.height), target)
        stats.width, stats.height = target

    logger.debug(
        "Frame traced: %d points, %d segments (%d before optimization), %d splits",
        stats.points, stats.segments_optimized, stats.segments_traced, stats.cluster_splits
    )
    return FrameResult(cluster.points, segments, stats, traced)


def encode_frame_result(result: FrameResult, config: Optional[ContourConfigV1] = None) -> bytes:
    """Strip stream bytes for ``result``; updates its strip/byte counters.

    Raises
    ------
    EncodingOverflowError
        If the frame needs more than 255 strips.
    CoordinateRangeError
        If a coordinate does not fit the configured width.
    """
    cfg = config if config is not None else default_config()
    codec = strip_codec.coordinate_codec(cfg.coordinate_width)

    with timer("encode", sink=result.stats.record_timing):
        strips = strip_codec.segments_to_strips(result.segments)
        data = strip_codec.encode_frame(strips, codec)
    result.stats.strips = len(strips)
    result.stats.encoded_bytes = len(data)
    return data


def process_frame(sampler, config: Optional[ContourConfigV1] = None) -> Tuple[FrameResult, bytes]:
    """Trace and encode one frame.

    Returns
    -------
    result : FrameResult
    data : bytes
        Encoded strip frame.
    """
    cfg = config if config is not None else default_config()
    result = trace_frame(sampler, cfg)
    data = encode_frame_result(result, cfg)
    logger.info(f"Frame {result.stats.summary()}")
    return result, data
