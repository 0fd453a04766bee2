"""Segment post-processing: collinear merge and rescaling.

Provides:
    - optimize_segments(): fold runs of connected, nearly collinear
      segments into single segments
    - rescale_segments(): map segments into another pixel grid (e.g. to
      fit the 8-bit coordinate range of the strip format)

A run starts at a segment whose unit direction becomes the reference.
Following segments are folded in while they start exactly at the running
end point and their unit direction has cosine above
``optimization_cutoff_angle`` against the reference.  The reference is
not updated while folding, so slow curves still break into pieces.
"""

import logging
from typing import List, Sequence, Tuple

from ..utils.validators import ContourConfigV1
from .types import LineSegment

logger = logging.getLogger(__name__)


def optimize_segments(segments: Sequence[LineSegment], config: ContourConfigV1) -> List[LineSegment]:
    """Merge consecutive collinear segments.

    Parameters
    ----------
    segments : Sequence[LineSegment]
        Traced segments, in trace order.
    config : ContourConfigV1
        Uses ``optimization_cutoff_angle`` and ``min_segment_length``.

    Returns
    -------
    List[LineSegment]
        Never longer than the input.  A single-segment run is passed
        through as is; a merged run becomes a new segment from the run
        start to the last folded end point with unset cluster indices.
        Output shorter than ``min_segment_length`` is dropped.
    """
    cutoff = config.optimization_cutoff_angle
    min_length = config.min_segment_length

    optimized: List[LineSegment] = []
    dropped = 0
    i = 0
    n = len(segments)
    while i < n:
        first = segments[i]
        reference = first.direction()
        last = first
        j = i + 1
        while j < n:
            candidate = segments[j]
            if not last.continues(candidate):
                break
            if reference.dot(candidate.direction()) <= cutoff:
                break
            last = candidate
            j += 1

        merged = first if j == i + 1 else LineSegment(first.start, last.end)
        if merged.length() < min_length:
            dropped += 1
            logger.debug(
                "Dropping short segment (%d,%d)->(%d,%d), length %.2f",
                merged.start.x, merged.start.y, merged.end.x, merged.end.y, merged.length()
            )
        else:
            optimized.append(merged)
        i = j

    logger.debug(
        "Optimization: %d -> %d segments (%d short segments dropped)", n, len(optimized), dropped
    )
    return optimized


def rescale_segments(
    segments: Sequence[LineSegment],
    source_size: Tuple[int, int],
    target_size: Tuple[int, int],
) -> List[LineSegment]:
    """Scale segment endpoints from one pixel grid to another.

    Parameters
    ----------
    segments : Sequence[LineSegment]
        Input segments.
    source_size : Tuple[int, int]
        (width, height) the segments were traced in.
    target_size : Tuple[int, int]
        (width, height) of the output grid.

    Returns
    -------
    List[LineSegment]
        Segments with coordinates ``int(v * target / source)`` per axis and
        unset cluster indices.

    Raises
    ------
    ValueError
        If any dimension is not positive.
    """
    src_w, src_h = source_size
    dst_w, dst_h = target_size
    if min(src_w, src_h, dst_w, dst_h) <= 0:
        raise ValueError(f"Sizes must be positive, got source={source_size} target={target_size}")

    sx = dst_w / src_w
    sy = dst_h / src_h
    return [
        LineSegment.from_coords(
            int(s.start.x * sx), int(s.start.y * sy), int(s.end.x * sx), int(s.end.y * sy)
        )
        for s in segments
    ]
