"""Greedy nearest-neighbour line tracer.

Walks a contour cluster from point to point, consuming the nearest unused
points and emitting a straight segment whenever the walk turns a corner
or jumps a gap.

Per call of ``next_segment(start)``, candidates are visited in increasing
distance from ``start``:

    1. Cluster split: if nothing has been accepted yet and the candidate
       is farther than ``cluster_cutoff_distance``, the candidate is
       consumed and the walk restarts from it.
    2. Corner: in long-line mode, a candidate whose direction from
       ``start`` has cosine below ``line_cutoff_angle`` against the
       reference direction ends the segment.
    3. Gap: a candidate farther than ``line_cutoff_distance`` ends the
       segment once anything has been accepted.
    4. Reference capture: the first candidate farther than
       ``long_line_distance`` fixes the reference direction.
    5. Otherwise the candidate is consumed.

The emitted segment runs from ``start`` to the last consumed candidate.
``start`` itself is not consumed.

Usage:
    tracer = LineTracer(cluster, config)
    segments = tracer.extract()
"""

from __future__ import annotations

import logging
from operator import attrgetter
from typing import List, Optional

from ..utils.geometry import Vec2D
from ..utils.validators import ContourConfigV1
from .cluster import ContourCluster
from .types import FrameStats, LineSegment

logger = logging.getLogger(__name__)

_by_distance = attrgetter("distance")


class LineTracer:
    """Segment extraction over one cluster.

    Parameters
    ----------
    cluster : ContourCluster
        Points to trace; usage flags are mutated.
    config : ContourConfigV1
        Cutoff distances and angles, local-search flag.
    stats : Optional[FrameStats]
        Receives the ``cluster_splits`` count.
    """

    def __init__(self, cluster: ContourCluster, config: ContourConfigV1, stats: Optional[FrameStats] = None):
        self.cluster = cluster
        self.config = config
        self.stats = stats if stats is not None else FrameStats()

    def next_segment(self, idx_start: int) -> Optional[LineSegment]:
        """Trace one segment starting at cluster point ``idx_start``.

        Parameters
        ----------
        idx_start : int
            Cluster index of the walk origin.

        Returns
        -------
        Optional[LineSegment]
            The traced segment, or None when fewer than 2 unused
            candidates remain (cluster exhausted).
        """
        cfg = self.config
        cluster = self.cluster

        while True:
            candidates = cluster.candidates(idx_start, local=cfg.local_search)
            if len(candidates) < 2:
                logger.debug("Too few points left from %d (%d candidates)", idx_start, len(candidates))
                return None
            candidates.sort(key=_by_distance)

            long_line_mode = False
            v_prev: Optional[Vec2D] = None
            dp = 0.0
            idx_previous = -1
            restart_from = -1

            for cand in candidates:
                if idx_previous == -1 and cand.distance > cfg.cluster_cutoff_distance:
                    cluster.use(cand.index)
                    self.stats.cluster_splits += 1
                    logger.debug(
                        "Cluster split at %d -> %d (dist %.2f)", idx_start, cand.index, cand.distance
                    )
                    restart_from = cand.index
                    break

                if long_line_mode:
                    dp = v_prev.dot(cluster.vector(idx_start, cand.index).norm())

                if long_line_mode and dp < cfg.line_cutoff_angle:
                    logger.debug(
                        "Segment %d -> %d, angle cutoff (dist %.2f, dp %.3f)",
                        idx_start, idx_previous, cand.distance, dp
                    )
                    return cluster.new_segment(idx_start, idx_previous)
                if idx_previous != -1 and cand.distance > cfg.line_cutoff_distance:
                    logger.debug(
                        "Segment %d -> %d, distance cutoff (dist %.2f)",
                        idx_start, idx_previous, cand.distance
                    )
                    return cluster.new_segment(idx_start, idx_previous)
                if not long_line_mode and cand.distance > cfg.long_line_distance:
                    long_line_mode = True
                    v_prev = cluster.vector(idx_start, cand.index).norm()

                cluster.use(cand.index)
                idx_previous = cand.index

            if restart_from != -1:
                idx_start = restart_from
                continue

            if idx_previous == -1:
                return None
            logger.debug("Segment %d -> %d, out of candidates", idx_start, idx_previous)
            return cluster.new_segment(idx_start, idx_previous)

    def extract(self, idx_start: int = 0) -> List[LineSegment]:
        """Chain ``next_segment`` calls from ``idx_start`` until exhausted.

        Each segment's end index seeds the next call.  At most
        ``len(cluster)`` calls are made.

        Returns
        -------
        List[LineSegment]
            Segments in trace order (empty for clusters of < 2 points).
        """
        if len(self.cluster) < 2:
            return []

        segments: List[LineSegment] = []
        for _ in range(len(self.cluster)):
            segment = self.next_segment(idx_start)
            if segment is None:
                break
            segments.append(segment)
            idx_start = segment.idx_end

        logger.debug(
            "Traced %d segments from %d points (%d unused, %d splits)",
            len(segments), len(self.cluster), self.cluster.unused_count(), self.stats.cluster_splits
        )
        return segments


def next_segment(cluster: ContourCluster, idx_start: int, config: ContourConfigV1) -> Optional[LineSegment]:
    """One-shot wrapper around ``LineTracer.next_segment``."""
    return LineTracer(cluster, config).next_segment(idx_start)


def extract_segments(
    cluster: ContourCluster, config: ContourConfigV1, stats: Optional[FrameStats] = None
) -> List[LineSegment]:
    """Trace every segment of ``cluster`` starting at point 0."""
    return LineTracer(cluster, config, stats).extract()
