"""Contour point cluster with usage tracking and nearest-neighbour search.

A cluster is every contour point of one frame, in discovery order.  The
tracer consumes it by marking points used; points are never removed, so
``cluster[i].index == i`` holds for the whole frame.

Search results are unsorted ``PointDistance`` lists (sorting is the
tracer's job).  Two search strategies:
    - local: the origin's block and its 8 surrounding blocks; falls back
      to full search when it finds 4 candidates or fewer
    - full: every unused point, in index order
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from ..utils.geometry import Point, Vec2D
from .blocks import BlockIndex, ScanStats
from .types import BlockKey, ContourPoint, LineSegment, PointDistance

logger = logging.getLogger(__name__)

LOCAL_SEARCH_MIN_CANDIDATES = 5
"""Local search results smaller than this trigger a full search."""


class ContourCluster:
    """Ordered contour points plus the block index used for local search.

    Parameters
    ----------
    points : Sequence[ContourPoint]
        Points with ``points[i].index == i``.
    index : Optional[BlockIndex]
        Block index the points were extracted from.  Without one, local
        search always falls back to full search.

    Raises
    ------
    ValueError
        If a point's stored index does not match its position.
    """

    def __init__(self, points: Sequence[ContourPoint], index: Optional[BlockIndex] = None):
        for position, point in enumerate(points):
            if point.index != position:
                raise ValueError(f"Point at position {position} has index {point.index}")

        self._points: List[ContourPoint] = list(points)
        self._index = index
        self._xy = np.array([(p.x, p.y) for p in self._points], dtype=np.float64).reshape(-1, 2)
        self._used = np.zeros(len(self._points), dtype=bool)
        self._block_members: Dict[BlockKey, np.ndarray] = {}
        if index is not None:
            for block in index:
                if block.points:
                    self._block_members[block.key] = np.fromiter(
                        (p.index for p in block.points), dtype=np.int64, count=len(block.points)
                    )

    @classmethod
    def from_coords(cls, coords: Iterable[Tuple[int, int]]) -> ContourCluster:
        """Cluster from bare (x, y) pairs, without a block index."""
        return cls([ContourPoint(int(x), int(y), i) for i, (x, y) in enumerate(coords)])

    @classmethod
    def from_sampler(
        cls, sampler, threshold: int, block_size: int = 8
    ) -> Tuple[ContourCluster, ScanStats]:
        """Build a block index over ``sampler`` and extract its contour points.

        Returns
        -------
        cluster : ContourCluster
        stats : ScanStats
        """
        index = BlockIndex(sampler, block_size=block_size)
        points, stats = index.extract_contour_points(threshold)
        return cls(points, index), stats

    # ------------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, idx: int) -> ContourPoint:
        return self._points[idx]

    def __iter__(self) -> Iterator[ContourPoint]:
        return iter(self._points)

    @property
    def points(self) -> List[Point]:
        """Pixel coordinates in index order."""
        return [p.pt for p in self._points]

    @property
    def block_index(self) -> Optional[BlockIndex]:
        return self._index

    # ------------------------------------------------------------------------
    # Usage tracking
    # ------------------------------------------------------------------------

    def is_used(self, idx: int) -> bool:
        return bool(self._used[idx])

    def use(self, idx: int) -> None:
        """Mark point ``idx`` as consumed.

        Raises
        ------
        ValueError
            If the point is already used.
        """
        if self._used[idx]:
            raise ValueError(f"Contour point {idx} is already used")
        self._used[idx] = True

    def reset_usage(self) -> None:
        self._used[:] = False

    def unused_count(self) -> int:
        return int(len(self._used) - np.count_nonzero(self._used))

    def used_indices(self) -> List[int]:
        return [int(i) for i in np.flatnonzero(self._used)]

    # ------------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------------

    def _distances(self, origin: int, candidates: np.ndarray) -> List[PointDistance]:
        keep = candidates[(~self._used[candidates]) & (candidates != origin)]
        if keep.size == 0:
            return []
        delta = self._xy[keep] - self._xy[origin]
        dist = np.hypot(delta[:, 0], delta[:, 1])
        return [PointDistance(float(d), int(i)) for d, i in zip(dist, keep)]

    def full_search(self, idx: int) -> List[PointDistance]:
        """Distances from ``idx`` to every other unused point, in index order."""
        return self._distances(idx, np.arange(len(self._points), dtype=np.int64))

    def local_search(self, idx: int) -> List[PointDistance]:
        """Distances to unused points in the 3×3 block neighbourhood of ``idx``.

        Falls back to ``full_search`` when the neighbourhood yields fewer
        than ``LOCAL_SEARCH_MIN_CANDIDATES`` candidates or the point has no
        owning block.
        """
        origin = self._points[idx]
        block = None
        if self._index is not None and origin.block_key is not None:
            block = self._index.get(origin.block_key)
        if block is None:
            return self.full_search(idx)

        members = [
            self._block_members[b.key]
            for b in self._index.search_neighbourhood(block)
            if b.key in self._block_members
        ]
        found = self._distances(idx, np.concatenate(members)) if members else []
        if len(found) < LOCAL_SEARCH_MIN_CANDIDATES:
            logger.debug("Local search from %d found %d candidates, using full search", idx, len(found))
            return self.full_search(idx)
        return found

    def candidates(self, idx: int, local: bool = True) -> List[PointDistance]:
        """Unsorted candidate list for the tracer."""
        if local:
            return self.local_search(idx)
        return self.full_search(idx)

    # ------------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------------

    def vector(self, idx_a: int, idx_b: int) -> Vec2D:
        """Vector from point ``idx_a`` to point ``idx_b``."""
        return Vec2D.from_points(self._points[idx_a].pt, self._points[idx_b].pt)

    def new_segment(self, idx_a: int, idx_b: int) -> LineSegment:
        return LineSegment(self._points[idx_a].pt, self._points[idx_b].pt, idx_a, idx_b)
