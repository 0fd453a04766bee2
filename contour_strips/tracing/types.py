"""Value types passed between pipeline stages.

``ContourPoint`` is created by the block scanner and owned by the
cluster; its ``index`` is its position in the cluster and never changes.
``LineSegment`` is produced by the tracer and consumed by the optimizer,
the strip codec and the renderer.  Segments are immutable: the optimizer
and rescaler only ever build new segments from old ones.

``FrameStats`` replaces process-wide counters: every frame run returns
its own statistics next to its results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import NamedTuple, Optional, Tuple

from ..utils.geometry import Point, Vec2D, distance

NO_INDEX = -1
"""Cluster index of a synthesized endpoint (optimizer / rescale output)."""

BlockKey = Tuple[int, int]
"""Top-left pixel coordinate of a block, used as its index key."""


@dataclass(frozen=True, slots=True)
class ContourPoint:
    """Edge pixel discovered by a block scan.

    Attributes
    ----------
    x, y : int
        Pixel coordinate.
    index : int
        Position in the owning cluster.
    block_key : Optional[BlockKey]
        Key of the block that discovered the point (None for clusters
        built from bare coordinates).
    """

    x: int
    y: int
    index: int
    block_key: Optional[BlockKey] = None

    @property
    def pt(self) -> Point:
        return Point(self.x, self.y)


class PointDistance(NamedTuple):
    """Search result: distance from the origin to cluster point ``index``."""

    distance: float
    index: int


@dataclass(frozen=True, slots=True)
class LineSegment:
    """Straight segment between two pixel coordinates.

    Parameters
    ----------
    start, end : Point
        Endpoints in image pixels.
    idx_start, idx_end : int
        Indices of the originating cluster points, ``NO_INDEX`` when the
        endpoint was synthesized.
    """

    start: Point
    end: Point
    idx_start: int = NO_INDEX
    idx_end: int = NO_INDEX

    @classmethod
    def from_coords(cls, x1: int, y1: int, x2: int, y2: int) -> LineSegment:
        return cls(Point(x1, y1), Point(x2, y2))

    def as_vector(self) -> Vec2D:
        return Vec2D.from_points(self.start, self.end)

    def direction(self) -> Vec2D:
        """Unit direction vector (zero vector for a degenerate segment)."""
        return self.as_vector().norm()

    def length(self) -> float:
        return distance(self.start, self.end)

    @property
    def is_synthesized(self) -> bool:
        return self.idx_start == NO_INDEX and self.idx_end == NO_INDEX

    def continues(self, other: LineSegment) -> bool:
        """True when ``other`` starts exactly where this segment ends."""
        return self.end == other.start


@dataclass
class FrameStats:
    """Per-frame statistics returned alongside the traced segments.

    Attributes
    ----------
    width, height : int
        Frame dimensions in pixels.
    blocks_total : int
        Blocks allocated by the spatial index (full tiles only).
    blocks_scanned : int
        Blocks whose edge scan ran (passed the fill pre-filter).
    blocks_skipped : int
        Blocks rejected by the fill pre-filter.
    points : int
        Contour points discovered.
    segments_traced : int
        Segments produced by the tracer.
    segments_optimized : int
        Segments after optimization (equal to traced when disabled).
    cluster_splits : int
        Times the tracer jumped into a new sub-cluster.
    strips : int
        Strips in the encoded frame (0 until encoded).
    encoded_bytes : int
        Size of the encoded frame (0 until encoded).
    timings : dict
        Stage name → wall-clock seconds.
    """

    width: int = 0
    height: int = 0
    blocks_total: int = 0
    blocks_scanned: int = 0
    blocks_skipped: int = 0
    points: int = 0
    segments_traced: int = 0
    segments_optimized: int = 0
    cluster_splits: int = 0
    strips: int = 0
    encoded_bytes: int = 0
    timings: dict = field(default_factory=dict)

    def record_timing(self, name: str, elapsed: float) -> None:
        """Profiler sink: accumulate ``elapsed`` seconds under ``name``."""
        self.timings[name] = self.timings.get(name, 0.0) + elapsed

    def summary(self) -> str:
        return (
            f"{self.width}x{self.height}: blocks {self.blocks_scanned}/{self.blocks_total}, "
            f"points {self.points}, segments {self.segments_traced} -> {self.segments_optimized}, "
            f"splits {self.cluster_splits}, strips {self.strips}, bytes {self.encoded_bytes}"
        )
