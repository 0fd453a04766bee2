"""Integer-pixel geometry for contour points, segments and strips.

Provides:
    - Point: immutable integer pixel coordinate (x, y)
    - Vec2D: 2D float vector with dot product and normalization
    - distance(): Euclidean distance between two points
    - polyline_length() / polyline_bbox(): strip measurements

All coordinates are pixels in image frame (top-left origin, +Y down).
Direction comparisons use dot products of unit vectors, so angle
thresholds elsewhere are cosine values in [-1, 1].
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple


class Point(NamedTuple):
    """Integer pixel coordinate."""

    x: int
    y: int


def distance(a: Point, b: Point) -> float:
    """Euclidean distance between two points."""
    return math.hypot(b.x - a.x, b.y - a.y)


@dataclass(frozen=True, slots=True)
class Vec2D:
    """Immutable 2D vector.

    Arithmetic returns new vectors.  ``norm()`` of a zero-length vector is
    the zero vector, so its dot product with anything is 0.0 (never
    "aligned" under a positive cosine threshold).
    """

    x: float
    y: float

    @classmethod
    def from_points(cls, a: Point, b: Point) -> Vec2D:
        """Vector pointing from ``a`` to ``b``."""
        return cls(float(b.x - a.x), float(b.y - a.y))

    def sub(self, other: Vec2D) -> Vec2D:
        return Vec2D(self.x - other.x, self.y - other.y)

    def dot(self, other: Vec2D) -> float:
        return self.x * other.x + self.y * other.y

    def length(self) -> float:
        return math.hypot(self.x, self.y)

    def norm(self) -> Vec2D:
        """Unit vector in the same direction."""
        length = self.length()
        if length == 0.0:
            return Vec2D(0.0, 0.0)
        return Vec2D(self.x / length, self.y / length)


def polyline_length(points: Sequence[Point]) -> float:
    """Sum of distances between consecutive points (0.0 for < 2 points)."""
    return sum(distance(a, b) for a, b in zip(points, points[1:]))


def polyline_bbox(points: Sequence[Point]) -> Tuple[int, int, int, int]:
    """Axis-aligned bounding box (xmin, ymin, xmax, ymax).

    Returns (0, 0, 0, 0) for an empty sequence.
    """
    if not points:
        return (0, 0, 0, 0)
    xs = [p.x for p in points]
    ys = [p.y for p in points]
    return (min(xs), min(ys), max(xs), max(ys))
