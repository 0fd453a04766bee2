"""Strip codec: polyline grouping and the compact per-frame binary layout.

Frame layout (frames are concatenated with no outer delimiter)::

    u8              strip_count
    repeat strip_count times:
      u8            point_count (>= 2)
      repeat point_count times:
        x           u8 or u16 little-endian
        y           u8 or u16 little-endian

The coordinate width is chosen once per stream through
``coordinate_codec(8 | 16)``.  A stream that ends exactly where a
strip_count byte would start is complete; ending anywhere else is a
``DecodeError``.

Usage:
    codec = coordinate_codec(8)
    data = encode_segments(segments, codec)
    frames = decode_frames(data, codec)
"""

from __future__ import annotations

import io
import logging
import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

from ..errors import (
    CoordinateRangeError,
    DecodeError,
    EncodingOverflowError,
    UnsupportedCoordinateWidthError,
)
from ..tracing.types import LineSegment
from ..utils.geometry import Point

logger = logging.getLogger(__name__)

MAX_STRIPS = 255
MAX_STRIP_POINTS = 255


# ----------------------------------------------------------------------------
# Strip
# ----------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Strip:
    """Polyline of two or more points."""

    points: Tuple[Point, ...]

    def __post_init__(self) -> None:
        pts = tuple(Point(int(p[0]), int(p[1])) for p in self.points)
        if len(pts) < 2:
            raise ValueError(f"A strip needs at least 2 points, got {len(pts)}")
        object.__setattr__(self, "points", pts)

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self) -> Iterator[Point]:
        return iter(self.points)

    @property
    def first(self) -> Point:
        return self.points[0]

    @property
    def last(self) -> Point:
        return self.points[-1]

    def segments(self) -> List[LineSegment]:
        """Line segments between consecutive points."""
        return [LineSegment(a, b) for a, b in zip(self.points, self.points[1:])]


def segments_to_strips(segments: Iterable[LineSegment], max_points: int = MAX_STRIP_POINTS) -> List[Strip]:
    """Group connected segments into strips.

    A segment whose start equals the current strip's last point extends
    the strip; any other segment closes it and starts a new one.  A strip
    that reaches ``max_points`` is closed and the next strip starts with a
    copy of its last point.

    Parameters
    ----------
    segments : Iterable[LineSegment]
        Segments in trace order.
    max_points : int
        Strip capacity (the point_count field is one byte).

    Returns
    -------
    List[Strip]
    """
    if not 2 <= max_points <= MAX_STRIP_POINTS:
        raise ValueError(f"max_points must be in [2, {MAX_STRIP_POINTS}], got {max_points}")

    strips: List[Strip] = []
    current: List[Point] = []
    for seg in segments:
        if current and seg.start == current[-1]:
            current.append(seg.end)
        else:
            if len(current) >= 2:
                strips.append(Strip(tuple(current)))
            current = [seg.start, seg.end]

        if len(current) == max_points:
            strips.append(Strip(tuple(current)))
            current = [current[-1]]

    if len(current) >= 2:
        strips.append(Strip(tuple(current)))
    return strips


def strips_to_segments(strips: Iterable[Strip]) -> List[LineSegment]:
    """Segments between consecutive points of each strip (never across strips)."""
    segments: List[LineSegment] = []
    for strip in strips:
        segments.extend(strip.segments())
    return segments


# ----------------------------------------------------------------------------
# Coordinate codecs
# ----------------------------------------------------------------------------

class _StructCoordinates:
    """Fixed-width (x, y) pair packed with ``struct``."""

    width_bits = 0
    max_value = 0
    _struct = struct.Struct("")

    @property
    def point_size(self) -> int:
        return self._struct.size

    def pack_point(self, point: Point) -> bytes:
        """Pack one point.

        Raises
        ------
        CoordinateRangeError
            If either coordinate is outside ``[0, max_value]``.
        """
        x, y = point
        if not (0 <= x <= self.max_value and 0 <= y <= self.max_value):
            raise CoordinateRangeError(
                f"Point ({x}, {y}) outside {self.width_bits}-bit range [0, {self.max_value}]"
            )
        return self._struct.pack(x, y)

    def unpack_point(self, buf: bytes, offset: int = 0) -> Point:
        x, y = self._struct.unpack_from(buf, offset)
        return Point(x, y)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"

    def __eq__(self, other: object) -> bool:
        return type(self) is type(other)

    def __hash__(self) -> int:
        return hash(type(self))


class Uint8Coordinates(_StructCoordinates):
    """One unsigned byte per coordinate."""

    width_bits = 8
    max_value = 0xFF
    _struct = struct.Struct("<BB")


class Uint16Coordinates(_StructCoordinates):
    """Unsigned 16-bit little-endian per coordinate."""

    width_bits = 16
    max_value = 0xFFFF
    _struct = struct.Struct("<HH")


CoordinateCodec = Union[Uint8Coordinates, Uint16Coordinates]

_CODECS = {8: Uint8Coordinates, 16: Uint16Coordinates}


def coordinate_codec(width: int) -> CoordinateCodec:
    """Codec for a coordinate width in bits.

    Raises
    ------
    UnsupportedCoordinateWidthError
        If ``width`` is not 8 or 16.
    """
    try:
        return _CODECS[width]()
    except (KeyError, TypeError):
        raise UnsupportedCoordinateWidthError(width) from None


# ----------------------------------------------------------------------------
# Encoding
# ----------------------------------------------------------------------------

def encode_frame(strips: Sequence[Strip], codec: CoordinateCodec) -> bytes:
    """Serialize one frame.

    Raises
    ------
    EncodingOverflowError
        More than 255 strips, or a strip with fewer than 2 or more than
        255 points.
    CoordinateRangeError
        A coordinate does not fit the codec width.
    """
    if len(strips) > MAX_STRIPS:
        raise EncodingOverflowError(f"Frame has {len(strips)} strips (max {MAX_STRIPS})")

    out = bytearray()
    out.append(len(strips))
    for n, strip in enumerate(strips):
        count = len(strip.points)
        if count > MAX_STRIP_POINTS or count < 2:
            raise EncodingOverflowError(
                f"Strip {n} has {count} points (expected 2..{MAX_STRIP_POINTS})"
            )
        out.append(count)
        for point in strip.points:
            out += codec.pack_point(point)
    return bytes(out)


def encode_segments(segments: Sequence[LineSegment], codec: CoordinateCodec) -> bytes:
    """Group ``segments`` into strips and serialize them as one frame."""
    strips = segments_to_strips(segments)
    logger.debug("Encoding %d segments as %d strips", len(segments), len(strips))
    return encode_frame(strips, codec)


# ----------------------------------------------------------------------------
# Decoding
# ----------------------------------------------------------------------------

def _read_exact(stream: BinaryIO, size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise DecodeError(f"Truncated stream while reading {what} ({len(data)}/{size} bytes)")
    return data


def decode_frame(stream: BinaryIO, codec: CoordinateCodec) -> Optional[List[Strip]]:
    """Read one frame from a binary stream.

    Returns
    -------
    Optional[List[Strip]]
        The frame's strips, or None when the stream is at its end.

    Raises
    ------
    DecodeError
        If the stream ends inside the frame or a strip has < 2 points.
    """
    head = stream.read(1)
    if not head:
        return None

    strips: List[Strip] = []
    for n in range(head[0]):
        count = _read_exact(stream, 1, f"point count of strip {n}")[0]
        if count < 2:
            raise DecodeError(f"Strip {n} declares {count} points (minimum 2)")
        raw = _read_exact(stream, count * codec.point_size, f"points of strip {n}")
        points = tuple(codec.unpack_point(raw, k * codec.point_size) for k in range(count))
        strips.append(Strip(points))
    return strips


def iter_frames(stream: BinaryIO, codec: CoordinateCodec) -> Iterator[List[Strip]]:
    """Yield frames until the stream is exhausted."""
    while True:
        frame = decode_frame(stream, codec)
        if frame is None:
            return
        yield frame


def decode_frames(data: bytes, codec: CoordinateCodec) -> List[List[Strip]]:
    """Decode a concatenated strip stream held in memory."""
    return list(iter_frames(io.BytesIO(data), codec))
