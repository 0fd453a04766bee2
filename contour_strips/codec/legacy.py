"""Legacy fixed-record segment files (``.seg``).

Each segment is one 8-byte record of signed 16-bit little-endian values
``x1, y1, x2, y2``, with no header and no frame boundaries.  Superseded
by the strip format but still readable for old recordings.
"""

import logging
import struct
from typing import List, Sequence

from ..errors import CoordinateRangeError, DecodeError
from ..tracing.types import LineSegment

logger = logging.getLogger(__name__)

_RECORD = struct.Struct("<hhhh")
RECORD_SIZE = _RECORD.size

_INT16_MIN = -0x8000
_INT16_MAX = 0x7FFF


def encode_segments(segments: Sequence[LineSegment]) -> bytes:
    """Serialize segments as fixed 8-byte records.

    Raises
    ------
    CoordinateRangeError
        If a coordinate does not fit in a signed 16-bit value.
    """
    out = bytearray()
    for seg in segments:
        values = (seg.start.x, seg.start.y, seg.end.x, seg.end.y)
        if any(v < _INT16_MIN or v > _INT16_MAX for v in values):
            raise CoordinateRangeError(f"Segment {values} does not fit int16 records")
        out += _RECORD.pack(*values)
    return bytes(out)


def decode_segments(data: bytes) -> List[LineSegment]:
    """Parse a whole ``.seg`` payload.

    Raises
    ------
    DecodeError
        If the payload ends with a partial record.
    """
    full, rest = divmod(len(data), RECORD_SIZE)
    if rest:
        raise DecodeError(
            f"Legacy segment data has {rest} trailing bytes (records are {RECORD_SIZE} bytes)"
        )
    segments = [LineSegment.from_coords(*values) for values in _RECORD.iter_unpack(data)]
    logger.debug("Decoded %d legacy segments", full)
    return segments
