"""Binary formats for traced frames.

Modules:
    - strips: strip grouping and the per-frame strip stream
    - legacy: fixed 8-byte segment records (``.seg`` files)
"""

from . import legacy, strips
from .strips import (
    Strip,
    Uint8Coordinates,
    Uint16Coordinates,
    coordinate_codec,
    decode_frame,
    decode_frames,
    encode_frame,
    encode_segments,
    iter_frames,
    segments_to_strips,
    strips_to_segments,
)

__all__ = [
    "legacy",
    "strips",
    "Strip",
    "Uint8Coordinates",
    "Uint16Coordinates",
    "coordinate_codec",
    "decode_frame",
    "decode_frames",
    "encode_frame",
    "encode_segments",
    "iter_frames",
    "segments_to_strips",
    "strips_to_segments",
]
