"""Raster previews of traced and decoded frames.

Provides:
    - draw_segments(): traced segments, white on black, start markers
    - draw_points(): contour points, black on white
    - draw_strips(): decoded strip frame, white on black
    - draw_filled_blocks(): block fill mask of a block index

All images are (H, W, 3) uint8 RGB (or (H, W) uint8 for masks), ready for
``utils.fs.atomic_save_image``.  Geometry outside the canvas is clipped.

Colors are given in RGB order; OpenCV drawing primitives only write the
channel values they are handed, so no BGR conversion is involved.
"""

import logging
from typing import Iterable, Sequence, Tuple

import cv2
import numpy as np

from ..codec.strips import Strip
from ..tracing.types import LineSegment
from ..utils.geometry import Point

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)
BLACK = (0, 0, 0)
RED = (255, 0, 0)
BLUE = (0, 0, 255)

LINE_THICKNESS = 2
CROSS_HALF = 4

Size = Tuple[int, int]


def _canvas(size: Size, fill: int) -> np.ndarray:
    width, height = size
    if width <= 0 or height <= 0:
        raise ValueError(f"Canvas size must be positive, got {size}")
    return np.full((height, width, 3), fill, dtype=np.uint8)


def _put_marker(canvas: np.ndarray, pt: Point, color, size: int = 2) -> None:
    """Fill a ``size × size`` square with its top-left corner at ``pt``."""
    h, w = canvas.shape[:2]
    x0, y0 = max(pt.x, 0), max(pt.y, 0)
    x1, y1 = min(pt.x + size, w), min(pt.y + size, h)
    if x0 < x1 and y0 < y1:
        canvas[y0:y1, x0:x1] = color


def draw_segments(segments: Sequence[LineSegment], size: Size) -> np.ndarray:
    """Render traced segments.

    White 2 px lines on black; every segment start but the first gets a
    red 2×2 marker, the first start gets a blue cross.

    Parameters
    ----------
    segments : Sequence[LineSegment]
        Segments in trace order.
    size : Tuple[int, int]
        Canvas (width, height).

    Returns
    -------
    np.ndarray
        RGB image, shape (H, W, 3), dtype uint8
    """
    canvas = _canvas(size, 0)
    for seg in segments:
        cv2.line(canvas, tuple(seg.start), tuple(seg.end), WHITE, LINE_THICKNESS)

    for i, seg in enumerate(segments):
        if i == 0:
            x, y = seg.start
            cv2.line(canvas, (x - CROSS_HALF, y), (x + CROSS_HALF, y), BLUE, 1)
            cv2.line(canvas, (x, y - CROSS_HALF), (x, y + CROSS_HALF), BLUE, 1)
        else:
            _put_marker(canvas, seg.start, RED)
    return canvas


def draw_points(points: Iterable[Point], size: Size) -> np.ndarray:
    """Render contour points as black pixels on white."""
    canvas = _canvas(size, 255)
    pts = np.array([tuple(p) for p in points], dtype=np.int64).reshape(-1, 2)
    if pts.size:
        h, w = canvas.shape[:2]
        keep = (pts[:, 0] >= 0) & (pts[:, 0] < w) & (pts[:, 1] >= 0) & (pts[:, 1] < h)
        pts = pts[keep]
        canvas[pts[:, 1], pts[:, 0]] = BLACK
    return canvas


def draw_strips(strips: Sequence[Strip], size: Size) -> np.ndarray:
    """Render a decoded frame: white polylines, first line of each strip red."""
    canvas = _canvas(size, 0)
    for strip in strips:
        pts = np.array(strip.points, dtype=np.int32).reshape(-1, 1, 2)
        cv2.polylines(canvas, [pts], isClosed=False, color=WHITE, thickness=LINE_THICKNESS)
        cv2.line(canvas, tuple(strip.points[0]), tuple(strip.points[1]), RED, LINE_THICKNESS)
    logger.debug("Rendered %d strips at %dx%d", len(strips), size[0], size[1])
    return canvas


def draw_filled_blocks(index, threshold: int, min_pixels: int = 32) -> np.ndarray:
    """Grey mask with filled blocks at 255.

    Parameters
    ----------
    index : BlockIndex
        Block index over the frame.
    threshold : int
        Grey threshold used for the fill count.
    min_pixels : int
        A block is filled when more than this many body pixels pass.

    Returns
    -------
    np.ndarray
        Mask, shape (H, W), dtype uint8
    """
    mask = np.zeros((index.sampler.height, index.sampler.width), dtype=np.uint8)
    for block in index:
        if block.is_filled(threshold, min_pixels):
            mask[block.y:block.y + block.size, block.x:block.x + block.size] = 255
    return mask
