"""Raster previews (OpenCV drawing onto numpy canvases)."""

from .raster import draw_filled_blocks, draw_points, draw_segments, draw_strips

__all__ = ["draw_filled_blocks", "draw_points", "draw_segments", "draw_strips"]
