"""Contour Strips: luminance-edge line tracing for animated line art.

This package converts raster frames into compact polyline ("strip")
approximations of their edge contours and stores them in a small binary
stream suitable for frame-by-frame playback.

Architecture layers (strict one-way dependency):
    scripts/ → contour_strips.batch → contour_strips.{tracing,codec,rendering} → contour_strips.utils

Key invariants:
    - Geometry in integer pixel coordinates end-to-end
    - Frames are independent; configuration is immutable during a frame
    - Strip streams are concatenated frames with no outer delimiter
    - YAML-only configs
"""

__version__ = "1.2.0"
