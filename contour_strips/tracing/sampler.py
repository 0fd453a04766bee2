"""Greyscale pixel samplers consumed by the block scanner.

A sampler is the only view the tracing core has of an image:
    - ``width`` / ``height``: image dimensions in pixels
    - ``sampler(x, y)``: luminance 0..255 at an in-bounds pixel
    - ``inside(x, y)``: bounds test
    - ``window(x0, y0, x1, y1)``: int16 tile, rows y0..y1-1, cols x0..x1-1

``ArraySampler`` wraps a decoded (H, W) uint8 array (the normal case,
see ``utils.fs.load_grey_image``).  ``FunctionSampler`` wraps an
arbitrary callable and is mostly used by tests to describe synthetic
frames point by point.

Samplers are read-only: the core never writes pixel data.
"""

from __future__ import annotations

from typing import Callable

import numpy as np


class ArraySampler:
    """Sampler over a 2D uint8 luminance array.

    Parameters
    ----------
    image : np.ndarray
        Greyscale image, shape (H, W).  Non-uint8 input is clipped to
        [0, 255] and converted.

    Raises
    ------
    ValueError
        If ``image`` is not two-dimensional.
    """

    def __init__(self, image: np.ndarray):
        image = np.asarray(image)
        if image.ndim != 2:
            raise ValueError(f"Expected a 2D greyscale image, got shape {image.shape}")
        if image.dtype != np.uint8:
            image = np.clip(image, 0, 255).astype(np.uint8)
        self._image = image
        self._image.setflags(write=False)

    @property
    def width(self) -> int:
        return int(self._image.shape[1])

    @property
    def height(self) -> int:
        return int(self._image.shape[0])

    @property
    def image(self) -> np.ndarray:
        """Read-only view of the wrapped array."""
        return self._image

    def __call__(self, x: int, y: int) -> int:
        return int(self._image[y, x])

    def inside(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def window(self, x0: int, y0: int, x1: int, y1: int) -> np.ndarray:
        # int16 so that neighbour differences cannot wrap around
        return self._image[y0:y1, x0:x1].astype(np.int16)


class FunctionSampler:
    """Sampler backed by a ``f(x, y) -> int`` callable.

    Parameters
    ----------
    func : Callable[[int, int], int]
        Luminance function, only called for in-bounds coordinates.
    width, height : int
        Domain size in pixels.
    """

    def __init__(self, func: Callable[[int, int], int], width: int, height: int):
        if width < 0 or height < 0:
            raise ValueError(f"Sampler dimensions must be non-negative, got {width}x{height}")
        self._func = func
        self._width = int(width)
        self._height = int(height)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    def __call__(self, x: int, y: int) -> int:
        return int(self._func(x, y))

    def inside(self, x: int, y: int) -> bool:
        return 0 <= x < self._width and 0 <= y < self._height

    def window(self, x0: int, y0: int, x1: int, y1: int) -> np.ndarray:
        tile = np.zeros((max(y1 - y0, 0), max(x1 - x0, 0)), dtype=np.int16)
        for row, y in enumerate(range(y0, y1)):
            for col, x in enumerate(range(x0, x1)):
                tile[row, col] = self._func(x, y)
        return tile

    def to_array(self) -> np.ndarray:
        """Materialize the whole domain as a uint8 array."""
        return np.clip(self.window(0, 0, self._width, self._height), 0, 255).astype(np.uint8)
