"""Spatial block index: edge scanning and flood-fill traversal.

The image is tiled into ``block_size × block_size`` blocks keyed by their
top-left pixel.  Only tiles that fit fully inside the image are allocated;
the partial right and bottom strips are not scanned.

Edge test (per pixel, one extra row/column past the block body so that
edges on block seams are caught)::

    |L(x-1, y) - L(x, y)| > t   or   |L(x, y-1) - L(x, y)| > t

Pixels whose own or neighbour coordinates fall outside the image are
skipped.  A block whose body has no pixel brighter than ``t`` is skipped
without scanning.

Traversal visits blocks depth-first in the order left, up, right, down,
restarting from the next unvisited block (row-major) until every block
has been visited.  Points are numbered in discovery order.

Usage:
    index = BlockIndex(sampler, block_size=8)
    points, stats = index.extract_contour_points(threshold=32)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

import numpy as np

from ..utils.geometry import Point
from .types import BlockKey, ContourPoint

logger = logging.getLogger(__name__)


@dataclass
class ScanStats:
    """Counters for one traversal of a block index."""

    blocks_total: int = 0
    blocks_scanned: int = 0
    blocks_skipped: int = 0
    points: int = 0


# ----------------------------------------------------------------------------
# Block
# ----------------------------------------------------------------------------

class Block:
    """One square tile of the image.

    Parameters
    ----------
    sampler
        Shared pixel sampler (never copied).
    x, y : int
        Top-left pixel coordinate.
    size : int
        Edge length in pixels.
    """

    __slots__ = ("sampler", "x", "y", "size", "visited", "points")

    def __init__(self, sampler, x: int, y: int, size: int):
        self.sampler = sampler
        self.x = x
        self.y = y
        self.size = size
        self.visited = False
        self.points: List[ContourPoint] = []

    def __repr__(self) -> str:
        return f"Block(x={self.x}, y={self.y}, visited={self.visited}, points={len(self.points)})"

    @property
    def key(self) -> BlockKey:
        return (self.x, self.y)

    @property
    def left_key(self) -> BlockKey:
        return (self.x - self.size, self.y)

    @property
    def right_key(self) -> BlockKey:
        return (self.x + self.size, self.y)

    @property
    def up_key(self) -> BlockKey:
        return (self.x, self.y - self.size)

    @property
    def down_key(self) -> BlockKey:
        return (self.x, self.y + self.size)

    def filled_pixels(self, threshold: int) -> int:
        """Number of body pixels with luminance strictly above ``threshold``."""
        body = self.sampler.window(self.x, self.y, self.x + self.size, self.y + self.size)
        return int(np.count_nonzero(body > threshold))

    def is_filled(self, threshold: int, min_pixels: int = 32) -> bool:
        """True when more than ``min_pixels`` body pixels are above threshold."""
        return self.filled_pixels(threshold) > min_pixels

    def scan(self, threshold: int) -> List[Point]:
        """Detect edge pixels in this block, row-major.

        Parameters
        ----------
        threshold : int
            Grey threshold; a neighbour difference must exceed it.

        Returns
        -------
        List[Point]
            Edge pixels (empty when the body fails the fill pre-filter).
        """
        if self.filled_pixels(threshold) == 0:
            return []
        return self.edge_pixels(threshold)

    def edge_pixels(self, threshold: int) -> List[Point]:
        """Edge test over the block plus one row/column, no pre-filter."""
        width, height = self.sampler.width, self.sampler.height
        # Valid range: pixel and its left/up neighbours all inside the image
        px0 = max(self.x, 1)
        px1 = min(self.x + self.size, width - 1)
        py0 = max(self.y, 1)
        py1 = min(self.y + self.size, height - 1)
        if px1 < px0 or py1 < py0:
            return []

        tile = self.sampler.window(px0 - 1, py0 - 1, px1 + 1, py1 + 1)
        centre = tile[1:, 1:]
        left = tile[1:, :-1]
        up = tile[:-1, 1:]
        mask = (np.abs(left - centre) > threshold) | (np.abs(up - centre) > threshold)

        rows, cols = np.nonzero(mask)
        return [Point(int(px0 + c), int(py0 + r)) for r, c in zip(rows, cols)]


# ----------------------------------------------------------------------------
# Block index
# ----------------------------------------------------------------------------

class BlockIndex:
    """Mapping of block key → Block covering the full tiles of an image.

    Parameters
    ----------
    sampler
        Pixel sampler (see ``tracing.sampler``).
    block_size : int
        Tile edge length in pixels (>= 2).

    Raises
    ------
    ValueError
        If ``block_size`` is smaller than 2.
    """

    def __init__(self, sampler, block_size: int = 8):
        if block_size < 2:
            raise ValueError(f"block_size must be >= 2, got {block_size}")
        self.sampler = sampler
        self.block_size = block_size
        self._blocks: Dict[BlockKey, Block] = {}

        cols = sampler.width // block_size
        rows = sampler.height // block_size
        # Row-major insertion gives row-major iteration
        for by in range(rows):
            for bx in range(cols):
                block = Block(sampler, bx * block_size, by * block_size, block_size)
                self._blocks[block.key] = block

        logger.debug(
            "Block index %dx%d: %d blocks of %d px", sampler.width, sampler.height,
            len(self._blocks), block_size
        )

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks.values())

    def __contains__(self, key: BlockKey) -> bool:
        return key in self._blocks

    def get(self, key: BlockKey) -> Optional[Block]:
        """Block at ``key``, or None when off-image / not allocated."""
        return self._blocks.get(key)

    def left(self, block: Block) -> Optional[Block]:
        return self._blocks.get(block.left_key)

    def right(self, block: Block) -> Optional[Block]:
        return self._blocks.get(block.right_key)

    def up(self, block: Block) -> Optional[Block]:
        return self._blocks.get(block.up_key)

    def down(self, block: Block) -> Optional[Block]:
        return self._blocks.get(block.down_key)

    def neighbours(self, block: Block) -> Iterator[Block]:
        """Existing neighbours in traversal order: left, up, right, down.

        Lazy, so a neighbour visited by an earlier sibling's subtree is
        seen as visited when its turn comes.
        """
        for key in (block.left_key, block.up_key, block.right_key, block.down_key):
            neighbour = self._blocks.get(key)
            if neighbour is not None:
                yield neighbour

    def search_neighbourhood(self, block: Block) -> List[Block]:
        """Blocks searched for nearest neighbours of a point in ``block``.

        Order: own, left, right, up, up-left, up-right, down, down-left,
        down-right.  Missing blocks are skipped.
        """
        found = [block]
        for side in (self.left(block), self.right(block)):
            if side is not None:
                found.append(side)
        for vertical in (self.up(block), self.down(block)):
            if vertical is None:
                continue
            found.append(vertical)
            for side in (self.left(vertical), self.right(vertical)):
                if side is not None:
                    found.append(side)
        return found

    def reset(self) -> None:
        """Clear visited flags and discovered points."""
        for block in self._blocks.values():
            block.visited = False
            block.points = []

    # ------------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------------

    def _visit(self, block: Block, threshold: int, points: List[ContourPoint], stats: ScanStats) -> None:
        block.visited = True
        if block.filled_pixels(threshold) == 0:
            stats.blocks_skipped += 1
            return
        stats.blocks_scanned += 1
        for pt in block.edge_pixels(threshold):
            cp = ContourPoint(pt.x, pt.y, len(points), block.key)
            points.append(cp)
            block.points.append(cp)

    def flood_fill(self, start: Block, threshold: int, points: List[ContourPoint], stats: ScanStats) -> None:
        """Depth-first traversal from ``start`` appending discovered points.

        Uses an explicit stack of neighbour iterators; the visit order is
        the same as the recursive formulation.
        """
        if start.visited:
            return
        self._visit(start, threshold, points, stats)
        stack = [self.neighbours(start)]
        while stack:
            neighbour = next(stack[-1], None)
            if neighbour is None:
                stack.pop()
                continue
            if neighbour.visited:
                continue
            self._visit(neighbour, threshold, points, stats)
            stack.append(self.neighbours(neighbour))

    def extract_contour_points(self, threshold: int) -> Tuple[List[ContourPoint], ScanStats]:
        """Traverse every block and collect contour points.

        Parameters
        ----------
        threshold : int
            Grey threshold (0..255).

        Returns
        -------
        points : List[ContourPoint]
            Points in discovery order, ``points[i].index == i``.
        stats : ScanStats
            Block and point counters for this traversal.
        """
        stats = ScanStats(blocks_total=len(self._blocks))
        points: List[ContourPoint] = []
        for block in self._blocks.values():
            if not block.visited:
                self.flood_fill(block, threshold, points, stats)
        stats.points = len(points)
        logger.debug(
            "Scanned %d/%d blocks (%d skipped), %d contour points",
            stats.blocks_scanned, stats.blocks_total, stats.blocks_skipped, stats.points
        )
        return points, stats
