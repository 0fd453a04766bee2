"""Tests for the spatial block index.

Verifies:
    - Only full tiles are allocated
    - Edge test (strict threshold, block seams, image borders)
    - Fill pre-filter skips dark blocks
    - Flood-fill visit order (left, up, right, down) and restart
    - Point indices equal discovery positions

Run: pytest tests/test_blocks.py -v
"""

from __future__ import annotations

import numpy as np
import pytest

from contour_strips.tracing.blocks import Block, BlockIndex
from contour_strips.tracing.sampler import ArraySampler, FunctionSampler
from contour_strips.utils.geometry import Point


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _split_image(width: int, height: int, split_x: int, left: int, right: int) -> np.ndarray:
    img = np.full((height, width), left, dtype=np.uint8)
    img[:, split_x:] = right
    return img


@pytest.fixture
def grid_3x3() -> BlockIndex:
    """Bright 24×24 image: a 3×3 grid of blocks that all pass the pre-filter."""
    return BlockIndex(ArraySampler(np.full((24, 24), 200, dtype=np.uint8)), block_size=8)


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


class TestConstruction:
    def test_full_tiles_only(self) -> None:
        index = BlockIndex(ArraySampler(np.zeros((10, 20), dtype=np.uint8)), block_size=8)
        assert len(index) == 2
        assert (0, 0) in index
        assert (8, 0) in index
        assert (16, 0) not in index

    def test_image_smaller_than_block(self) -> None:
        index = BlockIndex(ArraySampler(np.zeros((5, 5), dtype=np.uint8)), block_size=8)
        assert len(index) == 0
        points, stats = index.extract_contour_points(32)
        assert points == []
        assert stats.blocks_total == 0

    def test_row_major_iteration(self, grid_3x3: BlockIndex) -> None:
        keys = [b.key for b in grid_3x3]
        assert keys == [(x, y) for y in (0, 8, 16) for x in (0, 8, 16)]

    def test_block_size_validation(self) -> None:
        with pytest.raises(ValueError, match="block_size"):
            BlockIndex(ArraySampler(np.zeros((8, 8), dtype=np.uint8)), block_size=1)


class TestNeighbours:
    def test_lookup(self, grid_3x3: BlockIndex) -> None:
        centre = grid_3x3.get((8, 8))
        assert grid_3x3.left(centre).key == (0, 8)
        assert grid_3x3.right(centre).key == (16, 8)
        assert grid_3x3.up(centre).key == (8, 0)
        assert grid_3x3.down(centre).key == (8, 16)

    def test_missing_neighbour_is_none(self, grid_3x3: BlockIndex) -> None:
        corner = grid_3x3.get((0, 0))
        assert grid_3x3.left(corner) is None
        assert grid_3x3.up(corner) is None
        assert grid_3x3.get((24, 0)) is None

    def test_traversal_order(self, grid_3x3: BlockIndex) -> None:
        corner = grid_3x3.get((0, 0))
        assert [b.key for b in grid_3x3.neighbours(corner)] == [(8, 0), (0, 8)]
        centre = grid_3x3.get((8, 8))
        assert [b.key for b in grid_3x3.neighbours(centre)] == [(0, 8), (8, 0), (16, 8), (8, 16)]

    def test_search_neighbourhood_order(self, grid_3x3: BlockIndex) -> None:
        centre = grid_3x3.get((8, 8))
        assert [b.key for b in grid_3x3.search_neighbourhood(centre)] == [
            (8, 8), (0, 8), (16, 8),
            (8, 0), (0, 0), (16, 0),
            (8, 16), (0, 16), (16, 16),
        ]

    def test_search_neighbourhood_at_corner(self, grid_3x3: BlockIndex) -> None:
        corner = grid_3x3.get((16, 16))
        assert [b.key for b in grid_3x3.search_neighbourhood(corner)] == [
            (16, 16), (8, 16), (16, 8), (8, 8),
        ]


# ---------------------------------------------------------------------------
# Edge scan
# ---------------------------------------------------------------------------


class TestBlockScan:
    def test_dark_block_skipped_by_prefilter(self) -> None:
        # Edge at x=8 lies in the extra column of block (0,0), whose body is dark
        sampler = ArraySampler(_split_image(16, 8, 8, 0, 200))
        block = Block(sampler, 0, 0, 8)
        assert block.filled_pixels(32) == 0
        assert block.scan(32) == []
        assert block.edge_pixels(32) == [Point(8, y) for y in range(1, 8)]

    def test_vertical_edge(self) -> None:
        sampler = ArraySampler(_split_image(16, 8, 8, 0, 200))
        block = Block(sampler, 8, 0, 8)
        assert block.scan(32) == [Point(8, y) for y in range(1, 8)]

    def test_threshold_is_strict(self) -> None:
        flat = ArraySampler(_split_image(16, 8, 8, 100, 132))
        assert Block(flat, 8, 0, 8).scan(32) == []
        steep = ArraySampler(_split_image(16, 8, 8, 100, 133))
        assert Block(steep, 8, 0, 8).scan(32) == [Point(8, y) for y in range(1, 8)]

    def test_horizontal_edge_row_major(self) -> None:
        img = np.full((8, 8), 50, dtype=np.uint8)
        img[4:, :] = 250
        block = Block(ArraySampler(img), 0, 0, 8)
        assert block.scan(32) == [Point(x, 4) for x in range(1, 8)]

    def test_image_border_pixels_skipped(self) -> None:
        # A single bright pixel at the origin has no left/up neighbours
        img = np.zeros((8, 8), dtype=np.uint8)
        img[0, 0] = 255
        block = Block(ArraySampler(img), 0, 0, 8)
        assert block.scan(32) == []

    def test_isolated_pixel(self) -> None:
        img = np.zeros((8, 8), dtype=np.uint8)
        img[3, 3] = 255
        block = Block(ArraySampler(img), 0, 0, 8)
        # (3,3) differs from both neighbours, (4,3) from its left, (3,4) from its top
        assert block.scan(32) == [Point(3, 3), Point(4, 3), Point(3, 4)]

    def test_function_sampler_matches_array(self) -> None:
        img = _split_image(16, 16, 5, 20, 220)
        func = FunctionSampler(lambda x, y: int(img[y, x]), 16, 16)
        for key in ((0, 0), (8, 0), (0, 8), (8, 8)):
            a = Block(ArraySampler(img), key[0], key[1], 8).scan(32)
            b = Block(func, key[0], key[1], 8).scan(32)
            assert a == b

    def test_is_filled(self) -> None:
        img = np.zeros((8, 8), dtype=np.uint8)
        img[:5, :7] = 200  # 35 bright pixels
        block = Block(ArraySampler(img), 0, 0, 8)
        assert block.filled_pixels(32) == 35
        assert block.is_filled(32)
        assert not block.is_filled(32, min_pixels=35)


# ---------------------------------------------------------------------------
# Traversal
# ---------------------------------------------------------------------------


class TestExtraction:
    def test_points_and_stats(self) -> None:
        index = BlockIndex(ArraySampler(_split_image(16, 8, 8, 0, 200)), block_size=8)
        points, stats = index.extract_contour_points(32)

        assert [p.pt for p in points] == [Point(8, y) for y in range(1, 8)]
        assert all(p.block_key == (8, 0) for p in points)
        assert stats.blocks_total == 2
        assert stats.blocks_scanned == 1
        assert stats.blocks_skipped == 1
        assert stats.points == 7

    def test_indices_equal_positions(self) -> None:
        rng = np.random.default_rng(7)
        img = (rng.random((32, 32)) > 0.5).astype(np.uint8) * 200
        points, _ = BlockIndex(ArraySampler(img), 8).extract_contour_points(32)
        assert len(points) > 0
        assert [p.index for p in points] == list(range(len(points)))

    def test_block_seam_recorded_by_both_blocks(self) -> None:
        index = BlockIndex(ArraySampler(_split_image(16, 16, 8, 100, 200)), block_size=8)
        points, _ = index.extract_contour_points(32)
        owners = sorted(p.block_key for p in points if p.pt == Point(8, 1))
        assert owners == [(0, 0), (8, 0)]

    def test_flood_fill_visit_order(self, grid_3x3: BlockIndex, monkeypatch) -> None:
        monkeypatch.setattr(Block, "edge_pixels", lambda self, threshold: [Point(self.x, self.y)])
        points, stats = grid_3x3.extract_contour_points(32)
        assert [p.pt for p in points] == [
            (0, 0), (8, 0), (16, 0), (16, 8), (8, 8), (0, 8), (0, 16), (8, 16), (16, 16),
        ]
        assert stats.blocks_scanned == 9

    def test_every_block_visited_once(self, grid_3x3: BlockIndex) -> None:
        grid_3x3.extract_contour_points(32)
        assert all(b.visited for b in grid_3x3)

    def test_reset(self) -> None:
        index = BlockIndex(ArraySampler(_split_image(16, 8, 8, 0, 200)), block_size=8)
        first, _ = index.extract_contour_points(32)
        index.reset()
        assert not any(b.visited or b.points for b in index)
        second, _ = index.extract_contour_points(32)
        assert [p.pt for p in first] == [p.pt for p in second]

    def test_large_grid_does_not_recurse(self) -> None:
        # 40k blocks: far deeper than the interpreter recursion limit
        index = BlockIndex(ArraySampler(np.zeros((400, 400), dtype=np.uint8)), block_size=2)
        points, stats = index.extract_contour_points(32)
        assert points == []
        assert stats.blocks_total == 40000
        assert stats.blocks_skipped == 40000
