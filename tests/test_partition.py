"""
Partition and compositor tests: ownership, coordinate maps, placements.
"""

import numpy as np
import pytest

from conftest import BLUE, RED, solid
from partition import (
    Partition,
    PartitionMode,
    Placement,
    Region,
    ScaleMode,
    composite,
    new_canvas,
    owned_by_left,
)


# ---------------------------------------------------------------------------
# Ownership
# ---------------------------------------------------------------------------

class TestOwnership:

    @pytest.mark.parametrize("size", [(1, 1), (7, 3), (3, 7), (16, 16), (31, 9)])
    def test_mask_matches_scalar_rule(self, size):
        W, H = size
        part = Partition(W, H)
        mask = part.left_mask()
        for y in range(H):
            for x in range(W):
                expected = Region.LEFT if y < H - (x * H) // W else Region.RIGHT
                assert part.region(x, y) is expected
                assert bool(mask[y, x]) == (expected is Region.LEFT)

    def test_boundary_belongs_to_right(self):
        part = Partition(200, 200)
        assert part.region(100, 100) is Region.RIGHT
        assert part.region(99, 100) is Region.LEFT
        assert part.region(199, 1) is Region.RIGHT
        assert part.region(0, 199) is Region.LEFT

    def test_both_halves_nonempty(self):
        mask = Partition(50, 40).left_mask()
        assert mask.any() and (~mask).any()

    def test_owned_by_left_on_arrays(self):
        xs = np.array([0, 5, 9])
        ys = np.array([9, 5, 0])
        assert owned_by_left(xs, ys, 10, 10).tolist() == [True, False, True]


# ---------------------------------------------------------------------------
# Coordinate maps
# ---------------------------------------------------------------------------

class TestCoordinateMap:

    @pytest.mark.parametrize("src", [(37, 91), (100, 100), (640, 480), (1, 1)])
    def test_stretch_corners(self, src):
        part = Partition(200, 150)
        sw, sh = src
        assert part.source_coords(Region.LEFT, 0, 0, src) == (0, 0)
        assert part.source_coords(Region.RIGHT, 199, 149, src) == (sw - 1, sh - 1)

    def test_last_pixel_reaches_source_edge_when_shrinking(self):
        assert Partition(200, 150).source_coords(Region.RIGHT, 199, 149, (640, 480)) == (639, 479)
        assert Partition(200, 150).source_coords(Region.LEFT, 0, 149, (640, 480)) == (0, 479)

    def test_scalar_returns_python_ints(self):
        sx, sy = Partition(10, 10).source_coords(Region.LEFT, 3, 4, (5, 5))
        assert type(sx) is int and type(sy) is int

    @pytest.mark.parametrize("mode", list(PartitionMode))
    @pytest.mark.parametrize("scale", list(ScaleMode))
    def test_coords_always_in_source_bounds(self, mode, scale):
        part = Partition(120, 80, mode, scale)
        yy, xx = np.mgrid[0:80, 0:120]
        for region in Region:
            sx, sy = part.source_coords(region, xx, yy, (33, 17))
            assert sx.min() >= 0 and sx.max() <= 32
            assert sy.min() >= 0 and sy.max() <= 16


# ---------------------------------------------------------------------------
# Placements
# ---------------------------------------------------------------------------

class TestPlacement:

    def test_diagonal_stretch_is_whole_canvas(self):
        part = Partition(200, 100)
        assert part.placement(Region.LEFT, (10, 90)) == Placement(0, 0, 200, 100)

    def test_diagonal_aspect_fit_letterboxes(self):
        part = Partition(200, 200, "diagonal", "aspect_fit")
        assert part.placement(Region.LEFT, (100, 50)) == Placement(0, 50, 200, 100)

    def test_triangle_frames_stay_on_canvas(self):
        part = Partition(200, 200, PartitionMode.TRIANGLE)
        assert part.frame(Region.LEFT) == Placement(0, 0, 180, 180)
        assert part.frame(Region.RIGHT) == Placement(20, 20, 180, 180)

    def test_triangle_aspect_fit(self):
        part = Partition(200, 200, PartitionMode.TRIANGLE, ScaleMode.ASPECT_FIT)
        assert part.placement(Region.LEFT, (100, 50)) == Placement(0, 45, 180, 90)
        assert part.placement(Region.RIGHT, (100, 50)) == Placement(20, 65, 180, 90)

    def test_invalid_arguments(self):
        with pytest.raises(ValueError):
            Partition(0, 10)
        with pytest.raises(ValueError):
            Partition(10, 10, margin=1.5)
        with pytest.raises(ValueError):
            Partition(10, 10, mode="spiral")
        with pytest.raises(ValueError):
            new_canvas(10, -1)


# ---------------------------------------------------------------------------
# Compositor
# ---------------------------------------------------------------------------

class TestComposite:

    def test_red_blue_scenario(self, red_img, blue_img):
        canvas = composite(red_img, blue_img, Partition(200, 200))
        assert canvas.shape == (200, 200, 4)
        assert tuple(canvas[0, 0]) == RED
        assert tuple(canvas[199, 0]) == RED      # (x=0, y=199)
        assert tuple(canvas[199, 199]) == BLUE
        assert tuple(canvas[1, 199]) == BLUE     # (x=199, y=1)
        assert tuple(canvas[100, 100]) == BLUE   # on the line
        assert tuple(canvas[100, 99]) == RED

    def test_no_gaps_when_stretching(self, red_img, blue_img):
        canvas = composite(red_img, blue_img, Partition(73, 41))
        assert (canvas[..., 3] == 255).all()
        left = Partition(73, 41).left_mask()
        assert (canvas[left] == RED).all()
        assert (canvas[~left] == BLUE).all()

    def test_letterbox_stays_transparent(self):
        wide = solid(RED, 100, 50)
        canvas = composite(wide, wide, Partition(200, 200, "triangle", "aspect_fit"))
        assert tuple(canvas[5, 5]) == (0, 0, 0, 0)
        assert tuple(canvas[60, 60]) == RED

    def test_samples_follow_source_layout(self):
        src = np.zeros((2, 2, 4), dtype=np.uint8)
        src[0, 0] = (10, 0, 0, 255)
        src[0, 1] = (20, 0, 0, 255)
        src[1, 0] = (30, 0, 0, 255)
        src[1, 1] = (40, 0, 0, 255)
        canvas = composite(src, src, Partition(4, 4))
        assert canvas[0, 0, 0] == 10
        assert canvas[0, 3, 0] == 20
        assert canvas[3, 0, 0] == 30
        assert canvas[3, 3, 0] == 40
