import numpy as np
import pytest

from errors import OutOfBounds
from paint_ops import blend_pixel, box_blur, clip_segment, draw_line, flood_fill, line_points
from pixel_buffer import PixelBuffer

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)
WHITE = (255, 255, 255, 255)


def _collect(p0, p1):
    painted = []
    buf = PixelBuffer(1, 1)
    draw_line(buf, p0, p1, lambda b, x, y: painted.append((x, y)))
    return painted


# --- blend_pixel ---

def test_blend_pixel_opaque_overwrites():
    buf = PixelBuffer(1, 1)
    buf.set(0, 0, (1, 2, 3, 100))
    blend_pixel(buf, 0, 0, RED)
    assert buf.get(0, 0) == RED


def test_blend_pixel_translucent_over_opaque():
    buf = PixelBuffer(1, 1)
    buf.set(0, 0, WHITE)
    blend_pixel(buf, 0, 0, (0, 0, 0, 51))
    # dst weight 255*204//255 = 204, out alpha 255
    assert buf.get(0, 0) == (204, 204, 204, 255)


def test_blend_pixel_zero_alpha_over_transparent_is_guarded():
    buf = PixelBuffer(1, 1)
    blend_pixel(buf, 0, 0, (50, 60, 70, 0))
    assert buf.get(0, 0) == (0, 0, 0, 0)


def test_blend_pixel_out_of_bounds():
    with pytest.raises(OutOfBounds):
        blend_pixel(PixelBuffer(2, 2), 2, 0, RED)


# --- flood_fill ---

def test_fill_whole_red_canvas_with_blue():
    buf = PixelBuffer(4, 4)
    buf.fill(RED)
    painted = flood_fill(buf, 0, 0, RED, BLUE)
    assert painted == 16
    assert all(buf.get(x, y) == BLUE for x in range(4) for y in range(4))


@pytest.mark.parametrize("x, y", [(0, 0), (2, 1), (3, 3)])
@pytest.mark.parametrize("color", [RED, (0, 0, 0, 0), (10, 20, 30, 40)])
def test_fill_with_same_color_is_noop(x, y, color):
    rng = np.random.default_rng(x * 10 + y)
    arr = rng.integers(0, 3, size=(4, 4, 4), dtype=np.uint8)
    buf = PixelBuffer.from_array(arr)
    before = buf.copy()
    assert flood_fill(buf, x, y, color, color) == 0
    assert buf == before


def test_fill_does_not_cross_walls_or_diagonals():
    # Column x=2 is a wall; (4, 0) only touches the left region diagonally.
    buf = PixelBuffer(5, 3)
    for y in range(3):
        buf.set(2, y, RED)
    buf.set(3, 0, RED)
    buf.set(4, 1, RED)
    flood_fill(buf, 0, 0, (0, 0, 0, 0), BLUE)
    for y in range(3):
        assert buf.get(0, y) == BLUE
        assert buf.get(1, y) == BLUE
        assert buf.get(2, y) == RED
        assert buf.get(3, y) != BLUE
    assert buf.get(4, 0) == (0, 0, 0, 0)


def test_fill_starting_on_other_color_paints_nothing():
    buf = PixelBuffer(2, 2)
    buf.set(0, 0, RED)
    assert flood_fill(buf, 0, 0, BLUE, WHITE) == 0
    assert buf.get(0, 0) == RED


def test_fill_with_translucent_color_terminates():
    buf = PixelBuffer(3, 3)
    buf.fill(RED)
    half_blue = (0, 0, 255, 128)
    assert flood_fill(buf, 1, 1, RED, half_blue) == 9
    expected = (127, 0, 128, 255)
    assert all(buf.get(x, y) == expected for x in range(3) for y in range(3))


def test_fill_whose_blend_reproduces_target_visits_each_pixel_once():
    # A zero-alpha replacement blends back to the transparent target; the
    # fill still spreads over the region and stops.
    buf = PixelBuffer(6, 6)
    painted = flood_fill(buf, 2, 2, (0, 0, 0, 0), (9, 9, 9, 0))
    assert painted == 36
    assert not buf.pixels.any()


def test_fill_out_of_bounds_start():
    with pytest.raises(OutOfBounds):
        flood_fill(PixelBuffer(2, 2), -1, 0, RED, BLUE)


# --- draw_line ---

def test_degenerate_line_paints_one_pixel():
    assert _collect((3, 4), (3, 4)) == [(3, 4)]


@pytest.mark.parametrize("p0, p1", [
    ((0, 0), (7, 3)),
    ((7, 3), (0, 0)),
    ((0, 5), (5, 0)),
    ((2, -3), (-4, 6)),
    ((-1, -1), (-9, -2)),
    ((0, 0), (0, 6)),
    ((5, 2), (-5, 2)),
])
def test_line_contains_both_endpoints(p0, p1):
    painted = _collect(p0, p1)
    assert painted[0] == p0
    assert painted[-1] == p1
    assert len(painted) == max(abs(p1[0] - p0[0]), abs(p1[1] - p0[1])) + 1
    assert len(set(painted)) == len(painted)


def test_line_steps_are_8_connected():
    pts = list(line_points((0, 0), (9, 4)))
    for (x0, y0), (x1, y1) in zip(pts, pts[1:]):
        assert max(abs(x1 - x0), abs(y1 - y0)) == 1


def test_diagonal_line():
    assert _collect((0, 0), (3, 3)) == [(0, 0), (1, 1), (2, 2), (3, 3)]


def test_clip_keeps_segments_already_on_the_grid():
    assert clip_segment((1, 2), (6, 5), 8, 8) == ((1, 2), (6, 5))


def test_clip_trims_to_the_grid():
    assert clip_segment((-5, 3), (20, 3), 8, 8) == ((0, 3), (7, 3))
    assert clip_segment((2, 4), (2, 10**9), 8, 8) == ((2, 4), (2, 7))


@pytest.mark.parametrize("p0, p1", [
    ((-5, 0), (-5, 9)),
    ((0, 8), (7, 8)),
    ((-3, 2), (2, -3)),
])
def test_clip_segment_missing_the_grid(p0, p1):
    assert clip_segment(p0, p1, 8, 8) is None


# --- box_blur ---

def test_blur_interior_averages_nine_samples():
    buf = PixelBuffer(3, 3)
    buf.set(1, 1, (90, 180, 9, 255))
    box_blur(buf, 1, 1)
    assert buf.get(1, 1) == (10, 20, 1, 28)


def test_blur_corner_uses_only_in_bounds_samples():
    buf = PixelBuffer(3, 3)
    buf.fill(WHITE)
    buf.set(0, 0, (0, 0, 0, 255))
    box_blur(buf, 0, 0)
    # four samples: one black, three white
    assert buf.get(0, 0) == (191, 191, 191, 255)


def test_blur_edge_uses_six_samples():
    buf = PixelBuffer(3, 3)
    buf.set(1, 0, (60, 0, 0, 60))
    box_blur(buf, 1, 0)
    assert buf.get(1, 0) == (10, 0, 0, 10)


def test_blur_only_changes_target_pixel():
    buf = PixelBuffer(3, 3)
    buf.set(1, 1, RED)
    before = buf.copy()
    box_blur(buf, 0, 0)
    before.set(0, 0, buf.get(0, 0))
    assert buf == before
