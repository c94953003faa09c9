"""Pixel-level editing primitives: blended set, flood fill, lines and blur."""

from typing import Callable, Iterator

from color_model import blend_over
from errors import OutOfBounds
from pixel_buffer import RGBA, PixelBuffer

Point = tuple[int, int]


def blend_pixel(buffer: PixelBuffer, x: int, y: int, color: RGBA):
    """Paint ``color`` at (x, y) using "over" compositing."""
    if color[3] == 255:
        buffer.set(x, y, color)
        return
    buffer.set(x, y, blend_over(tuple(color), buffer.get(x, y)))


def flood_fill(buffer: PixelBuffer, x: int, y: int, target_color: RGBA,
               replacement_color: RGBA) -> int:
    """4-connected fill of the region of ``target_color`` containing (x, y).

    Pixels are painted with ``blend_pixel``, so a translucent replacement is
    blended over the target. Every pixel is visited at most once: if a blend
    happens to reproduce ``target_color`` the pixel looks unchanged, but the
    fill still spreads through it and terminates.

    Returns the number of pixels painted.
    """
    if not buffer.in_bounds(x, y):
        raise OutOfBounds(x, y, buffer.width, buffer.height)
    target_color = tuple(target_color)
    replacement_color = tuple(replacement_color)
    if target_color == replacement_color:
        return 0

    stack = [(x, y)]
    visited = set()
    painted = 0

    while stack:
        cx, cy = stack.pop()
        if not buffer.in_bounds(cx, cy):
            continue
        if (cx, cy) in visited:
            continue
        if buffer.get(cx, cy) != target_color:
            continue

        visited.add((cx, cy))
        blend_pixel(buffer, cx, cy, replacement_color)
        painted += 1

        stack.append((cx + 1, cy))
        stack.append((cx - 1, cy))
        stack.append((cx, cy + 1))
        stack.append((cx, cy - 1))

    return painted


def line_points(p0: Point, p1: Point) -> Iterator[Point]:
    """Bresenham lattice points from p0 to p1, both endpoints included."""
    x0, y0 = p0
    x1, y1 = p1
    dx = abs(x1 - x0)
    dy = -abs(y1 - y0)
    sx = 1 if x0 < x1 else -1
    sy = 1 if y0 < y1 else -1
    err = dx + dy

    while True:
        yield (x0, y0)
        if x0 == x1 and y0 == y1:
            return
        e2 = 2 * err
        if e2 >= dy:
            err += dy
            x0 += sx
        if e2 <= dx:
            err += dx
            y0 += sy


def clip_segment(p0: Point, p1: Point, width: int, height: int) -> tuple[Point, Point] | None:
    """Liang-Barsky clip of p0 -> p1 to the ``width`` x ``height`` grid.

    Endpoints already on the grid are returned unchanged. Returns None when
    the segment misses the grid entirely.
    """
    x0, y0 = p0
    x1, y1 = p1
    dx = x1 - x0
    dy = y1 - y0
    t0, t1 = 0.0, 1.0
    for p, q in ((-dx, x0), (dx, width - 1 - x0), (-dy, y0), (dy, height - 1 - y0)):
        if p == 0:
            if q < 0:
                return None
            continue
        t = q / p
        if p < 0:
            if t > t1:
                return None
            t0 = max(t0, t)
        else:
            if t < t0:
                return None
            t1 = min(t1, t)
    start = p0 if t0 == 0.0 else (round(x0 + t0 * dx), round(y0 + t0 * dy))
    end = p1 if t1 == 1.0 else (round(x0 + t1 * dx), round(y0 + t1 * dy))
    return start, end


def draw_line(buffer: PixelBuffer, p0: Point, p1: Point,
              paint_fn: Callable[[PixelBuffer, int, int], None]):
    """Call ``paint_fn(buffer, x, y)`` at every point of the line p0 -> p1."""
    for x, y in line_points(p0, p1):
        paint_fn(buffer, x, y)


def box_blur(buffer: PixelBuffer, x: int, y: int):
    """Replace (x, y) with the mean of its in-bounds 3x3 neighbourhood.

    Each channel is averaged independently with integer division. Samples
    outside the buffer are left out of both the sum and the count.
    """
    if not buffer.in_bounds(x, y):
        raise OutOfBounds(x, y, buffer.width, buffer.height)
    sums = [0, 0, 0, 0]
    count = 0
    for ny in range(y - 1, y + 2):
        for nx in range(x - 1, x + 2):
            if not buffer.in_bounds(nx, ny):
                continue
            for i, channel in enumerate(buffer.get(nx, ny)):
                sums[i] += channel
            count += 1
    buffer.set(x, y, tuple(s // count for s in sums))
