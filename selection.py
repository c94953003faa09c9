"""Rectangular and lasso selections, and lifting/placing selected pixels."""

import logging
from dataclasses import dataclass, field

from color_model import blend_over
from errors import EmptySelection
from pixel_buffer import TRANSPARENT, PixelBuffer

logger = logging.getLogger(__name__)

Point = tuple[int, int]


@dataclass(frozen=True)
class RectSelection:
    x: int
    y: int
    w: int
    h: int

    @property
    def bounds(self) -> "RectSelection":
        return self

    @property
    def origin(self) -> Point:
        return (self.x, self.y)

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px < self.x + self.w and self.y <= py < self.y + self.h

    def translated(self, dx: int, dy: int) -> "RectSelection":
        return RectSelection(self.x + dx, self.y + dy, self.w, self.h)


@dataclass(frozen=True)
class PolygonSelection:
    """A lasso outline. ``bounds`` is its bounding box clamped to the canvas."""
    points: tuple[Point, ...]
    bounds: RectSelection

    @property
    def origin(self) -> Point:
        return self.bounds.origin

    def contains(self, px: int, py: int) -> bool:
        return self.bounds.contains(px, py) and point_in_polygon((px, py), self.points)

    def translated(self, dx: int, dy: int) -> "PolygonSelection":
        return PolygonSelection(
            tuple((x + dx, y + dy) for x, y in self.points),
            self.bounds.translated(dx, dy),
        )


# A missing selection is represented by None.
Selection = RectSelection | PolygonSelection | None


@dataclass
class DetachedRegion:
    """Pixels lifted out of a layer, waiting to be placed at ``origin``."""
    buffer: PixelBuffer
    origin: Point
    selection: RectSelection | PolygonSelection = field(repr=False)


# --- Geometry ---

def clamp_rect(x0: int, y0: int, x1: int, y1: int, width: int, height: int) -> RectSelection | None:
    """Normalize two inclusive corners and clip them to the canvas."""
    left = max(0, min(x0, x1))
    top = max(0, min(y0, y1))
    right = min(width - 1, max(x0, x1))
    bottom = min(height - 1, max(y0, y1))
    if right < left or bottom < top:
        return None
    return RectSelection(left, top, right - left + 1, bottom - top + 1)


def polygon_bounds(points, width: int, height: int) -> RectSelection | None:
    xs = [p[0] for p in points]
    ys = [p[1] for p in points]
    return clamp_rect(min(xs), min(ys), max(xs), max(ys), width, height)


def point_in_polygon(point: Point, polygon) -> bool:
    """Even-odd ray casting test."""
    px, py = point
    inside = False
    n = len(polygon)
    j = n - 1
    for i in range(n):
        xi, yi = polygon[i]
        xj, yj = polygon[j]
        if (yi > py) != (yj > py):
            cross_x = (xj - xi) * (py - yi) / (yj - yi) + xi
            if px < cross_x:
                inside = not inside
        j = i
    return inside


def point_in_selection(point: Point, selection: Selection) -> bool:
    if selection is None:
        return False
    return selection.contains(*point)


def _selected_points(selection: Selection, width: int, height: int):
    """Yield every canvas point inside ``selection``."""
    if selection is None:
        raise EmptySelection("No active selection")
    box = selection.bounds
    for y in range(max(0, box.y), min(height, box.y + box.h)):
        for x in range(max(0, box.x), min(width, box.x + box.w)):
            if selection.contains(x, y):
                yield x, y


# --- Pixel operations ---

def extract(layer, selection: Selection) -> DetachedRegion:
    """Lift the selected pixels out of ``layer``.

    Selected pixels are copied into a buffer the size of the bounding box and
    cleared in the layer. Pixels in the box but outside a lasso outline stay
    in the layer and are transparent in the region.
    """
    if selection is None:
        raise EmptySelection("Nothing selected to extract")
    src = layer.buffer
    box = selection.bounds
    region = PixelBuffer(box.w, box.h)
    for x, y in _selected_points(selection, src.width, src.height):
        region.set(x - box.x, y - box.y, src.get(x, y))
        src.set(x, y, TRANSPARENT)
    return DetachedRegion(region, (box.x, box.y), selection)


def commit(layer, region: DetachedRegion | None, new_origin: Point | None = None):
    """Composite a detached region back onto ``layer`` at ``new_origin``.

    Pixels that would land outside the layer are dropped.
    """
    if region is None:
        raise EmptySelection("No detached region to commit")
    ox, oy = region.origin if new_origin is None else new_origin
    dst = layer.buffer
    src = region.buffer
    for ly in range(src.height):
        for lx in range(src.width):
            x, y = ox + lx, oy + ly
            if not dst.in_bounds(x, y):
                continue
            color = src.get(lx, ly)
            if color[3] == 0:
                continue
            dst.set(x, y, blend_over(color, dst.get(x, y)))


def delete_selection(layer, selection: Selection) -> int:
    """Clear every selected pixel in place. Returns the number cleared."""
    buf = layer.buffer
    cleared = 0
    for x, y in _selected_points(selection, buf.width, buf.height):
        buf.set(x, y, TRANSPARENT)
        cleared += 1
    return cleared


class SelectionEngine:
    """Tracks the canvas's single selection and any region being moved."""

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.selection: Selection = None
        self.detached: DetachedRegion | None = None
        self.lasso_points: list[Point] = []
        self._rect_anchor: Point | None = None

    def _discard_detached(self):
        if self.detached is not None:
            logger.debug("Discarding uncommitted region at %s", self.detached.origin)
        self.detached = None

    # --- Rectangle ---

    def begin_rect(self, p0: Point) -> RectSelection | None:
        self._discard_detached()
        self._rect_anchor = p0
        self.selection = clamp_rect(p0[0], p0[1], p0[0], p0[1], self.width, self.height)
        return self.selection

    def finalize_rect(self, p0: Point | None, p1: Point) -> RectSelection | None:
        if p0 is None:
            p0 = self._rect_anchor if self._rect_anchor is not None else p1
        self._rect_anchor = None
        self.selection = clamp_rect(p0[0], p0[1], p1[0], p1[1], self.width, self.height)
        return self.selection

    # --- Lasso ---

    def begin_lasso(self):
        self._discard_detached()
        self.selection = None
        self.lasso_points = []

    def add_lasso_point(self, p: Point):
        if not self.lasso_points or self.lasso_points[-1] != tuple(p):
            self.lasso_points.append(tuple(p))

    def finalize_lasso(self) -> RectSelection | None:
        """Close the outline and return its clamped bounding box.

        Fewer than three points is not a polygon and leaves nothing selected.
        """
        points = tuple(self.lasso_points)
        self.lasso_points = []
        if len(points) < 3:
            self.selection = None
            return None
        bounds = polygon_bounds(points, self.width, self.height)
        self.selection = PolygonSelection(points, bounds) if bounds else None
        return bounds

    # --- Whole-canvas ---

    def select_all(self) -> RectSelection:
        self._discard_detached()
        self.selection = RectSelection(0, 0, self.width, self.height)
        return self.selection

    def deselect(self):
        self._discard_detached()
        self.selection = None
        self.lasso_points = []

    def contains(self, point: Point) -> bool:
        return point_in_selection(point, self.selection)

    # --- Moving ---

    def lift(self, layer) -> DetachedRegion:
        self._discard_detached()
        self.detached = extract(layer, self.selection)
        return self.detached

    def move_to(self, origin: Point):
        if self.detached is None:
            raise EmptySelection("No detached region to move")
        self.detached.origin = origin

    def place(self, layer):
        """Commit the detached region and move the selection along with it."""
        region = self.detached
        if region is None:
            raise EmptySelection("No detached region to commit")
        commit(layer, region, region.origin)
        box = region.selection.bounds
        self.selection = region.selection.translated(
            region.origin[0] - box.x, region.origin[1] - box.y)
        self.detached = None
