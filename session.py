"""Editing session: owns the layer stack, history and selection, and routes
tool input and command dictionaries to the editing primitives."""

import logging
from dataclasses import dataclass
from enum import Enum

from color_model import to_rgba
from compositor import composite
from errors import EmptySelection, NothingToRedo, NothingToUndo
from history import HISTORY_LIMIT, HistoryManager
from layers import LayerStack
from paint_ops import blend_pixel, box_blur, clip_segment, draw_line, flood_fill, line_points
from pixel_buffer import RGBA, TRANSPARENT, PixelBuffer
from selection import SelectionEngine, delete_selection

logger = logging.getLogger(__name__)

Point = tuple[int, int]


class Tool(Enum):
    PENCIL = "pencil"
    ERASER = "eraser"
    FILL = "fill"
    EYEDROPPER = "eyedropper"
    LASSO = "lasso"
    RECT_SELECT = "rect_select"
    LINE = "line"
    BLUR = "blur"


class Button(Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Phase(Enum):
    PRESS = "press"
    DRAG = "drag"
    RELEASE = "release"


SELECTION_TOOLS = (Tool.LASSO, Tool.RECT_SELECT)


@dataclass
class ToolState:
    tool: Tool = Tool.PENCIL
    primary_color: RGBA = (0, 0, 0, 255)
    secondary_color: RGBA = (255, 255, 255, 255)
    dim_inactive: bool = False

    def color_for(self, button: Button) -> RGBA:
        if button is Button.SECONDARY:
            return self.secondary_color
        return self.primary_color


def _clipped(paint_fn):
    """Wrap a paint function so points off the buffer are skipped."""
    def paint(buffer: PixelBuffer, x: int, y: int):
        if buffer.in_bounds(x, y):
            paint_fn(buffer, x, y)
    return paint


def _skipping(point: Point, paint_fn):
    """Wrap a paint function so one already-painted point is not painted again."""
    def paint(buffer: PixelBuffer, x: int, y: int):
        if (x, y) != point:
            paint_fn(buffer, x, y)
    return paint


def _to_points(raw) -> list[Point]:
    points = []
    for p in raw:
        if len(p) != 2:
            raise ValueError(f"Expected an [x, y] pair, got {p!r}")
        points.append((int(p[0]), int(p[1])))
    return points


class EditorSession:
    MAX_UNDO = HISTORY_LIMIT

    def __init__(self, width: int, height: int):
        self.width = width
        self.height = height
        self.state = ToolState()
        self.stack = LayerStack(width, height)
        self.history = HistoryManager(self.MAX_UNDO)
        self.selection = SelectionEngine(width, height)
        # Pointer gesture state
        self._last_point: Point | None = None
        self._line_anchor: Point | None = None
        self._grab_offset: Point | None = None
        self._gesture: Tool | None = None

    @property
    def active_layer(self):
        return self.stack.active

    def _save_undo(self):
        self.history.snapshot(self.stack)

    # --- History ---

    def _end_gesture(self):
        """Forget any pointer gesture in progress; later drags and releases are ignored."""
        self._last_point = self._line_anchor = self._grab_offset = None
        self._gesture = None

    def _restore(self, stack: LayerStack):
        self.stack = stack
        self.selection.deselect()
        self._end_gesture()

    def undo(self) -> bool:
        previous = self.history.undo(self.stack)
        if previous is None:
            return False
        self._restore(previous)
        return True

    def redo(self) -> bool:
        following = self.history.redo(self.stack)
        if following is None:
            return False
        self._restore(following)
        return True

    # --- Rendering ---

    def render(self, dim_inactive: bool | None = None) -> PixelBuffer:
        if dim_inactive is None:
            dim_inactive = self.state.dim_inactive
        return composite(self.stack, dim_inactive)

    def get_pixels(self, x: int = 0, y: int = 0,
                   w: int | None = None, h: int | None = None) -> list[list[list[int]]]:
        """Return a 2D list of [r, g, b, a] values (row-major) of the flattened image."""
        if w is None:
            w = self.width - x
        if h is None:
            h = self.height - y
        # Clamp to canvas bounds
        x = max(0, min(x, self.width - 1))
        y = max(0, min(y, self.height - 1))
        w = max(0, min(w, self.width - x))
        h = max(0, min(h, self.height - y))
        flat = composite(self.stack, False)
        return flat.pixels[y:y + h, x:x + w].tolist()

    def layer_info(self) -> list[dict]:
        return [
            {"index": i, "name": layer.name, "visible": layer.visible,
             "opacity": layer.opacity, "active": i == self.stack.active_index}
            for i, layer in enumerate(self.stack)
        ]

    # --- Pointer input ---

    def apply(self, tool: Tool, point: Point, button: Button = Button.PRIMARY,
              phase: Phase = Phase.PRESS) -> bool:
        """Feed one pointer event for ``tool`` at canvas point ``point``.

        Returns True if the event was consumed. Presses outside the canvas
        are ignored.
        """
        point = (int(point[0]), int(point[1]))
        if tool in SELECTION_TOOLS:
            return self._apply_selection(tool, point, phase)

        buffer = self.active_layer.buffer
        if phase is Phase.PRESS and not buffer.in_bounds(*point):
            return False
        color = self.state.color_for(button)

        if tool in (Tool.PENCIL, Tool.ERASER):
            if tool is Tool.PENCIL:
                paint = _clipped(lambda b, x, y: blend_pixel(b, x, y, color))
            else:
                paint = _clipped(lambda b, x, y: b.set(x, y, TRANSPARENT))
            if phase is Phase.PRESS:
                self._save_undo()
                paint(buffer, *point)
                self._last_point = point
            elif phase is Phase.DRAG and self._last_point is not None:
                draw_line(buffer, self._last_point, point, _skipping(self._last_point, paint))
                self._last_point = point
            elif phase is Phase.RELEASE:
                self._last_point = None
            return True

        if tool is Tool.FILL:
            if phase is not Phase.PRESS:
                return False
            self._save_undo()
            flood_fill(buffer, point[0], point[1], buffer.get(*point), color)
            return True

        if tool is Tool.EYEDROPPER:
            if not buffer.in_bounds(*point):
                return False
            picked = buffer.get(*point)
            if button is Button.SECONDARY:
                self.state.secondary_color = picked
            else:
                self.state.primary_color = picked
            return True

        if tool is Tool.LINE:
            if phase is Phase.PRESS:
                self._save_undo()
                self._line_anchor = point
            elif phase is Phase.RELEASE and self._line_anchor is not None:
                paint = _clipped(lambda b, x, y: blend_pixel(b, x, y, color))
                draw_line(buffer, self._line_anchor, point, paint)
                self._line_anchor = None
            return True

        if tool is Tool.BLUR:
            if phase is Phase.RELEASE:
                self._gesture = None
                return False
            if phase is Phase.DRAG and self._gesture is not Tool.BLUR:
                return False
            if not buffer.in_bounds(*point):
                return False
            if phase is Phase.PRESS:
                self._save_undo()
                self._gesture = Tool.BLUR
            box_blur(buffer, *point)
            return True

        raise ValueError(f"Unknown tool: {tool}")

    def _apply_selection(self, tool: Tool, point: Point, phase: Phase) -> bool:
        engine = self.selection

        if phase is Phase.PRESS:
            self._gesture = tool
            if engine.selection is not None and engine.contains(point):
                self._save_undo()
                region = engine.lift(self.active_layer)
                self._grab_offset = (point[0] - region.origin[0], point[1] - region.origin[1])
            elif tool is Tool.RECT_SELECT:
                engine.begin_rect(point)
            else:
                engine.begin_lasso()
                engine.add_lasso_point(point)
            return True

        # Drags and releases only continue a gesture this tool started
        if self._gesture is not tool:
            return False
        if phase is Phase.RELEASE:
            self._gesture = None

        if self._grab_offset is not None:
            if engine.detached is None:
                self._grab_offset = None
                self._gesture = None
                return False
            gx, gy = self._grab_offset
            engine.move_to((point[0] - gx, point[1] - gy))
            if phase is Phase.RELEASE:
                engine.place(self.active_layer)
                self._grab_offset = None
            return True

        if tool is Tool.LASSO:
            engine.add_lasso_point(point)
            if phase is Phase.RELEASE:
                engine.finalize_lasso()
        elif phase is Phase.RELEASE:
            engine.finalize_rect(None, point)
        return True

    # --- Command dispatch ---

    def execute(self, cmd: dict):
        action = cmd.get("action")
        method = getattr(self, f"_do_{action}", None)
        if method is None:
            raise ValueError(f"Unknown action: {action}")
        logger.debug("Executing %s", action)
        return method(cmd)

    # --- State operations (no undo) ---

    def _do_set_color(self, cmd: dict):
        color = to_rgba((cmd["r"], cmd["g"], cmd["b"], cmd.get("a", 255)))
        if cmd.get("slot") == "secondary":
            self.state.secondary_color = color
        else:
            self.state.primary_color = color

    def _do_set_tool(self, cmd: dict):
        self.state.tool = Tool(cmd["tool"])

    def _do_set_dim_inactive(self, cmd: dict):
        self.state.dim_inactive = bool(cmd["enabled"])

    def _do_pick_color(self, cmd: dict):
        button = Button.SECONDARY if cmd.get("slot") == "secondary" else Button.PRIMARY
        self.apply(Tool.EYEDROPPER, (cmd["x"], cmd["y"]), button)
        return self.state.color_for(button)

    def _do_set_active_layer(self, cmd: dict):
        self.stack.set_active(cmd["index"])

    def _do_rename_layer(self, cmd: dict):
        self.stack.rename_layer(cmd.get("index", self.stack.active_index), cmd["name"])

    def _do_set_layer_visible(self, cmd: dict):
        self.stack.set_visible(cmd.get("index", self.stack.active_index), cmd["visible"])

    def _do_set_layer_opacity(self, cmd: dict):
        self.stack.set_opacity(cmd.get("index", self.stack.active_index), cmd["opacity"])

    def _drop_selection_gesture(self):
        if self._gesture in SELECTION_TOOLS:
            self._gesture = None
        self._grab_offset = None

    def _do_select_rect(self, cmd: dict):
        self._drop_selection_gesture()
        self.selection.begin_rect((cmd["x1"], cmd["y1"]))
        return self.selection.finalize_rect(None, (cmd["x2"], cmd["y2"]))

    def _do_select_lasso(self, cmd: dict):
        points = _to_points(cmd["points"])
        self._drop_selection_gesture()
        self.selection.begin_lasso()
        for p in points:
            self.selection.add_lasso_point(p)
        return self.selection.finalize_lasso()

    def _do_select_all(self, cmd: dict):
        self._drop_selection_gesture()
        return self.selection.select_all()

    def _do_deselect(self, cmd: dict):
        self._drop_selection_gesture()
        self.selection.deselect()

    # --- Drawing operations (save undo first) ---

    def _do_draw_point(self, cmd: dict):
        self.apply(Tool.PENCIL, (cmd["x"], cmd["y"]))
        self.apply(Tool.PENCIL, (cmd["x"], cmd["y"]), phase=Phase.RELEASE)

    def _do_draw_line(self, cmd: dict):
        self._save_undo()
        color = self.state.primary_color
        paint = _clipped(lambda b, x, y: blend_pixel(b, x, y, color))
        segment = clip_segment((cmd["x1"], cmd["y1"]), (cmd["x2"], cmd["y2"]), self.width, self.height)
        if segment is not None:
            draw_line(self.active_layer.buffer, *segment, paint)

    def _do_draw_path(self, cmd: dict):
        points = _to_points(cmd["points"])
        if not points:
            return
        tool = Tool.ERASER if cmd.get("erase") else Tool.PENCIL
        self._save_undo()
        buffer = self.active_layer.buffer
        color = self.state.primary_color
        if tool is Tool.PENCIL:
            paint = _clipped(lambda b, x, y: blend_pixel(b, x, y, color))
        else:
            paint = _clipped(lambda b, x, y: b.set(x, y, TRANSPARENT))
        # Consecutive segments share endpoints; paint each lattice point once
        # so translucent colors are not blended twice at the joints.
        seen = set()
        for p0, p1 in zip(points, points[1:] or points):
            segment = clip_segment(p0, p1, self.width, self.height)
            if segment is None:
                continue
            for p in line_points(*segment):
                if p not in seen:
                    seen.add(p)
                    paint(buffer, *p)

    def _do_flood_fill(self, cmd: dict):
        x, y = cmd["x"], cmd["y"]
        if not self.active_layer.buffer.in_bounds(x, y):
            return
        self.apply(Tool.FILL, (x, y))

    def _do_blur(self, cmd: dict):
        points = _to_points(cmd["points"]) if "points" in cmd else [(cmd["x"], cmd["y"])]
        self._save_undo()
        buffer = self.active_layer.buffer
        for x, y in points:
            if buffer.in_bounds(x, y):
                box_blur(buffer, x, y)

    def _do_move_selection(self, cmd: dict):
        engine = self.selection
        if engine.selection is None:
            raise EmptySelection("Nothing selected to move")
        self._drop_selection_gesture()
        if engine.detached is not None:
            engine.place(self.active_layer)
        self._save_undo()
        region = engine.lift(self.active_layer)
        engine.move_to((region.origin[0] + cmd["dx"], region.origin[1] + cmd["dy"]))
        engine.place(self.active_layer)

    def _do_delete_selection(self, cmd: dict):
        if self.selection.selection is None:
            raise EmptySelection("Nothing selected to delete")
        self._save_undo()
        return delete_selection(self.active_layer, self.selection.selection)

    def _do_clear(self, cmd: dict):
        self._save_undo()
        self.active_layer.buffer.fill(TRANSPARENT)

    # --- Layer structure (save undo first) ---

    def _do_add_layer(self, cmd: dict):
        self._save_undo()
        return self.stack.add_layer(cmd.get("name"))

    def _do_delete_layer(self, cmd: dict):
        index = cmd.get("index", self.stack.active_index)
        self.stack.check_can_delete(index)
        self._save_undo()
        return self.stack.delete_layer(index)

    def _do_duplicate_layer(self, cmd: dict):
        index = cmd.get("index", self.stack.active_index)
        self.stack.check_index(index)
        self._save_undo()
        return self.stack.duplicate_layer(index)

    def _do_merge_down(self, cmd: dict):
        index = cmd.get("index", self.stack.active_index)
        self.stack.check_can_merge(index)
        self._save_undo()
        return self.stack.merge_down(index)

    def _do_move_layer(self, cmd: dict):
        self.stack.check_can_move(cmd["index"], cmd["new_index"])
        self._save_undo()
        self.stack.move_layer(cmd["index"], cmd["new_index"])

    def _do_undo(self, cmd: dict):
        if not self.undo():
            raise NothingToUndo()

    def _do_redo(self, cmd: dict):
        if not self.redo():
            raise NothingToRedo()

    # --- Read-only operations (no undo) ---

    def _do_info(self, cmd: dict) -> dict:
        stats = self.history.get_stats()
        return {
            "layers": len(self.stack),
            "active": self.stack.active_index,
            "undo_count": stats["undo_count"],
            "redo_count": stats["redo_count"],
        }

    def _do_list_layers(self, cmd: dict) -> list[dict]:
        return self.layer_info()

    def _do_get_pixels(self, cmd: dict) -> list[list[list[int]]]:
        return self.get_pixels(cmd.get("x", 0), cmd.get("y", 0), cmd.get("w"), cmd.get("h"))
