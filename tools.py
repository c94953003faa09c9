"""MCP tool definitions. Pushes editing commands onto a thread-safe queue."""

import json
import queue
import threading
from typing import Optional
from mcp.server.fastmcp import FastMCP

from color_model import PRESET_COLORS, parse_hex, to_hex


def clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


TOOL_NAMES = ("pencil", "eraser", "fill", "eyedropper", "lasso", "rect_select", "line", "blur")


def create_mcp_server(command_queue: queue.Queue, width: int = 64, height: int = 64) -> FastMCP:
    mcp = FastMCP("layer-paint")

    # Local mirror so get_canvas_info can respond without a round trip
    _colors = {"primary": [0, 0, 0, 255], "secondary": [255, 255, 255, 255]}

    def _request_response(cmd: dict, timeout: float = 5.0):
        """Send a command to the main thread and wait for a response."""
        event = threading.Event()
        result: dict = {}
        cmd["_event"] = event
        cmd["_result"] = result
        command_queue.put(cmd)
        if not event.wait(timeout):
            raise TimeoutError("Main thread did not respond in time")
        if "error" in result:
            raise RuntimeError(result["error"])
        return result.get("data")

    # --- Canvas state ---

    @mcp.tool()
    def get_canvas_info() -> str:
        """Get canvas dimensions, current colors and history depth."""
        info = _request_response({"action": "info"})
        return (
            f"Canvas: {width}x{height}, "
            f"primary: {to_hex(_colors['primary'])}, "
            f"secondary: {to_hex(_colors['secondary'])}, "
            f"layers: {info['layers']}, active layer: {info['active']}, "
            f"undo steps: {info['undo_count']}, redo steps: {info['redo_count']}"
        )

    @mcp.tool()
    def set_color(r: int, g: int, b: int, a: int = 255, secondary: bool = False) -> str:
        """Set the primary (or secondary) drawing color (RGBA, each 0-255)."""
        r, g, b, a = (clamp(c, 0, 255) for c in (r, g, b, a))
        slot = "secondary" if secondary else "primary"
        _colors[slot] = [r, g, b, a]
        command_queue.put({"action": "set_color", "r": r, "g": g, "b": b, "a": a, "slot": slot})
        return f"{slot.capitalize()} color set to rgba({r}, {g}, {b}, {a})"

    @mcp.tool()
    def set_color_hex(color: str, secondary: bool = False) -> str:
        """Set a drawing color from '#rrggbb', '#rrggbbaa' or a preset name
        (black, white, red, green, blue, yellow, cyan, magenta, orange,
        purple, brown, pink)."""
        if color.lower() in PRESET_COLORS:
            rgba = (*PRESET_COLORS[color.lower()], 255)
        else:
            try:
                rgba = parse_hex(color)
            except ValueError as e:
                return f"Blocked: {e}"
        return set_color(*rgba, secondary=secondary)

    @mcp.tool()
    def set_tool(tool: str) -> str:
        """Select the tool used by mouse input in the editor window."""
        if tool not in TOOL_NAMES:
            return f"Unknown tool {tool!r}. Choose one of: {', '.join(TOOL_NAMES)}"
        command_queue.put({"action": "set_tool", "tool": tool})
        return f"Tool set to {tool}"

    @mcp.tool()
    def set_dim_inactive(enabled: bool) -> str:
        """Dim every layer except the active one in the editor window."""
        command_queue.put({"action": "set_dim_inactive", "enabled": enabled})
        return f"Dim inactive layers {'enabled' if enabled else 'disabled'}"

    # --- Painting ---

    @mcp.tool()
    def draw_point(x: int, y: int) -> str:
        """Paint a single pixel at (x, y) on the active layer."""
        command_queue.put({"action": "draw_point", "x": x, "y": y})
        return f"Drew point at ({x}, {y})"

    @mcp.tool()
    def draw_line(x1: int, y1: int, x2: int, y2: int) -> str:
        """Draw a one-pixel line from (x1, y1) to (x2, y2)."""
        command_queue.put({"action": "draw_line", "x1": x1, "y1": y1, "x2": x2, "y2": y2})
        return f"Drew line from ({x1}, {y1}) to ({x2}, {y2})"

    @mcp.tool()
    def draw_path(points: list[list[int]], erase: bool = False) -> str:
        """Draw (or erase, with erase=true) a freehand path through [x, y] pairs."""
        command_queue.put({"action": "draw_path", "points": points, "erase": erase})
        return f"{'Erased' if erase else 'Drew'} path through {len(points)} points"

    @mcp.tool()
    def flood_fill(x: int, y: int) -> str:
        """Bucket-fill the region at (x, y) on the active layer with the primary color."""
        command_queue.put({"action": "flood_fill", "x": x, "y": y})
        return f"Flood filled at ({x}, {y})"

    @mcp.tool()
    def blur(points: list[list[int]]) -> str:
        """Soften each listed [x, y] pixel with a 3x3 box blur."""
        command_queue.put({"action": "blur", "points": points})
        return f"Blurred {len(points)} points"

    @mcp.tool()
    def pick_color(x: int, y: int, secondary: bool = False) -> str:
        """Copy the active layer's pixel at (x, y) into the primary (or secondary) color."""
        slot = "secondary" if secondary else "primary"
        picked = _request_response({"action": "pick_color", "x": x, "y": y, "slot": slot})
        _colors[slot] = list(picked)
        return f"Picked {to_hex(picked)} into {slot} color"

    @mcp.tool()
    def clear_layer() -> str:
        """Clear the active layer to transparent."""
        command_queue.put({"action": "clear"})
        return "Layer cleared"

    # --- Selection ---

    @mcp.tool()
    def select_rect(x1: int, y1: int, x2: int, y2: int) -> str:
        """Select the rectangle with inclusive corners (x1, y1) and (x2, y2)."""
        rect = _request_response({"action": "select_rect", "x1": x1, "y1": y1, "x2": x2, "y2": y2})
        if rect is None:
            return "Selection is outside the canvas; nothing selected"
        return f"Selected {rect.w}x{rect.h} at ({rect.x}, {rect.y})"

    @mcp.tool()
    def select_lasso(points: list[list[int]]) -> str:
        """Select the polygon through the given [x, y] points (at least 3)."""
        box = _request_response({"action": "select_lasso", "points": points})
        if box is None:
            return "A lasso needs at least 3 points inside the canvas; nothing selected"
        return f"Selected polygon with bounds {box.w}x{box.h} at ({box.x}, {box.y})"

    @mcp.tool()
    def select_all() -> str:
        """Select the whole canvas."""
        _request_response({"action": "select_all"})
        return "Selected all"

    @mcp.tool()
    def deselect() -> str:
        """Drop the current selection."""
        _request_response({"action": "deselect"})
        return "Selection cleared"

    @mcp.tool()
    def move_selection(dx: int, dy: int) -> str:
        """Move the selected pixels of the active layer by (dx, dy)."""
        _request_response({"action": "move_selection", "dx": dx, "dy": dy})
        return f"Moved selection by ({dx}, {dy})"

    @mcp.tool()
    def delete_selection() -> str:
        """Make every selected pixel of the active layer transparent."""
        count = _request_response({"action": "delete_selection"})
        return f"Deleted {count} pixels"

    # --- Layers ---

    @mcp.tool()
    def list_layers() -> str:
        """List layers bottom to top as JSON."""
        return json.dumps(_request_response({"action": "list_layers"}))

    @mcp.tool()
    def add_layer(name: Optional[str] = None) -> str:
        """Add a transparent layer above the active one and make it active."""
        layer = _request_response({"action": "add_layer", "name": name})
        return f"Added layer '{layer.name}'"

    @mcp.tool()
    def delete_layer(index: Optional[int] = None) -> str:
        """Delete a layer (the active one by default). The last layer cannot be deleted."""
        cmd: dict = {"action": "delete_layer"}
        if index is not None:
            cmd["index"] = index
        layer = _request_response(cmd)
        return f"Deleted layer '{layer.name}'"

    @mcp.tool()
    def duplicate_layer(index: Optional[int] = None) -> str:
        """Duplicate a layer (the active one by default)."""
        cmd: dict = {"action": "duplicate_layer"}
        if index is not None:
            cmd["index"] = index
        layer = _request_response(cmd)
        return f"Created '{layer.name}'"

    @mcp.tool()
    def merge_down(index: Optional[int] = None) -> str:
        """Merge a layer (the active one by default) into the layer below it."""
        cmd: dict = {"action": "merge_down"}
        if index is not None:
            cmd["index"] = index
        layer = _request_response(cmd)
        return f"Merged into '{layer.name}'"

    @mcp.tool()
    def move_layer(index: int, new_index: int) -> str:
        """Move a layer to a new position in the stack (0 is the bottom)."""
        _request_response({"action": "move_layer", "index": index, "new_index": new_index})
        return f"Moved layer {index} to {new_index}"

    @mcp.tool()
    def set_active_layer(index: int) -> str:
        """Choose the layer that receives edits."""
        _request_response({"action": "set_active_layer", "index": index})
        return f"Active layer is now {index}"

    @mcp.tool()
    def rename_layer(index: int, name: str) -> str:
        """Rename a layer."""
        _request_response({"action": "rename_layer", "index": index, "name": name})
        return f"Layer {index} renamed to '{name}'"

    @mcp.tool()
    def set_layer_visibility(index: int, visible: bool) -> str:
        """Show or hide a layer."""
        _request_response({"action": "set_layer_visible", "index": index, "visible": visible})
        return f"Layer {index} {'shown' if visible else 'hidden'}"

    @mcp.tool()
    def set_layer_opacity(index: int, opacity: float) -> str:
        """Set a layer's opacity (0.0-1.0)."""
        opacity = max(0.0, min(1.0, opacity))
        _request_response({"action": "set_layer_opacity", "index": index, "opacity": opacity})
        return f"Layer {index} opacity set to {opacity:.2f}"

    # --- History ---

    @mcp.tool()
    def undo() -> str:
        """Undo the last editing operation."""
        _request_response({"action": "undo"})
        return "Undo performed"

    @mcp.tool()
    def redo() -> str:
        """Redo the last undone operation."""
        _request_response({"action": "redo"})
        return "Redo performed"

    # --- Readback ---

    @mcp.tool()
    def get_canvas_pixels(x: Optional[int] = None, y: Optional[int] = None,
                          width: Optional[int] = None, height: Optional[int] = None) -> str:
        """Return RGBA pixel data of the flattened image as a JSON 2D array of [r,g,b,a] values (row-major).

        All parameters are optional. Omit them to get the full canvas."""
        cmd: dict = {"action": "get_pixels"}
        if x is not None:
            cmd["x"] = x
        if y is not None:
            cmd["y"] = y
        if width is not None:
            cmd["w"] = width
        if height is not None:
            cmd["h"] = height
        pixels = _request_response(cmd)
        return json.dumps(pixels)

    @mcp.tool()
    def save_canvas(file_path: str) -> str:
        """Save the flattened image to a PNG file at the given path."""
        result = _request_response({"action": "save_file", "path": file_path})
        return result

    return mcp
