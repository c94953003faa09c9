"""Entry point: starts MCP server thread + pygame editor window."""

import os
# Suppress pygame welcome message before importing; it prints to stdout
# which would corrupt the MCP stdio JSON-RPC stream.
os.environ["PYGAME_HIDE_SUPPORT_PROMPT"] = "1"

import logging
import sys
import queue
import threading

import pygame
from errors import EditorError
from pixel_buffer import PixelBuffer
from session import Button, EditorSession, Phase
from tools import create_mcp_server

logger = logging.getLogger(__name__)

WIDTH, HEIGHT = 64, 64
PIXEL_SIZE = 10
TOOLBAR_H = 40
WINDOW_W = WIDTH * PIXEL_SIZE
WINDOW_H = HEIGHT * PIXEL_SIZE + TOOLBAR_H
FPS = 30

# Toolbar colours
TB_BG = (220, 220, 220)
TB_BTN = (180, 180, 180)
TB_BTN_HOVER = (160, 160, 160)
TB_TEXT = (30, 30, 30)

# Checkerboard shown through transparent pixels
CHECKER_A = (200, 200, 200)
CHECKER_B = (240, 240, 240)

MOUSE_BUTTONS = {1: Button.PRIMARY, 3: Button.SECONDARY}


def run_mcp_server(mcp_server):
    """Target for the daemon thread; runs the MCP stdio server."""
    mcp_server.run(transport="stdio")


def to_surface(buffer: PixelBuffer) -> pygame.Surface:
    """Wrap a flattened buffer in an RGBA pygame surface."""
    return pygame.image.frombuffer(buffer.pixels.tobytes(), (buffer.width, buffer.height), "RGBA")


def make_checkerboard() -> pygame.Surface:
    surface = pygame.Surface((WINDOW_W, WINDOW_H - TOOLBAR_H))
    surface.fill(CHECKER_A)
    half = max(1, PIXEL_SIZE // 2)
    for y in range(0, surface.get_height(), half):
        for x in range(0, surface.get_width(), half):
            if (x // half + y // half) % 2:
                surface.fill(CHECKER_B, (x, y, half, half))
    return surface


def to_canvas_point(pos: tuple[int, int]) -> tuple[int, int]:
    """Map a window position to a canvas pixel."""
    return (pos[0] // PIXEL_SIZE, (pos[1] - TOOLBAR_H) // PIXEL_SIZE)


def _save_dialog_and_write(session: EditorSession):
    """Open a Tk file-save dialog (runs on main thread) and write the PNG."""
    import tkinter as tk
    from tkinter import filedialog
    root = tk.Tk()
    root.withdraw()
    path = filedialog.asksaveasfilename(
        defaultextension=".png",
        filetypes=[("PNG image", "*.png"), ("All files", "*.*")],
        title="Save canvas as…",
    )
    root.destroy()
    if path:
        pygame.image.save(to_surface(session.render(dim_inactive=False)), path)
        logger.info("Saved %s", path)


def _handle_request(cmd: dict, session: EditorSession):
    """Process a request/response command from the MCP tool thread."""
    event: threading.Event = cmd["_event"]
    result: dict = cmd["_result"]
    action = cmd.get("action")
    try:
        if action == "save_file":
            path = cmd["path"]
            pygame.image.save(to_surface(session.render(dim_inactive=False)), path)
            result["data"] = f"Canvas saved to {path}"
        else:
            result["data"] = session.execute(cmd)
    except EditorError as e:
        logger.warning("Rejected %s: %s", action, e)
        result["error"] = str(e)
    except Exception as e:
        logger.error("Request %s failed: %s", action, e)
        result["error"] = str(e) or type(e).__name__
    finally:
        event.set()


def _handle_command(cmd: dict, session: EditorSession):
    """Run a fire-and-forget command; failures are logged, never raised."""
    try:
        session.execute(cmd)
    except EditorError as e:
        logger.warning("Rejected %s: %s", cmd.get("action"), e)
    except Exception as e:
        logger.error("Command %s failed: %s", cmd.get("action"), e)


def _handle_mouse(event, session: EditorSession):
    """Forward a pygame mouse event to the active tool."""
    if event.type == pygame.MOUSEMOTION:
        if not (event.buttons[0] or event.buttons[2]):
            return
        button = Button.PRIMARY if event.buttons[0] else Button.SECONDARY
        phase = Phase.DRAG
    else:
        button = MOUSE_BUTTONS.get(event.button)
        if button is None:
            return
        phase = Phase.PRESS if event.type == pygame.MOUSEBUTTONDOWN else Phase.RELEASE
    point = to_canvas_point(event.pos)
    try:
        session.apply(session.state.tool, point, button, phase)
    except EditorError as e:
        logger.warning("Tool %s rejected: %s", session.state.tool.value, e)


def main():
    logging.basicConfig(stream=sys.stderr, level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    # Shared command queue between MCP thread and pygame main thread
    command_queue = queue.Queue()

    # Create MCP server with tool definitions
    mcp_server = create_mcp_server(command_queue, WIDTH, HEIGHT)

    # Start MCP server in a background daemon thread
    mcp_thread = threading.Thread(target=run_mcp_server, args=(mcp_server,), daemon=True)
    mcp_thread.start()

    # Initialize pygame on the main thread
    pygame.init()
    screen = pygame.display.set_mode((WINDOW_W, WINDOW_H))
    pygame.display.set_caption("Layer Paint")
    clock = pygame.time.Clock()

    session = EditorSession(WIDTH, HEIGHT)
    checkerboard = make_checkerboard()

    font = pygame.font.SysFont(None, 24)
    save_btn_rect = pygame.Rect(10, 8, 70, 26)

    running = True
    while running:
        mouse_pos = pygame.mouse.get_pos()

        # Handle pygame events
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1 and save_btn_rect.collidepoint(event.pos):
                _save_dialog_and_write(session)
            elif event.type in (pygame.MOUSEBUTTONDOWN, pygame.MOUSEBUTTONUP, pygame.MOUSEMOTION):
                if event.pos[1] >= TOOLBAR_H or event.type != pygame.MOUSEBUTTONDOWN:
                    _handle_mouse(event, session)
            elif event.type == pygame.KEYDOWN and event.mod & pygame.KMOD_CTRL:
                if event.key == pygame.K_z and not session.undo():
                    logger.info("Nothing to undo")
                elif event.key == pygame.K_y and not session.redo():
                    logger.info("Nothing to redo")

        # Drain all pending commands from the queue
        while True:
            try:
                cmd = command_queue.get_nowait()
            except queue.Empty:
                break

            # Request/response bridge commands have an _event key
            if "_event" in cmd:
                _handle_request(cmd, session)
            else:
                _handle_command(cmd, session)

        # --- Render ---
        # Toolbar
        pygame.draw.rect(screen, TB_BG, (0, 0, WINDOW_W, TOOLBAR_H))
        btn_color = TB_BTN_HOVER if save_btn_rect.collidepoint(mouse_pos) else TB_BTN
        pygame.draw.rect(screen, btn_color, save_btn_rect, border_radius=4)
        pygame.draw.rect(screen, TB_TEXT, save_btn_rect, width=1, border_radius=4)
        label = font.render("Save", True, TB_TEXT)
        label_rect = label.get_rect(center=save_btn_rect.center)
        screen.blit(label, label_rect)
        status = font.render(f"{session.state.tool.value}  layer {session.stack.active_index + 1}/{len(session.stack)}",
                             True, TB_TEXT)
        screen.blit(status, (95, 12))

        # Canvas (offset below toolbar), nearest-neighbour scaled
        screen.blit(checkerboard, (0, TOOLBAR_H))
        image = pygame.transform.scale(to_surface(session.render()), (WINDOW_W, WINDOW_H - TOOLBAR_H))
        screen.blit(image, (0, TOOLBAR_H))
        pygame.display.flip()
        clock.tick(FPS)

    pygame.quit()


if __name__ == "__main__":
    main()
