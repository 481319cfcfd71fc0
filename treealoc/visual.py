"""Window that draws the allocator's B-tree and lets the user zoom and pan."""

from __future__ import annotations

import logging
import math
import os
import time

import pygame

from treealoc.btree import BTree
from treealoc.layout import (
    NODE_HEIGHT,
    NODE_WIDTH,
    PAN_STEP,
    KeyBox,
    ViewState,
    layout_tree,
)

DEFAULT_FONT = "/usr/share/fonts/liberation-sans-fonts/LiberationSans-Regular.ttf"
FONT_SIZE = 14
FRAME_DELAY_MS = 100
NODE_LOG_DEBOUNCE_MS = 1000
WINDOW_TITLE = "Treealoc Visualizer"

BACKGROUND = (255, 255, 255)
SHADOW = (50, 50, 50)
OUTLINE = (255, 255, 255)
LINE = (0, 0, 0)
TEXT = (255, 255, 255)

log = logging.getLogger(__name__)


class Visualizer:
    """Draws a block tree; the window loop runs in :meth:`run` until stopped."""

    def __init__(
        self,
        tree: BTree,
        log_path: str | os.PathLike[str] | None = None,
        font_path: str | os.PathLike[str] | None = DEFAULT_FONT,
        font_size: int = FONT_SIZE,
    ) -> None:
        self.tree = tree
        self.state = ViewState()
        self.log_path = log_path
        self.font_path = font_path
        self.font_size = font_size
        self.running = False
        self._font: pygame.font.Font | None = None
        self._screen: pygame.Surface | None = None
        self._last_node_count = -1
        self._last_node_log_ms = 0

    def _log(self, message: str) -> None:
        log.info("[visual] %s", message)
        if self.log_path is None:
            return
        try:
            with open(self.log_path, "a", encoding="utf-8") as fh:
                fh.write(f"[{time.ctime()}] [visual] {message}\n")
        except OSError:
            log.error("[visual] Failed to open %s", self.log_path)

    def handle_key(self, key: str) -> bool:
        """Apply a key press given by its name; returns whether it was recognised."""
        state = self.state
        if key in ("+", "="):
            self._log(f"Scale increased to {state.zoom_in():.1f}x")
        elif key == "-":
            self._log(f"Scale decreased to {state.zoom_out():.1f}x")
        elif key == "w":
            state.pan(0, PAN_STEP)
        elif key == "s":
            state.pan(0, -PAN_STEP)
        elif key == "a":
            state.pan(PAN_STEP, 0)
        elif key == "d":
            state.pan(-PAN_STEP, 0)
        elif key == "f":
            enabled = state.toggle_fullscreen()
            self._apply_fullscreen()
            self._log("Fullscreen enabled" if enabled else "Fullscreen disabled")
        else:
            return False
        return True

    def _apply_fullscreen(self) -> None:
        if self._screen is None:
            return
        if self.state.fullscreen:
            self._screen = pygame.display.set_mode((0, 0), pygame.FULLSCREEN)
        else:
            self._screen = pygame.display.set_mode(
                (self.state.width, self.state.height), pygame.RESIZABLE
            )

    def handle_resize(self, width: int, height: int, now_ms: int) -> bool:
        """Record a window resize; returns False when it is debounced."""
        if not self.state.resize(width, height, now_ms):
            return False
        self._log(f"Window resized to {width}x{height}")
        return True

    def _draw_box(self, target: pygame.Surface, box: KeyBox) -> None:
        pygame.draw.rect(target, SHADOW, pygame.Rect(box.shadow_rect))
        rect = pygame.Rect(box.rect)
        pygame.draw.rect(target, box.color, rect)
        pygame.draw.rect(target, OUTLINE, rect, 1)
        if self._font is None:
            return
        try:
            lines = [self._font.render(text, True, TEXT) for text in box.label.split("\n")]
        except pygame.error as exc:
            self._log(f"Failed to render text: {exc}")
            return
        total = sum(line.get_height() for line in lines)
        y = box.y + (NODE_HEIGHT - total) // 2
        for line in lines:
            x = box.x - NODE_WIDTH // 2 + (NODE_WIDTH - line.get_width()) // 2
            target.blit(line, (x, y))
            y += line.get_height()

    def draw(self, surface: pygame.Surface, now_ms: int) -> bool:
        """Redraw onto ``surface`` if anything changed; returns whether it drew."""
        state = self.state
        if not state.changed and not self.tree.modified:
            return False
        width, height = surface.get_size()
        if state.scale == 1.0:
            target = surface
        else:
            target = pygame.Surface(
                (max(1, math.ceil(width / state.scale)), max(1, math.ceil(height / state.scale)))
            )
        target.fill(BACKGROUND)
        boxes, edges = layout_tree(self.tree, state.width, state.offset_x, state.offset_y)
        for box in boxes:
            self._draw_box(target, box)
        for edge in edges:
            pygame.draw.line(target, LINE, edge.start, edge.end)
        if target is not surface:
            surface.blit(pygame.transform.scale(target, (width, height)), (0, 0))

        if len(boxes) != self._last_node_count:
            if now_ms - self._last_node_log_ms >= NODE_LOG_DEBOUNCE_MS:
                self._log(f"Total nodes displayed: {len(boxes)}")
                self._last_node_log_ms = now_ms
            self._last_node_count = len(boxes)
        state.changed = False
        self.tree.modified = False
        return True

    def _load_font(self) -> None:
        if self.font_path is None:
            return
        try:
            pygame.font.init()
            self._font = pygame.font.Font(os.fspath(self.font_path), self.font_size)
        except (OSError, pygame.error) as exc:
            self._log(f"Font loading failed: {exc}")
            return
        self._log("Font loaded")

    def run(self) -> int:
        """Open the window and draw until it is closed; returns an exit status."""
        try:
            pygame.display.init()
        except pygame.error as exc:
            self._log(f"Display init failed: {exc}")
            return 1
        self._log("Display initialized")
        try:
            self._screen = pygame.display.set_mode(
                (self.state.width, self.state.height), pygame.RESIZABLE
            )
        except pygame.error as exc:
            self._log(f"Window creation failed: {exc}")
            pygame.quit()
            return 1
        pygame.display.set_caption(WINDOW_TITLE)
        self._log("Window created")
        self._load_font()

        self.running = True
        self.state.changed = True
        try:
            while self.running:
                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self.stop()
                    elif event.type == pygame.KEYDOWN:
                        self.handle_key(pygame.key.name(event.key))
                    elif event.type == pygame.VIDEORESIZE:
                        self.handle_resize(event.w, event.h, pygame.time.get_ticks())
                screen = pygame.display.get_surface()
                if screen is not None and self.draw(screen, pygame.time.get_ticks()):
                    pygame.display.flip()
                pygame.time.wait(FRAME_DELAY_MS)
        finally:
            self._screen = None
            self._font = None
            pygame.quit()
            self._log("Visualizer closed")
        return 0

    def stop(self) -> None:
        """Ask the window loop to finish after the current frame."""
        self.running = False