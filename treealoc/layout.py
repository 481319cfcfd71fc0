"""Geometry of the tree picture: where each block box and connecting line goes."""

from __future__ import annotations

from dataclasses import dataclass

from treealoc.btree import BNode, BTree, format_address

NODE_WIDTH = 100
NODE_HEIGHT = 60
VERTICAL_SPACING = 100
HORIZONTAL_SPACING = 40
MIN_SPACING = 20
TOP_MARGIN = 50

DEFAULT_WINDOW_WIDTH = 846
DEFAULT_WINDOW_HEIGHT = 579
DEFAULT_OFFSET_X = 300
PAN_STEP = 50

SCALE_STEP = 0.1
MIN_SCALE = 0.3
MAX_SCALE = 3.0
RESIZE_DEBOUNCE_MS = 100

FREE_COLOR = (0, 180, 0)
USED_COLOR = (180, 0, 0)


@dataclass(frozen=True)
class KeyBox:
    """One block drawn as a box; ``x`` is the box centre, ``y`` its top edge."""

    x: int
    y: int
    size: int
    address: int
    is_free: bool
    depth: int

    @property
    def rect(self) -> tuple[int, int, int, int]:
        return (self.x - NODE_WIDTH // 2, self.y, NODE_WIDTH, NODE_HEIGHT)

    @property
    def shadow_rect(self) -> tuple[int, int, int, int]:
        return (self.x - NODE_WIDTH // 2 + 3, self.y + 3, NODE_WIDTH, NODE_HEIGHT)

    @property
    def color(self) -> tuple[int, int, int]:
        return FREE_COLOR if self.is_free else USED_COLOR

    @property
    def label(self) -> str:
        return f"{self.size}\n{format_address(self.address)}"


@dataclass(frozen=True)
class Edge:
    """A line from a node's first box to the bottom of its parent's first box."""

    start: tuple[int, int]
    end: tuple[int, int]


def level_counts(tree: BTree) -> list[int]:
    """Return the number of blocks on each depth of the tree, root first."""
    counts: list[int] = []

    def visit(node: BNode, depth: int) -> None:
        if depth == len(counts):
            counts.append(0)
        counts[depth] += len(node.keys)
        for child in node.children:
            visit(child, depth + 1)

    if tree.root is not None:
        visit(tree.root, 0)
    return counts


def level_spacing(count: int, window_width: int) -> int:
    """Horizontal gap between boxes on a level holding ``count`` blocks."""
    if count > 1:
        spacing = (window_width - count * NODE_WIDTH) // (count - 1)
    else:
        spacing = HORIZONTAL_SPACING
    return max(MIN_SPACING, min(spacing, HORIZONTAL_SPACING * 2))


def layout_tree(
    tree: BTree, window_width: int, offset_x: int = 0, offset_y: int = 0
) -> tuple[list[KeyBox], list[Edge]]:
    """Place every block of ``tree``; returns the boxes and the connecting edges."""
    boxes: list[KeyBox] = []
    edges: list[Edge] = []
    if tree.root is None:
        return boxes, edges
    counts = level_counts(tree)

    def place(
        node: BNode, x: int, y: int, depth: int, parent: tuple[int, int] | None
    ) -> None:
        step = NODE_WIDTH + level_spacing(counts[depth], window_width)
        middle = len(node.keys) // 2
        first_x = x
        for i, block in enumerate(node.keys):
            key_x = x + (i - middle) * step
            if i == 0:
                first_x = key_x
            boxes.append(KeyBox(key_x, y, block.size, block.address, block.is_free, depth))
        if parent is not None:
            edges.append(Edge((first_x, y), (parent[0], parent[1] + NODE_HEIGHT)))
        for i, child in enumerate(node.children):
            place(child, x + (i - middle) * step, y + VERTICAL_SPACING, depth + 1, (first_x, y))

    place(tree.root, window_width // 2 + offset_x, TOP_MARGIN + offset_y, 0, None)
    return boxes, edges


@dataclass
class ViewState:
    """Window size, zoom, pan and fullscreen state of the picture."""

    width: int = DEFAULT_WINDOW_WIDTH
    height: int = DEFAULT_WINDOW_HEIGHT
    scale: float = 1.0
    offset_x: int = DEFAULT_OFFSET_X
    offset_y: int = 0
    fullscreen: bool = False
    changed: bool = True
    last_resize_ms: int = 0

    def zoom_in(self) -> float:
        self.scale = round(min(self.scale + SCALE_STEP, MAX_SCALE), 1)
        self.changed = True
        return self.scale

    def zoom_out(self) -> float:
        self.scale = round(max(self.scale - SCALE_STEP, MIN_SCALE), 1)
        self.changed = True
        return self.scale

    def pan(self, dx: int, dy: int) -> None:
        self.offset_x += dx
        self.offset_y += dy
        self.changed = True

    def toggle_fullscreen(self) -> bool:
        self.fullscreen = not self.fullscreen
        self.changed = True
        return self.fullscreen

    def resize(self, width: int, height: int, now_ms: int) -> bool:
        """Accept a new window size unless it arrives within the debounce interval."""
        if now_ms - self.last_resize_ms < RESIZE_DEBOUNCE_MS:
            return False
        self.width = width
        self.height = height
        self.last_resize_ms = now_ms
        self.changed = True
        return True