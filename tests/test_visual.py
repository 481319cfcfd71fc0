import pygame

from treealoc.btree import BTree
from treealoc.layout import (
    DEFAULT_WINDOW_HEIGHT,
    DEFAULT_WINDOW_WIDTH,
    FREE_COLOR,
    NODE_HEIGHT,
    PAN_STEP,
    RESIZE_DEBOUNCE_MS,
    USED_COLOR,
    layout_tree,
)
from treealoc.visual import BACKGROUND, NODE_LOG_DEBOUNCE_MS, Visualizer


def one_block_tree():
    tree = BTree()
    tree.insert(32, 0x10000)
    return tree


def pixel(surface, point):
    return tuple(surface.get_at(point))[:3]


def test_zoom_keys():
    vis = Visualizer(BTree(), font_path=None)
    start = vis.state.scale
    assert vis.handle_key("=") is True
    assert vis.state.scale > start
    assert vis.handle_key("-") is True
    assert vis.state.scale == start


def test_unknown_key_ignored():
    vis = Visualizer(BTree(), font_path=None)
    vis.state.changed = False
    assert vis.handle_key("x") is False
    assert vis.state.changed is False


def test_pan_keys():
    vis = Visualizer(BTree(), font_path=None)
    x, y = vis.state.offset_x, vis.state.offset_y
    vis.handle_key("w")
    assert vis.state.offset_y == y + PAN_STEP
    vis.handle_key("s")
    vis.handle_key("a")
    assert (vis.state.offset_x, vis.state.offset_y) == (x + PAN_STEP, y)
    vis.handle_key("d")
    assert vis.state.offset_x == x


def test_fullscreen_toggle_without_window():
    vis = Visualizer(BTree(), font_path=None)
    vis.handle_key("f")
    assert vis.state.fullscreen is True
    vis.handle_key("f")
    assert vis.state.fullscreen is False


def test_resize_debounce():
    vis = Visualizer(BTree(), font_path=None)
    assert vis.handle_resize(1000, 700, 0) is False
    assert vis.handle_resize(1000, 700, RESIZE_DEBOUNCE_MS) is True
    assert (vis.state.width, vis.state.height) == (1000, 700)


def test_log_file_records_actions(tmp_path):
    path = tmp_path / "visual.log"
    vis = Visualizer(BTree(), log_path=path, font_path=None)
    vis.handle_key("+")
    vis.handle_resize(640, 480, RESIZE_DEBOUNCE_MS)
    text = path.read_text(encoding="utf-8")
    assert "[visual] Scale increased to 1.1x" in text
    assert "Window resized to 640x480" in text


def test_draw_paints_used_block():
    tree = one_block_tree()
    vis = Visualizer(tree, font_path=None)
    surface = pygame.Surface((DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT))
    assert vis.draw(surface, 0) is True
    (box,), _ = layout_tree(tree, vis.state.width, vis.state.offset_x, vis.state.offset_y)
    assert pixel(surface, (box.x, box.y + NODE_HEIGHT // 2)) == USED_COLOR
    assert pixel(surface, (2, 2)) == BACKGROUND
    assert tree.modified is False


def test_draw_skips_when_unchanged_and_redraws_on_change():
    tree = one_block_tree()
    vis = Visualizer(tree, font_path=None)
    surface = pygame.Surface((DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT))
    vis.draw(surface, 0)
    assert vis.draw(surface, 0) is False
    tree.remove(0x10000)
    assert vis.draw(surface, 0) is True
    (box,), _ = layout_tree(tree, vis.state.width, vis.state.offset_x, vis.state.offset_y)
    assert pixel(surface, (box.x, box.y + NODE_HEIGHT // 2)) == FREE_COLOR


def test_draw_scaled_keeps_surface_size():
    tree = one_block_tree()
    vis = Visualizer(tree, font_path=None)
    vis.handle_key("=")
    surface = pygame.Surface((DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT))
    assert vis.draw(surface, 0) is True
    assert surface.get_size() == (DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)
    assert pixel(surface, (1, 1)) == BACKGROUND


def test_node_count_logged(tmp_path):
    path = tmp_path / "visual.log"
    vis = Visualizer(one_block_tree(), log_path=path, font_path=None)
    surface = pygame.Surface((DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT))
    vis.draw(surface, NODE_LOG_DEBOUNCE_MS)
    assert "Total nodes displayed: 1" in path.read_text(encoding="utf-8")


def test_stop_clears_running():
    vis = Visualizer(BTree(), font_path=None)
    vis.running = True
    vis.stop()
    assert vis.running is False