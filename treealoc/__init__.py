"""Simulated best-fit memory allocator backed by a B-tree, with a pygame tree viewer and menu."""

__version__ = "0.1.0"
__all__ = ["btree", "allocator", "layout", "visual", "cli"]