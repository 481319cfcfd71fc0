"""B-tree of memory blocks keyed by address, with best-fit lookup of free blocks."""

from __future__ import annotations

import logging
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field
from typing import Iterator

MIN_DEGREE = 2
MAX_KEYS = 2 * MIN_DEGREE - 1

log = logging.getLogger(__name__)


def format_address(address: int) -> str:
    """Render an address the way pointers are shown in logs and dumps."""
    return f"{address:#x}"


def _address_of(block: Block) -> int:
    return block.address


@dataclass
class Block:
    """A tracked memory block."""

    size: int
    address: int
    is_free: bool = False


@dataclass
class BNode:
    """A B-tree node holding blocks ordered by address."""

    leaf: bool
    keys: list[Block] = field(default_factory=list)
    children: list[BNode] = field(default_factory=list)

    def is_full(self) -> bool:
        return len(self.keys) >= MAX_KEYS


class BTree:
    """B-tree of blocks. ``modified`` is raised on every structural or state change."""

    def __init__(self) -> None:
        self.root: BNode | None = None
        self.modified = False

    def _new_node(self, leaf: bool) -> BNode:
        node = BNode(leaf=leaf)
        log.debug("[btree] Created node %#x (leaf=%d)", id(node), leaf)
        self.modified = True
        return node

    def _split_child(self, parent: BNode, index: int) -> None:
        child = parent.children[index]
        sibling = self._new_node(child.leaf)
        median = child.keys[MIN_DEGREE - 1]
        sibling.keys = child.keys[MIN_DEGREE:]
        child.keys = child.keys[: MIN_DEGREE - 1]
        if not child.leaf:
            sibling.children = child.children[MIN_DEGREE:]
            child.children = child.children[:MIN_DEGREE]
        parent.keys.insert(index, median)
        parent.children.insert(index + 1, sibling)
        log.debug(
            "[btree] Split child %#x at index %d, new node %#x",
            id(child),
            index,
            id(sibling),
        )
        self.modified = True

    def _insert_nonfull(self, node: BNode, block: Block) -> None:
        while not node.leaf:
            i = bisect_right(node.keys, block.address, key=_address_of)
            if node.children[i].is_full():
                self._split_child(node, i)
                if node.keys[i].address < block.address:
                    i += 1
            node = node.children[i]
        node.keys.insert(bisect_right(node.keys, block.address, key=_address_of), block)
        log.debug(
            "[btree] Inserted block %s (size %d) into node %#x",
            format_address(block.address),
            block.size,
            id(node),
        )
        self.modified = True

    def insert(self, size: int, address: int) -> Block:
        """Track a new used block and return it."""
        block = Block(size=size, address=address)
        if self.root is None:
            self.root = self._new_node(leaf=True)
            self.root.keys.append(block)
            log.debug(
                "[btree] Inserted block %s (size %d) as root", format_address(address), size
            )
            self.modified = True
            return block
        if self.root.is_full():
            new_root = self._new_node(leaf=False)
            new_root.children.append(self.root)
            self._split_child(new_root, 0)
            self.root = new_root
        self._insert_nonfull(self.root, block)
        return block

    def find(self, address: int) -> Block | None:
        """Return the block at ``address``, or None if it is not tracked."""
        node = self.root
        while node is not None:
            i = bisect_left(node.keys, address, key=_address_of)
            if i < len(node.keys) and node.keys[i].address == address:
                log.debug("[btree] Found block %s at index %d", format_address(address), i)
                return node.keys[i]
            if node.leaf:
                break
            node = node.children[i]
        log.debug("[btree] Block %s not found", format_address(address))
        return None

    def remove(self, address: int) -> None:
        """Mark the block at ``address`` free; raise KeyError if it is unknown."""
        block = self.find(address)
        if block is None:
            raise KeyError(address)
        block.is_free = True
        log.debug("[btree] Marked block %s as free", format_address(address))
        self.modified = True

    def _preorder(self) -> Iterator[Block]:
        stack = [self.root] if self.root is not None else []
        while stack:
            node = stack.pop()
            yield from node.keys
            stack.extend(reversed(node.children))

    def find_best_fit(self, size: int) -> Block | None:
        """Claim the smallest free block of at least ``size`` bytes, or return None."""
        best: Block | None = None
        for block in self._preorder():
            if block.is_free and block.size >= size and (best is None or block.size < best.size):
                best = block
        if best is None:
            log.debug("[btree] No suitable free block found for size %d", size)
            return None
        log.debug(
            "[btree] Found best fit block %s (size %d) for size %d",
            format_address(best.address),
            best.size,
            size,
        )
        best.is_free = False
        self.modified = True
        return best

    def _inorder(self, node: BNode) -> Iterator[Block]:
        if node.leaf:
            yield from node.keys
            return
        for child, key in zip(node.children, node.keys):
            yield from self._inorder(child)
            yield key
        yield from self._inorder(node.children[-1])

    def blocks(self) -> Iterator[Block]:
        """Yield every tracked block in address order."""
        if self.root is not None:
            yield from self._inorder(self.root)

    def __iter__(self) -> Iterator[Block]:
        return self.blocks()

    def __len__(self) -> int:
        return sum(1 for _ in self._preorder())

    def dump(self) -> str:
        """Return an indented text picture of the tree, one node per line."""
        lines: list[str] = []

        def visit(node: BNode, depth: int) -> None:
            entries = "".join(
                f"{b.size}@{format_address(b.address)}({'free' if b.is_free else 'used'}) "
                for b in node.keys
            )
            lines.append(f"{'  ' * depth}↳ [ {entries}] {'leaf' if node.leaf else ''}")
            for child in node.children:
                visit(child, depth + 1)

        if self.root is not None:
            visit(self.root, 0)
        return "\n".join(lines)