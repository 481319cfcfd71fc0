"""Allocator that tracks blocks in a B-tree and reuses freed ones by best fit."""

from __future__ import annotations

import logging
import os
import time
from typing import IO

from treealoc.btree import Block, BTree, format_address

DEFAULT_LOG_PATH = "treealoc.log"
DEFAULT_BASE_ADDRESS = 0x10000
ALIGNMENT = 16

log = logging.getLogger(__name__)


class Allocator:
    """Simulated heap: memory lives in Python buffers, bookkeeping in a B-tree."""

    def __init__(
        self,
        log_path: str | os.PathLike[str] | None = None,
        *,
        base_address: int = DEFAULT_BASE_ADDRESS,
    ) -> None:
        self.tree = BTree()
        self._memory: dict[int, bytearray] = {}
        self._next_address = base_address
        self._log_file: IO[str] | None = None
        if log_path is not None:
            try:
                self._log_file = open(log_path, "a", encoding="utf-8")
            except OSError:
                log.error("[ERROR] Failed to open log file")
        self._log("[treealoc] Initialized!")

    def _log(self, message: str) -> None:
        log.info(message)
        if self._log_file is not None:
            self._log_file.write(f"[{time.ctime()}] {message}\n")
            self._log_file.flush()

    def _reserve(self, size: int) -> int:
        address = self._next_address
        span = max(ALIGNMENT, -(-size // ALIGNMENT) * ALIGNMENT)
        self._next_address += span
        self._memory[address] = bytearray(size)
        return address

    def _live_block(self, address: int) -> Block:
        block = self.tree.find(address)
        if block is None:
            raise KeyError(address)
        if block.is_free:
            raise ValueError(f"block {format_address(address)} is free")
        return block

    def malloc(self, size: int) -> int:
        """Return the address of a block of at least ``size`` bytes."""
        if size < 0:
            raise ValueError("size must not be negative")
        self._log(f"[DEBUG] Inside treealoc_malloc({size})")
        reused = self.tree.find_best_fit(size)
        if reused is not None:
            self._log(
                f"[treealoc] Reused free block {format_address(reused.address)} (size {size})"
            )
            return reused.address
        address = self._reserve(size)
        self.tree.insert(size, address)
        self._log(f"[treealoc] malloc({size}) = {format_address(address)}")
        return address

    def realloc(self, address: int | None, size: int) -> int | None:
        """Resize a block; returns the new address, or None when ``size`` is 0."""
        if address is None:
            return self.malloc(size)
        if size < 0:
            raise ValueError("size must not be negative")
        if size == 0:
            self.free(address)
            return None
        block = self.tree.find(address)
        if block is not None and size <= block.size:
            block.size = size
            self.tree.modified = True
            self._log(f"[treealoc] Shrunk block {format_address(address)} to {size}")
            return address
        new_address = self._reserve(size)
        if block is not None:
            keep = min(block.size, size)
            self._memory[new_address][:keep] = self._memory[address][:keep]
            self.tree.remove(address)
        self.tree.insert(size, new_address)
        self._log(
            f"[treealoc] realloc({format_address(address)}, {size}) = "
            f"{format_address(new_address)}"
        )
        return new_address

    def calloc(self, nmemb: int, size: int) -> int:
        """Allocate ``nmemb * size`` zeroed bytes."""
        total = nmemb * size
        address = self.malloc(total)
        self._memory[address][:total] = bytes(total)
        self._log(f"[treealoc] calloc({nmemb}, {size}) = {format_address(address)}")
        return address

    def free(self, address: int | None) -> None:
        """Mark a block free for reuse; None is ignored, unknown addresses raise KeyError."""
        if address is None:
            return
        self.tree.remove(address)
        self._log(f"[treealoc] free({format_address(address)})")

    def read(self, address: int) -> bytes:
        """Return the contents of a used block."""
        block = self._live_block(address)
        return bytes(self._memory[address][: block.size])

    def write(self, address: int, data: bytes) -> None:
        """Write ``data`` at the start of a used block."""
        block = self._live_block(address)
        if len(data) > block.size:
            raise ValueError(
                f"{len(data)} bytes do not fit in block {format_address(address)} "
                f"of {block.size} bytes"
            )
        self._memory[address][: len(data)] = data

    def debug(self) -> str:
        """Return a text picture of the block tree."""
        return "[DEBUG] B-tree structure:\n" + self.tree.dump()

    def close(self) -> None:
        if self._log_file is not None:
            self._log("[treealoc] Cleanup")
            self._log_file.close()
            self._log_file = None

    def __enter__(self) -> Allocator:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()