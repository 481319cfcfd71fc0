# treealoc

A simulated memory allocator that keeps every block it hands out in a
B-tree of minimum degree 2, keyed by address. Freed blocks stay in the
tree, marked free, and later requests reuse the smallest free block that is
large enough (best fit). A pygame window can draw the tree as it changes.

## Install

```
pip install .
```

For the tests:

```
pip install .[test]
pytest
```

## Using the allocator

```python
from treealoc.allocator import Allocator

with Allocator("treealoc.log") as heap:
    a = heap.malloc(32)
    heap.write(a, b"hello")
    print(heap.read(a)[:5])      # b'hello'

    b = heap.realloc(a, 128)     # grows: new block, contents copied, old one freed
    heap.free(b)

    c = heap.malloc(64)          # reuses the smallest free block that fits
    z = heap.calloc(10, 8)       # 80 zeroed bytes

    print(heap.debug())          # text dump of the B-tree
```

Addresses are plain integers, handed out from `0x10000` upwards in steps of
16 bytes (the start can be changed with `Allocator(base_address=...)`).

- `realloc(addr, n)` with `n` no larger than the block shrinks it in place
  and returns the same address; a larger `n` moves it to a new block.
- `realloc(None, n)` behaves like `malloc(n)`; `realloc(addr, 0)` frees the
  block and returns `None`.
- `free(None)` does nothing; freeing an address the allocator never handed
  out raises `KeyError`.
- `read` and `write` raise `KeyError` for unknown addresses and `ValueError`
  for freed blocks or data that does not fit.
- Negative sizes raise `ValueError`.

When a log path is given, every operation is appended to that file with a
timestamp; `close()` (or leaving the `with` block) writes a final entry and
closes it. Messages also go to the standard `logging` module.

## The B-tree

`treealoc.btree.BTree` can be used on its own:

```python
from treealoc.btree import BTree

tree = BTree()
tree.insert(64, 0x1000)
tree.insert(32, 0x2000)
tree.remove(0x1000)              # marks the block free
block = tree.find_best_fit(16)   # Block(size=64, address=0x1000), now used again
print(tree.dump())
print([b.address for b in tree]) # blocks in address order
```

`find(address)` returns the `Block` or `None`; `remove` raises `KeyError`
for an unknown address. Blocks are never taken out of the tree; `len(tree)`
counts all of them, free and used.

`treealoc.layout` computes where each block box and connecting line goes
(`layout_tree`, `level_counts`, `level_spacing`) and holds the zoom, pan and
window state in `ViewState`; `treealoc.visual.Visualizer` draws that with
pygame.

## Menu and viewer

```
treealoc
```

opens the viewer window and an interactive menu of allocation scenarios:
simple malloc/free, realloc, calloc, intensive, fragmentation, edge cases,
or all of them. Each block is drawn as a box showing its size and address:
green when free, red when in use.

Options:

| Option | Meaning |
|--------|---------|
| `--log PATH` | allocator log file (default `treealoc.log`) |
| `--visual-log PATH` | viewer log file (default `visual.log`) |
| `--delay SECONDS` | pause between steps (default 1.0; 0 for none) |
| `--seed N` | seed for the random sizes in scenarios 4 and 5 |
| `--no-visual` | run the menu without opening the window |
| `-v`, `--verbose` | also print the tree's internal messages |

Keys in the window:

| Key       | Action                |
|-----------|-----------------------|
| `+` / `=` | zoom in (up to 3.0x)  |
| `-`       | zoom out (down to 0.3x) |
| `w` `a` `s` `d` | pan the view    |
| `f`       | toggle fullscreen     |

Enter `0` in the menu to quit; input that is not a number, and end of input,
also end the menu. When the window is open, the program then waits until it
is closed.

Box labels use the Liberation Sans font at
`/usr/share/fonts/liberation-sans-fonts/LiberationSans-Regular.ttf`; if it
cannot be loaded the boxes are drawn without text.

## What it does not do

The allocator does not manage the process's real memory and cannot stand in
for Python's or the system's allocator: its blocks are Python buffers and its
addresses are only numbers. It never merges, splits or returns freed blocks;
they stay in the tree for reuse.