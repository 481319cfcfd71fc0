"""Interactive menu that exercises the allocator, optionally with the tree window."""

from __future__ import annotations

import argparse
import logging
import random
import re
import sys
import threading
import time
from contextlib import redirect_stdout
from typing import Callable, TextIO

from treealoc.allocator import DEFAULT_LOG_PATH, Allocator
from treealoc.btree import format_address

Pause = Callable[[], None]

MENU = (
    "\n=== Treealoc Test Menu ===\n"
    "1. Simple malloc/free\n"
    "2. Realloc\n"
    "3. Calloc\n"
    "4. Intensive malloc/free\n"
    "5. Memory Fragmentation\n"
    "6. Edge Cases\n"
    "7. Run All Tests\n"
    "0. Exit\n"
    "Enter choice: "
)
INPUT_LIMIT = 9

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


def _ptr(address: int | None) -> str:
    return "(nil)" if address is None else format_address(address)


def _malloc(allocator: Allocator, size: int) -> int:
    address = allocator.malloc(size)
    print(f"[HOOK] malloc({size}) = {_ptr(address)}")
    return address


def _free(allocator: Allocator, address: int | None) -> None:
    print(f"[HOOK] free({_ptr(address)})")
    allocator.free(address)


def _realloc(allocator: Allocator, address: int | None, size: int) -> int | None:
    new_address = allocator.realloc(address, size)
    print(f"[HOOK] realloc({_ptr(address)}, {size}) = {_ptr(new_address)}")
    return new_address


def _calloc(allocator: Allocator, nmemb: int, size: int) -> int:
    address = allocator.calloc(nmemb, size)
    print(f"[HOOK] calloc({nmemb}, {size}) = {_ptr(address)}")
    return address


def run_simple(allocator: Allocator, pause: Pause) -> None:
    print("=== Test 1: Simple malloc/free ===")
    first = _malloc(allocator, 32)
    pause()
    second = _malloc(allocator, 64)
    pause()
    _free(allocator, first)
    pause()
    _free(allocator, second)
    pause()


def run_realloc(allocator: Allocator, pause: Pause) -> None:
    print("=== Test 2: Realloc ===")
    address = _malloc(allocator, 64)
    pause()
    address = _realloc(allocator, address, 128)
    pause()
    address = _realloc(allocator, address, 16)
    pause()
    _free(allocator, address)
    pause()


def run_calloc(allocator: Allocator, pause: Pause) -> None:
    print("=== Test 3: Calloc ===")
    address = _calloc(allocator, 10, 8)
    pause()
    _free(allocator, address)
    pause()


def run_intensive(allocator: Allocator, pause: Pause, rng: random.Random) -> None:
    print("=== Test 4: Intensive malloc/free ===")
    addresses = []
    for _ in range(15):
        addresses.append(_malloc(allocator, rng.randrange(256) + 1))
        pause()
    for address in addresses:
        _free(allocator, address)
        pause()


def run_fragmentation(allocator: Allocator, pause: Pause, rng: random.Random) -> None:
    print("=== Test 5: Memory Fragmentation ===")
    addresses = []
    for _ in range(100):
        addresses.append(_malloc(allocator, rng.randrange(512) + 1))
        pause()
    for address in addresses[::2]:
        _free(allocator, address)
        pause()
    large = _malloc(allocator, 1024)
    print(f"[TEST] Large malloc(1024) = {_ptr(large)}")
    pause()
    _free(allocator, large)
    pause()
    for address in addresses[1::2]:
        _free(allocator, address)
        pause()


def run_edge_cases(allocator: Allocator, pause: Pause) -> None:
    print("=== Test 6: Edge Cases ===")
    address = _malloc(allocator, 0)
    print(f"[TEST] malloc(0) = {_ptr(address)}")
    pause()
    _free(allocator, address)
    pause()
    address = _realloc(allocator, None, 100)
    print(f"[TEST] realloc(NULL, 100) = {_ptr(address)}")
    pause()
    address = _realloc(allocator, address, 0)
    print(f"[TEST] realloc(p, 0) = {_ptr(address)}")
    pause()


def run_all(allocator: Allocator, pause: Pause, rng: random.Random) -> None:
    run_simple(allocator, pause)
    run_realloc(allocator, pause)
    run_calloc(allocator, pause)
    run_intensive(allocator, pause, rng)
    run_fragmentation(allocator, pause, rng)
    run_edge_cases(allocator, pause)


def _parse_choice(line: str) -> int:
    match = _LEADING_INT.match(line[:INPUT_LIMIT])
    return int(match.group(1)) if match else 0


def menu_loop(
    allocator: Allocator,
    stdin: TextIO,
    stdout: TextIO,
    pause: Pause,
    rng: random.Random,
) -> None:
    """Show the menu and run chosen scenarios until 0, unparsable input or end of input."""
    actions: dict[int, Callable[[], None]] = {
        1: lambda: run_simple(allocator, pause),
        2: lambda: run_realloc(allocator, pause),
        3: lambda: run_calloc(allocator, pause),
        4: lambda: run_intensive(allocator, pause, rng),
        5: lambda: run_fragmentation(allocator, pause, rng),
        6: lambda: run_edge_cases(allocator, pause),
        7: lambda: run_all(allocator, pause, rng),
    }
    with redirect_stdout(stdout):
        while True:
            print(MENU, end="", flush=True)
            line = stdin.readline()
            if not line:
                break
            choice = _parse_choice(line)
            if choice == 0:
                break
            action = actions.get(choice)
            if action is None:
                print("Invalid choice")
            else:
                action()


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="treealoc", description="Exercise the B-tree allocator from a menu."
    )
    parser.add_argument("--log", default=DEFAULT_LOG_PATH, help="allocator log file")
    parser.add_argument("--visual-log", default="visual.log", help="visualizer log file")
    parser.add_argument(
        "--delay", type=float, default=1.0, help="seconds to wait between steps"
    )
    parser.add_argument("--seed", type=int, default=None, help="seed for random sizes")
    parser.add_argument("--no-visual", action="store_true", help="do not open the window")
    parser.add_argument("-v", "--verbose", action="store_true", help="show tree internals")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO, format="%(message)s"
    )
    delay = args.delay

    def pause() -> None:
        if delay > 0:
            time.sleep(delay)

    allocator = Allocator(args.log)
    thread: threading.Thread | None = None
    if not args.no_visual:
        from treealoc.visual import Visualizer

        visualizer = Visualizer(allocator.tree, log_path=args.visual_log)
        thread = threading.Thread(target=visualizer.run, name="visualizer", daemon=True)
        thread.start()
    try:
        menu_loop(allocator, sys.stdin, sys.stdout, pause, random.Random(args.seed))
    finally:
        if thread is not None:
            thread.join()
        allocator.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())