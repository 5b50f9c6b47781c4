#!/usr/bin/env python3
"""
Manual testing helper for iotail.
Appends numbered lines to a file at a fixed rate and optionally rotates
(rename to <file>.1, start a new file) or truncates it every N lines.
"""
from __future__ import annotations

import argparse
import os
import sys
import time
from pathlib import Path


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Append numbered lines to a file, rotating or truncating it")
    parser.add_argument("path", help="File to write")
    parser.add_argument("--count", type=int, default=100, help="Number of lines to write")
    parser.add_argument("--rate", type=float, default=10.0, help="Lines per second (0 = as fast as possible)")
    parser.add_argument("--rotate-every", type=int, default=0, help="Rotate the file after this many lines (0 = never)")
    parser.add_argument(
        "--truncate-every", type=int, default=0, help="Truncate the file after this many lines (0 = never)"
    )
    parser.add_argument("--width", type=int, default=70, help="Filler characters per line")
    return parser.parse_args(argv)


def rotate(path: Path) -> Path:
    """Move ``path`` to ``path.1`` (replacing an older one) and start an empty file."""
    rotated = path.with_name(path.name + ".1")
    os.replace(path, rotated)
    path.touch()
    return rotated


def truncate(path: Path) -> None:
    with path.open("r+b") as fh:
        fh.truncate(0)


def write_lines(path: Path, count: int, rate: float = 0.0, rotate_every: int = 0, truncate_every: int = 0,
                width: int = 70) -> int:
    """
    Write ``count`` lines of the form "<n> AAAA...". Returns the number of
    rotations and truncations performed.
    """
    events = 0
    delay = 1.0 / rate if rate > 0 else 0.0
    for i in range(1, count + 1):
        with path.open("ab") as fh:
            fh.write(f"{i} {'A' * width}\n".encode("ascii"))
        if rotate_every and i % rotate_every == 0:
            rotate(path)
            events += 1
        elif truncate_every and i % truncate_every == 0:
            truncate(path)
            events += 1
        if delay:
            time.sleep(delay)
    return events


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        write_lines(Path(args.path), args.count, args.rate, args.rotate_every, args.truncate_every, args.width)
    except OSError as exc:
        print(f"[tail-writer] failed: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
