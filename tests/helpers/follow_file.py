"""
Child process for stream-source tests: prints lines appended to a file,
starting from its end. Drops <ready_dir>/<pid>.ready once positioned.
"""
import os
import sys
import time
from pathlib import Path


def main() -> int:
    path, ready_dir = sys.argv[1], Path(sys.argv[2])
    out = sys.stdout.buffer
    try:
        with open(path, "rb") as fh:
            fh.seek(0, os.SEEK_END)
            (ready_dir / f"{os.getpid()}.ready").touch()
            while True:
                line = fh.readline()
                if line:
                    out.write(line)
                    out.flush()
                else:
                    time.sleep(0.01)
    except (KeyboardInterrupt, BrokenPipeError):
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
