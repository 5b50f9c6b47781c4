"""Child process for stream-source tests: prints its arguments, one per line, then idles."""
import sys
import time


def main() -> int:
    try:
        for word in sys.argv[1:]:
            print(word, flush=True)
        time.sleep(60)
    except (KeyboardInterrupt, BrokenPipeError):
        pass
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
