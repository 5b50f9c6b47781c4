# -*- coding: utf-8 -*-
import argparse
import sys
from pathlib import Path

from iotail.config import load_config
from iotail.engine import TailEngine
from iotail.errors import BreakAtEOF, SourceDeletedError
from iotail.sources import FileLineSource, ProcessLineSource
from iotail.utils import configure_logging


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Follow a growing file or the output of a command (tail -F)")
    ap.add_argument("file", nargs="?", help="File to follow")
    ap.add_argument("-c", "--command", help="Follow the standard output of this command instead of a file")
    ap.add_argument("-n", "--lines", type=int, default=0, help="Start with the last N lines of the file (default 0)")
    ap.add_argument("--limit", type=int, default=None, help="Exit after delivering this many lines")
    ap.add_argument("--config", type=Path, default=None, help="JSON file with tail settings")
    ap.add_argument("--max-interval", type=float, default=None, help="Longest sleep between polls in seconds")
    ap.add_argument("--suspicious-interval", type=float, default=None, help="Reopen after this many silent seconds")
    ap.add_argument("--no-reopen-deleted", dest="reopen_deleted", action="store_false", default=None,
                    help="Fail instead of waiting for a deleted file to reappear")
    ap.add_argument("--return-if-eof", action="store_true", default=None, help="Exit once no more data is available")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log poller state to stderr")
    return ap


def main(argv=None) -> int:
    ap = build_arg_parser()
    args = ap.parse_args(argv)
    if bool(args.file) == bool(args.command):
        ap.error("give exactly one of FILE or --command")

    log = configure_logging(args.verbose)
    cfg = load_config(
        args.config,
        max_interval=args.max_interval,
        suspicious_interval=args.suspicious_interval,
        reopen_deleted=args.reopen_deleted,
        return_if_eof=args.return_if_eof,
    )

    try:
        source = ProcessLineSource(args.command) if args.command else FileLineSource(args.file)
    except OSError as exc:
        print(f"[iotail] cannot open: {exc}", file=sys.stderr)
        return 1

    out = sys.stdout.buffer

    def emit(line: bytes) -> None:
        out.write(line)
        out.flush()

    engine = TailEngine(source, cfg, logger=log.getChild("engine"), verbose=args.verbose)
    try:
        if source.seekable:
            engine.backward(abs(args.lines))
        engine.tail(args.limit, emit)
    except KeyboardInterrupt:
        pass
    except BreakAtEOF:
        pass
    except SourceDeletedError as exc:
        print(f"[iotail] source deleted: {exc}", file=sys.stderr)
        return 1
    finally:
        engine.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
