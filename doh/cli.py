"""Command-line front door for doh.

Parses the starting location and logging options, configures logging,
then hands over to the interactive session.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .app import run_session
from .location import normalize_location

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _location(value: str) -> str:
    """argparse type for remote locations; a missing scheme means ``http://``."""
    try:
        return normalize_location(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="doh",
        description="Browse, page, download and upload files on a raw-filesystem HTTP server.",
    )
    parser.add_argument("url", type=_location, help="Remote directory to start in, e.g. localhost:8000/pub/.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-file", type=Path, default=None, help="Write a log of requests and transitions to this file.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level (with --log-file).")
    return parser


def configure_logging(log_file: Path | None, verbose: bool) -> None:
    """Send records to ``log_file`` when given, otherwise only warnings to stderr."""
    if log_file is not None:
        level = logging.DEBUG if verbose else logging.INFO
        logging.basicConfig(filename=str(log_file), level=level, format=LOG_FORMAT)
    else:
        logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)
    # urllib3 connection chatter is only useful when debugging.
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and run one browsing session.

    Exits with status 1 when the server is unreachable or incompatible or a
    local file operation fails, and 130 on Ctrl-C.
    """
    args = build_parser().parse_args(argv)
    configure_logging(args.log_file, args.verbose)
    try:
        ok = run_session(args.url)
    except KeyboardInterrupt:
        sys.stdout.write("\n")
        raise SystemExit(130)
    except OSError as exc:
        logging.getLogger(__name__).exception("local I/O failed")
        raise SystemExit(f"doh: {exc}")
    if not ok:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
