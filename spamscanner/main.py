"""Command-line entry point for SpamScanner."""

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from . import __version__
from .config import load_config, validate_config
from .scanner import SpamScanner

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stderr),
        ],
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="spamscanner",
        description="Scan an email message for spam, phishing and malicious content.",
    )
    parser.add_argument("--debug", action="store_true", help="enable debug logging")
    subcommands = parser.add_subparsers(dest="command", required=True)

    scan = subcommands.add_parser("scan", help="scan a message file ('-' reads stdin)")
    scan.add_argument("path")
    scan.add_argument("--indent", type=int, default=2, help="JSON indent (default: 2)")

    subcommands.add_parser("version", help="print the version")
    return parser


async def run_scan(path: str, indent: int) -> int:
    """Scan one message and print the verdict JSON. Returns the exit code."""
    config = load_config()

    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 2

    scanner = SpamScanner(config)
    source = sys.stdin.buffer.read() if path == "-" else path
    verdict = await scanner.scan(source)

    print(json.dumps(verdict.to_dict(), indent=indent, ensure_ascii=False))
    return 1 if verdict.is_spam else 0


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    _configure_logging(args.debug)

    if args.command == "version":
        print(__version__)
        return 0

    return asyncio.run(run_scan(args.path, args.indent))


if __name__ == "__main__":
    sys.exit(main())
