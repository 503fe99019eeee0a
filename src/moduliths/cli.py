"""Command-line interface for moduliths."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from moduliths.config import BootstrapMode
from moduliths.errors import AggregateVerificationError, ConfigurationError
from moduliths.pipeline import run


def _mode(value: str) -> BootstrapMode:
    try:
        return BootstrapMode.parse(value)
    except ConfigurationError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="moduliths",
        description="Verify module structure (no cycles, allowed dependencies only).",
    )
    parser.add_argument(
        "project_dir",
        type=Path,
        help="Path to the project to verify",
    )
    parser.add_argument(
        "--no-verify",
        action="store_false",
        dest="verify",
        help="Only list modules and their dependencies",
    )
    parser.add_argument(
        "--module",
        default=None,
        help="Print the bootstrap packages of a test anchored in this module",
    )
    parser.add_argument(
        "--mode",
        type=_mode,
        default=None,
        help="Bootstrap mode for --module "
        "(standalone, direct-dependencies, all-dependencies)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) output",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(message)s")
    if args.verbose:
        logging.getLogger("moduliths").setLevel(logging.DEBUG)

    try:
        report = run(
            args.project_dir,
            verify=args.verify,
            module=args.module,
            mode=args.mode,
        )
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)
    except AggregateVerificationError as e:
        print(e, file=sys.stderr)
        sys.exit(1)

    print(report)
