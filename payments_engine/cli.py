"""Command-line entry point: payments-engine INPUT [verbose]"""

import argparse
import sys
from typing import List, Optional, TextIO

from .config import get_config
from .engine import run
from .exceptions import FatalProcessingError
from .logging_config import setup_logging, log_action


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="payments-engine",
        description="Apply a CSV transaction feed and print the final client accounts as CSV."
    )
    parser.add_argument("input", help="path to the transactions CSV file")
    parser.add_argument(
        "mode", nargs="?",
        help="the literal word 'verbose' enables skip diagnostics (same as -v)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="report every skipped transaction on stderr"
    )
    parser.add_argument(
        "--log-format", choices=["json", "text"], default=None,
        help="diagnostic format (default from PAYMENTS_LOG_FORMAT)"
    )
    return parser


def main(argv: Optional[List[str]] = None, stdout: Optional[TextIO] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.mode not in (None, "verbose"):
        parser.error(f"unrecognised mode {args.mode!r} (expected 'verbose')")
    config = get_config()

    verbose = args.verbose or args.mode == "verbose"
    logger = setup_logging(
        level=config.effective_log_level(verbose),
        log_format=args.log_format or config.log_format
    )

    try:
        run(args.input, stdout if stdout is not None else sys.stdout)
    except FatalProcessingError as exc:
        log_action(
            logger, "error", f"Run aborted, no report produced: {exc}",
            action="abort_run", resource=args.input,
            extra={"code": exc.code}
        )
        return 1
    except OSError as exc:
        log_action(
            logger, "error", f"Cannot read input: {exc}",
            action="abort_run", resource=args.input
        )
        return 1

    return 0
