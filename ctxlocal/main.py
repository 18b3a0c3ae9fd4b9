"""
ctxlocal main entry point.

Runs the isolation scenarios and exits 0 when every selected scenario
passed, 1 otherwise (2 on a configuration error).
"""

import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

LEVEL_MAP = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(level: str) -> None:
    """Attach a stderr RichHandler to the package logger."""
    logger = logging.getLogger("ctxlocal")
    logger.setLevel(LEVEL_MAP.get(level, logging.WARNING))
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ctxlocal-verify",
        description="Verify context-local storage isolation under asyncio",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  ctxlocal-verify                       Run every scenario
  ctxlocal-verify --suite acceptance    Run only the must-pass scenarios
  ctxlocal-verify --suite regression    Run only the shared-slot regression
        """
    )

    parser.add_argument(
        "--version", "-v",
        action="store_true",
        help="Show version information"
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration file"
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )

    parser.add_argument(
        "--suite",
        choices=["all", "acceptance", "regression"],
        default="all",
        help="Which suite to run (default: all)"
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for ctxlocal."""
    args = build_parser().parse_args(argv)

    if args.version:
        from . import __version__
        print(f"ctxlocal version {__version__}")
        return 0

    if args.debug:
        os.environ["CTXLOCAL_DEBUG"] = "1"

    from .config import get_config, load_config
    from .errors import ConfigurationError, format_error_for_user, ErrorBoundary
    from .harness import ScenarioRunner, Suite
    from .report import ReportUI

    with ErrorBoundary("load_config") as boundary:
        config = load_config(args.config) if args.config else get_config()
    if boundary.has_error:
        Console(stderr=True).print(
            f"[red]✗[/red] {format_error_for_user(boundary.error_context)}",
            highlight=False,
        )
        exc = boundary.error_context.original_exception
        return 2 if isinstance(exc, ConfigurationError) else 1

    setup_logging(config.logging.level)

    suites = None if args.suite == "all" else [Suite(args.suite)]
    debug = args.debug or config.logging.level == "debug"
    runner = ScenarioRunner(config.harness, show_technical_details=debug)
    ui = ReportUI(config.report)

    results = asyncio.run(runner.run_all(suites, on_result=ui.print_result))
    passed = runner.all_passed(results)

    ui.print_summary(results)
    ui.print_verdict(results, passed)
    return 0 if passed else 1


if __name__ == "__main__":
    sys.exit(main())
