"""CLI entrypoint for running janggibot sessions."""

from __future__ import annotations

import argparse
import json
import logging
import signal
import sys

from janggibot.cli.helpers import _configure_logging, _JSONLogFormatter, _load_component
from janggibot.cli.options import LogFormat, build_arg_parser, overrides_from_args
from janggibot.cli.runtime import create_loop
from janggibot.config.env import load_environment_file
from janggibot.config.loader import load_config
from janggibot.core.loop import TurnLoop

logger = logging.getLogger(__name__)

__all__ = [
    "LogFormat",
    "_JSONLogFormatter",
    "_configure_logging",
    "_load_component",
    "build_arg_parser",
    "create_loop",
    "main",
    "run_command",
]


def _install_signal_handlers(loop: TurnLoop) -> None:
    """Cancel the session on SIGINT/SIGTERM."""

    def signal_handler(signum: int, _frame: object) -> None:
        loop.cancel(f"received {signal.Signals(signum).name}")

    try:
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)
    except ValueError:
        # Can only set handlers in main thread
        logger.debug("Could not install signal handlers (not main thread)")


def run_command(args: argparse.Namespace) -> int:
    """Execute the `run` command.

    Returns:
        0 for WIN, LOSS or DRAW; 2 for ABORTED.
    """
    if args.command != "run":
        raise ValueError(f"Unsupported command: {args.command}")

    load_environment_file(args.env_file, strict=args.env_file is not None)
    config = load_config(args.config).with_overrides(overrides_from_args(args))
    _configure_logging(level=config.logging.level, log_format=config.logging.format)

    loop = create_loop(config)
    _install_signal_handlers(loop)
    result = loop.run()

    print(json.dumps(result.to_dict(), ensure_ascii=False, indent=2))
    if result.aborted:
        logger.error("[RESULT] Session aborted: %s", result.error)
        return 2
    logger.info("[RESULT] %s after %d turn(s)", result.outcome.value, result.turns)
    return 0


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint function."""
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    # Configure a sane bootstrap logger before config loading.
    _configure_logging(level="INFO", log_format=str(args.log_format))

    try:
        return run_command(args)
    except Exception as exc:
        logger.error("[BOOT] CLI execution failed: %s", exc)
        return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
