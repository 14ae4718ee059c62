"""CLI option models and parser helpers."""

from __future__ import annotations

import argparse
from enum import StrEnum

from janggibot.config.loader import ControllerBackend, PlayMode
from janggibot.models.board import Formation


class LogFormat(StrEnum):
    """CLI log formatter mode."""

    READABLE = "readable"
    JSON = "json"


def build_arg_parser() -> argparse.ArgumentParser:
    """Build CLI argument parser."""
    parser = argparse.ArgumentParser(prog="janggibot", description="Janggi playing agent")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Play one session")
    run_parser.add_argument("--config", type=str, default=None, help="YAML config file")
    run_parser.add_argument("--env-file", type=str, default=None, help=".env file to load")
    run_parser.add_argument(
        "--controller",
        type=str,
        default=None,
        choices=[backend.value for backend in ControllerBackend],
        help="Device controller backend",
    )
    run_parser.add_argument("--serial", type=str, default=None, help="adb device serial")
    run_parser.add_argument(
        "--formation",
        type=str,
        default=None,
        help="Starting formation, e.g. 마상상마 or MASANG_SANGMA",
    )
    run_parser.add_argument(
        "--mode",
        type=str,
        default=None,
        choices=[mode.value for mode in PlayMode],
        help="Time control mode",
    )
    run_parser.add_argument("--max-retries", type=int, default=None, help="Retries per turn")
    run_parser.add_argument(
        "--start-flow", action="store_true", help="Tap through the match start dialogs"
    )
    run_parser.add_argument(
        "--log-format",
        type=str,
        default=LogFormat.READABLE.value,
        choices=[fmt.value for fmt in LogFormat],
        help="Terminal log format",
    )

    return parser


def overrides_from_args(args: argparse.Namespace) -> dict[str, dict[str, object]]:
    """Translate explicit CLI flags into nested config overrides."""
    overrides: dict[str, dict[str, object]] = {}

    def put(section: str, key: str, value: object) -> None:
        overrides.setdefault(section, {})[key] = value

    if args.controller:
        put("controller", "backend", args.controller)
    if args.serial:
        put("controller", "serial", args.serial)
    if args.formation:
        put("match", "formation", Formation.parse(args.formation))
    if args.mode:
        put("time", "mode", args.mode)
    if args.max_retries is not None:
        put("orchestrator", "max_retries", args.max_retries)
    if args.start_flow:
        put("match", "run_start_flow", True)
    if args.log_format:
        put("logging", "format", args.log_format)
    return overrides
