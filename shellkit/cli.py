"""Command-line entry point: run one command and relay its outcome."""
from __future__ import annotations

from argparse import REMAINDER, ArgumentParser, Namespace
from pathlib import Path
from typing import Sequence
import sys

import yaml

from .command_runner import CommandFailure, CommandRunner, RecordingCommandRunner
from .console import Console
from .settings import build_runner, load_settings


COMMAND_NOT_FOUND_STATUS = 127
USAGE_ERROR_STATUS = 2


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="shellkit",
        description="Run a command without a shell and print its trimmed output",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=None,
        help="Path to a TOML, JSON or YAML file with a [shellkit] table",
    )
    parser.add_argument(
        "--log",
        "-l",
        choices=list(Console.LEVELS),
        default=None,
        help="Set log level (default: none, or SHELLKIT_LOG_LEVEL)",
    )
    parser.add_argument(
        "--dry-run",
        "-n",
        action="store_true",
        help="Show the command without running it",
    )
    parser.add_argument("command", nargs=REMAINDER, help="Command and arguments, after '--'")
    return parser


def _command_from_args(args: Namespace) -> list[str]:
    command = list(args.command)
    if command and command[0] == "--":
        command = command[1:]
    return command


def _exit_status(failure: CommandFailure) -> int:
    if failure.launch_failed:
        return COMMAND_NOT_FOUND_STATUS
    return failure.exit_code


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    command = _command_from_args(args)
    if not command:
        print("Error: no command given", file=sys.stderr)
        return USAGE_ERROR_STATUS

    try:
        settings = load_settings(args.config, log_level=args.log)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return USAGE_ERROR_STATUS

    runner: CommandRunner
    if args.dry_run:
        runner = RecordingCommandRunner(console=Console(level=settings.log_level, dry_run=True))
    else:
        runner = build_runner(settings)

    try:
        output = runner.run(command)
    except CommandFailure as failure:
        print(str(failure), file=sys.stderr)
        return _exit_status(failure)

    if output:
        print(output)
    return 0


__all__ = ["COMMAND_NOT_FOUND_STATUS", "USAGE_ERROR_STATUS", "build_parser", "main"]
