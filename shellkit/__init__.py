"""Run external commands and capture their output."""

from .command_runner import (
    LAUNCH_FAILURE_EXIT_CODE,
    CommandFailure,
    CommandResult,
    CommandRunner,
    RecordedCommand,
    RecordingCommandRunner,
    SubprocessCommandRunner,
    run,
)
from .console import Console, ConsoleLike
from .settings import RunnerSettings, build_runner, load_settings

__all__ = [
    "LAUNCH_FAILURE_EXIT_CODE",
    "CommandFailure",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "run",
    "Console",
    "ConsoleLike",
    "RunnerSettings",
    "build_runner",
    "load_settings",
]
