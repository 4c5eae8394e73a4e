"""Run external commands and report their trimmed output or a failure."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Tuple
import re
import shlex
import subprocess

from .console import Console, ConsoleLike


_EDGE_WHITESPACE = re.compile(r"\A[^\S\x1c-\x1f]+|[^\S\x1c-\x1f]+\Z")


def _trim(text: str) -> str:
    return _EDGE_WHITESPACE.sub("", text)


LAUNCH_FAILURE_EXIT_CODE = -1
"""Exit code reported when the child process could not be started at all.

Real exit statuses are non-negative. A child killed by signal N is reported
with the shell convention ``128 + N`` (137 for SIGKILL) rather than the bare
signal number, so it never collides with this value.
"""


@dataclass(frozen=True)
class CommandResult:
    """Outcome of a single command invocation.

    Both streams are always strings with surrounding whitespace removed; an
    empty stream is ``""``, never ``None``.

    Trimming removes leading and trailing Unicode whitespace but keeps the
    ASCII separators U+001C..U+001F, which :meth:`str.strip` would drop.
    """

    command: Tuple[str, ...]
    exit_code: int
    standard_output: str = ""
    error_output: str = ""

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def launch_failed(self) -> bool:
        return self.exit_code == LAUNCH_FAILURE_EXIT_CODE

    def unwrap(self) -> str:
        """Return the standard output, or raise :class:`CommandFailure`."""

        if not self.succeeded:
            raise CommandFailure(self)
        return self.standard_output


class CommandFailure(RuntimeError):
    """Raised when a command cannot be launched or exits with a non-zero status."""

    def __init__(self, result: CommandResult):
        super().__init__(self._describe(result))
        self.result = result

    def __reduce__(self):
        return (type(self), (self.result,))

    @staticmethod
    def _describe(result: CommandResult) -> str:
        return (
            f"Command failed with exit code {result.exit_code}.\n"
            "--- Error Output ---\n"
            f"{result.error_output or 'None'}\n"
            "--- Standard Output ---\n"
            f"{result.standard_output or 'None'}"
        )

    @property
    def command(self) -> Tuple[str, ...]:
        return self.result.command

    @property
    def exit_code(self) -> int:
        return self.result.exit_code

    @property
    def standard_output(self) -> str:
        return self.result.standard_output

    @property
    def error_output(self) -> str:
        return self.result.error_output

    @property
    def launch_failed(self) -> bool:
        return self.result.launch_failed


class CommandRunner:
    """Abstract command runner interface."""

    def capture(self, command: Sequence[str]) -> CommandResult:
        raise NotImplementedError

    def run(self, command: Sequence[str]) -> str:
        """Run ``command`` and return its trimmed standard output.

        Raises :class:`CommandFailure` when the command cannot be launched or
        exits with a non-zero status.
        """

        return self.capture(command).unwrap()

    def format_command(self, command: Sequence[str]) -> str:
        return " ".join(shlex.quote(part) for part in command)

    @staticmethod
    def _normalize_command(command: Sequence[str]) -> Tuple[str, ...]:
        if isinstance(command, (str, bytes)):
            raise TypeError("command must be a sequence of arguments, not a single string")
        parts = tuple(command)
        if not parts:
            raise ValueError("command must contain at least the executable name")
        for part in parts:
            if not isinstance(part, str):
                raise TypeError("command arguments must be strings")
        return parts


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes commands via :mod:`subprocess`."""

    def __init__(self, console: ConsoleLike | None = None, *, encoding: str = "utf-8") -> None:
        self._console = console if console is not None else Console()
        self.encoding = encoding

    def _decode(self, data: bytes | None) -> str:
        if not data:
            return ""
        try:
            return _trim(data.decode(self.encoding))
        except UnicodeDecodeError:
            return ""

    @staticmethod
    def _exit_status(returncode: int) -> int:
        # POSIX reports death by signal N as -N.
        if returncode < 0:
            return 128 - returncode
        return returncode

    def _launch_failure(self, command: Tuple[str, ...], exc: Exception) -> CommandResult:
        reason = getattr(exc, "strerror", None) or str(exc) or type(exc).__name__
        message = f"Failed to launch '{command[0]}': {reason}"
        self._console.error(message)
        return CommandResult(
            command=command,
            exit_code=LAUNCH_FAILURE_EXIT_CODE,
            standard_output="",
            error_output=message,
        )

    def capture(self, command: Sequence[str]) -> CommandResult:
        parts = self._normalize_command(command)
        self._console.info(f"Running: {self.format_command(parts)}")

        try:
            # communicate() drains both pipes together, so neither can fill up
            # and block the child.
            process = subprocess.run(
                list(parts),
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                check=False,
            )
        except (OSError, ValueError, subprocess.SubprocessError) as exc:
            # ValueError covers arguments that cannot be passed to exec (NUL, lone surrogates).
            return self._launch_failure(parts, exc)

        result = CommandResult(
            command=parts,
            exit_code=self._exit_status(process.returncode),
            standard_output=self._decode(process.stdout),
            error_output=self._decode(process.stderr),
        )
        self._console.debug(f"Exit code {result.exit_code}: {self.format_command(parts)}")
        if not result.succeeded:
            self._console.error(
                f"Command failed with exit code {result.exit_code}: {self.format_command(parts)}"
            )
        return result


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]


@dataclass
class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    console: ConsoleLike | None = None
    commands: List[RecordedCommand] = field(default_factory=list)
    responses: Dict[Tuple[str, ...], CommandResult] = field(default_factory=dict)

    def prime(
        self,
        command: Sequence[str],
        *,
        exit_code: int = 0,
        standard_output: str = "",
        error_output: str = "",
    ) -> None:
        """Return the given outcome whenever ``command`` is captured."""

        parts = self._normalize_command(command)
        self.responses[parts] = CommandResult(
            command=parts,
            exit_code=exit_code,
            standard_output=_trim(standard_output),
            error_output=_trim(error_output),
        )

    def capture(self, command: Sequence[str]) -> CommandResult:
        parts = self._normalize_command(command)
        self.commands.append(RecordedCommand(command=list(parts)))
        if self.console is not None:
            self.console.dry(self.format_command(parts))
        return self.responses.get(parts) or CommandResult(command=parts, exit_code=0)

    def iter_commands(self) -> Iterable[RecordedCommand]:
        return iter(self.commands)

    def iter_formatted(self) -> Iterable[str]:
        for record in self.commands:
            yield f"[dry-run] {self.format_command(record.command)}"


_DEFAULT_RUNNER = SubprocessCommandRunner()


def run(*command: str) -> str:
    """Run ``command`` with the shared default runner.

    ``run("ls", "-la")`` returns the trimmed standard output of ``ls -la`` or
    raises :class:`CommandFailure`.
    """

    return _DEFAULT_RUNNER.run(command)


__all__ = [
    "LAUNCH_FAILURE_EXIT_CODE",
    "CommandFailure",
    "CommandResult",
    "CommandRunner",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "run",
]
