"""Runners that execute, or record for a dry run, the external commands of a build."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Sequence
import shlex
import subprocess


@dataclass
class CommandResult:
    """Exit status and captured output of one command."""

    command: Sequence[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    streamed: bool = False


class CommandError(RuntimeError):
    """Raised when a checked command exits with a nonzero status."""

    def __init__(self, result: CommandResult, message: str | None = None):
        if message is None:
            message = f"Command failed with exit code {result.returncode}: {format_command(result.command)}"
            if not result.streamed and result.stderr.strip():
                message = f"{message}\n{result.stderr.strip()}"
        super().__init__(message)
        self.result = result


class CommandTimeoutError(CommandError):
    """Raised when a command is still running after its timeout."""

    def __init__(self, result: CommandResult, timeout: float):
        super().__init__(
            result, f"Command timed out after {timeout:g}s: {format_command(result.command)}"
        )
        self.timeout = timeout


def format_command(command: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(part)) for part in command)


class CommandRunner:
    """Interface shared by the real and the dry-run runner."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        """Run ``command`` to completion.

        With ``stream`` the child writes straight to the terminal, otherwise
        its output is captured in the result.
        """
        raise NotImplementedError

    def launch(self, command: Sequence[str], *, note: str | None = None) -> None:
        """Start ``command`` without waiting for it to finish."""
        raise NotImplementedError

    def format_command(self, command: Sequence[str]) -> str:
        return format_command(command)


class SubprocessCommandRunner(CommandRunner):
    """Command runner that executes argument vectors via :mod:`subprocess`."""

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        try:
            process = subprocess.run(
                [str(part) for part in command],
                cwd=str(cwd) if cwd else None,
                capture_output=not stream,
                text=True,
                check=False,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise CommandTimeoutError(
                CommandResult(command=command, returncode=-1, streamed=stream), exc.timeout
            ) from exc

        result = CommandResult(
            command=command,
            returncode=process.returncode,
            stdout=process.stdout or "",
            stderr=process.stderr or "",
            streamed=stream,
        )
        if check and result.returncode != 0:
            raise CommandError(result)
        return result

    def launch(self, command: Sequence[str], *, note: str | None = None) -> None:
        subprocess.Popen(
            [str(part) for part in command],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )


@dataclass(slots=True)
class RecordedCommand:
    command: List[str]
    cwd: str | None
    note: str | None
    stream: bool
    detached: bool = False


class RecordingCommandRunner(CommandRunner):
    """Command runner that records commands instead of executing them."""

    def __init__(self) -> None:
        self.commands: List[RecordedCommand] = []

    def run(
        self,
        command: Sequence[str],
        *,
        cwd: Path | None = None,
        check: bool = True,
        note: str | None = None,
        stream: bool = False,
        timeout: float | None = None,
    ) -> CommandResult:
        self.commands.append(
            RecordedCommand(
                command=[str(part) for part in command],
                cwd=str(cwd) if cwd else None,
                note=note,
                stream=stream,
            )
        )
        return CommandResult(command=command, returncode=0)

    def launch(self, command: Sequence[str], *, note: str | None = None) -> None:
        self.commands.append(
            RecordedCommand(
                command=[str(part) for part in command],
                cwd=None,
                note=note,
                stream=False,
                detached=True,
            )
        )

    def iter_formatted(self) -> Iterable[str]:
        for record in self.commands:
            parts: List[str] = ["[dry-run]"]
            if record.note:
                parts.append(record.note)
            if record.cwd:
                parts.append(f"(cwd={record.cwd})")
            parts.append(self.format_command(record.command))
            yield " ".join(parts)


__all__ = [
    "CommandError",
    "CommandResult",
    "CommandRunner",
    "CommandTimeoutError",
    "RecordedCommand",
    "RecordingCommandRunner",
    "SubprocessCommandRunner",
    "format_command",
]
