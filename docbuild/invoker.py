"""Run appledoc for a :class:`BuildConfig` and open the generated HTML."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List

from .command_runner import CommandError, CommandRunner, CommandTimeoutError
from .config import BuildConfig
from .console import Console
from .opener import open_command


@dataclass(slots=True)
class InvocationResult:
    """Outcome of a documentation build."""

    exit_succeeded: bool
    command: tuple[str, ...]
    returncode: int | None = None
    opened: bool = False
    error: str | None = None


def build_command(config: BuildConfig) -> List[str]:
    """Assemble the appledoc argument vector for ``config``."""

    command: List[str] = [
        config.executable,
        "-p", config.project_name,
        "-v", config.project_version,
        "-c", config.company_name,
        "-o", str(config.dest_path),
    ]
    for pattern in config.exclude_patterns:
        command.extend(["-x", pattern, "--ignore", pattern])
    command.extend(config.output_flags)
    command.extend(config.warning_flags)
    command.extend(config.behavior_flags)
    command.extend(["--logformat", config.log_format])
    command.extend(["--exit-threshold", str(config.exit_threshold)])
    command.append(str(config.source_path))
    return command


class DocBuildInvoker:
    """Configure, run and open an appledoc build."""

    def __init__(
        self,
        config: BuildConfig,
        runner: CommandRunner,
        console: Console,
        *,
        open_result: bool = True,
        query_version: bool = True,
        echo_command: bool = True,
        system: str | None = None,
    ) -> None:
        self.config = config
        self.runner = runner
        self.console = console
        self.open_result = open_result
        self.query_version = query_version
        self.echo_command = echo_command
        self._system = system

    def generator_version(self) -> str | None:
        try:
            result = self.runner.run([self.config.executable, "--version"], check=False, note="version")
        except OSError as exc:
            self.console.debug(f"Could not query generator version: {exc}")
            return None
        version = result.stdout.strip()
        return version or None

    def run(self) -> InvocationResult:
        config = self.config
        if self.query_version:
            version = self.generator_version()
            suffix = f" with {version}" if version else ""
            self.console.info(f"Creating documentation for {config.source_path}{suffix}")

        command = build_command(config)
        if self.echo_command:
            self.console.command(f"cd {config.source_root}")
            self.console.command(self.runner.format_command(command))

        result = InvocationResult(exit_succeeded=False, command=tuple(command))
        try:
            completed = self.runner.run(
                command,
                cwd=config.source_root,
                stream=True,
                note="appledoc",
                timeout=config.timeout,
            )
        except CommandTimeoutError as exc:
            result.error = str(exc)
        except CommandError as exc:
            result.returncode = exc.result.returncode
            result.error = str(exc)
        except OSError as exc:
            result.error = f"Could not start {config.executable}: {exc}"
        else:
            result.exit_succeeded = True
            result.returncode = completed.returncode

        if result.error:
            self.console.error(result.error)

        if self.open_result and (result.exit_succeeded or config.open_on_failure):
            result.opened = self._open_index()
        return result

    def _open_index(self) -> bool:
        index = self.config.index_path
        command = open_command(index, system=self._system)
        self.console.debug(f"Opening {index}")
        try:
            self.runner.launch(command, note="open")
        except OSError as exc:
            self.console.warn(f"Could not open {index}: {exc}")
            return False
        return True


__all__ = ["DocBuildInvoker", "InvocationResult", "build_command"]
