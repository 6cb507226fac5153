"""Command line interface for the documentation build."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Any, Dict, Iterable
import sys

from .command_runner import RecordingCommandRunner, SubprocessCommandRunner, format_command
from .config import DEST_DIR_VARIABLES, SOURCE_ROOT_VARIABLES, BuildConfig, ConfigurationError
from .console import Console
from .invoker import DocBuildInvoker, build_command


def _make_runner(dry_run: bool) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner()


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(
        prog="docbuild",
        description="Generate the Objective-C API documentation with appledoc and open the HTML index.",
    )
    parser.add_argument(
        "--source-root",
        help=f"Source root directory (default: ${SOURCE_ROOT_VARIABLES[0]})",
    )
    parser.add_argument(
        "--dest-dir",
        help=f"Output directory (default: ${DEST_DIR_VARIABLES[0]})",
    )
    parser.add_argument("--config", type=Path, help="Settings file with a [docbuild] table (TOML, JSON or YAML)")
    parser.add_argument("--executable", help="Path to the appledoc executable")
    parser.add_argument("--timeout", type=float, help="Abort appledoc after this many seconds")
    parser.add_argument("-n", "--dry-run", action="store_true", help="Print commands without executing them")
    parser.add_argument("--no-open", action="store_true", help="Do not open the generated index.html")
    parser.add_argument(
        "--skip-open-on-failure",
        action="store_true",
        help="Do not open index.html when appledoc exits with an error",
    )
    parser.add_argument("--strict", action="store_true", help="Exit with status 1 when appledoc fails")
    parser.add_argument(
        "--print-command",
        action="store_true",
        help="Print the appledoc command line and exit",
    )
    parser.add_argument(
        "--log-level",
        choices=list(Console.LEVELS),
        default="info",
        help="Console verbosity",
    )
    return parser.parse_args(list(argv))


def _collect_overrides(args: Namespace) -> Dict[str, Any]:
    return {
        "source_root": args.source_root,
        "dest_dir": args.dest_dir,
        "executable": args.executable,
        "timeout": args.timeout,
        "open_on_failure": False if args.skip_open_on_failure else None,
        "fail_on_generator_error": True if args.strict else None,
    }


def _load_config(args: Namespace) -> BuildConfig:
    config = BuildConfig.from_environment(
        settings_file=args.config,
        overrides=_collect_overrides(args),
    )
    if not args.dry_run and not args.print_command:
        config = config.with_resolved_executable()
    return config


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    console = Console(args.log_level, dry_run=args.dry_run)

    try:
        config = _load_config(args)
    except ConfigurationError as exc:
        print(f"Error: {exc}")
        return 2

    if args.print_command:
        print(format_command(build_command(config)))
        return 0

    runner = _make_runner(args.dry_run)
    invoker = DocBuildInvoker(
        config,
        runner,
        console,
        open_result=not args.no_open,
        query_version=not args.dry_run,
        echo_command=not args.dry_run,
    )
    result = invoker.run()

    if isinstance(runner, RecordingCommandRunner):
        for line in runner.iter_formatted():
            print(line)

    if not result.exit_succeeded:
        if config.fail_on_generator_error:
            return 1
        console.warn("appledoc reported errors; continuing")
    return 0


__all__ = ["main"]
