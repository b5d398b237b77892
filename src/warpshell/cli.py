"""Command-line interface for warpshell."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import cast

from rich.console import Console
from rich.markup import escape

from .agent.pipeline import WarpPipeline, is_affirmative
from .config import AppConfig, write_sample_config
from .errors import PipelineError

LOGGER = logging.getLogger(__name__)


class CLIArgs(argparse.Namespace):
    request: str | None
    dry_run: bool
    working_directory: str | None
    debug: bool
    init_config: str | None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="warpshell",
        description="Natural language to shell command pipeline",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan and translate the request without executing anything.",
    )
    parser.add_argument(
        "--cwd",
        dest="working_directory",
        help=(
            "Run the command in this directory. "
            "Takes precedence over config/env working directory values."
        ),
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--init-config",
        metavar="PATH",
        help="Write a sample configuration file to PATH and exit.",
    )
    parser.add_argument("request", nargs="?", help="What you want to do, in plain language")
    return parser


def configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.ERROR,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = cast(CLIArgs, parser.parse_args(argv))
    configure_logging(args.debug)
    console = Console(highlight=False, emoji=False)

    if args.init_config:
        try:
            written = write_sample_config(args.init_config)
        except FileExistsError as exc:
            console.print(str(exc), markup=False)
            return 1
        console.print(f"Sample configuration created at: {written}", markup=False)
        return 0

    config = AppConfig.from_env()
    request = args.request or input("Request: ").strip()
    if not request:
        console.print("No request provided.", markup=False)
        return 1

    configured_working_directory = (
        args.working_directory
        if args.working_directory is not None
        else config.execution.working_directory
    )
    if configured_working_directory is not None:
        resolved_working_directory = Path(configured_working_directory).expanduser().resolve()
        if not resolved_working_directory.exists() or not resolved_working_directory.is_dir():
            console.print(
                f"Invalid configured cwd directory: {configured_working_directory}",
                markup=False,
            )
            return 1
        config.execution.working_directory = str(resolved_working_directory)

    pipeline = WarpPipeline.from_config(
        config,
        confirm_command=_confirm_command_execution,
        console=console,
    )
    LOGGER.debug("pipeline_ready", extra={"shell": config.shell, "dry_run": args.dry_run})

    if args.dry_run:
        _plan, command = pipeline.dry_run(request)
        console.print("\nWould execute:", command, markup=False)
        return 0

    try:
        result = pipeline.execute(request)
    except PipelineError as exc:
        console.print(f"[red bold]Error:[/red bold] {escape(str(exc))}")
        return 1

    console.print(result.summary(), markup=False)
    if not result.is_success and not result.cancelled:
        return 1
    return 0


def _confirm_command_execution(command: str) -> bool:
    try:
        response = input("\nExecute this command? [y/N]: ")
    except EOFError:
        return False
    return is_affirmative(response)


if __name__ == "__main__":
    raise SystemExit(main())
