"""Run shell commands while echoing and capturing both output streams."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, wait
from typing import IO

from rich.console import Console

from warpshell.config import SafetyConfig
from warpshell.errors import CommandTimeoutError, ShellSpawnError, UnsafeCommandError
from warpshell.safety import SafetyPolicy

from .base import ExecutionOutcome, ShellAdapter, classify_outcome, normalize_output

LOGGER = logging.getLogger(__name__)

LineSink = Callable[[str], None]


class ShellRunner:
    """Spawns one shell process per command and classifies its outcome.

    In streaming mode two reader threads drain stdout and stderr line by line,
    echoing each line as it arrives, while a third thread waits for the process
    to exit. All three are joined against the same deadline, so a background
    child holding the pipes open cannot outlast it. Line order is
    preserved within a stream; nothing is promised across streams.

    On timeout the child's process group is killed, the readers are drained and
    ``CommandTimeoutError`` is raised.
    """

    def __init__(
        self,
        adapter: ShellAdapter | None = None,
        *,
        streaming: bool = True,
        stdout_console: Console | None = None,
        stderr_console: Console | None = None,
    ) -> None:
        if adapter is None:
            from . import select_shell_adapter

            adapter = select_shell_adapter()
        self.adapter = adapter
        self.streaming = streaming
        self.stdout_console = stdout_console or Console(
            soft_wrap=True, highlight=False, emoji=False
        )
        self.stderr_console = stderr_console or Console(
            stderr=True, soft_wrap=True, highlight=False, emoji=False
        )

    def shell_command(self, command: str) -> list[str]:
        return self.adapter.build_argv(command)

    def execute(self, command: str) -> ExecutionOutcome:
        return self._run(command, command, timeout=None)

    def execute_with_timeout(self, command: str, timeout: float) -> ExecutionOutcome:
        return self._run(command, command, timeout=timeout)

    def execute_in_dir(
        self, command: str, directory: str, *, timeout: float | None = None
    ) -> ExecutionOutcome:
        scoped = self.adapter.scope_to_directory(command, directory)
        return self._run(command, scoped, timeout=timeout)

    def execute_safely(self, command: str) -> ExecutionOutcome:
        """Refuse commands matching the built-in dangerous patterns, then execute."""
        if SafetyPolicy(SafetyConfig()).is_dangerous(command):
            raise UnsafeCommandError(command)
        return self.execute(command)

    def _run(self, command: str, shell_text: str, *, timeout: float | None) -> ExecutionOutcome:
        argv = self.shell_command(shell_text)
        LOGGER.info(
            "command_request",
            extra={
                "shell": self.adapter.name,
                "command": self.adapter.sanitize_command(shell_text),
                "timeout": timeout,
                "streaming": self.streaming,
            },
        )
        started = self.adapter.monotonic_now()
        try:
            process = subprocess.Popen(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                **_process_group_options(),
            )
        except OSError as exc:
            LOGGER.error(
                "command_spawn_failed",
                extra={"shell": self.adapter.name, "executable": argv[0], "error": str(exc)},
            )
            raise ShellSpawnError(command, str(exc)) from exc

        if self.streaming:
            stdout, stderr, returncode = self._stream(process, timeout)
        else:
            stdout, stderr, returncode = self._collect(process, timeout)
        duration = self.adapter.monotonic_now() - started

        if returncode is None:
            LOGGER.warning(
                "command_timed_out",
                extra={"shell": self.adapter.name, "timeout": timeout, "duration": duration},
            )
            raise CommandTimeoutError(command, timeout or 0.0, stdout=stdout, stderr=stderr)

        outcome = classify_outcome(returncode, stdout=stdout, stderr=stderr, duration=duration)
        LOGGER.info(
            "command_result",
            extra={
                "shell": self.adapter.name,
                "returncode": returncode,
                "duration_seconds": round(duration, 4),
                "stdout_length": len(stdout),
                "stderr_length": len(stderr),
            },
        )
        return outcome

    def _stream(
        self, process: subprocess.Popen[bytes], timeout: float | None
    ) -> tuple[str, str, int | None]:
        assert process.stdout is not None
        assert process.stderr is not None
        pool = ThreadPoolExecutor(max_workers=3, thread_name_prefix="warpshell-stream")
        try:
            stdout_future = pool.submit(_read_lines, process.stdout, self._echo_stdout)
            stderr_future = pool.submit(_read_lines, process.stderr, self._echo_stderr)
            exit_future = pool.submit(_wait_for_exit, process, timeout)
            futures = [stdout_future, stderr_future, exit_future]
            # Backgrounded children can hold the pipes open after the shell exits.
            _done, pending = wait(futures, timeout=timeout)
            if pending:
                _kill_process_group(process)
                wait(futures)
        except KeyboardInterrupt:
            _kill_process_group(process)
            raise
        finally:
            pool.shutdown(wait=True)

        return (
            "\n".join(stdout_future.result()),
            "\n".join(stderr_future.result()),
            None if pending else exit_future.result(),
        )

    @staticmethod
    def _collect(
        process: subprocess.Popen[bytes], timeout: float | None
    ) -> tuple[str, str, int | None]:
        try:
            stdout, stderr = process.communicate(timeout=timeout)
            returncode: int | None = process.returncode
        except subprocess.TimeoutExpired:
            _kill_process_group(process)
            stdout, stderr = process.communicate()
            returncode = None
        return normalize_output(stdout), normalize_output(stderr), returncode

    def _echo_stdout(self, line: str) -> None:
        self.stdout_console.print(line, markup=False, highlight=False, emoji=False)

    def _echo_stderr(self, line: str) -> None:
        self.stderr_console.print(
            line, style="yellow", markup=False, highlight=False, emoji=False
        )


def _read_lines(stream: IO[bytes], sink: LineSink) -> list[str]:
    collected: list[str] = []
    with stream:
        for raw_line in iter(stream.readline, b""):
            line = normalize_output(raw_line).rstrip("\r\n")
            sink(line)
            collected.append(line)
    return collected


def _wait_for_exit(process: subprocess.Popen[bytes], timeout: float | None) -> int | None:
    try:
        return process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        _kill_process_group(process)
        process.wait()
        return None


def _process_group_options() -> dict[str, object]:
    if os.name == "nt":
        return {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
    return {"start_new_session": True}


def _kill_process_group(process: subprocess.Popen[bytes]) -> None:
    # The group may outlive its leader when the shell backgrounded children.
    if os.name == "nt":
        process.kill()
        return
    try:
        os.killpg(process.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass
