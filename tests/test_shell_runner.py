from __future__ import annotations

import io
import os
import shutil
import subprocess
import time

import pytest
from rich.console import Console

from warpshell.errors import CommandTimeoutError, ShellSpawnError, UnsafeCommandError
from warpshell.shell import BashAdapter, ExecutionFailure, ExecutionSuccess, ShellRunner

requires_bash = pytest.mark.skipif(
    os.name == "nt" or shutil.which("bash") is None, reason="requires a POSIX bash"
)


def _console() -> tuple[Console, io.StringIO]:
    buffer = io.StringIO()
    return Console(file=buffer, soft_wrap=True, highlight=False, color_system=None), buffer


def _runner(*, streaming: bool = True) -> tuple[ShellRunner, io.StringIO, io.StringIO]:
    stdout_console, stdout_buffer = _console()
    stderr_console, stderr_buffer = _console()
    runner = ShellRunner(
        BashAdapter(),
        streaming=streaming,
        stdout_console=stdout_console,
        stderr_console=stderr_console,
    )
    return runner, stdout_buffer, stderr_buffer


def test_shell_command_uses_adapter_argv() -> None:
    runner, _out, _err = _runner()

    assert runner.shell_command("echo hello") == ["bash", "-c", "echo hello"]


@requires_bash
def test_streaming_success_captures_and_echoes_both_streams() -> None:
    runner, stdout_buffer, stderr_buffer = _runner()

    outcome = runner.execute("echo one; echo warn >&2; echo two")

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout == "one\ntwo"
    assert outcome.stderr == "warn"
    assert outcome.exit_code == 0
    assert outcome.duration >= 0
    assert stdout_buffer.getvalue() == "one\ntwo\n"
    assert stderr_buffer.getvalue() == "warn\n"


@requires_bash
def test_echo_keeps_emoji_codes_verbatim() -> None:
    runner, stdout_buffer, stderr_buffer = _runner()

    outcome = runner.execute("echo 'build :warning: done'; echo 'lint :x: [red]' >&2")

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout == "build :warning: done"
    assert stdout_buffer.getvalue() == "build :warning: done\n"
    assert stderr_buffer.getvalue() == "lint :x: [red]\n"


@requires_bash
def test_streaming_preserves_order_within_each_stream() -> None:
    runner, _out, _err = _runner()
    script = "for i in $(seq 1 200); do echo out$i; echo err$i >&2; done"

    outcome = runner.execute(script)

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout.splitlines() == [f"out{i}" for i in range(1, 201)]
    assert outcome.stderr.splitlines() == [f"err{i}" for i in range(1, 201)]


@requires_bash
@pytest.mark.parametrize("streaming", [True, False])
def test_non_zero_exit_is_classified_as_failure(streaming: bool) -> None:
    runner, _out, _err = _runner(streaming=streaming)

    outcome = runner.execute("echo partial; echo boom >&2; exit 3")

    assert isinstance(outcome, ExecutionFailure)
    assert outcome.exit_code == 3
    assert outcome.stderr.strip() == "boom"
    assert outcome.stdout.strip() == "partial"


@requires_bash
def test_non_streaming_collects_output_without_echo() -> None:
    runner, stdout_buffer, _err = _runner(streaming=False)

    outcome = runner.execute("printf 'a\\nb\\n'")

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout == "a\nb\n"
    assert stdout_buffer.getvalue() == ""


@requires_bash
def test_stdin_is_closed() -> None:
    runner, _out, _err = _runner()

    outcome = runner.execute("cat; echo after")

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout == "after"


@requires_bash
def test_execute_in_dir_resolves_relative_paths(tmp_path) -> None:
    (tmp_path / "marker.txt").write_text("found", encoding="utf-8")
    runner, _out, _err = _runner()

    outcome = runner.execute_in_dir("cat marker.txt", str(tmp_path))

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout == "found"


@requires_bash
@pytest.mark.parametrize("streaming", [True, False])
def test_timeout_kills_process_and_raises(streaming: bool) -> None:
    runner, _out, _err = _runner(streaming=streaming)
    started = time.monotonic()

    with pytest.raises(CommandTimeoutError) as excinfo:
        runner.execute_with_timeout("echo started; sleep 30; echo never", 0.5)

    assert time.monotonic() - started < 10
    assert excinfo.value.timeout == 0.5
    assert "started" in excinfo.value.stdout
    assert "never" not in excinfo.value.stdout


@requires_bash
@pytest.mark.parametrize("streaming", [True, False])
def test_deadline_covers_background_child_holding_pipes(streaming: bool) -> None:
    runner, _out, _err = _runner(streaming=streaming)
    started = time.monotonic()

    with pytest.raises(CommandTimeoutError) as excinfo:
        runner.execute_with_timeout("sleep 30 & echo hi", 0.5)

    assert time.monotonic() - started < 10
    assert excinfo.value.stdout.strip() == "hi"


@requires_bash
def test_completed_command_within_deadline_returns_outcome() -> None:
    runner, _out, _err = _runner()

    outcome = runner.execute_with_timeout("echo quick", 10)

    assert isinstance(outcome, ExecutionSuccess)
    assert outcome.stdout == "quick"


def test_spawn_failure_raises_shell_spawn_error() -> None:
    stdout_console, _ = _console()
    runner = ShellRunner(
        BashAdapter(executable="/definitely/missing/bash"),
        stdout_console=stdout_console,
        stderr_console=stdout_console,
    )

    with pytest.raises(ShellSpawnError, match="Failed to spawn command 'echo hi'"):
        runner.execute("echo hi")


def test_spawn_uses_pipes_and_closed_stdin(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    class FakeProcess:
        returncode = 0

        def __init__(self, argv: list[str], **kwargs: object) -> None:
            captured["argv"] = argv
            captured.update(kwargs)

        def communicate(self, timeout: float | None = None) -> tuple[bytes, bytes]:
            return b"ok", b""

    monkeypatch.setattr(subprocess, "Popen", FakeProcess)
    runner, _out, _err = _runner(streaming=False)

    outcome = runner.execute("echo ok")

    assert isinstance(outcome, ExecutionSuccess)
    assert captured["argv"] == ["bash", "-c", "echo ok"]
    assert captured["stdin"] == subprocess.DEVNULL
    assert captured["stdout"] == subprocess.PIPE
    assert captured["stderr"] == subprocess.PIPE


def test_execute_safely_refuses_dangerous_commands(monkeypatch: pytest.MonkeyPatch) -> None:
    def fail_popen(*_args: object, **_kwargs: object) -> None:
        raise AssertionError("dangerous command must not be spawned")

    monkeypatch.setattr(subprocess, "Popen", fail_popen)
    runner, _out, _err = _runner()

    with pytest.raises(UnsafeCommandError):
        runner.execute_safely("sudo shutdown -h now")
