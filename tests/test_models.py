from __future__ import annotations

import pytest

from warpshell.agent.models import PipelineResult, PipelineStats
from warpshell.shell import ExecutionFailure, ExecutionSuccess


def _result(outcome=None, *, cancelled: bool = False, command: str = "ls") -> PipelineResult:
    return PipelineResult(
        original_input="list files",
        plan="List files",
        command=command,
        execution_outcome=outcome,
        cancelled=cancelled,
    )


def test_success_result_accessors() -> None:
    result = _result(ExecutionSuccess(stdout="a.txt", stderr="", duration=1.5))

    assert result.is_success is True
    assert result.duration == 1.5
    assert result.output == "a.txt"
    assert result.error is None
    assert result.exit_code == 0
    assert result.summary() == "Command executed successfully in 1.50s"


def test_success_with_warnings_exposes_stderr() -> None:
    result = _result(ExecutionSuccess(stdout="", stderr="deprecated flag", duration=0.1))

    assert result.error == "deprecated flag"


def test_failure_result_accessors() -> None:
    result = _result(ExecutionFailure(stderr="nope", exit_code=2, duration=0.25, stdout="x"))

    assert result.is_success is False
    assert result.output is None
    assert result.error == "nope"
    assert result.exit_code == 2
    assert result.summary() == "Command failed with exit code 2 after 0.25s"


def test_cancelled_result_is_never_success() -> None:
    result = _result(ExecutionSuccess(stdout="", stderr="", duration=0.1), cancelled=True)

    assert result.is_success is False
    assert result.summary() == "Pipeline cancelled by user"


def test_result_without_execution() -> None:
    result = _result()

    assert result.is_success is False
    assert result.executed is False
    assert result.duration is None
    assert result.exit_code is None
    assert result.summary() == "Command was not executed"


def test_stats_counts_each_result_once() -> None:
    stats = PipelineStats()

    stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=1.0)))
    stats.update(_result(ExecutionFailure(stderr="", exit_code=1, duration=3.0)))
    stats.update(_result(cancelled=True))

    assert stats.total == 3
    assert stats.successful == 1
    assert stats.failed == 1
    assert stats.cancelled == 1


def test_stats_running_average_matches_mean() -> None:
    durations = [0.5, 1.25, 3.0, 0.125, 2.0]
    stats = PipelineStats()

    for duration in durations:
        stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=duration)))

    assert stats.total == len(durations)
    assert stats.average_duration == pytest.approx(sum(durations) / len(durations))


def test_stats_average_ignores_results_without_duration() -> None:
    stats = PipelineStats()

    stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=2.0)))
    stats.update(_result(cancelled=True))
    stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=4.0)))

    assert stats.average_duration == pytest.approx(3.0)


def test_success_rate() -> None:
    stats = PipelineStats()
    assert stats.success_rate() == 0.0

    stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=1.0)))
    stats.update(_result(ExecutionFailure(stderr="", exit_code=1, duration=1.0)))
    stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=1.0)))
    stats.update(_result(cancelled=True))

    assert stats.success_rate() == pytest.approx(50.0)


def test_most_common_commands() -> None:
    stats = PipelineStats()
    for command in ["git status", "ls", "git status", "npm test", "git status", "ls"]:
        stats.update(_result(ExecutionSuccess(stdout="", stderr="", duration=0.1), command=command))

    assert stats.most_common_commands(2) == [("git status", 3), ("ls", 2)]
