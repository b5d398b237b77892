"""Data models for pipeline results and running statistics."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from enum import Enum

from warpshell.shell import ExecutionFailure, ExecutionOutcome, ExecutionSuccess


class PipelineState(str, Enum):
    IDLE = "idle"
    PLANNING = "planning"
    CODING = "coding"
    AWAITING_CONFIRMATION = "awaiting_confirmation"
    EXECUTING = "executing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    DRY_RUN = "dry_run"


@dataclass(slots=True, frozen=True)
class PipelineResult:
    """Outcome of one request.

    ``cancelled`` and ``execution_outcome`` are mutually exclusive after a full
    run; a result carrying neither was never executed (dry run).
    """

    original_input: str
    plan: str
    command: str
    execution_outcome: ExecutionOutcome | None = None
    cancelled: bool = False

    @property
    def is_success(self) -> bool:
        if self.cancelled:
            return False
        return isinstance(self.execution_outcome, ExecutionSuccess)

    @property
    def executed(self) -> bool:
        return self.execution_outcome is not None

    @property
    def duration(self) -> float | None:
        if self.execution_outcome is None:
            return None
        return self.execution_outcome.duration

    @property
    def output(self) -> str | None:
        if isinstance(self.execution_outcome, ExecutionSuccess):
            return self.execution_outcome.stdout
        return None

    @property
    def error(self) -> str | None:
        outcome = self.execution_outcome
        if isinstance(outcome, ExecutionFailure):
            return outcome.stderr
        if isinstance(outcome, ExecutionSuccess) and outcome.stderr:
            return outcome.stderr
        return None

    @property
    def exit_code(self) -> int | None:
        if self.execution_outcome is None:
            return None
        return self.execution_outcome.exit_code

    def summary(self) -> str:
        if self.cancelled:
            return "Pipeline cancelled by user"
        outcome = self.execution_outcome
        if isinstance(outcome, ExecutionSuccess):
            return f"Command executed successfully in {outcome.duration:.2f}s"
        if isinstance(outcome, ExecutionFailure):
            return (
                f"Command failed with exit code {outcome.exit_code}"
                f" after {outcome.duration:.2f}s"
            )
        return "Command was not executed"


@dataclass(slots=True)
class PipelineStats:
    """Running aggregate over many results; never recomputed from history."""

    total: int = 0
    successful: int = 0
    failed: int = 0
    cancelled: int = 0
    average_duration: float = 0.0
    command_frequency: Counter[str] = field(default_factory=Counter)
    _timed: int = field(default=0, repr=False)

    def update(self, result: PipelineResult) -> None:
        self.total += 1
        if result.cancelled:
            self.cancelled += 1
        elif result.is_success:
            self.successful += 1
        else:
            self.failed += 1

        if result.command:
            self.command_frequency[result.command] += 1

        duration = result.duration
        if duration is not None:
            self._timed += 1
            self.average_duration = (
                self.average_duration * (self._timed - 1) + duration
            ) / self._timed

    def success_rate(self) -> float:
        if self.total == 0:
            return 0.0
        return self.successful / self.total * 100

    def most_common_commands(self, n: int = 5) -> list[tuple[str, int]]:
        return self.command_frequency.most_common(n)
