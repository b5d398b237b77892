"""Request -> plan -> command -> confirmation -> execution orchestration."""

from __future__ import annotations

import logging
from collections.abc import Callable

from rich.console import Console
from rich.markup import escape

from warpshell.agent.models import PipelineResult, PipelineState
from warpshell.agent.stages import CoderStage, PlannerStage
from warpshell.config import AppConfig
from warpshell.errors import PipelineError
from warpshell.llm.client import TextGenerator
from warpshell.safety import SafetyPolicy
from warpshell.shell import (
    ExecutionFailure,
    ExecutionOutcome,
    ExecutionSuccess,
    ShellRunner,
    create_shell_adapter,
)

LOGGER = logging.getLogger(__name__)

ConfirmCommand = Callable[[str], bool]

AFFIRMATIVE_TOKEN = "y"


def is_affirmative(response: str) -> bool:
    """Accept any reply whose trimmed, lowercased text starts with ``y``."""
    return response.strip().lower().startswith(AFFIRMATIVE_TOKEN)


class WarpPipeline:
    """Runs one request at a time through planner, coder, safety gate and shell."""

    def __init__(
        self,
        *,
        config: AppConfig,
        planner: PlannerStage,
        coder: CoderStage,
        runner: ShellRunner,
        confirm_command: ConfirmCommand | None = None,
        console: Console | None = None,
    ) -> None:
        self.config = config
        self.planner = planner
        self.coder = coder
        self.runner = runner
        self.safety = SafetyPolicy(config.safety)
        self.confirm_command = confirm_command
        self.console = console or Console(highlight=False, emoji=False)
        self.state = PipelineState.IDLE

    @classmethod
    def from_config(
        cls,
        config: AppConfig,
        *,
        generator: TextGenerator | None = None,
        confirm_command: ConfirmCommand | None = None,
        console: Console | None = None,
    ) -> WarpPipeline:
        models = config.models
        return cls(
            config=config,
            planner=PlannerStage.from_model_spec(models.planner_spec(), generator),
            coder=CoderStage.from_model_spec(models.coder_spec(), generator),
            runner=ShellRunner(
                create_shell_adapter(config.shell),
                streaming=config.execution.streaming,
            ),
            confirm_command=confirm_command,
            console=console,
        )

    def execute(self, request: str) -> PipelineResult:
        """Run the full pipeline.

        Raises ``PipelineError`` subclasses for safety refusals, spawn failures
        and timeouts. A declined confirmation is a normal, cancelled result.
        """
        plan, command = self._plan_and_code(request, dry_run=False)

        self.state = PipelineState.AWAITING_CONFIRMATION
        if not self._confirmed(command):
            self.state = PipelineState.CANCELLED
            LOGGER.info("pipeline_cancelled", extra={"request": request})
            return PipelineResult(
                original_input=request,
                plan=plan,
                command=command,
                execution_outcome=None,
                cancelled=True,
            )

        try:
            self.safety.check(command, directory=self.config.execution.working_directory)
            self.state = PipelineState.EXECUTING
            self.console.print("\n[blue]Running command...[/blue]")
            outcome = self._run(command)
        except PipelineError as exc:
            self.state = PipelineState.FAILED
            LOGGER.warning(
                "pipeline_failed",
                extra={"request": request, "error_type": type(exc).__name__, "error": str(exc)},
            )
            raise

        self.state = PipelineState.COMPLETED
        self._report(outcome)
        return PipelineResult(
            original_input=request,
            plan=plan,
            command=command,
            execution_outcome=outcome,
            cancelled=False,
        )

    def dry_run(self, request: str) -> tuple[str, str]:
        """Produce the plan and command without confirming or executing."""
        plan, command = self._plan_and_code(request, dry_run=True)
        self.state = PipelineState.DRY_RUN
        return plan, command

    def _plan_and_code(self, request: str, *, dry_run: bool) -> tuple[str, str]:
        suffix = " (dry run)" if dry_run else ""

        self.state = PipelineState.PLANNING
        self.console.print(f"[blue]Planning...{suffix}[/blue]")
        plan = self.planner.generate(request)
        self.console.print(
            f"[green bold]Plan:[/green bold] [cyan]{escape(plan)}[/cyan]", emoji=False
        )

        self.state = PipelineState.CODING
        self.console.print(f"\n[blue]Translating to shell...{suffix}[/blue]")
        command = self.coder.generate(plan)
        self.console.print(
            f"[green bold]Suggested command:[/green bold] [yellow]{escape(command)}[/yellow]",
            emoji=False,
        )
        LOGGER.info("pipeline_command_generated", extra={"request": request, "dry_run": dry_run})
        return plan, command

    def _confirmed(self, command: str) -> bool:
        if self.config.execution.auto_confirm or not self.config.safety.require_confirmation:
            return True
        if self.confirm_command is None:
            return False
        return self.confirm_command(command)

    def _run(self, command: str) -> ExecutionOutcome:
        execution = self.config.execution
        timeout = float(execution.max_execution_time) if execution.max_execution_time > 0 else None
        if execution.working_directory:
            return self.runner.execute_in_dir(
                command, execution.working_directory, timeout=timeout
            )
        if timeout is not None:
            return self.runner.execute_with_timeout(command, timeout)
        return self.runner.execute(command)

    def _report(self, outcome: ExecutionOutcome) -> None:
        if isinstance(outcome, ExecutionSuccess):
            if not self.runner.streaming and outcome.stdout:
                self.console.print(outcome.stdout, markup=False, emoji=False)
            if outcome.stderr and not self.runner.streaming:
                self.console.print("[yellow]Warnings:[/yellow]")
                self.console.print(outcome.stderr, style="yellow", markup=False, emoji=False)
            self.console.print(f"\n[green]Completed in {outcome.duration:.2f}s[/green]")
        elif isinstance(outcome, ExecutionFailure):
            self.console.print(f"[red bold]Error (exit code: {outcome.exit_code})[/red bold]")
            if outcome.stderr and not self.runner.streaming:
                self.console.print(outcome.stderr, style="red", markup=False, emoji=False)
            self.console.print(f"\n[red]Failed after {outcome.duration:.2f}s[/red]")
