"""Shell adapter implementations."""

import os

from .base import ExecutionFailure, ExecutionOutcome, ExecutionSuccess, ShellAdapter
from .bash_adapter import BashAdapter
from .powershell_adapter import PowerShellAdapter
from .runner import ShellRunner


def select_shell_adapter(os_name: str | None = None) -> ShellAdapter:
    """Pick the host shell: PowerShell on Windows, bash everywhere else."""
    platform_name = os.name if os_name is None else os_name
    if platform_name == "nt":
        return PowerShellAdapter()
    return BashAdapter()


def create_shell_adapter(shell_name: str) -> ShellAdapter:
    normalized = shell_name.strip().lower()
    if normalized in {"bash", "sh", "shell"}:
        return BashAdapter(executable="sh" if normalized == "sh" else None)
    if normalized in {"powershell", "pwsh"}:
        return PowerShellAdapter(executable="pwsh" if normalized == "pwsh" else None)
    msg = f"Unsupported shell adapter: {shell_name}"
    raise ValueError(msg)


__all__ = [
    "BashAdapter",
    "ExecutionFailure",
    "ExecutionOutcome",
    "ExecutionSuccess",
    "PowerShellAdapter",
    "ShellAdapter",
    "ShellRunner",
    "create_shell_adapter",
    "select_shell_adapter",
]
