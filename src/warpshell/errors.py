"""Failures that terminate a pipeline invocation."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Terminal, non-retried failure of a single pipeline invocation."""


class UnsafeCommandError(PipelineError):
    """Raised when a command matches a configured dangerous pattern."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Refusing to execute potentially dangerous command: {command}")
        self.command = command


class DirectoryNotAllowedError(PipelineError):
    """Raised when the execution directory is outside the allowlist."""

    def __init__(self, directory: str) -> None:
        super().__init__(f"Refusing to execute in directory outside the allowlist: {directory}")
        self.directory = directory


class ShellSpawnError(PipelineError):
    """Raised when the shell process cannot be started."""

    def __init__(self, command: str, reason: str) -> None:
        super().__init__(f"Failed to spawn command '{command}': {reason}")
        self.command = command
        self.reason = reason


class CommandTimeoutError(PipelineError):
    """Raised when a command outlives its deadline; the process group is killed first."""

    def __init__(self, command: str, timeout: float, *, stdout: str = "", stderr: str = "") -> None:
        super().__init__(f"Command timed out after {timeout:.2f}s: {command}")
        self.command = command
        self.timeout = timeout
        self.stdout = stdout
        self.stderr = stderr
