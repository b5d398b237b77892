"""Base shell adapter primitives and execution outcomes."""

from __future__ import annotations

import abc
import locale
import re
import time
from dataclasses import dataclass

_SECRET_PATTERNS = [
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"(--?(?:password|token|secret|api[-_]?key)\s+)([^\s]+)",
        r"((?:password|token|secret|api[-_]?key)\s*=\s*)([^\s]+)",
    )
]


@dataclass(slots=True, frozen=True)
class ExecutionSuccess:
    """Command exited with status 0."""

    stdout: str
    stderr: str
    duration: float

    @property
    def exit_code(self) -> int:
        return 0


@dataclass(slots=True, frozen=True)
class ExecutionFailure:
    """Command exited with a non-zero status; stdout is kept for debugging."""

    stderr: str
    exit_code: int
    duration: float
    stdout: str = ""


ExecutionOutcome = ExecutionSuccess | ExecutionFailure


def classify_outcome(
    returncode: int, *, stdout: str, stderr: str, duration: float
) -> ExecutionOutcome:
    if returncode == 0:
        return ExecutionSuccess(stdout=stdout, stderr=stderr, duration=duration)
    return ExecutionFailure(stderr=stderr, exit_code=returncode, duration=duration, stdout=stdout)


class ShellAdapter(abc.ABC):
    """Abstract adapter describing how a command string is handed to a shell."""

    def __init__(self, executable: str) -> None:
        self.executable = executable

    @property
    @abc.abstractmethod
    def name(self) -> str:
        """Friendly shell adapter name."""

    @property
    @abc.abstractmethod
    def command_flag(self) -> str:
        """Flag that makes the shell run the next argument as a command."""

    @abc.abstractmethod
    def scope_to_directory(self, command: str, directory: str) -> str:
        """Prefix ``command`` so relative paths resolve against ``directory``."""

    def build_argv(self, command: str) -> list[str]:
        return [self.executable, self.command_flag, command]

    @staticmethod
    def monotonic_now() -> float:
        return time.monotonic()

    @staticmethod
    def sanitize_command(command: str) -> str:
        sanitized = command
        for pattern in _SECRET_PATTERNS:
            sanitized = pattern.sub(r"\1***", sanitized)
        return sanitized


def normalize_output(payload: bytes | str | None) -> str:
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload

    for encoding in ("utf-8", "utf-8-sig", locale.getpreferredencoding(False), "cp1252"):
        try:
            return payload.decode(encoding)
        except (LookupError, UnicodeDecodeError):
            continue
    return payload.decode("utf-8", errors="replace")
