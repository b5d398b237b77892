"""Bash shell adapter implementation."""

from __future__ import annotations

import shlex

from .base import ShellAdapter


class BashAdapter(ShellAdapter):
    """Adapter for command execution via ``bash -c``."""

    def __init__(self, executable: str | None = None) -> None:
        super().__init__(executable or "bash")

    @property
    def name(self) -> str:
        return "bash"

    @property
    def command_flag(self) -> str:
        return "-c"

    def scope_to_directory(self, command: str, directory: str) -> str:
        return f"cd {shlex.quote(directory)} && {command}"
