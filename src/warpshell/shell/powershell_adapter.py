"""PowerShell adapter implementation."""

from __future__ import annotations

from .base import ShellAdapter


class PowerShellAdapter(ShellAdapter):
    """Adapter for command execution via ``powershell -Command``."""

    def __init__(self, executable: str | None = None) -> None:
        super().__init__(executable or "powershell")

    @property
    def name(self) -> str:
        return "powershell"

    @property
    def command_flag(self) -> str:
        return "-Command"

    def scope_to_directory(self, command: str, directory: str) -> str:
        quoted = directory.replace("'", "''")
        return f"cd '{quoted}'; {command}"
