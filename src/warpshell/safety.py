"""Safety gate evaluated before any generated command reaches a shell."""

from __future__ import annotations

import os
from pathlib import PurePath

from warpshell.config import SafetyConfig
from warpshell.errors import DirectoryNotAllowedError, UnsafeCommandError

WILDCARD_MARKER = "*"


class SafetyPolicy:
    """Pure predicates over command text and directory strings."""

    def __init__(self, config: SafetyConfig) -> None:
        self.config = config
        self._patterns = tuple(
            pattern.lower() for pattern in config.dangerous_patterns if pattern
        )

    def is_dangerous(self, command: str) -> bool:
        if not self.config.enabled:
            return False
        command_lower = command.lower()
        return any(pattern in command_lower for pattern in self._patterns)

    def is_directory_allowed(self, directory: str) -> bool:
        allowed_entries = self.config.allowed_directories
        if not allowed_entries:
            return True

        directory_path = PurePath(directory)
        for allowed in allowed_entries:
            if WILDCARD_MARKER in allowed:
                return True
            if directory.startswith(allowed):
                return True
            for candidate in {allowed, os.path.expanduser(allowed)}:
                if _is_path_prefix(directory_path, candidate):
                    return True
        return False

    def check(self, command: str, *, directory: str | None = None) -> None:
        """Raise a refusal error when the command or directory fails the gate."""
        if self.is_dangerous(command):
            raise UnsafeCommandError(command)
        if directory is not None and not self.is_directory_allowed(directory):
            raise DirectoryNotAllowedError(directory)


def _is_path_prefix(directory: PurePath, allowed: str) -> bool:
    try:
        return directory.is_relative_to(PurePath(allowed))
    except (TypeError, ValueError):
        return False
