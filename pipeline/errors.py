"""Build pipeline error taxonomy."""

from __future__ import annotations


class BuildError(Exception):
    """Base class for install/build failures."""


class UnsupportedProjectError(BuildError):
    """The directory has no usable package.json."""


class CommandFailed(BuildError):
    def __init__(self, command: str, exit_code: int | None, output: str = "") -> None:
        detail = f"exit code {exit_code}" if exit_code is not None else "could not start"
        super().__init__(f"Command failed ({detail}): {command}")
        self.command = command
        self.exit_code = exit_code
        self.output = output


class CommandTimeout(CommandFailed):
    def __init__(self, command: str, timeout: float, output: str = "") -> None:
        BuildError.__init__(self, f"Command timed out after {timeout}s: {command}")
        self.command = command
        self.exit_code = None
        self.output = output
        self.timeout = timeout
