"""Install + build for one queued build, recorded through BuildLogger."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

from pipeline.commands import get_build_commands
from pipeline.errors import BuildError, CommandFailed
from pipeline.logger import BuildLogger, LogLevel
from pipeline.runner import CommandResult, CommandRunner


class BuildExecutor:
    def __init__(self, logger: BuildLogger, runner: CommandRunner):
        self.logger = logger
        self.runner = runner

    async def execute(self, build_dir: str | Path, build_id: str) -> list[CommandResult]:
        """Run install then build in *build_dir*.

        Failures are logged as an error entry and re-raised for the queue to handle.
        """
        await self._log(build_id, "info", "Build started", {"build_dir": str(build_dir)})
        results: list[CommandResult] = []
        try:
            commands = await asyncio.to_thread(get_build_commands, build_dir)
            await self._log(
                build_id,
                "info",
                f"Using {commands.package_manager}",
                {"install": commands.install, "build": commands.build},
            )
            for command in commands.steps():
                results.append(await self._run_step(build_dir, build_id, command))
        except BuildError as e:
            details = {"output": e.output} if isinstance(e, CommandFailed) else {}
            await self._log(build_id, "error", f"Build failed: {e}", details)
            raise
        await self._log(build_id, "info", "Build finished")
        return results

    async def _run_step(self, build_dir: str | Path, build_id: str, command: str) -> CommandResult:
        await self._log(build_id, "info", f"Running: {command}")
        result = await self.runner.check(command, build_dir)
        await self._log(
            build_id,
            "info",
            f"Completed: {command}",
            {"stdout": result.stdout, "stderr": result.stderr},
        )
        return result

    async def _log(self, build_id: str, level: LogLevel, message: str, details: dict[str, Any] | None = None) -> None:
        # File appends stay off the event loop.
        await asyncio.to_thread(self.logger.log, build_id, level, message, details)
