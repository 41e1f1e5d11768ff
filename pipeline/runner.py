"""Subprocess execution shared by queued builds and streaming compiles."""

from __future__ import annotations

import asyncio
import codecs
import inspect
import logging
import os
import signal
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pipeline.errors import CommandFailed, CommandTimeout

logger = logging.getLogger(__name__)

StreamName = Literal["stdout", "stderr"]
OutputCallback = Callable[[StreamName, str], Awaitable[None] | None]

_CHUNK_SIZE = 4096


@dataclass
class CommandResult:
    """Result of one shell command."""

    command: str
    exit_code: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.exit_code == 0 and not self.timed_out

    @property
    def output(self) -> str:
        """Combined output (stdout + stderr if present)."""
        if self.stderr:
            return f"{self.stdout}\n[stderr]\n{self.stderr}".strip()
        return self.stdout.strip()


class CommandRunner:
    """Runs shell commands in their own process group with line streaming.

    Args:
        timeout: Default timeout in seconds (None = no timeout)
    """

    def __init__(self, timeout: float | None = None):
        self.timeout = timeout

    async def run(
        self,
        command: str,
        cwd: str | Path,
        on_output: OutputCallback | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        limit = timeout if timeout is not None else self.timeout
        # OSError from spawning propagates to the caller.
        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
            start_new_session=True,
        )
        logger.debug("Started pid=%s in %s: %s", proc.pid, cwd, command)

        stdout_lines: list[str] = []
        stderr_lines: list[str] = []
        pumps = [
            asyncio.create_task(_pump(proc.stdout, "stdout", stdout_lines, on_output)),
            asyncio.create_task(_pump(proc.stderr, "stderr", stderr_lines, on_output)),
        ]

        timed_out = False
        try:
            async with asyncio.timeout(limit):
                await asyncio.gather(*pumps)
                await proc.wait()
        except TimeoutError:
            timed_out = True
            logger.warning("Command timed out after %ss, killing process group: %s", limit, command)
            _kill_tree(proc)
            await _cancel_all(pumps)
            await proc.wait()
        except BaseException:
            _kill_tree(proc)
            await _cancel_all(pumps)
            raise

        exit_code = proc.returncode if proc.returncode is not None else -1
        if timed_out:
            exit_code = -1
            stderr_lines.append(f"Command timed out after {limit}s")
        return CommandResult(
            command=command,
            exit_code=exit_code,
            stdout="\n".join(stdout_lines),
            stderr="\n".join(stderr_lines),
            timed_out=timed_out,
        )

    async def check(
        self,
        command: str,
        cwd: str | Path,
        on_output: OutputCallback | None = None,
        timeout: float | None = None,
    ) -> CommandResult:
        """Like :meth:`run`, but a failed, timed-out or unspawnable command raises."""
        try:
            result = await self.run(command, cwd, on_output=on_output, timeout=timeout)
        except OSError as e:
            raise CommandFailed(command, None, str(e)) from e
        if result.timed_out:
            raise CommandTimeout(command, timeout if timeout is not None else self.timeout, result.output)
        if result.exit_code != 0:
            raise CommandFailed(command, result.exit_code, result.output)
        return result


async def _pump(
    stream: asyncio.StreamReader | None,
    name: StreamName,
    sink: list[str],
    on_output: OutputCallback | None,
) -> None:
    if stream is None:
        return
    # @@@chunked-lines - readline() raises on very long lines, so split manually.
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    pending = ""
    while True:
        chunk = await stream.read(_CHUNK_SIZE)
        if not chunk:
            pending += decoder.decode(b"", final=True)
            break
        pending += decoder.decode(chunk)
        *lines, pending = pending.split("\n")
        for line in lines:
            await _emit(name, line.rstrip("\r"), sink, on_output)
    if pending:
        await _emit(name, pending.rstrip("\r"), sink, on_output)


async def _emit(name: StreamName, line: str, sink: list[str], on_output: OutputCallback | None) -> None:
    sink.append(line)
    if on_output is None:
        return
    maybe = on_output(name, line)
    if inspect.isawaitable(maybe):
        await maybe


def _kill_tree(proc: asyncio.subprocess.Process) -> None:
    if proc.returncode is not None:
        return
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        return
    except OSError:
        proc.kill()


async def _cancel_all(tasks: list[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)
