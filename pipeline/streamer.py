"""Foreground install + build whose output is pushed live as SSE frames.

Frame protocol (each frame is ``data: <payload>\\n\\n``)::

    <COMMAND-START>npm install<COMMAND-START>
    ...one frame per non-blank output line...
    <COMMAND-END>npm install<COMMAND-END>        zero exit
    <COMMAND-FAILED>npm run build<COMMAND-FAILED> non-zero exit, timeout or spawn error
    [DONE]                                        always last
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from pipeline.commands import BuildCommands, get_build_commands
from pipeline.errors import UnsupportedProjectError
from pipeline.runner import CommandResult, CommandRunner, StreamName

logger = logging.getLogger(__name__)

COMMAND_START = "<COMMAND-START>"
COMMAND_END = "<COMMAND-END>"
COMMAND_FAILED = "<COMMAND-FAILED>"
DONE = "[DONE]"

DEFAULT_COMMAND_TIMEOUT = 60.0


def sse_frame(payload: str) -> str:
    return f"data: {payload}\n\n"


def control_frame(token: str, command: str) -> str:
    return sse_frame(f"{token}{command}{token}")


class StreamChannel(Protocol):
    def push(self, chunk: str) -> None: ...

    def close(self) -> None: ...


_CLOSED = object()


class QueueChannel:
    """Push/close channel backed by an unbounded asyncio.Queue.

    Iterating yields pushed chunks until the channel is closed.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, chunk: str) -> None:
        if self._closed:
            raise RuntimeError("push() on a closed channel")
        self._queue.put_nowait(chunk)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[str]:
        return self._iter()

    async def _iter(self) -> AsyncIterator[str]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item


@dataclass
class CompileOutcome:
    success: bool
    failed_command: str | None = None
    output: str = ""
    steps: list[CommandResult] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "failed_command": self.failed_command,
            "steps": [{"command": s.command, "exit_code": s.exit_code, "timed_out": s.timed_out} for s in self.steps],
        }


class CompileStreamer:
    def __init__(self, runner: CommandRunner, timeout: float | None = DEFAULT_COMMAND_TIMEOUT):
        self.runner = runner
        self.timeout = timeout

    async def compile(
        self,
        target_path: str | Path,
        channel: StreamChannel,
        commands: BuildCommands | None = None,
    ) -> CompileOutcome:
        """Run install then build in *target_path*, streaming frames into *channel*.

        Never raises for pipeline failures; the channel always receives
        ``[DONE]`` and is closed exactly once.
        """
        transcript: list[str] = []
        steps: list[CommandResult] = []
        failed_command: str | None = None
        success = False

        def push_line(line: str) -> None:
            if not line.strip():
                return
            transcript.append(line)
            channel.push(sse_frame(line))

        def on_output(_stream: StreamName, line: str) -> None:
            push_line(line)

        current: str | None = None
        try:
            if commands is None:
                commands = get_build_commands(target_path)
            for command in commands.steps():
                current = command
                channel.push(control_frame(COMMAND_START, command))
                try:
                    result = await self.runner.run(command, target_path, on_output=on_output, timeout=self.timeout)
                except OSError as e:
                    push_line(f"Failed to start {command}: {e}")
                    failed_command = command
                    break
                steps.append(result)
                if not result.success:
                    if result.timed_out:
                        push_line(f"Command timed out after {self.timeout}s")
                    failed_command = command
                    break
                channel.push(control_frame(COMMAND_END, command))
            else:
                success = True
            if failed_command is not None:
                channel.push(control_frame(COMMAND_FAILED, failed_command))
        except UnsupportedProjectError as e:
            push_line(str(e))
        except Exception as e:
            logger.exception("Compile of %s failed unexpectedly", target_path)
            push_line(f"Compile error: {e}")
            if current is not None:
                failed_command = current
                channel.push(control_frame(COMMAND_FAILED, current))
        finally:
            channel.push(sse_frame(DONE))
            channel.close()

        return CompileOutcome(
            success=success,
            failed_command=failed_command,
            output="\n".join(transcript),
            steps=steps,
        )
