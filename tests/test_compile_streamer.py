"""Foreground compile frame protocol."""

import asyncio
import json

import pytest

from pipeline.commands import BuildCommands
from pipeline.runner import CommandRunner
from pipeline.streamer import (
    COMMAND_END,
    COMMAND_FAILED,
    COMMAND_START,
    CompileStreamer,
    QueueChannel,
    control_frame,
    sse_frame,
)


class RecordingChannel:
    def __init__(self):
        self.chunks = []
        self.close_calls = 0

    def push(self, chunk):
        self.chunks.append(chunk)

    def close(self):
        self.close_calls += 1


def _compile(target, commands=None, timeout=60.0):
    channel = RecordingChannel()
    streamer = CompileStreamer(CommandRunner(), timeout=timeout)
    outcome = asyncio.run(streamer.compile(target, channel, commands=commands))
    return outcome, channel


def test_successful_pipeline_frames(tmp_path):
    commands = BuildCommands("npm", "echo installing", "echo building; echo; echo done")

    outcome, channel = _compile(tmp_path, commands)

    assert outcome.success
    assert outcome.failed_command is None
    assert channel.chunks == [
        control_frame(COMMAND_START, "echo installing"),
        sse_frame("installing"),
        control_frame(COMMAND_END, "echo installing"),
        control_frame(COMMAND_START, "echo building; echo; echo done"),
        sse_frame("building"),
        sse_frame("done"),
        control_frame(COMMAND_END, "echo building; echo; echo done"),
        "data: [DONE]\n\n",
    ]
    assert channel.close_calls == 1
    assert outcome.output == "installing\nbuilding\ndone"


def test_failed_build_marks_only_build(tmp_path):
    commands = BuildCommands("npm", "echo ok", "exit 1")

    outcome, channel = _compile(tmp_path, commands)

    assert not outcome.success
    assert outcome.failed_command == "exit 1"
    assert control_frame(COMMAND_END, "echo ok") in channel.chunks
    assert control_frame(COMMAND_FAILED, "echo ok") not in channel.chunks
    assert control_frame(COMMAND_FAILED, "exit 1") in channel.chunks
    assert channel.chunks[-1] == "data: [DONE]\n\n"
    assert channel.close_calls == 1


def test_failed_install_skips_build(tmp_path):
    commands = BuildCommands("npm", "echo broken 1>&2; exit 7", "echo should-not-run")

    outcome, channel = _compile(tmp_path, commands)

    assert outcome.failed_command == "echo broken 1>&2; exit 7"
    assert sse_frame("broken") in channel.chunks
    assert not any("should-not-run" in c for c in channel.chunks)
    assert [s.command for s in outcome.steps] == ["echo broken 1>&2; exit 7"]


def test_timeout_is_a_failure(tmp_path):
    commands = BuildCommands("npm", "sleep 5", "echo never")

    outcome, channel = _compile(tmp_path, commands, timeout=0.2)

    assert not outcome.success
    assert outcome.steps[0].timed_out
    assert control_frame(COMMAND_FAILED, "sleep 5") in channel.chunks
    assert channel.chunks[-1] == "data: [DONE]\n\n"


def test_spawn_failure_is_a_failure(tmp_path):
    commands = BuildCommands("npm", "echo hi", "echo build")

    outcome, channel = _compile(tmp_path / "missing", commands)

    assert not outcome.success
    assert outcome.failed_command == "echo hi"
    assert control_frame(COMMAND_FAILED, "echo hi") in channel.chunks
    assert channel.chunks[-1] == "data: [DONE]\n\n"


def test_unresolvable_commands_finish_with_done(tmp_path):
    outcome, channel = _compile(tmp_path)

    assert not outcome.success
    assert len(channel.chunks) == 2
    assert "package.json" in channel.chunks[0]
    assert channel.chunks[-1] == "data: [DONE]\n\n"
    assert channel.close_calls == 1


def test_commands_resolved_from_package_json(tmp_path, monkeypatch):
    (tmp_path / "package.json").write_text(json.dumps({"scripts": {"build": "x"}}))
    monkeypatch.setattr(
        "pipeline.streamer.get_build_commands",
        lambda target: BuildCommands("npm", "echo i", "echo b"),
    )

    outcome, channel = _compile(tmp_path)

    assert outcome.success
    assert channel.chunks[0] == control_frame(COMMAND_START, "echo i")


@pytest.mark.asyncio
async def test_queue_channel_iterates_until_closed():
    channel = QueueChannel()
    channel.push("a")
    channel.push("b")
    channel.close()
    channel.close()

    assert [chunk async for chunk in channel] == ["a", "b"]
    assert channel.closed
    with pytest.raises(RuntimeError):
        channel.push("c")
