import asyncio
import time

import pytest

from pipeline.errors import CommandFailed, CommandTimeout
from pipeline.runner import CommandRunner


def test_run_captures_lines_and_exit_code(tmp_path):
    seen = []

    async def _run():
        runner = CommandRunner()
        return await runner.run(
            "echo one; echo two; echo oops 1>&2; exit 3",
            tmp_path,
            on_output=lambda stream, line: seen.append((stream, line)),
        )

    result = asyncio.run(_run())

    assert result.exit_code == 3
    assert not result.success
    assert result.stdout == "one\ntwo"
    assert result.stderr == "oops"
    assert ("stdout", "one") in seen
    assert ("stderr", "oops") in seen
    assert [line for stream, line in seen if stream == "stdout"] == ["one", "two"]


def test_run_uses_cwd(tmp_path):
    result = asyncio.run(CommandRunner().run("pwd", tmp_path))

    assert result.success
    assert result.stdout.strip().endswith(tmp_path.name)


def test_async_callback_is_awaited(tmp_path):
    seen = []

    async def on_output(stream, line):
        await asyncio.sleep(0)
        seen.append(line)

    asyncio.run(CommandRunner().run("printf 'a\\nb'", tmp_path, on_output=on_output))

    assert seen == ["a", "b"]


def test_timeout_kills_process_group(tmp_path):
    async def _run():
        return await CommandRunner(timeout=0.3).run("sleep 5 & sleep 5; echo never", tmp_path)

    started = time.monotonic()
    result = asyncio.run(_run())

    assert result.timed_out
    assert result.exit_code == -1
    assert "never" not in result.stdout
    assert time.monotonic() - started < 4


def test_check_raises(tmp_path):
    runner = CommandRunner()

    with pytest.raises(CommandFailed) as exc_info:
        asyncio.run(runner.check("echo bad; exit 2", tmp_path))
    assert exc_info.value.exit_code == 2
    assert "bad" in exc_info.value.output

    with pytest.raises(CommandTimeout):
        asyncio.run(runner.check("sleep 5", tmp_path, timeout=0.2))

    assert asyncio.run(runner.check("true", tmp_path)).success


def test_spawn_error_propagates(tmp_path):
    missing = tmp_path / "does-not-exist"

    with pytest.raises(OSError):
        asyncio.run(CommandRunner().run("echo hi", missing))

    with pytest.raises(CommandFailed) as exc_info:
        asyncio.run(CommandRunner().check("echo hi", missing))
    assert exc_info.value.exit_code is None
