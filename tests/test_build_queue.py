import asyncio

import pytest

from pipeline.queue import BuildQueue


@pytest.mark.asyncio
async def test_jobs_run_fifo_without_overlap():
    queue = BuildQueue()
    events = []
    running = 0
    max_running = 0

    def make_job(name, delay):
        async def job():
            nonlocal running, max_running
            running += 1
            max_running = max(max_running, running)
            events.append(f"start:{name}")
            await asyncio.sleep(delay)
            events.append(f"end:{name}")
            running -= 1

        return job

    await queue.enqueue(make_job("T1", 0.05), name="T1")
    await queue.enqueue(make_job("T2", 0.01), name="T2")
    await queue.enqueue(make_job("T3", 0.0), name="T3")
    await queue.join()

    assert events == ["start:T1", "end:T1", "start:T2", "end:T2", "start:T3", "end:T3"]
    assert max_running == 1
    await queue.close()


@pytest.mark.asyncio
async def test_failing_job_does_not_stall_queue(caplog):
    queue = BuildQueue()
    done = []

    async def boom():
        raise RuntimeError("kaput")

    async def ok():
        done.append("ok")

    await queue.enqueue(boom, name="boom")
    await queue.enqueue(ok, name="ok")
    await queue.join()

    assert done == ["ok"]
    assert "boom" in caplog.text
    await queue.close()


@pytest.mark.asyncio
async def test_status_reports_length_and_processing():
    queue = BuildQueue()
    gate = asyncio.Event()
    started = asyncio.Event()

    async def blocker():
        started.set()
        await gate.wait()

    async def noop():
        return None

    assert queue.status().to_dict() == {"queue_length": 0, "is_processing": False}

    await queue.enqueue(blocker)
    await queue.enqueue(noop)
    await started.wait()

    status = queue.status()
    assert status.is_processing is True
    assert status.queue_length == 1

    gate.set()
    await queue.join()
    assert queue.status().to_dict() == {"queue_length": 0, "is_processing": False}
    await queue.close()


@pytest.mark.asyncio
async def test_bounded_queue_applies_backpressure():
    queue = BuildQueue(maxsize=1)
    gate = asyncio.Event()
    order = []

    def make_job(name):
        async def job():
            await gate.wait()
            order.append(name)

        return job

    await queue.enqueue(make_job("a"))
    await asyncio.sleep(0)  # consumer takes "a"
    await queue.enqueue(make_job("b"))

    third = asyncio.create_task(queue.enqueue(make_job("c")))
    await asyncio.sleep(0.01)
    assert not third.done()

    gate.set()
    await third
    await queue.join()
    assert order == ["a", "b", "c"]
    await queue.close()
