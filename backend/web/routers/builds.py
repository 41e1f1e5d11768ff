"""Build endpoints: queued builds, log tail and streaming compile."""

import asyncio
import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from sse_starlette.sse import EventSourceResponse

from backend.web.core.config import EVENT_RETRY_MS, LOG_POLL_INTERVAL_SEC, SSE_HEADERS
from backend.web.core.dependencies import get_app, get_build_pipeline
from backend.web.models.requests import BuildRequest, CompileRequest
from pipeline.service import BuildPipeline
from pipeline.streamer import QueueChannel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/builds", tags=["builds"])

Pipeline = Annotated[BuildPipeline, Depends(get_build_pipeline)]


@router.post("")
async def create_build(payload: BuildRequest, pipeline: Pipeline = None) -> dict[str, Any]:
    """Queue a background install + build. Observe via GET /{build_id}/events."""
    record = await pipeline.background(payload.project_id, mode=payload.mode)
    return record.to_dict()


# @@@route-order - literal paths before /{build_id}
@router.get("/queue")
async def get_queue_status(app: Annotated[Any, Depends(get_app)] = None) -> dict[str, Any]:
    return app.state.build_queue.status().to_dict()


@router.get("/project/{project_id}")
async def list_project_builds(project_id: str, limit: int = 50, pipeline: Pipeline = None) -> dict[str, Any]:
    records = await asyncio.to_thread(pipeline.list_builds, project_id, limit)
    return {"project_id": project_id, "builds": [r.to_dict() for r in records]}


@router.post("/compile")
async def compile_project(
    payload: CompileRequest,
    pipeline: Pipeline = None,
    app: Annotated[Any, Depends(get_app)] = None,
) -> StreamingResponse:
    """Foreground install + build streamed as raw SSE frames, ending with [DONE]."""
    # Unknown project or missing package.json fail as plain HTTP errors before streaming starts.
    await asyncio.to_thread(pipeline.check_buildable, payload.project_id)

    channel = QueueChannel()
    task = asyncio.create_task(pipeline.foreground(payload.project_id, channel, mode=payload.mode))
    app.state.compile_tasks.add(task)
    task.add_done_callback(app.state.compile_tasks.discard)
    return StreamingResponse(channel, media_type="text/event-stream", headers=SSE_HEADERS)


@router.get("/{build_id}")
async def get_build(build_id: str, pipeline: Pipeline = None) -> dict[str, Any]:
    record = await asyncio.to_thread(pipeline.get_build, build_id)
    if record is None:
        raise HTTPException(404, f"Build not found: {build_id}")
    return record.to_dict()


@router.get("/{build_id}/logs")
async def get_build_logs(build_id: str, pipeline: Pipeline = None) -> dict[str, Any]:
    entries = await asyncio.to_thread(pipeline.build_logger.get_logs, build_id)
    return {"build_id": build_id, "logs": [e.to_dict() for e in entries]}


@router.get("/{build_id}/events")
async def stream_build_events(
    build_id: str,
    request: Request,
    after: int = 0,
    pipeline: Pipeline = None,
) -> EventSourceResponse:
    """SSE tail of a build's log until the build finishes.

    Supports reconnection via ``?after=N`` or ``Last-Event-ID`` header.
    """
    last_id = request.headers.get("Last-Event-ID")
    if last_id:
        try:
            after = max(after, int(last_id))
        except ValueError:
            pass

    if await asyncio.to_thread(pipeline.builds.get, build_id) is None:
        raise HTTPException(404, f"Build not found: {build_id}")

    async def _tail():
        yield {"retry": EVENT_RETRY_MS}
        cursor = after
        while True:
            # Status is read before logs: once finished, every entry is already on disk.
            record = await asyncio.to_thread(pipeline.builds.get, build_id)
            entries = await asyncio.to_thread(pipeline.build_logger.get_logs, build_id)
            for seq, entry in enumerate(entries[cursor:], start=cursor + 1):
                yield {"event": "log", "id": str(seq), "data": json.dumps(entry.to_dict())}
            cursor = max(cursor, len(entries))
            if record is None or record.finished:
                status = record.status if record else "unknown"
                yield {"event": "done", "data": json.dumps({"build_id": build_id, "status": status})}
                return
            if await request.is_disconnected():
                logger.debug("Client left build %s event stream", build_id)
                return
            await asyncio.sleep(LOG_POLL_INTERVAL_SEC)

    return EventSourceResponse(_tail(), headers=SSE_HEADERS)
