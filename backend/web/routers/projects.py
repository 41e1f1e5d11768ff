"""Project, turn, revert and file browsing endpoints."""

import asyncio
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.web.core.dependencies import get_build_pipeline, get_workspace_service
from backend.web.models.requests import CompileModeName, CreateProjectRequest, RevertRequest, TurnRequest
from backend.web.services.workspace_service import WorkspaceService
from pipeline.service import BuildPipeline

router = APIRouter(prefix="/api/projects", tags=["projects"])

Workspaces = Annotated[WorkspaceService, Depends(get_workspace_service)]


@router.post("")
async def create_project(payload: CreateProjectRequest | None = None, service: Workspaces = None) -> dict[str, Any]:
    project_id = payload.project_id if payload else None
    project = await asyncio.to_thread(service.create_project, project_id)
    return service.describe(project)


@router.get("")
async def list_projects(service: Workspaces = None) -> dict[str, Any]:
    projects = await asyncio.to_thread(service.list_projects)
    return {"projects": [p.to_dict(include_messages=False) for p in projects]}


@router.get("/{project_id}")
async def get_project(project_id: str, service: Workspaces = None) -> dict[str, Any]:
    project = await asyncio.to_thread(service.require_project, project_id)
    return service.describe(project)


@router.delete("/{project_id}")
async def delete_project(project_id: str, service: Workspaces = None) -> dict[str, Any]:
    deleted = await service.delete_project(project_id)
    return {"ok": deleted, "project_id": project_id}


@router.get("/{project_id}/structure")
async def get_structure(
    project_id: str,
    include_content: bool = Query(default=False),
    service: Workspaces = None,
) -> dict[str, Any]:
    nodes = await service.structure(project_id, include_content=include_content)
    return {"project_id": project_id, "structure": [n.to_dict() for n in nodes]}


@router.get("/{project_id}/files")
async def list_files(project_id: str, service: Workspaces = None) -> dict[str, Any]:
    records = await service.scan(project_id)
    return {"project_id": project_id, "files": [r.to_dict() for r in records]}


@router.get("/{project_id}/file")
async def read_file(project_id: str, path: str = Query(...), service: Workspaces = None) -> dict[str, Any]:
    try:
        content = await service.read_file(project_id, path)
    except IsADirectoryError as e:
        raise HTTPException(400, str(e)) from e
    return {"project_id": project_id, "path": path, "content": content}


@router.post("/{project_id}/turns")
async def record_turn(project_id: str, payload: TurnRequest, service: Workspaces = None) -> dict[str, Any]:
    """Apply a turn's file operations, snapshot them, and append its messages."""
    try:
        operations = payload.to_operations()
    except ValueError as e:
        raise HTTPException(400, str(e)) from e
    snapshot, saved = await service.record_turn(project_id, payload.message_id, payload.to_messages(), operations)
    return {
        "project_id": project_id,
        "message_id": payload.message_id,
        "snapshot": snapshot.snapshot_path if snapshot else None,
        "applied": len(snapshot.applied) if snapshot else 0,
        "messages": [m.to_dict() for m in saved],
    }


@router.post("/{project_id}/revert")
async def revert_project(project_id: str, payload: RevertRequest, service: Workspaces = None) -> dict[str, Any]:
    result = await service.revert_to(project_id, payload.message_id)
    return {"project_id": project_id, **result.to_dict()}


@router.get("/{project_id}/snapshots")
async def list_snapshots(project_id: str, service: Workspaces = None) -> dict[str, Any]:
    snapshots = await asyncio.to_thread(service.list_snapshots, project_id)
    return {"project_id": project_id, "snapshots": snapshots}


@router.get("/{project_id}/snapshots/{message_id}")
async def get_snapshot(project_id: str, message_id: str, service: Workspaces = None) -> dict[str, Any]:
    nodes = await service.snapshot_structure(project_id, message_id)
    return {"project_id": project_id, "message_id": message_id, "structure": [n.to_dict() for n in nodes]}


@router.get("/{project_id}/dist")
async def get_dist(
    project_id: str,
    mode: CompileModeName | None = Query(default=None),
    pipeline: Annotated[BuildPipeline, Depends(get_build_pipeline)] = None,
) -> dict[str, Any]:
    result = await pipeline.artifacts(project_id, mode=mode)
    return result.to_dict()


@router.delete("/{project_id}/dist")
async def clear_dist(
    project_id: str,
    mode: CompileModeName | None = Query(default=None),
    pipeline: Annotated[BuildPipeline, Depends(get_build_pipeline)] = None,
) -> dict[str, Any]:
    removed = await pipeline.clear_artifacts(project_id, mode=mode)
    return {"ok": True, "removed": removed}
