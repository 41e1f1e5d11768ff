"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, FastAPI, Request

from backend.web.services.workspace_service import WorkspaceService
from pipeline.service import BuildPipeline


async def get_app(request: Request) -> FastAPI:
    """Get FastAPI app instance from request."""
    return request.app


async def get_workspace_service(app: Annotated[FastAPI, Depends(get_app)]) -> WorkspaceService:
    return app.state.workspace_service


async def get_build_pipeline(app: Annotated[FastAPI, Depends(get_app)]) -> BuildPipeline:
    return app.state.build_pipeline
