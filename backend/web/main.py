"""Turnspace Web Backend - FastAPI Application."""

import logging
import os
import subprocess

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend.web.core.config import DEFAULT_PORT, PORT_ENV, configure_logging
from backend.web.core.lifespan import lifespan
from backend.web.routers import builds, projects
from config.schema import TurnspaceSettings
from pipeline.errors import UnsupportedProjectError
from workspace.errors import PathTraversalError, ProjectNotFoundError

logger = logging.getLogger(__name__)

# Most specific class wins (handlers are looked up along the exception's MRO).
_ERROR_STATUS: dict[type[Exception], int] = {
    ValueError: 400,
    PathTraversalError: 400,
    IsADirectoryError: 400,
    ProjectNotFoundError: 404,
    FileNotFoundError: 404,
    FileExistsError: 409,
    UnsupportedProjectError: 422,
}


def _error_handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        logger.info("%s %s -> %d: %s", request.method, request.url.path, status_code, exc)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handle


def create_app(settings: TurnspaceSettings | None = None) -> FastAPI:
    app = FastAPI(title="Turnspace Web Backend", lifespan=lifespan)
    if settings is not None:
        # @@@settings-injection - lifespan loads config itself only when nothing was injected.
        app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    for exc_type, status_code in _ERROR_STATUS.items():
        app.add_exception_handler(exc_type, _error_handler(status_code))

    app.include_router(projects.router)
    app.include_router(builds.router)
    return app


def _resolve_port() -> int:
    """Resolve backend port: env var > git worktree config > default 8001."""
    port = os.environ.get(PORT_ENV) or os.environ.get("PORT")
    if port:
        return int(port)
    try:
        result = subprocess.run(
            ["git", "config", "--worktree", "--get", "worktree.ports.backend"],
            capture_output=True, text=True, timeout=3,
        )
        if result.returncode == 0 and result.stdout.strip():
            return int(result.stdout.strip())
    except (subprocess.TimeoutExpired, ValueError, FileNotFoundError):
        pass
    return DEFAULT_PORT


def run() -> None:
    from config.loader import load_config

    settings = load_config(workspace_root=os.getcwd())
    configure_logging(settings)
    # @@@module-launch-target - run the built app object; a factory string would reload config per worker.
    uvicorn.run(create_app(settings), host="0.0.0.0", port=_resolve_port())


if __name__ == "__main__":
    run()
