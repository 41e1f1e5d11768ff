"""Application lifespan management."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from backend.web.services.workspace_service import WorkspaceService
from config.loader import load_config
from config.schema import TurnspaceSettings
from pipeline.executor import BuildExecutor
from pipeline.locks import WorkspaceLocks
from pipeline.logger import BuildLogger
from pipeline.queue import BuildQueue
from pipeline.runner import CommandRunner
from pipeline.service import BuildPipeline
from pipeline.streamer import CompileStreamer
from pipeline.targets import CompileTargetResolver
from storage.container import StorageContainer
from workspace.filesystem import WorkspaceFileSystem
from workspace.revert import RevertEngine
from workspace.snapshots import SnapshotManager

logger = logging.getLogger(__name__)


def build_services(app: FastAPI, settings: TurnspaceSettings) -> None:
    """Wire the core services onto ``app.state``."""
    storage = StorageContainer(settings.storage.db_path)
    fs = WorkspaceFileSystem(
        skip_names=settings.workspace.skip_names,
        image_extensions=settings.workspace.image_extensions,
    )
    snapshots = SnapshotManager(fs)
    projects = storage.project_repo()
    build_logger = BuildLogger(settings.storage.log_root)

    app.state.settings = settings
    app.state.storage = storage
    app.state.build_queue = BuildQueue(maxsize=settings.build.queue_maxsize)
    app.state.workspace_locks = WorkspaceLocks(enabled=settings.build.serialize_workspace)
    app.state.workspace_service = WorkspaceService(
        projects=projects,
        fs=fs,
        snapshots=snapshots,
        revert=RevertEngine(projects, snapshots),
        projects_root=settings.storage.projects_root,
    )
    app.state.build_pipeline = BuildPipeline(
        projects=projects,
        builds=storage.build_repo(),
        queue=app.state.build_queue,
        executor=BuildExecutor(build_logger, CommandRunner(timeout=settings.build.background_timeout)),
        streamer=CompileStreamer(CommandRunner(), timeout=settings.build.command_timeout),
        targets=CompileTargetResolver(settings.storage.compile_root, fs),
        locks=app.state.workspace_locks,
        build_logger=build_logger,
        compile_mode=settings.build.compile_mode,
    )
    app.state.compile_tasks = set()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown."""
    settings = getattr(app.state, "settings", None) or load_config(workspace_root=Path.cwd())
    build_services(app, settings)
    logger.info("Turnspace storage at %s", settings.storage.file_root)

    try:
        yield
    finally:
        # Cleanup: stop queue consumer and in-flight compiles
        await app.state.build_queue.close()
        for task in list(app.state.compile_tasks):
            task.cancel()
        app.state.storage.close()
