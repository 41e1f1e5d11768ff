"""BuildPipeline: one facade over queued (background) and streamed (foreground) builds."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from pipeline.commands import read_package_json
from pipeline.executor import BuildExecutor
from pipeline.locks import WorkspaceLocks
from pipeline.logger import BuildLogger
from pipeline.queue import BuildQueue
from pipeline.streamer import DONE, CompileOutcome, CompileStreamer, StreamChannel, sse_frame
from pipeline.targets import CompileMode, CompileTargetResolver, PublishResult
from storage.contracts import BuildRepo, ProjectRepo
from storage.models import BuildTaskRecord, Message, ProjectRecord
from workspace.errors import ProjectNotFoundError

logger = logging.getLogger(__name__)


def new_build_id() -> str:
    return f"build-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def _now() -> datetime:
    return datetime.now(UTC)


@dataclass
class SideEffectResult:
    """Outcome of a best-effort step the caller may inspect or ignore."""

    ok: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"ok": self.ok, "error": self.error}


@dataclass
class ForegroundResult:
    outcome: CompileOutcome
    transcript: SideEffectResult
    target_path: str | None = None


class BuildPipeline:
    """Background builds go through BuildQueue and BuildLogger; foreground
    compiles stream frames directly. Both share command resolution and
    CommandRunner, and both hold the per-workspace lock while running.
    """

    def __init__(
        self,
        *,
        projects: ProjectRepo,
        builds: BuildRepo,
        queue: BuildQueue,
        executor: BuildExecutor,
        streamer: CompileStreamer,
        targets: CompileTargetResolver,
        locks: WorkspaceLocks,
        build_logger: BuildLogger,
        compile_mode: CompileMode | str = CompileMode.IN_PLACE,
    ):
        self.projects = projects
        self.builds = builds
        self.queue = queue
        self.executor = executor
        self.streamer = streamer
        self.targets = targets
        self.locks = locks
        self.build_logger = build_logger
        self.compile_mode = CompileMode(compile_mode)

    def _require_project(self, project_id: str) -> ProjectRecord:
        project = self.projects.get_project(project_id)
        if project is None:
            raise ProjectNotFoundError(project_id)
        return project

    # ------------------------------------------------------------------
    # Background mode
    # ------------------------------------------------------------------

    async def background(self, project_id: str, mode: CompileMode | str | None = None) -> BuildTaskRecord:
        """Record and enqueue a build. The target directory is prepared later, under the workspace lock."""
        compile_mode = CompileMode(mode or self.compile_mode)
        project = await asyncio.to_thread(self._require_project, project_id)
        build_id = new_build_id()
        await asyncio.to_thread(self.builds.create, BuildTaskRecord(id=build_id, project_id=project_id))
        # Marked queued before enqueue so the consumer's "building" update always lands last.
        record = await asyncio.to_thread(self.builds.update, build_id, status="queued")

        async def job() -> None:
            await self._run_background(build_id, project, compile_mode)

        try:
            await self.queue.enqueue(job, name=build_id)
        except BaseException as e:
            await asyncio.to_thread(self._mark_failed, build_id, f"Not queued: {e!r}")
            raise
        logger.info("Queued build %s for project %s (%s)", build_id, project_id, compile_mode)
        return record

    async def _run_background(self, build_id: str, project: ProjectRecord, mode: CompileMode) -> None:
        async with self.locks.hold(project.project_id):
            try:
                build_dir = await asyncio.to_thread(self.targets.resolve, project, mode)
            except Exception as e:
                await asyncio.to_thread(self.build_logger.log, build_id, "error", f"Build failed: {e}")
                await asyncio.to_thread(self._mark_failed, build_id, str(e))
                raise
            await asyncio.to_thread(
                self.builds.update, build_id, status="building", build_dir=str(build_dir), start_time=_now()
            )
            try:
                await self.executor.execute(build_dir, build_id)
            except Exception as e:
                await asyncio.to_thread(self._mark_failed, build_id, str(e))
                raise
            await asyncio.to_thread(self.builds.update, build_id, status="success", end_time=_now())
            logger.info("Build %s succeeded", build_id)

    def _mark_failed(self, build_id: str, error: str) -> None:
        self.builds.update(build_id, status="failed", error=error, end_time=_now())

    def get_build(self, build_id: str) -> BuildTaskRecord | None:
        record = self.builds.get(build_id)
        if record is None:
            return None
        record.logs = [entry.to_dict() for entry in self.build_logger.get_logs(build_id)]
        return record

    def list_builds(self, project_id: str, limit: int = 50) -> list[BuildTaskRecord]:
        return self.builds.list_for_project(project_id, limit=limit)

    # ------------------------------------------------------------------
    # Foreground mode
    # ------------------------------------------------------------------

    def check_buildable(self, project_id: str) -> ProjectRecord:
        """Fail fast (before any streaming) when the project cannot be built."""
        project = self._require_project(project_id)
        read_package_json(project.development_path)
        return project

    async def foreground(
        self,
        project_id: str,
        channel: StreamChannel,
        mode: CompileMode | str | None = None,
    ) -> ForegroundResult:
        project = await asyncio.to_thread(self._require_project, project_id)
        async with self.locks.hold(project_id):
            try:
                target = await asyncio.to_thread(self.targets.resolve, project, mode or self.compile_mode)
            except Exception as e:
                logger.exception("Could not prepare compile target for %s", project_id)
                channel.push(sse_frame(f"Compile error: {e}"))
                channel.push(sse_frame(DONE))
                channel.close()
                outcome = CompileOutcome(success=False, output=f"Compile error: {e}")
                return ForegroundResult(outcome=outcome, transcript=await self._record_transcript(project_id, outcome))
            outcome = await self.streamer.compile(target, channel)

        transcript = await self._record_transcript(project_id, outcome)
        return ForegroundResult(outcome=outcome, transcript=transcript, target_path=str(target))

    async def _record_transcript(self, project_id: str, outcome: CompileOutcome) -> SideEffectResult:
        message = Message(
            message_id=f"compile-{uuid.uuid4().hex[:12]}",
            role="system",
            content=outcome.output or "(no output)",
            type="compile",
        )
        try:
            await asyncio.to_thread(self.projects.append_messages, project_id, [message])
        except Exception as e:
            logger.warning("Failed to record compile transcript for %s: %s", project_id, e)
            return SideEffectResult(ok=False, error=str(e))
        return SideEffectResult(ok=True)

    # ------------------------------------------------------------------
    # Build output
    # ------------------------------------------------------------------

    async def artifacts(self, project_id: str, mode: CompileMode | str | None = None) -> PublishResult:
        """Collected ``dist`` of the directory builds in *mode* run in (default: the configured mode)."""
        project = await asyncio.to_thread(self._require_project, project_id)
        target = self.targets.output_path(project, mode or self.compile_mode)
        files = await asyncio.to_thread(self.targets.collect_dist, target)
        return PublishResult(project_id=project_id, files=files)

    async def clear_artifacts(self, project_id: str, mode: CompileMode | str | None = None) -> bool:
        project = await asyncio.to_thread(self._require_project, project_id)
        target = self.targets.output_path(project, mode or self.compile_mode)
        return await asyncio.to_thread(self.targets.clear_dist, target)
