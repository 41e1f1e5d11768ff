"""Build orchestration: queued background builds and streamed foreground compiles."""

from .commands import BuildCommands, detect_package_manager, get_build_commands
from .errors import BuildError, CommandFailed, CommandTimeout, UnsupportedProjectError
from .executor import BuildExecutor
from .locks import WorkspaceLocks
from .logger import BuildLogger, LogEntry
from .queue import BuildQueue, QueueStatus
from .runner import CommandResult, CommandRunner
from .service import BuildPipeline, ForegroundResult, SideEffectResult
from .streamer import CompileOutcome, CompileStreamer, QueueChannel
from .targets import CompileMode, CompileTargetResolver, PublishResult

__all__ = [
    "BuildCommands",
    "detect_package_manager",
    "get_build_commands",
    "BuildError",
    "CommandFailed",
    "CommandTimeout",
    "UnsupportedProjectError",
    "BuildExecutor",
    "WorkspaceLocks",
    "BuildLogger",
    "LogEntry",
    "BuildQueue",
    "QueueStatus",
    "CommandResult",
    "CommandRunner",
    "BuildPipeline",
    "ForegroundResult",
    "SideEffectResult",
    "CompileOutcome",
    "CompileStreamer",
    "QueueChannel",
    "CompileMode",
    "CompileTargetResolver",
    "PublishResult",
]
