"""Storage container: composition root for storage repos."""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from .contracts import BuildRepo, ProjectRepo

StorageStrategy = Literal["sqlite"]


class StorageContainer:
    """Builds repos for one strategy and caches them for the process lifetime."""

    _SUPPORTED_STRATEGIES = {"sqlite"}

    def __init__(
        self,
        main_db_path: str | Path | None = None,
        strategy: StorageStrategy = "sqlite",
    ) -> None:
        if strategy not in self._SUPPORTED_STRATEGIES:
            raise ValueError(
                f"Unsupported storage strategy: {strategy}. "
                f"Supported strategies: {', '.join(sorted(self._SUPPORTED_STRATEGIES))}"
            )
        self._main_db = Path(main_db_path) if main_db_path else Path.home() / ".turnspace" / "turnspace.db"
        self._strategy: StorageStrategy = strategy
        self._project_repo: ProjectRepo | None = None
        self._build_repo: BuildRepo | None = None

    @property
    def db_path(self) -> Path:
        return self._main_db

    def project_repo(self) -> ProjectRepo:
        if self._project_repo is None:
            from .providers.sqlite.project_repo import SQLiteProjectRepo

            self._project_repo = SQLiteProjectRepo(self._main_db)
        return self._project_repo

    def build_repo(self) -> BuildRepo:
        if self._build_repo is None:
            from .providers.sqlite.build_repo import SQLiteBuildRepo

            self._build_repo = SQLiteBuildRepo(self._main_db)
        return self._build_repo

    def close(self) -> None:
        for repo in (self._project_repo, self._build_repo):
            if repo is not None:
                repo.close()
        self._project_repo = None
        self._build_repo = None
