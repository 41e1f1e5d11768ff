"""Layered runtime configuration loader.

Configuration priority (highest to lowest):
1. Explicit overrides (e.g. from ``create_app(overrides=...)`` or tests)
2. Environment variables: ``TURNSPACE__<GROUP>__<KEY>``
3. Project config (.turnspace/runtime.json in the working directory)
4. User config (~/.turnspace/runtime.json)
5. System defaults (config/defaults/runtime.json)
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from config.schema import TurnspaceSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "TURNSPACE__"
CONFIG_DIRNAME = ".turnspace"
CONFIG_FILENAME = "runtime.json"


class ConfigLoader:
    """Merges the configuration tiers into one TurnspaceSettings."""

    def __init__(
        self,
        workspace_root: str | Path | None = None,
        environ: Mapping[str, str] | None = None,
        user_home: str | Path | None = None,
    ):
        self.workspace_root = Path(workspace_root).resolve() if workspace_root else None
        self.environ = os.environ if environ is None else environ
        self.user_home = Path(user_home) if user_home else Path.home()
        self._system_defaults_dir = Path(__file__).parent / "defaults"

    def load(self, overrides: dict[str, Any] | None = None) -> TurnspaceSettings:
        final_config = self._deep_merge(
            self._load_system_defaults(),
            self._load_user_config(),
            self._load_project_config(),
            self._load_env_config(),
            overrides or {},
        )
        final_config = self._expand_env_vars(final_config)
        final_config = self._remove_none_values(final_config)
        return TurnspaceSettings(**final_config)

    # ── Tiers ──

    def _load_system_defaults(self) -> dict[str, Any]:
        return self._load_json(self._system_defaults_dir / CONFIG_FILENAME)

    def _load_user_config(self) -> dict[str, Any]:
        return self._load_json(self.user_home / CONFIG_DIRNAME / CONFIG_FILENAME)

    def _load_project_config(self) -> dict[str, Any]:
        if not self.workspace_root:
            return {}
        return self._load_json(self.workspace_root / CONFIG_DIRNAME / CONFIG_FILENAME)

    def _load_env_config(self) -> dict[str, Any]:
        """Fold ``TURNSPACE__BUILD__COMMAND_TIMEOUT=30`` into ``{"build": {"command_timeout": 30}}``."""
        result: dict[str, Any] = {}
        for name, raw in self.environ.items():
            if not name.startswith(ENV_PREFIX):
                continue
            parts = [p.lower() for p in name[len(ENV_PREFIX) :].split("__") if p]
            if len(parts) < 2:
                logger.warning("Ignoring %s: expected %s<GROUP>__<KEY>", name, ENV_PREFIX)
                continue
            node = result
            for part in parts[:-1]:
                node = node.setdefault(part, {})
            node[parts[-1]] = self._parse_env_value(raw)
        return result

    @staticmethod
    def _parse_env_value(raw: str) -> Any:
        # JSON literals (numbers, booleans, lists, null); anything else stays a string.
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return raw

    @staticmethod
    def _load_json(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Ignoring unreadable config %s: %s", path, e)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring config %s: top level must be an object", path)
            return {}
        return data

    # ── Internal helpers ──

    def _deep_merge(self, *dicts: dict[str, Any]) -> dict[str, Any]:
        """Deep merge multiple dictionaries. Later dicts override earlier ones."""
        result: dict[str, Any] = {}
        for d in dicts:
            for key, value in d.items():
                if key not in result:
                    result[key] = value
                elif isinstance(value, dict) and isinstance(result[key], dict):
                    result[key] = self._deep_merge(result[key], value)
                else:
                    result[key] = value
        return result

    def _expand_env_vars(self, obj: Any) -> Any:
        """Recursively expand ${VAR} and ~ in string values."""
        if isinstance(obj, dict):
            return {k: self._expand_env_vars(v) for k, v in obj.items()}
        if isinstance(obj, list):
            return [self._expand_env_vars(v) for v in obj]
        if isinstance(obj, str):
            return os.path.expandvars(os.path.expanduser(obj))
        return obj

    def _remove_none_values(self, obj: Any) -> Any:
        """Drop None leaves so Pydantic defaults apply, except for explicitly nullable keys."""
        if isinstance(obj, dict):
            return {
                k: self._remove_none_values(v)
                for k, v in obj.items()
                if v is not None or k in _NULLABLE_KEYS
            }
        if isinstance(obj, list):
            return [self._remove_none_values(v) for v in obj if v is not None]
        return obj


# A null here means "no timeout", not "use the default".
_NULLABLE_KEYS = frozenset({"command_timeout", "background_timeout"})


def load_config(
    workspace_root: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
) -> TurnspaceSettings:
    """Convenience function to load runtime configuration."""
    return ConfigLoader(workspace_root=workspace_root).load(overrides=overrides)
