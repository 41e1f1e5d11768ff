"""Configuration management for Turnspace."""

from .loader import ConfigLoader, load_config
from .schema import TurnspaceSettings

__all__ = ["ConfigLoader", "TurnspaceSettings", "load_config"]
