"""Path management for the pipewarden home directory.

Handles the ~/.pipewarden directory structure and path resolution.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

# Default directory name under user home
DEFAULT_HOME_DIR_NAME = ".pipewarden"

# Environment variable to override home directory
PIPEWARDEN_HOME_ENV = "PIPEWARDEN_HOME"


def get_pipewarden_home() -> Path:
    """Get the pipewarden home directory path.

    Resolution order:
    1. PIPEWARDEN_HOME environment variable (if set)
    2. ~/.pipewarden (default)

    Returns:
        Path to the pipewarden home directory.
    """
    env_home = os.environ.get(PIPEWARDEN_HOME_ENV)
    if env_home:
        return Path(env_home)
    return Path.home() / DEFAULT_HOME_DIR_NAME


@dataclass
class PipewardenPaths:
    """Manages paths within the pipewarden home directory.

    Directory structure:
        ~/.pipewarden/
            cache/
                deps/           - Dependency caches keyed by lock file hash
            config/             - Global configuration
    """

    home: Path

    _CACHE_DIR: ClassVar[str] = "cache"
    _CONFIG_DIR: ClassVar[str] = "config"

    @classmethod
    def default(cls) -> "PipewardenPaths":
        """Create paths from the default pipewarden home."""
        return cls(get_pipewarden_home())

    @property
    def cache_dir(self) -> Path:
        return self.home / self._CACHE_DIR

    @property
    def dependency_cache_dir(self) -> Path:
        """Directory for per-track dependency cache archives."""
        return self.cache_dir / "deps"

    @property
    def config_dir(self) -> Path:
        return self.home / self._CONFIG_DIR
