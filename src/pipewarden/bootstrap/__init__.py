"""Home directory layout for caches and global configuration."""

from pipewarden.bootstrap.paths import PipewardenPaths, get_pipewarden_home

__all__ = ["PipewardenPaths", "get_pipewarden_home"]
