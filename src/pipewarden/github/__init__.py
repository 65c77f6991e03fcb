"""GitHub REST API access."""

from pipewarden.github.client import GitHubClient

__all__ = ["GitHubClient"]
