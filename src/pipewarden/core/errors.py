"""Exception hierarchy for pipewarden."""

from __future__ import annotations

from typing import Optional


class PipewardenError(Exception):
    """Base class for all pipewarden errors."""


class ConfigError(PipewardenError):
    """Configuration loading or parsing error."""


class VersionParseError(PipewardenError, ValueError):
    """A string could not be parsed as a semantic version."""


class AnalysisError(PipewardenError):
    """The commit analysis tool failed to produce a result."""


class ReleaseInputError(PipewardenError, ValueError):
    """Operator-supplied release parameters are invalid."""


class TrackStateError(PipewardenError):
    """A build track attempted an illegal state transition."""


class BuildStepError(PipewardenError):
    """A required build step exited unsuccessfully."""


class ArtifactMissingError(PipewardenError):
    """An expected build artifact could not be located."""


class PublishError(PipewardenError):
    """Release publication failed."""


class NotificationError(PipewardenError):
    """A notification could not be delivered."""


class ToolNotFoundError(PipewardenError, FileNotFoundError):
    """An external tool binary is not available on PATH."""

    def __init__(self, tool: str, hint: str = "") -> None:
        message = f"{tool} not found in PATH"
        if hint:
            message = f"{message}. {hint}"
        super().__init__(message)
        self.tool = tool


class GitHubError(PipewardenError):
    """GitHub API request failed."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message if status is None else f"[{status}] {message}")
        self.status = status
