"""Release pipeline: build tracks, artifacts, publication."""

from pipewarden.release.artifacts import ArtifactStore
from pipewarden.release.cache import DependencyCache
from pipewarden.release.changelog import ChangelogBuilder
from pipewarden.release.coordinator import (
    ReleaseCoordinator,
    ReleaseRunResult,
    ReleaseStatus,
)
from pipewarden.release.publisher import PublishResult, ReleasePublisher
from pipewarden.release.tracks import BuildTrack, get_toolchain

__all__ = [
    "ArtifactStore",
    "DependencyCache",
    "ChangelogBuilder",
    "ReleaseCoordinator",
    "ReleaseRunResult",
    "ReleaseStatus",
    "PublishResult",
    "ReleasePublisher",
    "BuildTrack",
    "get_toolchain",
]
