"""Release pipeline coordinator.

Control flow is a fan-out from a single release decision to the component
build tracks, followed by a barrier before publication::

    determine_version -> [rust, python, go, typescript] -> publish -> notify
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from pathlib import Path
from typing import List, Optional

from pipewarden.bootstrap.paths import PipewardenPaths
from pipewarden.config.models import PipewardenConfig
from pipewarden.core.errors import ArtifactMissingError, PublishError
from pipewarden.core.logging import get_logger
from pipewarden.core.models import (
    ALL_COMPONENTS,
    Component,
    ReleaseDecision,
    TrackResult,
    TrackState,
    TriggerContext,
)
from pipewarden.core.parallel import ParallelExecutor
from pipewarden.github.client import GitHubClient
from pipewarden.notify.base import Notifier, NullNotifier, notify_safely
from pipewarden.release.artifacts import ArtifactStore
from pipewarden.release.cache import DependencyCache
from pipewarden.release.changelog import ChangelogBuilder
from pipewarden.release.publisher import PublishResult, ReleasePublisher
from pipewarden.release.tracks import BuildTrack, get_toolchain
from pipewarden.versioning.commits import get_analyzer
from pipewarden.versioning.resolver import VersionResolver

LOGGER = get_logger(__name__)


class ReleaseStatus(str, Enum):
    NO_RELEASE = "no_release"
    PUBLISHED = "published"
    TRACK_FAILED = "track_failed"
    PUBLISH_FAILED = "publish_failed"


@dataclass
class ReleaseRunResult:
    """Outcome of one release pipeline run."""

    decision: ReleaseDecision
    status: ReleaseStatus
    tracks: List[TrackResult] = field(default_factory=list)
    publish: Optional[PublishResult] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.status in (ReleaseStatus.NO_RELEASE, ReleaseStatus.PUBLISHED)

    @property
    def release_url(self) -> str:
        return self.publish.release_url if self.publish else ""


def enabled_components(config: PipewardenConfig) -> List[Component]:
    return [c for c in ALL_COMPONENTS if config.release.get_component(c.value).enabled]


class ReleaseCoordinator:
    """Runs version resolution, build tracks, publication and notification."""

    def __init__(
        self,
        config: PipewardenConfig,
        project_root: Path,
        resolver: Optional[VersionResolver] = None,
        notifier: Optional[Notifier] = None,
        github: Optional[GitHubClient] = None,
        publisher: Optional[ReleasePublisher] = None,
        dry_run: bool = False,
    ) -> None:
        self._config = config
        self._project_root = project_root
        self._resolver = resolver or VersionResolver(
            project_root,
            analyzer=get_analyzer(config.release.analyzer),
            pre_release_markers=config.release.pre_release_markers,
        )
        self._notifier = notifier or NullNotifier()
        self._github = github or GitHubClient(config.github.token, api_url=config.github.api_url)
        self._publisher = publisher
        self._dry_run = dry_run
        self.store = ArtifactStore(project_root / config.release.download_dir, config.product)

    def determine_version(self, trigger: TriggerContext) -> ReleaseDecision:
        """Resolve the single release decision for this run."""
        return self._resolver.resolve(trigger)

    def make_track(self, component: Component) -> BuildTrack:
        release = self._config.release
        cache: Optional[DependencyCache] = None
        if release.cache.enabled:
            cache_dir = release.cache.directory or PipewardenPaths.default().dependency_cache_dir
            cache = DependencyCache(cache_dir, self._project_root)
        return BuildTrack(
            get_toolchain(component),
            project_root=self._project_root,
            store=self.store,
            artifacts_dir=self._project_root / release.artifacts_dir,
            product=self._config.product,
            overrides=release.get_component(component.value),
            cache=cache,
        )

    def build_tracks(self, decision: ReleaseDecision) -> List[TrackResult]:
        """Run every enabled track and wait for all of them."""
        tracks = [self.make_track(c) for c in enabled_components(self._config)]
        if not decision.should_release:
            LOGGER.info("Release type is none, skipping all build tracks")
            return [track.run(decision) for track in tracks]

        executor = ParallelExecutor(
            max_workers=self._config.release.max_workers,
            sequential=self._config.release.sequential,
        )
        return executor.run(
            [(track.component.value, partial(track.run, decision)) for track in tracks],
            on_error=lambda name, e: TrackResult(
                component=Component(name), state=TrackState.FAILED, error=str(e)
            ),
        )

    def run(self, trigger: TriggerContext) -> ReleaseRunResult:
        """Execute the release pipeline for a trigger.

        Raises:
            ReleaseInputError: If manual inputs are invalid.
            AnalysisError: If commit analysis fails.
        """
        decision = self.determine_version(trigger)
        tracks = self.build_tracks(decision)

        if not decision.should_release:
            return ReleaseRunResult(decision=decision, status=ReleaseStatus.NO_RELEASE, tracks=tracks)

        failed = [t for t in tracks if not t.succeeded]
        if failed:
            names = ", ".join(t.component.value for t in failed)
            LOGGER.error(f"Build tracks failed: {names}. Release will not be published.")
            self._notify_failure(trigger)
            return ReleaseRunResult(
                decision=decision,
                status=ReleaseStatus.TRACK_FAILED,
                tracks=tracks,
                error=f"Build tracks failed: {names}",
            )

        try:
            published = self.publish(decision, trigger)
        except (ArtifactMissingError, PublishError) as e:
            return ReleaseRunResult(
                decision=decision,
                status=ReleaseStatus.PUBLISH_FAILED,
                tracks=tracks,
                error=str(e),
            )

        return ReleaseRunResult(
            decision=decision,
            status=ReleaseStatus.PUBLISHED,
            tracks=tracks,
            publish=published,
        )

    def publish(self, decision: ReleaseDecision, trigger: TriggerContext) -> PublishResult:
        """Publish previously built artifacts for a decision.

        Sends the success notification, or the failure notification before
        re-raising.

        Raises:
            ArtifactMissingError: If any component archive is missing.
            PublishError: If publication fails.
        """
        try:
            published = self._publish(decision, trigger)
        except (ArtifactMissingError, PublishError) as e:
            LOGGER.error(f"Release publication failed: {e}")
            self._notify_failure(trigger)
            raise
        except (OSError, ValueError) as e:
            LOGGER.error(f"Release publication failed: {e}")
            self._notify_failure(trigger)
            raise PublishError(f"Release publication failed: {e}") from e
        self._notify_success(decision, trigger)
        return published

    def _publish(self, decision: ReleaseDecision, trigger: TriggerContext) -> PublishResult:
        release = self._config.release
        artifacts = self.store.download_all(decision.new_version, enabled_components(self._config))

        builder = ChangelogBuilder(self._config.display_name)
        report = self._resolver.last_report
        if report is not None:
            changelog = builder.build(decision, report)
        else:
            changelog = builder.regenerate(
                decision,
                get_analyzer(release.analyzer),
                self._project_root,
                release.pre_release_markers,
            )
        changelog_path = self._project_root / release.artifacts_dir / "changelog.md"
        try:
            builder.write(changelog, changelog_path)
        except OSError as e:
            raise PublishError(f"Writing changelog {changelog_path} failed: {e}") from e

        publisher = self._publisher or ReleasePublisher(
            self._project_root,
            self._github,
            self._repository(trigger),
            remote=release.remote,
            tag_user_name=release.tag_user_name,
            tag_user_email=release.tag_user_email,
            dry_run=self._dry_run,
        )
        return publisher.publish(decision, changelog, artifacts)

    def _repository(self, trigger: TriggerContext) -> str:
        return self._config.github.repository or trigger.repository

    def _send(self, text: str) -> None:
        if self._dry_run:
            LOGGER.info(f"[dry-run] Would notify #{self._config.notifications.release_channel}: {text}")
            return
        notify_safely(self._notifier, self._config.notifications.release_channel, text)

    def _notify_success(self, decision: ReleaseDecision, trigger: TriggerContext) -> None:
        tag = decision.new_version
        self._send(
            f"New release {tag} for {self._repository(trigger)} has been published. "
            f"Check GitHub Releases for details: {trigger.release_url(tag)}"
        )

    def _notify_failure(self, trigger: TriggerContext) -> None:
        self._send(
            f"Release process failed for {self._repository(trigger)} on branch "
            f"{trigger.ref_name}. Check GitHub Actions for details: {trigger.run_url}"
        )
