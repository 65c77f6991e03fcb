"""Release publication: GitHub release, assets and version tag.

Publication is all-or-nothing. If any asset upload or the tag push fails,
the release record created earlier in the same call is deleted again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from pipewarden.core.errors import GitHubError, PublishError
from pipewarden.core.git import GitError, create_annotated_tag, delete_tag, push_tag
from pipewarden.core.logging import get_logger
from pipewarden.core.models import BuildArtifact, ReleaseDecision
from pipewarden.github.client import GitHubClient

LOGGER = get_logger(__name__)


@dataclass
class PublishResult:
    """What was published."""

    tag: str
    release_url: str = ""
    release_id: Optional[int] = None
    assets: List[str] = field(default_factory=list)
    dry_run: bool = False


class ReleasePublisher:
    """Publishes a release bound to the decision's version tag."""

    def __init__(
        self,
        project_root: Path,
        client: GitHubClient,
        repository: str,
        remote: str = "origin",
        tag_user_name: Optional[str] = None,
        tag_user_email: Optional[str] = None,
        dry_run: bool = False,
    ) -> None:
        self._project_root = project_root
        self._client = client
        self._repository = repository
        self._remote = remote
        self._tag_user_name = tag_user_name
        self._tag_user_email = tag_user_email
        self._dry_run = dry_run

    def publish(
        self,
        decision: ReleaseDecision,
        changelog: str,
        artifacts: List[BuildArtifact],
    ) -> PublishResult:
        """Create the release, attach artifacts and push the tag.

        Args:
            decision: The run's release decision.
            changelog: Release body.
            artifacts: Archives to attach.

        Returns:
            PublishResult describing the release.

        Raises:
            PublishError: If any step fails. Nothing stays published.
        """
        if not decision.should_release:
            raise PublishError("Release type is none, nothing to publish")
        if not self._repository:
            raise PublishError("No repository configured for publication")

        tag = decision.new_version
        name = f"Release {tag}"

        if self._dry_run:
            LOGGER.info(
                f"[dry-run] Would create release {name} on {self._repository} "
                f"(prerelease={str(decision.is_pre_release).lower()})"
            )
            for artifact in artifacts:
                LOGGER.info(f"[dry-run] Would upload {artifact.archive_path.name}")
            LOGGER.info(f"[dry-run] Would push tag {tag} to {self._remote}")
            return PublishResult(
                tag=tag,
                assets=[a.archive_path.name for a in artifacts],
                dry_run=True,
            )

        if not self._client.authenticated:
            raise PublishError("A GitHub token is required to publish a release")

        try:
            release = self._client.create_release(
                self._repository,
                tag=tag,
                name=name,
                body=changelog,
                prerelease=decision.is_pre_release,
                draft=False,
            )
        except GitHubError as e:
            raise PublishError(f"Creating release {tag} failed: {e}") from e
        LOGGER.info(f"Created release {name}")

        result = PublishResult(
            tag=tag,
            release_url=str(release.get("html_url", "")),
            release_id=release.get("id"),
        )

        try:
            for artifact in artifacts:
                self._client.upload_release_asset(str(release.get("upload_url", "")), artifact.archive_path)
                result.assets.append(artifact.archive_path.name)
                LOGGER.info(f"Uploaded asset {artifact.archive_path.name}")
        except (GitHubError, OSError) as e:
            self._rollback(release)
            raise PublishError(f"Uploading release assets failed: {e}") from e

        self._push_tag(tag, release)
        return result

    def _push_tag(self, tag: str, release: Dict[str, Any]) -> None:
        tag_created = False
        try:
            create_annotated_tag(
                self._project_root,
                tag,
                f"Release {tag}",
                user_name=self._tag_user_name,
                user_email=self._tag_user_email,
            )
            tag_created = True
            push_tag(self._project_root, tag, self._remote)
        except GitError as e:
            self._rollback(release)
            if tag_created:
                try:
                    delete_tag(self._project_root, tag)
                except GitError as cleanup_error:
                    LOGGER.warning(f"Could not delete local tag {tag}: {cleanup_error}")
            raise PublishError(f"Pushing tag {tag} failed: {e}") from e

    def _rollback(self, release: Dict[str, Any]) -> None:
        release_id = release.get("id")
        if release_id is None:
            return
        LOGGER.warning(f"Rolling back release {release_id}")
        try:
            self._client.delete_release(self._repository, int(release_id))
        except GitHubError as e:
            LOGGER.error(f"Failed to delete release {release_id}: {e}")
