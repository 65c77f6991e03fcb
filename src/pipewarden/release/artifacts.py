"""Artifact storage with deterministic naming.

Archives are stored as ``<root>/<component>-artifacts-<version>/<archive>``,
the same layout CI artifact downloads produce, so the release step can
locate every archive from the component and version alone.
"""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Iterable, List

from pipewarden.core.errors import ArtifactMissingError
from pipewarden.core.logging import get_logger
from pipewarden.core.models import (
    DEFAULT_PRODUCT,
    BuildArtifact,
    Component,
    archive_name,
    artifact_upload_name,
)

LOGGER = get_logger(__name__)


class ArtifactStore:
    """Local directory acting as artifact upload/download storage."""

    def __init__(self, root: Path, product: str = DEFAULT_PRODUCT) -> None:
        self._root = root
        self._product = product

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, component: Component, version: str) -> Path:
        """Deterministic storage path of a component archive."""
        return (
            self._root
            / artifact_upload_name(component, version)
            / archive_name(component, version, self._product)
        )

    def upload(self, artifact: BuildArtifact) -> BuildArtifact:
        """Store an archive, returning the artifact at its stored location.

        Raises:
            ArtifactMissingError: If the archive to upload does not exist.
        """
        if not artifact.archive_path.is_file():
            raise ArtifactMissingError(f"Archive not found: {artifact.archive_path}")

        destination = self.path_for(artifact.component, artifact.version)
        destination.parent.mkdir(parents=True, exist_ok=True)
        if artifact.archive_path.resolve() != destination.resolve():
            shutil.copy2(artifact.archive_path, destination)
        LOGGER.info(f"Uploaded {artifact.upload_name} -> {destination}")
        return BuildArtifact(
            component=artifact.component,
            version=artifact.version,
            archive_path=destination,
        )

    def download(self, component: Component, version: str) -> BuildArtifact:
        """Locate a stored archive.

        Raises:
            ArtifactMissingError: If the archive is absent.
        """
        path = self.path_for(component, version)
        if not path.is_file():
            raise ArtifactMissingError(
                f"Artifact {artifact_upload_name(component, version)} not found at {path}"
            )
        return BuildArtifact(component=component, version=version, archive_path=path)

    def download_all(self, version: str, components: Iterable[Component]) -> List[BuildArtifact]:
        """Locate every component archive for a version.

        Raises:
            ArtifactMissingError: Listing every missing archive.
        """
        found: List[BuildArtifact] = []
        missing: List[str] = []
        for component in components:
            try:
                found.append(self.download(component, version))
            except ArtifactMissingError:
                missing.append(artifact_upload_name(component, version))
        if missing:
            raise ArtifactMissingError(f"Missing artifacts: {', '.join(missing)}")
        return found
