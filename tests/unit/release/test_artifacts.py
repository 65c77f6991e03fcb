"""Tests for the artifact store."""

from __future__ import annotations

from pathlib import Path

import pytest

from pipewarden.core.errors import ArtifactMissingError
from pipewarden.core.models import ALL_COMPONENTS, BuildArtifact, Component
from pipewarden.release.artifacts import ArtifactStore


def _archive(tmp_path: Path, component: Component, version: str = "v1.0.0") -> BuildArtifact:
    path = tmp_path / f"{component.value}.tar.gz"
    path.write_bytes(b"data")
    return BuildArtifact(component=component, version=version, archive_path=path)


class TestArtifactStore:
    """Tests for ArtifactStore."""

    def test_path_is_deterministic(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        assert store.path_for(Component.GO, "v1.0.0") == (
            tmp_path / "store" / "go-artifacts-v1.0.0" / "go-ontora-ai-v1.0.0.tar.gz"
        )

    def test_upload_then_download(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        stored = store.upload(_archive(tmp_path, Component.RUST))
        assert stored.archive_path.read_bytes() == b"data"
        assert store.download(Component.RUST, "v1.0.0").archive_path == stored.archive_path

    def test_upload_missing_source(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        artifact = BuildArtifact(Component.RUST, "v1.0.0", tmp_path / "gone.tar.gz")
        with pytest.raises(ArtifactMissingError):
            store.upload(artifact)

    def test_download_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ArtifactMissingError, match="python-artifacts-v1.0.0"):
            ArtifactStore(tmp_path).download(Component.PYTHON, "v1.0.0")

    def test_download_all_lists_every_missing(self, tmp_path: Path) -> None:
        """Test that one error names all missing archives."""
        store = ArtifactStore(tmp_path / "store")
        store.upload(_archive(tmp_path, Component.RUST))
        store.upload(_archive(tmp_path, Component.PYTHON))
        with pytest.raises(ArtifactMissingError) as exc_info:
            store.download_all("v1.0.0", ALL_COMPONENTS)
        message = str(exc_info.value)
        assert "go-artifacts-v1.0.0" in message
        assert "typescript-artifacts-v1.0.0" in message
        assert "rust-artifacts" not in message

    def test_download_all(self, tmp_path: Path) -> None:
        store = ArtifactStore(tmp_path / "store")
        for component in ALL_COMPONENTS:
            store.upload(_archive(tmp_path, component))
        artifacts = store.download_all("v1.0.0", ALL_COMPONENTS)
        assert [a.component for a in artifacts] == ALL_COMPONENTS
