"""Tests for component build tracks."""

from __future__ import annotations

import tarfile
from pathlib import Path
from typing import List, Optional
from unittest.mock import patch

import pytest

from pipewarden.config.models import ComponentConfig, OutputConfig, StepConfig
from pipewarden.core.errors import ToolNotFoundError, TrackStateError
from pipewarden.core.models import Component, ReleaseDecision, ReleaseType, TrackState
from pipewarden.core.process import CommandResult
from pipewarden.release.artifacts import ArtifactStore
from pipewarden.release.cache import DependencyCache
from pipewarden.release.tracks import BuildTrack, get_toolchain

RELEASE = ReleaseDecision(ReleaseType.PATCH, "v1.0.1")
NO_RELEASE = ReleaseDecision(ReleaseType.NONE, "v1.0.0")


def _track(
    tmp_path: Path,
    component: Component,
    overrides: Optional[ComponentConfig] = None,
) -> BuildTrack:
    project = tmp_path / "project"
    project.mkdir(exist_ok=True)
    return BuildTrack(
        get_toolchain(component),
        project_root=project,
        store=ArtifactStore(tmp_path / "store"),
        artifacts_dir=project / "release-artifacts",
        overrides=overrides,
    )


def _members(archive: Path) -> List[str]:
    with tarfile.open(archive, "r:gz") as tar:
        return sorted(m.name for m in tar.getmembers())


def _ok(*_args, **_kwargs) -> CommandResult:
    return CommandResult(["x"], 0)


class TestToolchains:
    """Tests for toolchain defaults."""

    def test_rust_defaults(self) -> None:
        toolchain = get_toolchain(Component.RUST)
        assert toolchain.cache_prefix == "cargo"
        steps = toolchain.steps("ontora-ai")
        assert steps[0].run[:2] == ["cargo", "build-bpf"]
        assert all(not s.optional for s in steps)
        outputs = toolchain.outputs("ontora-ai")
        assert outputs[1].path == "target/release/ontora-ai-cli"

    def test_go_binary_named_after_product(self) -> None:
        steps = get_toolchain(Component.GO).steps("demo")
        assert "demo-backend" in steps[0].run

    def test_typescript_steps_run_in_frontend(self) -> None:
        steps = get_toolchain(Component.TYPESCRIPT).steps("demo")
        assert [s.cwd for s in steps] == ["frontend", "frontend"]


class TestBuildTrack:
    """Tests for BuildTrack.run."""

    def test_none_release_skips(self, tmp_path: Path) -> None:
        track = _track(tmp_path, Component.GO)
        with patch("pipewarden.release.tracks.run_command") as mock_run:
            result = track.run(NO_RELEASE)
        mock_run.assert_not_called()
        assert result.state == TrackState.SKIPPED
        assert result.artifact is None

    def test_missing_source_dir_produces_empty_archive(self, tmp_path: Path) -> None:
        """Test that a missing optional input yields a valid, empty archive."""
        track = _track(tmp_path, Component.PYTHON)
        with patch("pipewarden.release.tracks.run_command") as mock_run:
            result = track.run(RELEASE)

        mock_run.assert_not_called()
        assert result.state == TrackState.UPLOADED
        assert result.artifact is not None
        assert result.artifact.archive_path.name == "python-ontora-ai-v1.0.1.tar.gz"
        assert _members(result.artifact.archive_path) == ["."]
        assert any("No ai-models directory found" in n for n in result.notes)

    def test_outputs_are_archived(self, tmp_path: Path) -> None:
        track = _track(tmp_path, Component.PYTHON)
        models = tmp_path / "project" / "ai-models"
        models.mkdir()
        (models / "model.py").write_text("print('hi')")
        (models / "requirements.txt").write_text("numpy\n")

        with patch("pipewarden.release.tracks.run_command", side_effect=_ok):
            result = track.run(RELEASE)

        assert result.state == TrackState.UPLOADED
        assert result.artifact is not None
        assert "./model.py" in _members(result.artifact.archive_path)
        assert result.artifact.archive_path.parent.name == "python-artifacts-v1.0.1"

    def test_required_step_failure_fails_track(self, tmp_path: Path) -> None:
        """Test that a failing required step moves the track to failed."""
        track = _track(tmp_path, Component.RUST)
        (tmp_path / "project" / "solana-contracts").mkdir()
        failed = CommandResult(["cargo"], 101, stderr="error: could not compile")

        with patch("pipewarden.release.tracks.run_command", return_value=failed):
            result = track.run(RELEASE)

        assert result.state == TrackState.FAILED
        assert result.artifact is None
        assert "could not compile" in (result.error or "")
        assert not (tmp_path / "store").exists()

    def test_optional_step_failure_is_tolerated(self, tmp_path: Path) -> None:
        track = _track(tmp_path, Component.GO)
        (tmp_path / "project" / "backend").mkdir()
        failed = CommandResult(["go"], 1, stderr="no Go files")

        with patch("pipewarden.release.tracks.run_command", return_value=failed):
            result = track.run(RELEASE)

        assert result.state == TrackState.UPLOADED
        assert any("failed" in n for n in result.notes)

    def test_missing_required_tool_fails(self, tmp_path: Path) -> None:
        track = _track(tmp_path, Component.RUST)
        (tmp_path / "project" / "solana-contracts").mkdir()
        with patch(
            "pipewarden.release.tracks.run_command", side_effect=ToolNotFoundError("cargo")
        ):
            result = track.run(RELEASE)
        assert result.state == TrackState.FAILED
        assert "cargo not found" in (result.error or "")

    def test_missing_optional_tool_is_skipped(self, tmp_path: Path) -> None:
        track = _track(tmp_path, Component.TYPESCRIPT)
        (tmp_path / "project" / "frontend").mkdir()
        with patch(
            "pipewarden.release.tracks.run_command", side_effect=ToolNotFoundError("npm")
        ):
            result = track.run(RELEASE)
        assert result.state == TrackState.UPLOADED

    def test_overrides(self, tmp_path: Path) -> None:
        """Test that configured steps, outputs and source dir replace defaults."""
        overrides = ComponentConfig(
            source_dir="services/api",
            steps=[StepConfig(run=["make", "{product}"])],
            outputs=[OutputConfig(path="services/api/bin/*")],
        )
        track = _track(tmp_path, Component.GO, overrides)
        bin_dir = tmp_path / "project" / "services" / "api" / "bin"
        bin_dir.mkdir(parents=True)
        (bin_dir / "api").write_text("binary")

        with patch("pipewarden.release.tracks.run_command", side_effect=_ok) as mock_run:
            result = track.run(RELEASE)

        assert mock_run.call_args.args[0] == ["make", "ontora-ai"]
        assert result.artifact is not None
        assert "./api" in _members(result.artifact.archive_path)

    def test_staging_is_reset(self, tmp_path: Path) -> None:
        track = _track(tmp_path, Component.PYTHON)
        stale = tmp_path / "project" / "release-artifacts" / "python" / "stale.txt"
        stale.parent.mkdir(parents=True)
        stale.write_text("old")
        result = track.run(RELEASE)
        assert result.artifact is not None
        assert "./stale.txt" not in _members(result.artifact.archive_path)

    def test_cannot_run_twice(self, tmp_path: Path) -> None:
        """Test that terminal states reject further transitions."""
        track = _track(tmp_path, Component.GO)
        track.run(NO_RELEASE)
        with pytest.raises(TrackStateError):
            track.run(RELEASE)

    def test_unreadable_lock_file_builds_without_cache(self, tmp_path: Path) -> None:
        """Test that a cache key failure is logged and the track still succeeds."""
        project = tmp_path / "project"
        project.mkdir()
        (project / "Cargo.lock").write_text("lock")
        cache = DependencyCache(tmp_path / "cache", project)
        track = BuildTrack(
            get_toolchain(Component.RUST),
            project_root=project,
            store=ArtifactStore(tmp_path / "store"),
            artifacts_dir=project / "release-artifacts",
            cache=cache,
        )

        with patch(
            "pipewarden.release.cache.hash_files",
            side_effect=OSError(5, "Input/output error"),
        ), patch.object(cache, "save") as mock_save:
            result = track.run(RELEASE)

        assert result.state == TrackState.UPLOADED
        assert result.error is None
        mock_save.assert_not_called()
