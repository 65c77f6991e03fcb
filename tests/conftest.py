"""Shared fixtures for pipewarden tests."""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import Callable

import pytest

from pipewarden.core.models import TriggerContext, TriggerEvent


def _git(repo: Path, *args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args], cwd=repo, capture_output=True, text=True, check=True
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Create an empty git repository with a committer identity."""
    if shutil.which("git") is None:
        pytest.skip("git not available")
    repo = tmp_path / "repo"
    repo.mkdir()
    _git(repo, "init")
    _git(repo, "config", "user.email", "test@example.com")
    _git(repo, "config", "user.name", "Test User")
    _git(repo, "config", "commit.gpgsign", "false")
    _git(repo, "config", "tag.gpgsign", "false")
    return repo


@pytest.fixture
def commit() -> Callable[..., None]:
    """Return a helper that commits a file change with the given message."""

    def _commit(repo: Path, message: str, filename: str = "file.txt") -> None:
        path = repo / filename
        existing = path.read_text() if path.exists() else ""
        path.write_text(existing + message + "\n")
        _git(repo, "add", filename)
        _git(repo, "commit", "-m", message)

    return _commit


@pytest.fixture
def tag() -> Callable[[Path, str], None]:
    """Return a helper that creates a lightweight tag at HEAD."""

    def _tag(repo: Path, name: str) -> None:
        _git(repo, "tag", name)

    return _tag


@pytest.fixture
def push_trigger() -> TriggerContext:
    return TriggerContext(
        event=TriggerEvent.PUSH,
        ref_name="main",
        repository="acme/ontora",
        run_id="42",
    )


@pytest.fixture
def pr_trigger() -> TriggerContext:
    return TriggerContext(
        event=TriggerEvent.PULL_REQUEST,
        ref_name="7/merge",
        repository="acme/ontora",
        run_id="43",
        pr_number=7,
        base_ref="main",
    )


@pytest.fixture
def manual_trigger() -> TriggerContext:
    return TriggerContext(
        event=TriggerEvent.WORKFLOW_DISPATCH,
        ref_name="main",
        repository="acme/ontora",
        run_id="44",
        inputs={"release_type": "minor", "pre_release": "false"},
    )
