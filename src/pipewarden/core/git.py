"""Git utilities for version resolution and tagging.

Provides tag discovery, commit history extraction, and annotated tag
creation for the release pipeline.
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pipewarden.core.errors import PipewardenError
from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)

# Separators unlikely to appear in commit messages
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"


@dataclass(frozen=True)
class Commit:
    """A single commit from history."""

    sha: str
    subject: str
    body: str = ""

    @property
    def message(self) -> str:
        if self.body:
            return f"{self.subject}\n\n{self.body}"
        return self.subject


class GitError(PipewardenError):
    """A git command failed."""


def _git(args: List[str], cwd: Path, timeout: int = 30) -> subprocess.CompletedProcess:
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        timeout=timeout,
    )


def is_git_repo(path: Path) -> bool:
    """Check if the given path is inside a git repository.

    Args:
        path: Path to check.

    Returns:
        True if inside a git repository, False otherwise.
    """
    try:
        result = _git(["rev-parse", "--git-dir"], cwd=path, timeout=5)
        return result.returncode == 0
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return False


def get_latest_tag(path: Path) -> Optional[str]:
    """Get the most recent tag reachable from HEAD.

    Equivalent to ``git describe --tags --abbrev=0``.

    Args:
        path: Path inside the repository.

    Returns:
        Tag name, or None when the repository has no tags (or is not a repo).
    """
    try:
        result = _git(["describe", "--tags", "--abbrev=0"], cwd=path, timeout=10)
    except (subprocess.SubprocessError, FileNotFoundError, OSError) as e:
        LOGGER.warning(f"git describe failed: {e}")
        return None

    if result.returncode != 0:
        LOGGER.debug(f"No tags found in {path}: {result.stderr.strip()}")
        return None
    tag = result.stdout.strip()
    return tag or None


def get_commits_since(path: Path, tag: Optional[str] = None) -> List[Commit]:
    """List commits since a tag (or the whole history when tag is None).

    Args:
        path: Path inside the repository.
        tag: Starting tag (exclusive).

    Returns:
        Commits, newest first.

    Raises:
        GitError: If git log fails.
    """
    revision = f"{tag}..HEAD" if tag else "HEAD"
    fmt = f"%H{_FIELD_SEP}%s{_FIELD_SEP}%b{_RECORD_SEP}"
    try:
        result = _git(["log", f"--format={fmt}", revision], cwd=path, timeout=60)
    except (subprocess.SubprocessError, FileNotFoundError, OSError) as e:
        raise GitError(f"git log failed: {e}") from e

    if result.returncode != 0:
        stderr = result.stderr.strip()
        # A fresh repository without commits has no HEAD yet
        if "does not have any commits" in stderr or "ambiguous argument" in stderr:
            return []
        raise GitError(f"git log failed: {stderr}")

    commits: List[Commit] = []
    for record in result.stdout.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record:
            continue
        parts = record.split(_FIELD_SEP)
        if len(parts) < 2:
            continue
        sha, subject = parts[0].strip(), parts[1].strip()
        body = parts[2].strip() if len(parts) > 2 else ""
        commits.append(Commit(sha=sha, subject=subject, body=body))

    LOGGER.debug(f"Found {len(commits)} commits since {tag or 'repository start'}")
    return commits


def create_annotated_tag(
    path: Path,
    tag: str,
    message: str,
    user_name: Optional[str] = None,
    user_email: Optional[str] = None,
) -> None:
    """Create an annotated tag at HEAD.

    Args:
        path: Repository path.
        tag: Tag name.
        message: Tag message.
        user_name: Optional committer name for the tag.
        user_email: Optional committer email for the tag.

    Raises:
        GitError: If tag creation fails.
    """
    args: List[str] = []
    if user_name:
        args += ["-c", f"user.name={user_name}"]
    if user_email:
        args += ["-c", f"user.email={user_email}"]
    args += ["tag", "-a", tag, "-m", message]

    result = _git(args, cwd=path)
    if result.returncode != 0:
        raise GitError(f"git tag {tag} failed: {result.stderr.strip()}")
    LOGGER.info(f"Created tag {tag}")


def push_tag(path: Path, tag: str, remote: str = "origin") -> None:
    """Push a single tag to a remote.

    Raises:
        GitError: If the push fails.
    """
    result = _git(["push", remote, tag], cwd=path, timeout=120)
    if result.returncode != 0:
        raise GitError(f"git push {remote} {tag} failed: {result.stderr.strip()}")
    LOGGER.info(f"Pushed tag {tag} to {remote}")


def delete_tag(path: Path, tag: str, remote: Optional[str] = None) -> None:
    """Delete a tag locally and, if ``remote`` is given, on that remote.

    Raises:
        GitError: If either deletion fails.
    """
    if remote:
        result = _git(["push", remote, f":refs/tags/{tag}"], cwd=path, timeout=120)
        if result.returncode != 0:
            raise GitError(f"Deleting {tag} on {remote} failed: {result.stderr.strip()}")

    result = _git(["tag", "-d", tag], cwd=path)
    if result.returncode != 0:
        raise GitError(f"git tag -d {tag} failed: {result.stderr.strip()}")
    LOGGER.info(f"Deleted tag {tag}")
