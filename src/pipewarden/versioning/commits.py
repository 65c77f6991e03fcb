"""Commit history analysis for automatic release classification.

Two analyzers share the ``CommitAnalyzer`` interface:

- ``ConventionalCommitAnalyzer`` classifies ``git log`` output in-process
  using the conventional-commit convention.
- ``SemanticReleaseAnalyzer`` shells out to ``semantic-release --dry-run``
  and parses its text output.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from pipewarden.core.errors import AnalysisError, ToolNotFoundError
from pipewarden.core.git import Commit, GitError, get_commits_since, get_latest_tag
from pipewarden.core.logging import get_logger
from pipewarden.core.models import ReleaseType
from pipewarden.core.process import run_command

LOGGER = get_logger(__name__)

DEFAULT_PRE_RELEASE_MARKERS: List[str] = ["pre-release"]

# type(scope)!: subject
_HEADER_PATTERN = re.compile(
    r"^(?P<type>[a-zA-Z]+)(?:\((?P<scope>[^)]*)\))?(?P<breaking>!)?:\s*(?P<subject>.+)$"
)
_BREAKING_FOOTER = re.compile(r"^BREAKING[ -]CHANGE:", re.MULTILINE)

MINOR_TYPES = {"feat"}
PATCH_TYPES = {"fix", "perf"}

_RANK: Dict[ReleaseType, int] = {
    ReleaseType.NONE: 0,
    ReleaseType.PATCH: 1,
    ReleaseType.MINOR: 2,
    ReleaseType.MAJOR: 3,
}

_NOTES_SECTIONS = [
    (ReleaseType.MAJOR, "Breaking Changes"),
    (ReleaseType.MINOR, "Features"),
    (ReleaseType.PATCH, "Bug Fixes"),
]


@dataclass
class AnalysisReport:
    """What commit analysis concluded about the next release."""

    release_type: ReleaseType
    next_version: Optional[str] = None
    is_pre_release: bool = False
    release_notes: str = ""
    last_tag: Optional[str] = None
    commit_count: int = 0


@dataclass
class ClassifiedCommit:
    commit: Commit
    release_type: ReleaseType
    type: str = ""
    scope: str = ""
    description: str = ""


@dataclass
class AnalysisOptions:
    """Inputs shared by all analyzers."""

    project_root: Path
    branch: str = ""
    pre_release_markers: List[str] = field(
        default_factory=lambda: list(DEFAULT_PRE_RELEASE_MARKERS)
    )


def classify_commit(commit: Commit) -> ClassifiedCommit:
    """Classify one commit by the conventional-commit rules."""
    match = _HEADER_PATTERN.match(commit.subject.strip())
    breaking_footer = bool(_BREAKING_FOOTER.search(commit.body or ""))

    if not match:
        release_type = ReleaseType.MAJOR if breaking_footer else ReleaseType.NONE
        return ClassifiedCommit(commit=commit, release_type=release_type, description=commit.subject)

    commit_type = match.group("type").lower()
    if match.group("breaking") or breaking_footer:
        release_type = ReleaseType.MAJOR
    elif commit_type in MINOR_TYPES:
        release_type = ReleaseType.MINOR
    elif commit_type in PATCH_TYPES:
        release_type = ReleaseType.PATCH
    else:
        release_type = ReleaseType.NONE

    return ClassifiedCommit(
        commit=commit,
        release_type=release_type,
        type=commit_type,
        scope=match.group("scope") or "",
        description=match.group("subject").strip(),
    )


def highest_release_type(types: Iterable[ReleaseType]) -> ReleaseType:
    """Return the most significant release type, or NONE for no input."""
    best = ReleaseType.NONE
    for release_type in types:
        if _RANK[release_type] > _RANK[best]:
            best = release_type
    return best


def contains_marker(texts: Iterable[str], markers: Sequence[str]) -> bool:
    """Case-insensitive search for any pre-release marker token."""
    lowered = [m.lower() for m in markers if m]
    for text in texts:
        haystack = (text or "").lower()
        if any(marker in haystack for marker in lowered):
            return True
    return False


def render_release_notes(classified: List[ClassifiedCommit]) -> str:
    """Render grouped markdown release notes from classified commits."""
    lines: List[str] = []
    for release_type, title in _NOTES_SECTIONS:
        entries = [c for c in classified if c.release_type == release_type]
        if not entries:
            continue
        if lines:
            lines.append("")
        lines.append(f"### {title}")
        lines.append("")
        for entry in entries:
            scope = f"**{entry.scope}:** " if entry.scope else ""
            lines.append(f"- {scope}{entry.description} ({entry.commit.sha[:7]})")
    return "\n".join(lines)


class CommitAnalyzer(ABC):
    """Base class for commit analyzers."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Analyzer identifier."""

    @abstractmethod
    def analyze(self, options: AnalysisOptions) -> AnalysisReport:
        """Analyze history since the last tag.

        Raises:
            AnalysisError: If the analysis itself fails. Callers must not
                treat this as "no release needed".
        """


class ConventionalCommitAnalyzer(CommitAnalyzer):
    """Classifies commits since the last tag in-process."""

    @property
    def name(self) -> str:
        return "conventional"

    def analyze(self, options: AnalysisOptions) -> AnalysisReport:
        last_tag = get_latest_tag(options.project_root)
        try:
            commits = get_commits_since(options.project_root, last_tag)
        except GitError as e:
            raise AnalysisError(str(e)) from e

        classified = [classify_commit(c) for c in commits]
        release_type = highest_release_type(c.release_type for c in classified)

        texts = [options.branch] + [c.subject for c in commits]
        is_pre_release = contains_marker(texts, options.pre_release_markers)

        LOGGER.info(
            f"Analyzed {len(commits)} commits since {last_tag or 'start of history'}: "
            f"{release_type.value} release"
        )

        return AnalysisReport(
            release_type=release_type,
            # Next version is computed by the resolver from the last tag
            next_version=None,
            is_pre_release=is_pre_release,
            release_notes=render_release_notes(classified),
            last_tag=last_tag,
            commit_count=len(commits),
        )


class SemanticReleaseAnalyzer(CommitAnalyzer):
    """Runs ``semantic-release --dry-run --no-ci`` and parses its output."""

    NEXT_VERSION_PATTERN = re.compile(r"The next release version is\s+(\S+)")
    NOTES_HEADER = "Release Notes"

    def __init__(self, command: Optional[List[str]] = None, timeout: int = 600) -> None:
        self._command = command or ["npx", "semantic-release", "--dry-run", "--no-ci"]
        self._timeout = timeout

    @property
    def name(self) -> str:
        return "semantic-release"

    def analyze(self, options: AnalysisOptions) -> AnalysisReport:
        try:
            result = run_command(self._command, cwd=options.project_root, timeout=self._timeout)
        except ToolNotFoundError as e:
            raise AnalysisError(str(e)) from e

        if not result.success:
            raise AnalysisError(
                f"semantic-release exited with {result.returncode}: {result.stderr.strip()[:500]}"
            )

        report = self.parse_output(result.stdout, options.pre_release_markers)
        report.last_tag = get_latest_tag(options.project_root)
        return report

    def parse_output(self, output: str, markers: Sequence[str]) -> AnalysisReport:
        """Parse semantic-release dry-run text into a report."""
        if "major release" in output:
            release_type = ReleaseType.MAJOR
        elif "minor release" in output:
            release_type = ReleaseType.MINOR
        elif "patch release" in output:
            release_type = ReleaseType.PATCH
        else:
            release_type = ReleaseType.NONE

        match = self.NEXT_VERSION_PATTERN.search(output)
        next_version = match.group(1).strip() if match else None

        return AnalysisReport(
            release_type=release_type,
            next_version=next_version,
            is_pre_release=contains_marker([output], markers),
            release_notes=self._extract_notes(output),
        )

    def _extract_notes(self, output: str) -> str:
        lines = output.splitlines()
        for index, line in enumerate(lines):
            if self.NOTES_HEADER in line:
                notes = [l for l in lines[index + 1 : index + 101] if self.NOTES_HEADER not in l]
                return "\n".join(notes).strip()
        return ""


ANALYZERS = {
    "conventional": ConventionalCommitAnalyzer,
    "semantic-release": SemanticReleaseAnalyzer,
}


def get_analyzer(name: str) -> CommitAnalyzer:
    """Instantiate an analyzer by name.

    Raises:
        ValueError: If the name is unknown.
    """
    try:
        return ANALYZERS[name]()
    except KeyError:
        raise ValueError(
            f"Unknown commit analyzer '{name}'. Available: {sorted(ANALYZERS)}"
        ) from None
