"""Release changelog generation."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pipewarden.core.errors import AnalysisError
from pipewarden.core.logging import get_logger
from pipewarden.core.models import ReleaseDecision
from pipewarden.versioning.commits import AnalysisOptions, AnalysisReport, CommitAnalyzer

LOGGER = get_logger(__name__)


def default_changelog(version: str, display_name: str) -> str:
    """Templated changelog used when analysis yields no notes.

    >>> print(default_changelog("v1.0.0", "Ontora AI"))
    Release v1.0.0 - Automated release for Ontora AI
    - See commit history for details.
    """
    return (
        f"Release {version} - Automated release for {display_name}\n"
        "- See commit history for details."
    )


class ChangelogBuilder:
    """Builds the release body from commit analysis."""

    def __init__(self, display_name: str) -> None:
        self._display_name = display_name

    def build(self, decision: ReleaseDecision, report: Optional[AnalysisReport] = None) -> str:
        notes = report.release_notes.strip() if report else ""
        if notes:
            return notes
        LOGGER.info("No changelog generated, using default.")
        return default_changelog(decision.new_version, self._display_name)

    def regenerate(
        self,
        decision: ReleaseDecision,
        analyzer: CommitAnalyzer,
        project_root: Path,
        markers: Optional[List[str]] = None,
    ) -> str:
        """Run commit analysis again and build the changelog from it.

        Analysis failure is not fatal here; the templated changelog is used.
        """
        options = AnalysisOptions(project_root=project_root)
        if markers:
            options.pre_release_markers = list(markers)
        try:
            report = analyzer.analyze(options)
        except AnalysisError as e:
            LOGGER.warning(f"Changelog analysis failed: {e}")
            report = None
        return self.build(decision, report)

    @staticmethod
    def write(text: str, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text.rstrip("\n") + "\n", encoding="utf-8")
        return path
