"""Tests for changelog generation."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

from pipewarden.core.errors import AnalysisError
from pipewarden.core.models import ReleaseDecision, ReleaseType
from pipewarden.release.changelog import ChangelogBuilder, default_changelog
from pipewarden.versioning.commits import AnalysisReport, CommitAnalyzer

DECISION = ReleaseDecision(ReleaseType.MINOR, "v1.1.0")


class TestChangelogBuilder:
    """Tests for ChangelogBuilder."""

    def test_uses_release_notes(self) -> None:
        report = AnalysisReport(release_type=ReleaseType.MINOR, release_notes="### Features\n- x\n")
        assert ChangelogBuilder("Ontora AI").build(DECISION, report) == "### Features\n- x"

    def test_default_when_notes_empty(self) -> None:
        """Test the templated changelog when analysis gives no notes."""
        report = AnalysisReport(release_type=ReleaseType.MINOR, release_notes="  ")
        text = ChangelogBuilder("Ontora AI").build(DECISION, report)
        assert text == default_changelog("v1.1.0", "Ontora AI")
        assert text.startswith("Release v1.1.0 - Automated release for Ontora AI")

    def test_default_without_report(self) -> None:
        assert ChangelogBuilder("Demo").build(DECISION) == default_changelog("v1.1.0", "Demo")

    def test_regenerate_falls_back_on_error(self, tmp_path: Path) -> None:
        analyzer = MagicMock(spec=CommitAnalyzer)
        analyzer.analyze.side_effect = AnalysisError("no git")
        text = ChangelogBuilder("Demo").regenerate(DECISION, analyzer, tmp_path, ["rc"])
        assert text == default_changelog("v1.1.0", "Demo")
        options = analyzer.analyze.call_args.args[0]
        assert options.pre_release_markers == ["rc"]

    def test_write(self, tmp_path: Path) -> None:
        path = ChangelogBuilder.write("notes", tmp_path / "out" / "changelog.md")
        assert path.read_text() == "notes\n"
