"""Version resolution: produce the single ReleaseDecision for a run."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

from pipewarden.core.errors import ReleaseInputError
from pipewarden.core.git import get_latest_tag
from pipewarden.core.logging import get_logger
from pipewarden.core.models import (
    DecisionSource,
    ReleaseDecision,
    ReleaseType,
    TriggerContext,
    parse_bool,
)
from pipewarden.versioning.commits import (
    AnalysisOptions,
    AnalysisReport,
    CommitAnalyzer,
    ConventionalCommitAnalyzer,
    DEFAULT_PRE_RELEASE_MARKERS,
)
from pipewarden.versioning.semver import ZERO_VERSION, bump, try_parse_version

LOGGER = get_logger(__name__)

MANUAL_RELEASE_TYPES = {ReleaseType.MAJOR, ReleaseType.MINOR, ReleaseType.PATCH}
DEFAULT_MANUAL_RELEASE_TYPE = ReleaseType.PATCH


def fallback_version(latest_tag: Optional[str], release_type: ReleaseType) -> str:
    """Compute the next version by bumping the latest tag.

    A missing or unparseable tag is treated as ``v0.0.0``.

    Examples:
        >>> fallback_version("v1.2.3", ReleaseType.PATCH)
        'v1.2.4'
        >>> fallback_version("v1.2.3", ReleaseType.MAJOR)
        'v2.0.0'
    """
    base = try_parse_version(latest_tag)
    if base is None:
        if latest_tag:
            LOGGER.warning(f"Latest tag '{latest_tag}' is not a semantic version, using v0.0.0")
        base = ZERO_VERSION
    return bump(base, release_type).format_tag()


def parse_manual_release_type(value: Optional[str]) -> ReleaseType:
    """Validate the operator-supplied ``release_type`` input."""
    if value is None or str(value).strip() == "":
        return DEFAULT_MANUAL_RELEASE_TYPE
    try:
        release_type = ReleaseType.from_string(str(value))
    except ValueError:
        release_type = None
    if release_type not in MANUAL_RELEASE_TYPES:
        raise ReleaseInputError(
            f"Invalid release_type '{value}'. Must be one of: major, minor, patch"
        )
    return release_type


class VersionResolver:
    """Resolves the next release from operator input or commit history.

    Manual dispatch takes ``release_type``/``pre_release`` verbatim. Every
    other trigger analyzes commits since the last tag. The next version
    string comes from the analyzer when it supplies a usable one, and from
    bumping the latest tag otherwise.
    """

    def __init__(
        self,
        project_root: Path,
        analyzer: Optional[CommitAnalyzer] = None,
        pre_release_markers: Optional[List[str]] = None,
        latest_tag_reader: Callable[[Path], Optional[str]] = get_latest_tag,
    ) -> None:
        self._project_root = project_root
        self._analyzer = analyzer or ConventionalCommitAnalyzer()
        self._markers = pre_release_markers or list(DEFAULT_PRE_RELEASE_MARKERS)
        self._latest_tag_reader = latest_tag_reader
        self.last_report: Optional[AnalysisReport] = None

    def resolve(self, trigger: TriggerContext) -> ReleaseDecision:
        """Produce exactly one ReleaseDecision for the run.

        Args:
            trigger: Explicit trigger context.

        Returns:
            The release decision.

        Raises:
            ReleaseInputError: If manual inputs are invalid.
            AnalysisError: If commit analysis fails.
        """
        report: Optional[AnalysisReport] = None
        self.last_report = None

        if trigger.is_manual:
            release_type = parse_manual_release_type(trigger.inputs.get("release_type"))
            is_pre_release = parse_bool(trigger.inputs.get("pre_release", False))
            source = DecisionSource.MANUAL
            LOGGER.info(
                f"Using manual release type: {release_type.value}, "
                f"pre-release: {str(is_pre_release).lower()}"
            )
        else:
            report = self._analyzer.analyze(
                AnalysisOptions(
                    project_root=self._project_root,
                    branch=trigger.ref_name,
                    pre_release_markers=self._markers,
                )
            )
            release_type = report.release_type
            is_pre_release = report.is_pre_release
            source = DecisionSource.ANALYSIS
            self.last_report = report

        latest_tag = report.last_tag if report and report.last_tag else None
        if latest_tag is None:
            latest_tag = self._latest_tag_reader(self._project_root)

        new_version = self._select_version(report, release_type, latest_tag)
        if new_version is None:
            new_version = fallback_version(latest_tag, release_type)
            if release_type != ReleaseType.NONE and source == DecisionSource.ANALYSIS:
                source = DecisionSource.FALLBACK

        decision = ReleaseDecision(
            release_type=release_type,
            new_version=new_version,
            is_pre_release=is_pre_release,
            source=source,
            previous_tag=latest_tag,
        )
        LOGGER.info(
            f"Determined version: {decision.new_version}, type: {decision.release_type.value}, "
            f"pre-release: {str(decision.is_pre_release).lower()}"
        )
        return decision

    def _select_version(
        self,
        report: Optional[AnalysisReport],
        release_type: ReleaseType,
        latest_tag: Optional[str],
    ) -> Optional[str]:
        """Use the analyzer's next version when it is present and meaningful."""
        if report is None or not report.next_version:
            return None

        parsed = try_parse_version(report.next_version)
        if parsed is None:
            LOGGER.warning(
                f"Ignoring unparseable next version from analysis: {report.next_version!r}"
            )
            return None
        if parsed == ZERO_VERSION and release_type != ReleaseType.NONE:
            LOGGER.debug("Analysis returned v0.0.0, falling back to tag arithmetic")
            return None
        return parsed.format_tag()
