"""Version parsing, commit analysis, and release version resolution."""

from pipewarden.versioning.commits import (
    AnalysisOptions,
    AnalysisReport,
    CommitAnalyzer,
    ConventionalCommitAnalyzer,
    SemanticReleaseAnalyzer,
    get_analyzer,
)
from pipewarden.versioning.resolver import VersionResolver, fallback_version
from pipewarden.versioning.semver import (
    ZERO_VERSION,
    SemanticVersion,
    bump,
    parse_version,
)

__all__ = [
    "AnalysisOptions",
    "AnalysisReport",
    "CommitAnalyzer",
    "ConventionalCommitAnalyzer",
    "SemanticReleaseAnalyzer",
    "get_analyzer",
    "VersionResolver",
    "fallback_version",
    "ZERO_VERSION",
    "SemanticVersion",
    "bump",
    "parse_version",
]
