"""Core data models shared by the release and security pipelines.

Jobs exchange data only through these typed records; nothing downstream
of the CLI boundary reads environment variables directly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

DEFAULT_PRODUCT = "ontora-ai"


class ReleaseType(str, Enum):
    """Release classification produced by version resolution."""

    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    NONE = "none"

    @classmethod
    def from_string(cls, value: str) -> "ReleaseType":
        """Parse a release type, case-insensitively.

        Raises:
            ValueError: If the value is not a known release type.
        """
        return cls(value.strip().lower())


class DecisionSource(str, Enum):
    """Where the final version string came from."""

    MANUAL = "manual"
    ANALYSIS = "analysis"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ReleaseDecision:
    """Single authoritative release decision for a pipeline run.

    Produced once by version resolution and consumed read-only by every
    downstream job.
    """

    release_type: ReleaseType
    new_version: str
    is_pre_release: bool = False
    source: DecisionSource = DecisionSource.ANALYSIS
    previous_tag: Optional[str] = None

    @property
    def should_release(self) -> bool:
        """Whether build and publish jobs may execute."""
        return self.release_type != ReleaseType.NONE

    def to_outputs(self) -> Dict[str, str]:
        """Render the decision as job output key/value strings."""
        return {
            "new_version": self.new_version,
            "release_type": self.release_type.value,
            "is_pre_release": "true" if self.is_pre_release else "false",
        }

    @classmethod
    def from_outputs(cls, outputs: Mapping[str, str]) -> "ReleaseDecision":
        """Rebuild a decision from job outputs written by ``to_outputs``."""
        return cls(
            release_type=ReleaseType.from_string(outputs["release_type"]),
            new_version=outputs["new_version"],
            is_pre_release=parse_bool(outputs.get("is_pre_release", "false")),
        )


class Component(str, Enum):
    """Independently built release components."""

    RUST = "rust"
    PYTHON = "python"
    GO = "go"
    TYPESCRIPT = "typescript"


ALL_COMPONENTS: List[Component] = [
    Component.RUST,
    Component.PYTHON,
    Component.GO,
    Component.TYPESCRIPT,
]


def archive_name(component: Component, version: str, product: str = DEFAULT_PRODUCT) -> str:
    """Deterministic archive file name for a component build."""
    return f"{component.value}-{product}-{version}.tar.gz"


def artifact_upload_name(component: Component, version: str) -> str:
    """Deterministic artifact name under which an archive is uploaded."""
    return f"{component.value}-artifacts-{version}"


@dataclass(frozen=True)
class BuildArtifact:
    """One archived build output per component per run."""

    component: Component
    version: str
    archive_path: Path

    @property
    def upload_name(self) -> str:
        return artifact_upload_name(self.component, self.version)


class TrackState(str, Enum):
    """Build track lifecycle states."""

    PENDING = "pending"
    SKIPPED = "skipped"
    BUILDING = "building"
    PACKAGING = "packaging"
    UPLOADED = "uploaded"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TrackState.SKIPPED, TrackState.UPLOADED, TrackState.FAILED)


@dataclass
class TrackResult:
    """Outcome of a single build track."""

    component: Component
    state: TrackState
    artifact: Optional[BuildArtifact] = None
    error: Optional[str] = None
    notes: List[str] = field(default_factory=list)
    duration_ms: int = 0

    @property
    def succeeded(self) -> bool:
        return self.state == TrackState.UPLOADED


class ScanOutcome(str, Enum):
    """Distinct result kinds for a security scan job."""

    PASSED = "passed"
    FINDINGS_REPORTED = "findings_reported"
    TOOL_EXECUTION_ERROR = "tool_execution_error"
    SKIPPED = "skipped"


class Severity(str, Enum):
    """Unified severity levels used across all scanners."""

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    INFO = "info"

    @classmethod
    def from_string(cls, value: Optional[str]) -> "Severity":
        """Map a tool-specific severity label onto the unified scale."""
        if not value:
            return cls.INFO
        normalized = value.strip().lower()
        aliases = {
            "error": cls.HIGH,
            "warning": cls.MEDIUM,
            "moderate": cls.MEDIUM,
            "unknown": cls.INFO,
            "note": cls.INFO,
        }
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            return cls.INFO


@dataclass
class Finding:
    """A single issue reported by a scanner."""

    rule_id: str
    title: str
    severity: Severity
    tool: str
    file_path: str = ""
    line: Optional[int] = None
    package: Optional[str] = None
    score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "title": self.title,
            "severity": self.severity.value,
            "tool": self.tool,
            "file_path": self.file_path,
            "line": self.line,
            "package": self.package,
            "score": self.score,
        }


@dataclass
class ScanJobResult:
    """Terminal status of one leaf job in the security pipeline."""

    job: str
    outcome: ScanOutcome
    findings: List[Finding] = field(default_factory=list)
    reports: List[Path] = field(default_factory=list)
    error: Optional[str] = None
    duration_ms: int = 0
    notes: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """Whether the job reached a successful terminal status."""
        return self.outcome in (ScanOutcome.PASSED, ScanOutcome.SKIPPED)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "job": self.job,
            "outcome": self.outcome.value,
            "succeeded": self.succeeded,
            "error": self.error,
            "duration_ms": self.duration_ms,
            "finding_count": len(self.findings),
            "findings": [f.to_dict() for f in self.findings],
            "reports": [str(p) for p in self.reports],
            "notes": list(self.notes),
        }


class TriggerEvent(str, Enum):
    """Events that can start a pipeline run."""

    PUSH = "push"
    PULL_REQUEST = "pull_request"
    SCHEDULE = "schedule"
    WORKFLOW_DISPATCH = "workflow_dispatch"


def parse_bool(value: Any) -> bool:
    """Interpret CI-style boolean inputs ("true", "false", True, "1")."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes", "on")


@dataclass(frozen=True)
class TriggerContext:
    """Explicit description of what started the current run.

    Built once at the CLI boundary (usually from the CI environment) and
    passed explicitly to every job.
    """

    event: TriggerEvent
    ref_name: str = ""
    repository: str = ""
    server_url: str = "https://github.com"
    run_id: str = ""
    pr_number: Optional[int] = None
    inputs: Dict[str, Any] = field(default_factory=dict)
    is_tag: bool = False
    base_ref: str = ""

    @property
    def is_manual(self) -> bool:
        return self.event == TriggerEvent.WORKFLOW_DISPATCH

    @property
    def is_pull_request(self) -> bool:
        return self.event == TriggerEvent.PULL_REQUEST

    @property
    def run_url(self) -> str:
        return f"{self.server_url}/{self.repository}/actions/runs/{self.run_id}"

    def release_url(self, tag: str) -> str:
        return f"{self.server_url}/{self.repository}/releases/tag/{tag}"

    @classmethod
    def from_environment(
        cls, environ: Optional[Mapping[str, str]] = None
    ) -> "TriggerContext":
        """Build a context from GitHub Actions environment variables.

        Unknown or missing event names are treated as a push so that local
        invocations behave like an automatic trigger.

        Args:
            environ: Environment mapping (defaults to ``os.environ``).

        Returns:
            TriggerContext for the current run.
        """
        env = os.environ if environ is None else environ

        event_name = env.get("GITHUB_EVENT_NAME", "push")
        try:
            event = TriggerEvent(event_name)
        except ValueError:
            event = TriggerEvent.PUSH

        payload: Dict[str, Any] = {}
        event_path = env.get("GITHUB_EVENT_PATH")
        if event_path and Path(event_path).is_file():
            try:
                payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError):
                payload = {}

        pr_number: Optional[int] = None
        if event == TriggerEvent.PULL_REQUEST:
            number = payload.get("number") or payload.get("pull_request", {}).get("number")
            if number is not None:
                pr_number = int(number)

        inputs = payload.get("inputs") or {}

        return cls(
            event=event,
            ref_name=env.get("GITHUB_REF_NAME", ""),
            repository=env.get("GITHUB_REPOSITORY", ""),
            server_url=env.get("GITHUB_SERVER_URL", "https://github.com"),
            run_id=env.get("GITHUB_RUN_ID", ""),
            pr_number=pr_number,
            inputs=dict(inputs),
            is_tag=env.get("GITHUB_REF_TYPE", "") == "tag",
            base_ref=env.get("GITHUB_BASE_REF", ""),
        )
