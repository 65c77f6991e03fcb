"""Aggregation of scan job results into a pass/fail verdict."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from pipewarden.config.models import DEFAULT_GATING_JOBS
from pipewarden.core.models import ScanJobResult, ScanOutcome
from pipewarden.security.reports import severity_counts


@dataclass
class SecuritySummary:
    """Verdict over all scan jobs.

    Only gating jobs decide ``passed``. Findings and tool errors are kept
    apart so that a crashed scanner is not mistaken for a vulnerability.
    """

    passed: bool
    results: List[ScanJobResult] = field(default_factory=list)
    gating_jobs: List[str] = field(default_factory=list)
    findings_failed: List[str] = field(default_factory=list)
    tool_errors: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)

    @classmethod
    def evaluate(
        cls,
        results: Sequence[ScanJobResult],
        gating_jobs: Optional[Sequence[str]] = None,
    ) -> "SecuritySummary":
        """Evaluate job results.

        Args:
            results: One result per job that ran.
            gating_jobs: Jobs that must succeed (defaults to the three scanners).

        Returns:
            SecuritySummary. A gating job without a result counts as a tool
            error.
        """
        gating = list(DEFAULT_GATING_JOBS if gating_jobs is None else gating_jobs)
        by_job: Dict[str, ScanJobResult] = {r.job: r for r in results}

        findings_failed: List[str] = []
        tool_errors: List[str] = []
        missing: List[str] = []
        for job in gating:
            result = by_job.get(job)
            if result is None:
                missing.append(job)
                tool_errors.append(job)
            elif result.outcome == ScanOutcome.FINDINGS_REPORTED:
                findings_failed.append(job)
            elif result.outcome == ScanOutcome.TOOL_EXECUTION_ERROR:
                tool_errors.append(job)

        return cls(
            passed=not findings_failed and not tool_errors,
            results=list(results),
            gating_jobs=gating,
            findings_failed=findings_failed,
            tool_errors=tool_errors,
            missing=missing,
        )

    @property
    def total_findings(self) -> int:
        return sum(len(r.findings) for r in self.results)

    @property
    def message(self) -> str:
        if self.passed:
            return "No critical security issues detected. Pipeline passed."
        return "Security issues were detected. Failing the pipeline to ensure review."

    def to_dict(self) -> Dict[str, Any]:
        return {
            "passed": self.passed,
            "message": self.message,
            "gating_jobs": list(self.gating_jobs),
            "findings_failed": list(self.findings_failed),
            "tool_errors": list(self.tool_errors),
            "missing": list(self.missing),
            "total_findings": self.total_findings,
            "jobs": [r.to_dict() for r in self.results],
        }

    def to_markdown(self) -> str:
        lines = [
            "# Security Scan Summary",
            "",
            f"**Result:** {'PASSED' if self.passed else 'FAILED'}",
            "",
            self.message,
            "",
            "| Job | Gating | Outcome | Critical | High | Medium | Low |",
            "|-----|--------|---------|----------|------|--------|-----|",
        ]
        for result in self.results:
            counts = severity_counts(result)
            gating = "yes" if result.job in self.gating_jobs else "no"
            lines.append(
                f"| {result.job} | {gating} | {result.outcome.value} | "
                f"{counts['critical']} | {counts['high']} | {counts['medium']} | {counts['low']} |"
            )
        for job in self.missing:
            lines.append(f"| {job} | yes | missing | - | - | - | - |")
        if self.tool_errors:
            lines += ["", f"Tool execution errors: {', '.join(self.tool_errors)}"]
        if self.findings_failed:
            lines += ["", f"Findings reported by: {', '.join(self.findings_failed)}"]
        lines += ["", "Check individual job reports for details."]
        return "\n".join(lines) + "\n"
