"""Tests for the security summary and reports."""

from __future__ import annotations

import json
from pathlib import Path

from pipewarden.core.models import Finding, ScanJobResult, ScanOutcome, Severity
from pipewarden.security.reports import (
    MAX_MARKDOWN_FINDINGS,
    render_job_markdown,
    severity_counts,
    write_job_reports,
)
from pipewarden.security.summary import SecuritySummary


def _result(job: str, outcome: ScanOutcome, findings: int = 0) -> ScanJobResult:
    return ScanJobResult(
        job=job,
        outcome=outcome,
        findings=[
            Finding(f"R{i}", f"issue {i}", Severity.HIGH, job, file_path="a.py", line=i + 1)
            for i in range(findings)
        ],
    )


def _all_passed() -> list:
    return [
        _result("dependabot-alerts", ScanOutcome.PASSED),
        _result("dependency-check", ScanOutcome.PASSED),
        _result("trivy-scan", ScanOutcome.PASSED),
        _result("semgrep-scan", ScanOutcome.PASSED),
    ]


class TestSecuritySummary:
    """Tests for SecuritySummary.evaluate."""

    def test_all_passed(self) -> None:
        summary = SecuritySummary.evaluate(_all_passed())
        assert summary.passed is True
        assert summary.message == "No critical security issues detected. Pipeline passed."

    def test_findings_fail(self) -> None:
        results = _all_passed()
        results[2] = _result("trivy-scan", ScanOutcome.FINDINGS_REPORTED, findings=2)
        summary = SecuritySummary.evaluate(results)
        assert summary.passed is False
        assert summary.findings_failed == ["trivy-scan"]
        assert summary.tool_errors == []
        assert summary.total_findings == 2
        assert summary.message == (
            "Security issues were detected. Failing the pipeline to ensure review."
        )

    def test_tool_error_is_separate(self) -> None:
        """Test that a crashed scanner is reported as a tool error, not findings."""
        results = _all_passed()
        results[3] = _result("semgrep-scan", ScanOutcome.TOOL_EXECUTION_ERROR)
        summary = SecuritySummary.evaluate(results)
        assert summary.passed is False
        assert summary.tool_errors == ["semgrep-scan"]
        assert summary.findings_failed == []

    def test_missing_gating_job_fails(self) -> None:
        results = [r for r in _all_passed() if r.job != "dependency-check"]
        summary = SecuritySummary.evaluate(results)
        assert summary.passed is False
        assert summary.missing == ["dependency-check"]

    def test_dependabot_not_gating(self) -> None:
        """Test that the advisory job cannot fail the pipeline by default."""
        results = _all_passed()
        results[0] = _result("dependabot-alerts", ScanOutcome.TOOL_EXECUTION_ERROR)
        assert SecuritySummary.evaluate(results).passed is True

    def test_skipped_counts_as_success(self) -> None:
        results = _all_passed()
        results[1] = _result("dependency-check", ScanOutcome.SKIPPED)
        assert SecuritySummary.evaluate(results).passed is True

    def test_custom_gating(self) -> None:
        results = _all_passed()
        results[2] = _result("trivy-scan", ScanOutcome.FINDINGS_REPORTED, findings=1)
        assert SecuritySummary.evaluate(results, ["semgrep-scan"]).passed is True

    def test_to_dict_and_markdown(self) -> None:
        results = _all_passed()
        results[2] = _result("trivy-scan", ScanOutcome.FINDINGS_REPORTED, findings=1)
        summary = SecuritySummary.evaluate(results[1:])
        data = summary.to_dict()
        assert data["passed"] is False
        assert data["total_findings"] == 1
        assert [j["job"] for j in data["jobs"]] == ["dependency-check", "trivy-scan", "semgrep-scan"]
        markdown = summary.to_markdown()
        assert "**Result:** FAILED" in markdown
        assert "| trivy-scan | yes | findings_reported | 0 | 1 | 0 | 0 |" in markdown
        json.dumps(data)


class TestReports:
    """Tests for per-job reports."""

    def test_severity_counts(self) -> None:
        counts = severity_counts(_result("x", ScanOutcome.FINDINGS_REPORTED, findings=3))
        assert counts["high"] == 3
        assert counts["critical"] == 0

    def test_markdown_passed(self) -> None:
        text = render_job_markdown(_result("trivy-scan", ScanOutcome.PASSED))
        assert text.startswith("# trivy-scan\n")
        assert "No findings." in text

    def test_markdown_error(self) -> None:
        result = ScanJobResult("semgrep-scan", ScanOutcome.TOOL_EXECUTION_ERROR, error="boom")
        text = render_job_markdown(result)
        assert "**Outcome:** tool execution error" in text
        assert "boom" in text

    def test_markdown_truncates(self) -> None:
        result = _result("trivy-scan", ScanOutcome.FINDINGS_REPORTED, findings=MAX_MARKDOWN_FINDINGS + 5)
        text = render_job_markdown(result)
        assert "... and 5 more (see JSON report)" in text
        assert "a.py:1 |" in text

    def test_write_job_reports(self, tmp_path: Path) -> None:
        paths = write_job_reports(_result("trivy-scan", ScanOutcome.PASSED), tmp_path / "out")
        assert [p.name for p in paths] == ["trivy-scan.json", "trivy-scan.md"]
        data = json.loads(paths[0].read_text())
        assert data["outcome"] == "passed"
