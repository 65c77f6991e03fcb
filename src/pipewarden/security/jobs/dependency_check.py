"""OWASP Dependency-Check job."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pipewarden.config.models import DependencyCheckConfig
from pipewarden.core.logging import get_logger
from pipewarden.core.models import Finding, ScanJobResult, Severity
from pipewarden.core.process import find_tool, run_command
from pipewarden.security.jobs.base import JobContext, ScanJob, describe_failure

LOGGER = get_logger(__name__)

INSTALL_HINT = "Download from: https://owasp.org/www-project-dependency-check/"


def cvss_score(vulnerability: Dict[str, Any]) -> Optional[float]:
    """Best available CVSS base score (v3, then v2)."""
    v3 = vulnerability.get("cvssv3") or {}
    if v3.get("baseScore") is not None:
        return float(v3["baseScore"])
    v2 = vulnerability.get("cvssv2") or {}
    if v2.get("score") is not None:
        return float(v2["score"])
    return None


def score_to_severity(score: Optional[float]) -> Severity:
    if score is None:
        return Severity.MEDIUM
    if score >= 9.0:
        return Severity.CRITICAL
    if score >= 7.0:
        return Severity.HIGH
    if score >= 4.0:
        return Severity.MEDIUM
    return Severity.LOW


def parse_report(data: Dict[str, Any], threshold: float) -> List[Finding]:
    """Vulnerabilities at or above the CVSS threshold.

    Args:
        data: Parsed ``dependency-check-report.json``.
        threshold: Minimum CVSS score that counts as a finding.
    """
    findings: List[Finding] = []
    for dependency in data.get("dependencies", []):
        package = dependency.get("fileName", "unknown")
        file_path = dependency.get("filePath", package)
        for vuln in dependency.get("vulnerabilities") or []:
            score = cvss_score(vuln)
            if score is None or score < threshold:
                continue
            cve = vuln.get("name", "unknown")
            findings.append(
                Finding(
                    rule_id=cve,
                    title=f"{cve}: Vulnerability in {package}",
                    severity=score_to_severity(score),
                    tool="dependency-check",
                    file_path=file_path,
                    package=package,
                    score=score,
                )
            )
    return findings


class DependencyCheckJob(ScanJob):
    """Scans dependencies for known CVEs with OWASP Dependency-Check."""

    failure_comment = (
        "Dependency vulnerabilities detected. "
        "Check the Dependency-Check report artifact for details."
    )

    def __init__(self, config: Optional[DependencyCheckConfig] = None) -> None:
        self._config = config or DependencyCheckConfig()

    @property
    def name(self) -> str:
        return "dependency-check"

    def build_command(self, binary: str, out_dir: Path) -> List[str]:
        cmd = [
            binary,
            "--scan", ".",
            "--format", "HTML",
            "--format", "JSON",
            "--out", str(out_dir),
            "--failOnCVSS", f"{self._config.fail_on_cvss:g}",
        ]
        if self._config.enable_experimental:
            cmd.append("--enableExperimental")
        return cmd

    def execute(self, context: JobContext) -> ScanJobResult:
        binary = find_tool(self._config.command, INSTALL_HINT)
        out_dir = context.report_dir / self._config.output_dir
        out_dir.mkdir(parents=True, exist_ok=True)

        result = run_command(
            self.build_command(str(binary), out_dir),
            cwd=context.project_root,
            timeout=self._config.timeout,
        )

        report_path = out_dir / "dependency-check-report.json"
        if not report_path.exists():
            return self.error_result(f"No report generated ({describe_failure(result)})")

        try:
            data = json.loads(report_path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            return self.error_result(f"Unreadable report {report_path}: {e}")

        findings = parse_report(data, self._config.fail_on_cvss)
        reports = sorted(out_dir.glob("dependency-check-report.*"))

        if not findings and not result.success:
            # A non-zero exit without qualifying vulnerabilities is a tool failure
            failed = self.error_result(describe_failure(result))
            failed.reports = reports
            return failed
        return self.classify(findings, reports=reports)
