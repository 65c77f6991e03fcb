"""Trivy filesystem and container image scan job."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

from pipewarden.config.models import TrivyConfig
from pipewarden.core.errors import ToolNotFoundError
from pipewarden.core.logging import get_logger
from pipewarden.core.models import DEFAULT_PRODUCT, Finding, ScanJobResult, Severity
from pipewarden.core.process import find_tool, run_command, tool_available
from pipewarden.security.jobs.base import JobContext, ScanJob, describe_failure

LOGGER = get_logger(__name__)

INSTALL_HINT = "Install from: https://aquasecurity.github.io/trivy/"


def parse_trivy_output(data: Dict[str, Any]) -> List[Finding]:
    """Convert Trivy JSON results into findings.

    Vulnerabilities, secrets and misconfigurations all count.
    """
    findings: List[Finding] = []
    for result in data.get("Results") or []:
        target = result.get("Target", "")

        for vuln in result.get("Vulnerabilities") or []:
            findings.append(
                Finding(
                    rule_id=vuln.get("VulnerabilityID", "unknown"),
                    title=vuln.get("Title") or "Vulnerability detected",
                    severity=Severity.from_string(vuln.get("Severity")),
                    tool="trivy",
                    file_path=target,
                    package=vuln.get("PkgName"),
                )
            )

        for secret in result.get("Secrets") or []:
            findings.append(
                Finding(
                    rule_id=secret.get("RuleID", "secret-detected"),
                    title=f"Secret detected: {secret.get('Category', 'unknown')}",
                    severity=Severity.from_string(secret.get("Severity")),
                    tool="trivy",
                    file_path=target,
                    line=secret.get("StartLine"),
                )
            )

        for misconfig in result.get("Misconfigurations") or []:
            findings.append(
                Finding(
                    rule_id=misconfig.get("ID", "unknown"),
                    title=misconfig.get("Title") or "Misconfiguration detected",
                    severity=Severity.from_string(misconfig.get("Severity")),
                    tool="trivy",
                    file_path=target,
                )
            )
    return findings


class TrivyScanJob(ScanJob):
    """Runs ``trivy fs`` and, when a local image exists, ``trivy image``."""

    failure_comment = (
        "Security vulnerabilities detected by Trivy. "
        "Check the Trivy reports artifact for details."
    )

    def __init__(self, config: Optional[TrivyConfig] = None, image: str = DEFAULT_PRODUCT) -> None:
        self._config = config or TrivyConfig()
        self._image = self._config.image or image

    @property
    def name(self) -> str:
        return "trivy-scan"

    def execute(self, context: JobContext) -> ScanJobResult:
        binary = str(find_tool(self._config.command, INSTALL_HINT))
        context.report_dir.mkdir(parents=True, exist_ok=True)

        fs_report = context.report_dir / "trivy-fs-report.json"
        fs_cmd = [
            binary, "fs",
            "--severity", self._config.severity,
            "--format", "json",
            "--output", str(fs_report),
            "--scanners", self._config.scanners,
            ".",
        ]
        result = run_command(fs_cmd, cwd=context.project_root, timeout=self._config.timeout)
        if not result.success:
            return self.error_result(f"trivy fs failed ({describe_failure(result)})")

        findings = self._load_findings(fs_report)
        if findings is None:
            return self.error_result(f"Unreadable report {fs_report}")
        reports = [fs_report]
        notes: List[str] = []

        image_report = self._scan_image(binary, context, notes)
        if image_report is not None:
            image_findings = self._load_findings(image_report)
            if image_findings is None:
                notes.append(f"Unreadable image report {image_report.name}, ignored.")
            else:
                findings.extend(image_findings)
                reports.append(image_report)

        return self.classify(findings, reports=reports, notes=notes)

    def _load_findings(self, path: Path) -> Optional[List[Finding]]:
        try:
            return parse_trivy_output(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, json.JSONDecodeError) as e:
            LOGGER.warning(f"Could not read {path}: {e}")
            return None

    def image_exists(self, context: JobContext) -> bool:
        """Whether ``docker images`` lists the configured image."""
        if not tool_available("docker"):
            return False
        try:
            listing = run_command(
                ["docker", "images", "--format", "{{.Repository}}:{{.Tag}}"],
                cwd=context.project_root,
                timeout=60,
            )
        except ToolNotFoundError:
            return False
        return listing.success and self._image in listing.stdout

    def _scan_image(self, binary: str, context: JobContext, notes: List[str]) -> Optional[Path]:
        """Scan the local image. Failures are tolerated and recorded as notes."""
        if not self.image_exists(context):
            message = f"No local Docker image found for {self._image}. Skipping image scan."
            LOGGER.info(message)
            notes.append(message)
            return None

        image_report = context.report_dir / "trivy-image-report.json"
        image_ref = f"{self._image}:{self._config.image_tag}"
        cmd = [
            binary, "image",
            "--severity", self._config.severity,
            "--format", "json",
            "--output", str(image_report),
            image_ref,
        ]
        result = run_command(cmd, cwd=context.project_root, timeout=self._config.timeout)
        if not result.success:
            message = f"Image scan of {image_ref} failed ({describe_failure(result)}), ignored."
            LOGGER.warning(message)
            notes.append(message)
            return None
        return image_report
