"""Semgrep static analysis job."""

from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from pipewarden.config.models import SemgrepConfig
from pipewarden.core.logging import get_logger
from pipewarden.core.models import Finding, ScanJobResult, Severity
from pipewarden.core.process import find_tool, run_command
from pipewarden.security.jobs.base import JobContext, ScanJob, describe_failure

LOGGER = get_logger(__name__)

INSTALL_HINT = "Install with: pip install semgrep"

# semgrep exits 1 when blocking findings are present
FINDINGS_EXIT_CODE = 1


def parse_semgrep_output(data: Dict[str, Any]) -> List[Finding]:
    findings: List[Finding] = []
    for item in data.get("results") or []:
        extra = item.get("extra") or {}
        check_id = item.get("check_id", "unknown")
        findings.append(
            Finding(
                rule_id=check_id,
                title=(extra.get("message") or check_id).strip().splitlines()[0],
                severity=Severity.from_string(extra.get("severity")),
                tool="semgrep",
                file_path=item.get("path", ""),
                line=(item.get("start") or {}).get("line"),
            )
        )
    return findings


class SemgrepScanJob(ScanJob):
    """Runs ``semgrep scan`` over the repository."""

    failure_comment = (
        "Security issues detected by Semgrep. "
        "Check the Semgrep report artifact for details."
    )

    def __init__(self, config: Optional[SemgrepConfig] = None) -> None:
        self._config = config or SemgrepConfig()

    @property
    def name(self) -> str:
        return "semgrep-scan"

    def build_command(self, binary: str, output: str) -> List[str]:
        cmd = [
            binary, "scan",
            "--config", self._config.config,
            "--output", output,
            "--json",
            "--severity", self._config.severity,
        ]
        for pattern in self._config.exclude:
            cmd += ["--exclude", pattern]
        cmd.append(".")
        return cmd

    def execute(self, context: JobContext) -> ScanJobResult:
        binary = str(find_tool(self._config.command, INSTALL_HINT))
        context.report_dir.mkdir(parents=True, exist_ok=True)
        report = context.report_dir / "semgrep-report.json"

        env = {"SEMGREP_APP_TOKEN": self._config.app_token} if self._config.app_token else None
        result = run_command(
            self.build_command(binary, str(report)),
            cwd=context.project_root,
            timeout=self._config.timeout,
            env=env,
        )
        if result.returncode not in (0, FINDINGS_EXIT_CODE) or result.timed_out:
            return self.error_result(f"semgrep failed ({describe_failure(result)})")

        try:
            data = json.loads(report.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            return self.error_result(f"Unreadable report {report}: {e}")

        findings = parse_semgrep_output(data)
        if result.returncode == FINDINGS_EXIT_CODE and not findings:
            return self.error_result(f"semgrep failed ({describe_failure(result)})")
        errors = data.get("errors") or []
        notes = [f"semgrep reported {len(errors)} non-fatal error(s)"] if errors else []
        return self.classify(findings, reports=[report], notes=notes)
