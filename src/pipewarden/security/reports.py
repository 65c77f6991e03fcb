"""Two-format (JSON and Markdown) reports for scan jobs and the summary."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List

from pipewarden.core.logging import get_logger
from pipewarden.core.models import ScanJobResult, ScanOutcome, Severity

LOGGER = get_logger(__name__)

# Findings listed per Markdown report before truncation
MAX_MARKDOWN_FINDINGS = 50

_OUTCOME_LABELS = {
    ScanOutcome.PASSED: "passed",
    ScanOutcome.FINDINGS_REPORTED: "findings reported",
    ScanOutcome.TOOL_EXECUTION_ERROR: "tool execution error",
    ScanOutcome.SKIPPED: "skipped",
}

_SEVERITY_ORDER = [
    Severity.CRITICAL,
    Severity.HIGH,
    Severity.MEDIUM,
    Severity.LOW,
    Severity.INFO,
]


def write_json(data: Dict[str, Any], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)
    LOGGER.debug(f"JSON report generated: {path}")
    return path


def severity_counts(result: ScanJobResult) -> Dict[str, int]:
    counts = {s.value: 0 for s in _SEVERITY_ORDER}
    for finding in result.findings:
        counts[finding.severity.value] += 1
    return counts


def render_job_markdown(result: ScanJobResult) -> str:
    """Render a human-readable report for one job."""
    lines: List[str] = [
        f"# {result.job}",
        "",
        f"**Outcome:** {_OUTCOME_LABELS[result.outcome]}",
        f"**Duration:** {result.duration_ms / 1000:.1f}s",
    ]
    if result.error:
        lines += ["", "## Error", "", "```", result.error.strip(), "```"]
    if result.notes:
        lines += ["", "## Notes", ""]
        lines += [f"- {note}" for note in result.notes]

    if result.findings:
        counts = severity_counts(result)
        lines += ["", "## Findings", ""]
        lines += ["| Severity | Count |", "|----------|-------|"]
        lines += [f"| {s.value} | {counts[s.value]} |" for s in _SEVERITY_ORDER if counts[s.value]]
        lines += ["", "| Severity | Rule | Title | Location |", "|---|---|---|---|"]
        ordered = sorted(result.findings, key=lambda f: _SEVERITY_ORDER.index(f.severity))
        for finding in ordered[:MAX_MARKDOWN_FINDINGS]:
            location = finding.file_path or finding.package or ""
            if finding.line:
                location = f"{location}:{finding.line}"
            title = finding.title.replace("|", "\\|")
            lines.append(f"| {finding.severity.value} | {finding.rule_id} | {title} | {location} |")
        remaining = len(ordered) - MAX_MARKDOWN_FINDINGS
        if remaining > 0:
            lines += ["", f"... and {remaining} more (see JSON report)"]
    elif result.outcome == ScanOutcome.PASSED:
        lines += ["", "No findings."]

    return "\n".join(lines) + "\n"


def write_job_reports(result: ScanJobResult, report_dir: Path) -> List[Path]:
    """Write ``<job>.json`` and ``<job>.md`` into ``report_dir``."""
    json_path = write_json(result.to_dict(), report_dir / f"{result.job}.json")
    md_path = report_dir / f"{result.job}.md"
    md_path.write_text(render_job_markdown(result), encoding="utf-8")
    return [json_path, md_path]
