"""Security command implementation."""

from __future__ import annotations

from argparse import Namespace
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from pipewarden.cli.commands import Command
from pipewarden.cli.exit_codes import (
    EXIT_INVALID_USAGE,
    EXIT_ISSUES_FOUND,
    EXIT_SUCCESS,
    EXIT_TOOL_ERROR,
)
from pipewarden.config.models import PipewardenConfig
from pipewarden.core.logging import get_logger
from pipewarden.core.models import ScanOutcome, TriggerContext
from pipewarden.github.client import GitHubClient
from pipewarden.notify.slack import create_notifier
from pipewarden.security.orchestrator import SecurityScanOrchestrator
from pipewarden.security.summary import SecuritySummary
from pipewarden.triggers import TriggerPolicy

LOGGER = get_logger(__name__)

_OUTCOME_STYLES = {
    ScanOutcome.PASSED: "green",
    ScanOutcome.SKIPPED: "dim",
    ScanOutcome.FINDINGS_REPORTED: "red",
    ScanOutcome.TOOL_EXECUTION_ERROR: "yellow",
}


def summary_exit_code(summary: SecuritySummary) -> int:
    """Map a summary to an exit code. Tool errors take precedence over findings."""
    if summary.passed:
        return EXIT_SUCCESS
    if summary.tool_errors:
        return EXIT_TOOL_ERROR
    return EXIT_ISSUES_FOUND


def render_summary(summary: SecuritySummary, console: Console) -> None:
    table = Table(title="Security Scan Summary")
    table.add_column("Job")
    table.add_column("Gating")
    table.add_column("Outcome")
    table.add_column("Findings", justify="right")
    table.add_column("Duration", justify="right")
    for result in summary.results:
        style = _OUTCOME_STYLES.get(result.outcome, "")
        table.add_row(
            result.job,
            "yes" if result.job in summary.gating_jobs else "no",
            f"[{style}]{result.outcome.value}[/{style}]",
            str(len(result.findings)),
            f"{result.duration_ms / 1000:.1f}s",
        )
    console.print(table)
    if summary.passed:
        console.print(f"[bold green]{summary.message}[/bold green]")
    else:
        console.print(f"[bold red]{summary.message}[/bold red]")


class SecurityCommand(Command):
    """Runs the security scanning pipeline."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    @property
    def name(self) -> str:
        return "security"

    def execute(self, args: Namespace, config: Optional[PipewardenConfig] = None) -> int:
        if config is None:
            LOGGER.error("Configuration is required for security command")
            return EXIT_INVALID_USAGE

        project_root = Path(args.project_root).resolve()
        trigger = TriggerContext.from_environment()

        # Local runs carry no ref, and the policy only filters CI events
        if trigger.ref_name and not TriggerPolicy(config.triggers.security).should_run(trigger):
            self._console.print("Security pipeline not configured for this event, skipping.")
            return EXIT_SUCCESS

        orchestrator = SecurityScanOrchestrator(
            config,
            project_root,
            notifier=create_notifier(config.notifications),
            github=GitHubClient(config.github.token, api_url=config.github.api_url),
        )
        try:
            result = orchestrator.run(trigger, only=args.jobs)
        except ValueError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE

        render_summary(result.summary, self._console)
        self._console.print(f"Reports written to {orchestrator.report_dir}")
        return summary_exit_code(result.summary)
