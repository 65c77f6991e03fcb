"""Security pipeline orchestration.

The scan jobs run concurrently with no ordering between them. The summary
waits for all of them, evaluates the gating jobs and notifies on failure.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
from typing import List, Optional

from pipewarden.config.models import PipewardenConfig
from pipewarden.core.logging import get_logger
from pipewarden.core.models import ScanJobResult, ScanOutcome, TriggerContext
from pipewarden.core.parallel import ParallelExecutor
from pipewarden.github.client import GitHubClient
from pipewarden.notify.base import Notifier, NullNotifier, notify_safely
from pipewarden.security.jobs import JobContext, ScanJob, build_jobs
from pipewarden.security.reports import write_json
from pipewarden.security.summary import SecuritySummary

LOGGER = get_logger(__name__)


@dataclass
class SecurityRunResult:
    summary: SecuritySummary
    reports: List[Path] = field(default_factory=list)
    notified: bool = False

    @property
    def passed(self) -> bool:
        return self.summary.passed


def security_failure_message(trigger: TriggerContext) -> str:
    return (
        f"Security vulnerabilities detected in {trigger.repository} on branch "
        f"{trigger.ref_name}. Check GitHub Actions for details: {trigger.run_url}"
    )


class SecurityScanOrchestrator:
    """Runs scan jobs, writes the summary and sends the failure notification."""

    def __init__(
        self,
        config: PipewardenConfig,
        project_root: Path,
        jobs: Optional[List[ScanJob]] = None,
        notifier: Optional[Notifier] = None,
        github: Optional[GitHubClient] = None,
    ) -> None:
        self._config = config
        self._project_root = project_root
        self._jobs = jobs if jobs is not None else build_jobs(config)
        self._notifier = notifier or NullNotifier()
        self._github = github

    @property
    def report_dir(self) -> Path:
        path = Path(self._config.security.report_dir)
        return path if path.is_absolute() else self._project_root / path

    def select(self, names: Optional[List[str]]) -> List[ScanJob]:
        """Restrict the run to named jobs (all jobs when ``names`` is empty)."""
        if not names:
            return list(self._jobs)
        known = {job.name: job for job in self._jobs}
        unknown = [n for n in names if n not in known]
        if unknown:
            raise ValueError(
                f"Unknown job(s): {', '.join(unknown)}. Available: {', '.join(known)}"
            )
        return [known[n] for n in names]

    def run_jobs(self, trigger: TriggerContext, jobs: List[ScanJob]) -> List[ScanJobResult]:
        context = JobContext(
            project_root=self._project_root,
            report_dir=self.report_dir,
            trigger=trigger,
            github=self._github,
            repository=self._config.github.repository,
        )
        executor = ParallelExecutor(
            max_workers=self._config.security.max_workers,
            sequential=self._config.security.sequential,
        )
        return executor.run(
            [(job.name, partial(job.run, context)) for job in jobs],
            on_error=lambda name, e: ScanJobResult(
                job=name, outcome=ScanOutcome.TOOL_EXECUTION_ERROR, error=str(e)
            ),
        )

    def run(self, trigger: TriggerContext, only: Optional[List[str]] = None) -> SecurityRunResult:
        """Run the security pipeline.

        Args:
            trigger: Explicit trigger context.
            only: Optional subset of job names to run.

        Returns:
            SecurityRunResult with the evaluated summary.
        """
        jobs = self.select(only)
        results = self.run_jobs(trigger, jobs)

        gating = self._config.security.gating_jobs
        if only:
            gating = [g for g in gating if g in only]
        summary = SecuritySummary.evaluate(results, gating)

        LOGGER.info("Security scanning completed for all tools.")
        if summary.passed:
            LOGGER.info(summary.message)
        else:
            LOGGER.error(summary.message)

        reports = self._write_summary(summary)

        notified = False
        if not summary.passed:
            if trigger.is_manual:
                LOGGER.info("Manual run, skipping failure notification")
            else:
                notified = notify_safely(
                    self._notifier,
                    self._config.notifications.security_channel,
                    security_failure_message(trigger),
                )
        return SecurityRunResult(summary=summary, reports=reports, notified=notified)

    def _write_summary(self, summary: SecuritySummary) -> List[Path]:
        report_dir = self.report_dir
        try:
            json_path = write_json(summary.to_dict(), report_dir / "security-summary.json")
            md_path = report_dir / "security-summary.md"
            md_path.write_text(summary.to_markdown(), encoding="utf-8")
        except OSError as e:
            LOGGER.warning(f"Could not write security summary: {e}")
            return []
        return [json_path, md_path]
