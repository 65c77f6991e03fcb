"""Base class for security scan jobs."""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pipewarden.core.errors import GitHubError, ToolNotFoundError
from pipewarden.core.logging import get_logger
from pipewarden.core.models import Finding, ScanJobResult, ScanOutcome, TriggerContext
from pipewarden.core.process import CommandResult
from pipewarden.github.client import GitHubClient
from pipewarden.security.reports import write_job_reports

LOGGER = get_logger(__name__)


@dataclass
class JobContext:
    """Everything a scan job needs for one run."""

    project_root: Path
    report_dir: Path
    trigger: TriggerContext
    github: Optional[GitHubClient] = None
    repository: str = ""

    @property
    def repo(self) -> str:
        return self.repository or self.trigger.repository


class ScanJob(ABC):
    """Base class for all scan jobs.

    Subclasses implement ``execute``; ``run`` adds timing, uniform error
    classification, report writing and the pull request comment on failure.
    """

    # Comment posted on the triggering pull request when the job fails
    failure_comment: str = ""

    @property
    @abstractmethod
    def name(self) -> str:
        """Job identifier (e.g. 'trivy-scan')."""

    @abstractmethod
    def execute(self, context: JobContext) -> ScanJobResult:
        """Run the underlying tool and classify its result.

        Raises:
            ToolNotFoundError: If the tool binary is unavailable.
        """

    def run(self, context: JobContext) -> ScanJobResult:
        """Execute the job and return a terminal result. Never raises."""
        LOGGER.info(f"Running {self.name}...")
        start = time.monotonic()
        try:
            result = self.execute(context)
        except ToolNotFoundError as e:
            LOGGER.error(f"{self.name}: {e}")
            result = self.error_result(str(e))
        except (OSError, ValueError) as e:
            LOGGER.error(f"{self.name} failed: {e}")
            result = self.error_result(f"{type(e).__name__}: {e}")
        result.duration_ms = int((time.monotonic() - start) * 1000)

        try:
            result.reports.extend(write_job_reports(result, context.report_dir))
        except OSError as e:
            LOGGER.warning(f"Could not write reports for {self.name}: {e}")

        LOGGER.info(
            f"{self.name}: {result.outcome.value} "
            f"({len(result.findings)} findings, {result.duration_ms}ms)"
        )
        if not result.succeeded and context.trigger.is_pull_request:
            self.comment_on_failure(context)
        return result

    def comment_on_failure(self, context: JobContext) -> bool:
        """Post the failure comment on the pull request. Best-effort."""
        if not self.failure_comment:
            return False
        return post_pr_comment(context, self.failure_comment)

    def error_result(self, message: str) -> ScanJobResult:
        return ScanJobResult(job=self.name, outcome=ScanOutcome.TOOL_EXECUTION_ERROR, error=message)

    def classify(
        self,
        findings: List[Finding],
        reports: Optional[List[Path]] = None,
        notes: Optional[List[str]] = None,
    ) -> ScanJobResult:
        """Build a passed or findings_reported result."""
        outcome = ScanOutcome.FINDINGS_REPORTED if findings else ScanOutcome.PASSED
        return ScanJobResult(
            job=self.name,
            outcome=outcome,
            findings=findings,
            reports=list(reports or []),
            notes=list(notes or []),
        )


def post_pr_comment(context: JobContext, body: str) -> bool:
    """Comment on the triggering pull request, logging instead of raising."""
    number = context.trigger.pr_number
    if context.github is None or number is None or not context.repo:
        LOGGER.debug("No pull request context, not commenting")
        return False
    try:
        context.github.create_issue_comment(context.repo, number, body)
    except GitHubError as e:
        LOGGER.warning(f"Failed to comment on PR #{number}: {e}")
        return False
    LOGGER.info(f"Commented on PR #{number}")
    return True


def describe_failure(result: CommandResult) -> str:
    """Short description of a failed tool invocation."""
    if result.timed_out:
        return result.stderr or "timed out"
    tail = result.stderr.strip().splitlines()[-5:]
    detail = "\n".join(tail) if tail else "no output"
    return f"exit code {result.returncode}: {detail}"
