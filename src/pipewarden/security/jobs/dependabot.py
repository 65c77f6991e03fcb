"""Advisory job surfacing open Dependabot pull requests."""

from __future__ import annotations

from typing import List

from pipewarden.core.errors import GitHubError
from pipewarden.core.logging import get_logger
from pipewarden.core.models import ScanJobResult, ScanOutcome
from pipewarden.security.jobs.base import JobContext, ScanJob, post_pr_comment

LOGGER = get_logger(__name__)

DEPENDABOT_LOGIN = "dependabot[bot]"

ADVISORY_NOTE = (
    "Dependabot alerts are managed via GitHub Security settings. "
    "Ensure Dependabot is enabled in repository settings."
)


def format_dependabot_comment(numbers: List[int]) -> str:
    refs = ", ".join(f"#{n}" for n in numbers)
    return f"Dependabot has open PRs for dependency updates. Please review: {refs}"


class DependabotAlertsJob(ScanJob):
    """Lists open Dependabot PRs on pull request runs.

    This job is advisory: it never reports findings and is not part of the
    gating set by default.
    """

    @property
    def name(self) -> str:
        return "dependabot-alerts"

    def execute(self, context: JobContext) -> ScanJobResult:
        LOGGER.info(ADVISORY_NOTE)
        notes = [ADVISORY_NOTE]

        if not context.trigger.is_pull_request:
            return ScanJobResult(job=self.name, outcome=ScanOutcome.PASSED, notes=notes)

        if context.github is None or not context.repo:
            notes.append("No GitHub client configured, Dependabot PRs not checked.")
            return ScanJobResult(job=self.name, outcome=ScanOutcome.SKIPPED, notes=notes)

        try:
            pulls = context.github.list_open_pulls(context.repo)
        except GitHubError as e:
            return ScanJobResult(
                job=self.name,
                outcome=ScanOutcome.TOOL_EXECUTION_ERROR,
                error=f"Listing pull requests failed: {e}",
                notes=notes,
            )

        numbers = [
            int(pr["number"])
            for pr in pulls
            if (pr.get("user") or {}).get("login") == DEPENDABOT_LOGIN
        ]
        if numbers:
            LOGGER.info(f"Found {len(numbers)} open Dependabot PR(s)")
            post_pr_comment(context, format_dependabot_comment(numbers))
            notes.append(f"Open Dependabot PRs: {', '.join(f'#{n}' for n in numbers)}")
        return ScanJobResult(job=self.name, outcome=ScanOutcome.PASSED, notes=notes)
