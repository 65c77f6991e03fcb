"""Leaf security scan jobs."""

from __future__ import annotations

from typing import List

from pipewarden.config.models import PipewardenConfig
from pipewarden.security.jobs.base import JobContext, ScanJob, post_pr_comment
from pipewarden.security.jobs.dependabot import DependabotAlertsJob
from pipewarden.security.jobs.dependency_check import DependencyCheckJob
from pipewarden.security.jobs.semgrep import SemgrepScanJob
from pipewarden.security.jobs.trivy import TrivyScanJob

JOB_NAMES: List[str] = ["dependabot-alerts", "dependency-check", "trivy-scan", "semgrep-scan"]


def build_jobs(config: PipewardenConfig) -> List[ScanJob]:
    """Create the four scan jobs from configuration."""
    security = config.security
    return [
        DependabotAlertsJob(),
        DependencyCheckJob(security.dependency_check),
        TrivyScanJob(security.trivy, image=config.container_image),
        SemgrepScanJob(security.semgrep),
    ]


__all__ = [
    "JOB_NAMES",
    "build_jobs",
    "JobContext",
    "ScanJob",
    "post_pr_comment",
    "DependabotAlertsJob",
    "DependencyCheckJob",
    "SemgrepScanJob",
    "TrivyScanJob",
]
