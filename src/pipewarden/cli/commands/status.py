"""Status command implementation."""

from __future__ import annotations

import shutil
from argparse import Namespace
from typing import List, Optional, Tuple

from rich.console import Console
from rich.table import Table

from pipewarden.bootstrap.paths import PipewardenPaths
from pipewarden.cli.commands import Command
from pipewarden.cli.exit_codes import EXIT_SUCCESS
from pipewarden.config.models import PipewardenConfig
from pipewarden.config.loader import get_default_config


def required_tools(config: PipewardenConfig) -> List[Tuple[str, str]]:
    """(binary, purpose) pairs used by the pipelines."""
    security = config.security
    return [
        ("git", "version resolution, tagging"),
        ("npx", "semantic-release analyzer"),
        ("cargo", "rust build track"),
        ("pip", "python build track"),
        ("go", "go build track"),
        ("npm", "typescript build track"),
        (security.dependency_check.command, "dependency-check"),
        (security.trivy.command, "trivy-scan"),
        (security.semgrep.command, "semgrep-scan"),
        ("docker", "trivy image scan"),
    ]


class StatusCommand(Command):
    """Shows tool availability and resolved configuration."""

    def __init__(self, version: str, console: Optional[Console] = None) -> None:
        self._version = version
        self._console = console or Console()

    @property
    def name(self) -> str:
        return "status"

    def execute(self, args: Namespace, config: Optional[PipewardenConfig] = None) -> int:
        config = config or get_default_config()
        paths = PipewardenPaths.default()

        self._console.print(f"pipewarden version: {self._version}")
        self._console.print(f"Home: {paths.home}")
        self._console.print(f"Dependency cache: {paths.dependency_cache_dir}")
        self._console.print(f"Product: {config.product} ({config.display_name})")
        self._console.print()

        table = Table(title="Tools")
        table.add_column("Tool")
        table.add_column("Used by")
        table.add_column("Status")
        for tool, purpose in required_tools(config):
            location = shutil.which(tool)
            status = f"[green]{location}[/green]" if location else "[red]not found[/red]"
            table.add_row(tool, purpose, status)
        self._console.print(table)

        self._console.print()
        if config._config_sources:
            self._console.print("Config sources:")
            for source in config._config_sources:
                self._console.print(f"  {source}")
        else:
            self._console.print("Config sources: built-in defaults")

        self._console.print(f"Analyzer: {config.release.analyzer}")
        self._console.print(f"Gating jobs: {', '.join(config.security.gating_jobs)}")
        notifications = "enabled" if config.notifications.slack_token else "disabled"
        self._console.print(f"Slack notifications: {notifications}")
        return EXIT_SUCCESS
