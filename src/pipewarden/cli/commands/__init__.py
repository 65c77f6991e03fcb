"""CLI commands package.

This module provides the base Command class and exports all command implementations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from argparse import Namespace
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from pipewarden.config.models import PipewardenConfig


class Command(ABC):
    """Base class for CLI commands."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Command identifier."""

    @abstractmethod
    def execute(self, args: Namespace, config: Optional["PipewardenConfig"] = None) -> int:
        """Execute the command.

        Args:
            args: Parsed command-line arguments.
            config: Loaded pipewarden configuration.

        Returns:
            Exit code (0 for success, non-zero for error).
        """


# ruff: noqa: E402
from pipewarden.cli.commands.release import ReleaseCommand
from pipewarden.cli.commands.security import SecurityCommand
from pipewarden.cli.commands.status import StatusCommand

__all__ = [
    "Command",
    "ReleaseCommand",
    "SecurityCommand",
    "StatusCommand",
]
