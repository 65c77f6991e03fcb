"""CLI runner: argument parsing, logging setup, config loading and dispatch."""

from __future__ import annotations

from argparse import Namespace
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

from pipewarden.cli.arguments import build_parser
from pipewarden.cli.commands import Command, ReleaseCommand, SecurityCommand, StatusCommand
from pipewarden.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from pipewarden.config.loader import load_config
from pipewarden.core.errors import ConfigError
from pipewarden.core.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def get_version() -> str:
    try:
        return version("pipewarden")
    except PackageNotFoundError:
        # Fallback for editable installs that have not yet built metadata.
        from pipewarden import __version__

        return __version__


def cli_args_to_config_overrides(args: Namespace) -> Dict[str, Any]:
    """Convert CLI arguments to config override dict.

    Only options that were explicitly provided become overrides.
    """
    overrides: Dict[str, Any] = {}
    report_dir = getattr(args, "report_dir", None)
    if report_dir:
        overrides["security"] = {"report_dir": report_dir}
    return overrides


class CLIRunner:
    """Parses arguments and dispatches to commands."""

    def __init__(self) -> None:
        self._version = get_version()
        self._commands: Dict[str, Command] = {
            "security": SecurityCommand(),
            "release": ReleaseCommand(),
            "status": StatusCommand(self._version),
        }

    def run(self, argv: Optional[Iterable[str]] = None) -> int:
        """Run the CLI.

        Args:
            argv: Command-line arguments (defaults to sys.argv).

        Returns:
            Exit code.
        """
        parser = build_parser()
        argv_list = list(argv) if argv is not None else None

        try:
            args = parser.parse_args(argv_list)
        except SystemExit as e:
            # argparse exits 0 for --help and 2 for usage errors
            return EXIT_SUCCESS if e.code in (0, None) else EXIT_INVALID_USAGE

        configure_logging(
            debug=args.debug,
            verbose=args.verbose,
            quiet=args.quiet,
            use_rich=args.rich_logs,
        )

        if args.version:
            print(self._version)
            return EXIT_SUCCESS

        if not args.command:
            parser.print_help()
            return EXIT_SUCCESS

        if args.command in ("security", "release") and not getattr(args, "action", None):
            LOGGER.error(f"Missing action for '{args.command}'. See: pipewarden {args.command} --help")
            return EXIT_INVALID_USAGE

        project_root = Path(args.project_root).resolve()
        if not project_root.is_dir():
            LOGGER.error(f"Project root does not exist: {project_root}")
            return EXIT_INVALID_USAGE

        try:
            config = load_config(
                project_root=project_root,
                cli_config_path=args.config,
                cli_overrides=cli_args_to_config_overrides(args),
            )
        except ConfigError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE

        return self._commands[args.command].execute(args, config)
