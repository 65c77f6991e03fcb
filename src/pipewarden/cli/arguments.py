"""Argument parser for the pipewarden CLI."""

from __future__ import annotations

import argparse
from pathlib import Path

from pipewarden.core.models import ALL_COMPONENTS
from pipewarden.security.jobs import JOB_NAMES

RELEASE_TYPE_CHOICES = ["major", "minor", "patch", "none"]


def _add_global_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show pipewarden version and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (info-level) logging.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce logging output to errors only.",
    )
    parser.add_argument(
        "--rich-logs",
        action="store_true",
        default=None,
        help="Force Rich formatted log output.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        type=Path,
        help="Path to config file (default: .pipewarden.yml in project root).",
    )
    parser.add_argument(
        "--project-root",
        metavar="DIR",
        type=Path,
        default=Path("."),
        help="Repository root (default: current directory).",
    )


def _add_security_parser(subparsers: argparse._SubParsersAction) -> None:
    security = subparsers.add_parser("security", help="Security scanning pipeline.")
    actions = security.add_subparsers(dest="action", metavar="ACTION")

    run = actions.add_parser("run", help="Run all scan jobs and evaluate the summary.")
    run.add_argument(
        "--report-dir",
        metavar="DIR",
        help="Directory for job reports (default: security-reports).",
    )
    run.add_argument(
        "--job",
        action="append",
        dest="jobs",
        choices=JOB_NAMES,
        metavar="NAME",
        help=f"Run only this job (repeatable). One of: {', '.join(JOB_NAMES)}.",
    )


def _add_release_type_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--release-type",
        choices=RELEASE_TYPE_CHOICES,
        default=None,
        help="Manual release type; skips commit analysis.",
    )
    parser.add_argument(
        "--pre-release",
        action="store_true",
        help="Mark the release as a pre-release.",
    )


def _add_from_outputs_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--from-outputs",
        metavar="PATH",
        type=Path,
        help="Read the release decision from a file written by determine-version "
        "(replaces --version and --release-type).",
    )


def _add_release_parser(subparsers: argparse._SubParsersAction) -> None:
    release = subparsers.add_parser("release", help="Release pipeline.")
    actions = release.add_subparsers(dest="action", metavar="ACTION")

    determine = actions.add_parser(
        "determine-version", help="Resolve the release version for this run."
    )
    _add_release_type_options(determine)
    determine.add_argument(
        "--outputs-file",
        metavar="PATH",
        type=Path,
        help="Append key=value outputs to this file (e.g. $GITHUB_OUTPUT).",
    )

    build = actions.add_parser("build", help="Build and package one component.")
    build.add_argument(
        "component",
        choices=[c.value for c in ALL_COMPONENTS],
        help="Component to build.",
    )
    build.add_argument("--version", dest="release_version", help="Release version.")
    build.add_argument(
        "--release-type",
        choices=RELEASE_TYPE_CHOICES,
        default="patch",
        help="Release type from version determination ('none' skips the build).",
    )
    _add_from_outputs_option(build)

    publish = actions.add_parser("publish", help="Publish built artifacts as a release.")
    publish.add_argument("--version", dest="release_version", help="Release version.")
    _add_from_outputs_option(publish)
    publish.add_argument(
        "--pre-release",
        action="store_true",
        help="Mark the release as a pre-release.",
    )
    publish.add_argument(
        "--dry-run",
        action="store_true",
        help="Log what would be published without publishing.",
    )

    run = actions.add_parser("run", help="Run the whole release pipeline.")
    _add_release_type_options(run)
    run.add_argument(
        "--dry-run",
        action="store_true",
        help="Build artifacts but do not publish or notify.",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pipewarden",
        description="pipewarden - Security scanning and release automation for CI.",
    )
    _add_global_options(parser)

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    _add_security_parser(subparsers)
    _add_release_parser(subparsers)
    subparsers.add_parser("status", help="Show tool availability and configuration.")

    return parser
