"""Release command implementation."""

from __future__ import annotations

import dataclasses
from argparse import Namespace
from pathlib import Path
from typing import Dict, List, Optional

from rich.console import Console
from rich.table import Table

from pipewarden.cli.commands import Command
from pipewarden.cli.exit_codes import (
    EXIT_INVALID_USAGE,
    EXIT_ISSUES_FOUND,
    EXIT_PUBLISH_FAILURE,
    EXIT_SUCCESS,
    EXIT_TOOL_ERROR,
)
from pipewarden.config.models import PipewardenConfig
from pipewarden.core.errors import (
    AnalysisError,
    ArtifactMissingError,
    PublishError,
    ReleaseInputError,
    VersionParseError,
)
from pipewarden.core.logging import get_logger
from pipewarden.core.models import (
    Component,
    DecisionSource,
    ReleaseDecision,
    ReleaseType,
    TrackResult,
    TrackState,
    TriggerContext,
    TriggerEvent,
)
from pipewarden.github.client import GitHubClient
from pipewarden.notify.slack import create_notifier
from pipewarden.release.coordinator import ReleaseCoordinator, ReleaseStatus
from pipewarden.triggers import TriggerPolicy
from pipewarden.versioning.semver import parse_version

LOGGER = get_logger(__name__)

_STATUS_EXIT_CODES = {
    ReleaseStatus.NO_RELEASE: EXIT_SUCCESS,
    ReleaseStatus.PUBLISHED: EXIT_SUCCESS,
    ReleaseStatus.TRACK_FAILED: EXIT_ISSUES_FOUND,
    ReleaseStatus.PUBLISH_FAILED: EXIT_PUBLISH_FAILURE,
}

_STATE_STYLES = {
    TrackState.UPLOADED: "green",
    TrackState.SKIPPED: "dim",
    TrackState.FAILED: "red",
}


def apply_manual_inputs(
    trigger: TriggerContext, release_type: Optional[str], pre_release: bool
) -> TriggerContext:
    """Turn CLI release inputs into a manual dispatch trigger.

    Without ``release_type`` the trigger is returned unchanged.
    """
    if release_type is None:
        return trigger
    inputs = dict(trigger.inputs)
    inputs["release_type"] = release_type
    inputs["pre_release"] = "true" if pre_release else "false"
    return dataclasses.replace(trigger, event=TriggerEvent.WORKFLOW_DISPATCH, inputs=inputs)


def write_outputs(outputs: Dict[str, str], path: Path) -> None:
    """Append ``key=value`` lines in the GITHUB_OUTPUT format."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        for key, value in outputs.items():
            f.write(f"{key}={value}\n")


def read_outputs(path: Path) -> Dict[str, str]:
    """Parse a ``key=value`` outputs file. Later lines override earlier ones.

    Raises:
        ReleaseInputError: If the file cannot be read.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ReleaseInputError(f"Cannot read outputs file {path}: {e}") from e
    outputs: Dict[str, str] = {}
    for line in text.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            outputs[key.strip()] = value.strip()
    return outputs


def decision_from_args(args: Namespace, default_type: ReleaseType) -> ReleaseDecision:
    """Build the decision for a chained job from ``--from-outputs`` or ``--version``.

    Raises:
        ReleaseInputError: If neither source is usable.
        VersionParseError: If the version is not a semantic version.
    """
    pre_release = bool(getattr(args, "pre_release", False))
    if args.from_outputs:
        outputs = read_outputs(args.from_outputs)
        try:
            decision = ReleaseDecision.from_outputs(outputs)
        except KeyError as e:
            raise ReleaseInputError(f"Outputs file {args.from_outputs} is missing {e}") from e
        except ValueError as e:
            raise ReleaseInputError(f"Invalid outputs in {args.from_outputs}: {e}") from e
        if not decision.should_release:
            return decision
        return dataclasses.replace(
            decision,
            new_version=parse_version(decision.new_version).format_tag(),
            is_pre_release=decision.is_pre_release or pre_release,
            source=DecisionSource.MANUAL,
        )

    if not args.release_version:
        raise ReleaseInputError("Either --version or --from-outputs is required")
    release_type = getattr(args, "release_type", None)
    return ReleaseDecision(
        release_type=ReleaseType.from_string(release_type) if release_type else default_type,
        new_version=parse_version(args.release_version).format_tag(),
        is_pre_release=pre_release,
        source=DecisionSource.MANUAL,
    )


def render_tracks(tracks: List[TrackResult], console: Console) -> None:
    table = Table(title="Build Tracks")
    table.add_column("Component")
    table.add_column("State")
    table.add_column("Artifact")
    table.add_column("Duration", justify="right")
    for track in tracks:
        style = _STATE_STYLES.get(track.state, "")
        artifact = track.artifact.archive_path.name if track.artifact else (track.error or "")
        state = f"[{style}]{track.state.value}[/{style}]" if style else track.state.value
        table.add_row(
            track.component.value,
            state,
            artifact,
            f"{track.duration_ms / 1000:.1f}s",
        )
    console.print(table)


class ReleaseCommand(Command):
    """Runs release pipeline steps."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self._console = console or Console()

    @property
    def name(self) -> str:
        return "release"

    def _coordinator(
        self, args: Namespace, config: PipewardenConfig, dry_run: bool = False
    ) -> ReleaseCoordinator:
        return ReleaseCoordinator(
            config,
            Path(args.project_root).resolve(),
            notifier=create_notifier(config.notifications),
            github=GitHubClient(config.github.token, api_url=config.github.api_url),
            dry_run=dry_run,
        )

    def execute(self, args: Namespace, config: Optional[PipewardenConfig] = None) -> int:
        if config is None:
            LOGGER.error("Configuration is required for release command")
            return EXIT_INVALID_USAGE

        handlers = {
            "determine-version": self._determine_version,
            "build": self._build,
            "publish": self._publish,
            "run": self._run,
        }
        handler = handlers.get(args.action)
        if handler is None:
            LOGGER.error(f"Unknown release action: {args.action}")
            return EXIT_INVALID_USAGE

        try:
            return handler(args, config)
        except (ReleaseInputError, VersionParseError) as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE
        except AnalysisError as e:
            LOGGER.error(f"Version determination failed: {e}")
            return EXIT_TOOL_ERROR

    def _determine_version(self, args: Namespace, config: PipewardenConfig) -> int:
        trigger = apply_manual_inputs(
            TriggerContext.from_environment(), args.release_type, args.pre_release
        )
        decision = self._coordinator(args, config).determine_version(trigger)
        outputs = decision.to_outputs()
        if args.outputs_file:
            write_outputs(outputs, args.outputs_file)
        for key, value in outputs.items():
            print(f"{key}={value}")
        return EXIT_SUCCESS

    def _build(self, args: Namespace, config: PipewardenConfig) -> int:
        decision = decision_from_args(args, ReleaseType.PATCH)
        track = self._coordinator(args, config).make_track(Component(args.component))
        result = track.run(decision)
        render_tracks([result], self._console)
        return EXIT_SUCCESS if result.state != TrackState.FAILED else EXIT_ISSUES_FOUND

    def _publish(self, args: Namespace, config: PipewardenConfig) -> int:
        # Publication only needs a releasable decision; the bump kind is irrelevant
        decision = decision_from_args(args, ReleaseType.PATCH)
        if not decision.should_release:
            self._console.print("No release required, nothing to publish.")
            return EXIT_SUCCESS
        coordinator = self._coordinator(args, config, dry_run=args.dry_run)
        try:
            result = coordinator.publish(decision, TriggerContext.from_environment())
        except (ArtifactMissingError, PublishError) as e:
            LOGGER.error(str(e))
            return EXIT_PUBLISH_FAILURE

        if result.dry_run:
            self._console.print(f"[dry-run] Release {result.tag} not published")
        else:
            self._console.print(f"Published release {result.tag}: {result.release_url}")
        return EXIT_SUCCESS

    def _run(self, args: Namespace, config: PipewardenConfig) -> int:
        trigger = apply_manual_inputs(
            TriggerContext.from_environment(), args.release_type, args.pre_release
        )
        if trigger.ref_name and not TriggerPolicy(config.triggers.release).should_run(trigger):
            self._console.print("Release pipeline not configured for this event, skipping.")
            return EXIT_SUCCESS

        result = self._coordinator(args, config, dry_run=args.dry_run).run(trigger)
        decision = result.decision
        self._console.print(
            f"Version: [bold]{decision.new_version}[/bold] "
            f"(type: {decision.release_type.value}, "
            f"pre-release: {str(decision.is_pre_release).lower()})"
        )
        render_tracks(result.tracks, self._console)

        if result.publish is not None and result.publish.dry_run:
            self._console.print(f"[dry-run] Release {decision.new_version} not published")
        elif result.status == ReleaseStatus.PUBLISHED:
            self._console.print(f"[bold green]Release {decision.new_version} published[/bold green]")
        elif result.status == ReleaseStatus.NO_RELEASE:
            self._console.print("No release required.")
        else:
            self._console.print(f"[bold red]Release failed: {result.error}[/bold red]")
        return _STATUS_EXIT_CODES[result.status]
