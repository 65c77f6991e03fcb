"""Per-component build tracks.

A single ``BuildTrack`` implements the lifecycle shared by every component:

    pending -> skipped
    pending -> building -> packaging -> uploaded
    any non-terminal state -> failed

Toolchains only describe what differs between components: source
directory, lock files, build commands, outputs and cache paths.
"""

from __future__ import annotations

import shutil
import tarfile
import time
from pathlib import Path
from typing import Dict, List, Optional

from pipewarden.config.models import ComponentConfig, OutputConfig, StepConfig
from pipewarden.core.errors import (
    ArtifactMissingError,
    BuildStepError,
    ToolNotFoundError,
    TrackStateError,
)
from pipewarden.core.logging import get_logger
from pipewarden.core.models import (
    DEFAULT_PRODUCT,
    BuildArtifact,
    Component,
    ReleaseDecision,
    TrackResult,
    TrackState,
    archive_name,
)
from pipewarden.core.process import DEFAULT_TIMEOUT, run_command
from pipewarden.release.artifacts import ArtifactStore
from pipewarden.release.cache import CacheKey, DependencyCache

LOGGER = get_logger(__name__)

_TRANSITIONS: Dict[TrackState, List[TrackState]] = {
    TrackState.PENDING: [TrackState.SKIPPED, TrackState.BUILDING, TrackState.FAILED],
    TrackState.BUILDING: [TrackState.PACKAGING, TrackState.FAILED],
    TrackState.PACKAGING: [TrackState.UPLOADED, TrackState.FAILED],
}


class ToolchainSpec:
    """Defaults for one component's toolchain."""

    component: Component
    cache_prefix: str = ""
    source_dir: str = ""
    lock_glob: str = ""
    cache_paths: List[str] = []

    def steps(self, product: str) -> List[StepConfig]:
        return []

    def outputs(self, product: str) -> List[OutputConfig]:
        return []


class RustToolchain(ToolchainSpec):
    """Solana smart contracts and the CLI binary."""

    component = Component.RUST
    cache_prefix = "cargo"
    source_dir = "solana-contracts"
    lock_glob = "**/Cargo.lock"
    cache_paths = [
        "~/.cargo/bin/",
        "~/.cargo/registry/index/",
        "~/.cargo/registry/cache/",
        "~/.cargo/git/db/",
        "target/",
    ]

    def steps(self, product: str) -> List[StepConfig]:
        manifest = f"--manifest-path=./{self.source_dir}/Cargo.toml"
        return [
            StepConfig(
                run=["cargo", "build-bpf", manifest, "--no-default-features"],
                name="Build Solana smart contracts",
            ),
            StepConfig(
                run=["cargo", "build", "--release", manifest],
                name="Build release binaries",
            ),
        ]

    def outputs(self, product: str) -> List[OutputConfig]:
        return [
            OutputConfig(path="target/deploy/*.so", optional=False),
            OutputConfig(path=f"target/release/{product}-cli"),
        ]


class PythonToolchain(ToolchainSpec):
    """AI model sources and their requirements."""

    component = Component.PYTHON
    cache_prefix = "pip"
    source_dir = "ai-models"
    lock_glob = "**/requirements.txt"
    cache_paths = ["~/.cache/pip"]

    def steps(self, product: str) -> List[StepConfig]:
        return [
            StepConfig(
                run=["pip", "install", "-r", f"{self.source_dir}/requirements.txt"],
                optional=True,
                name="Install Python dependencies",
            ),
        ]

    def outputs(self, product: str) -> List[OutputConfig]:
        return [OutputConfig(path=f"{self.source_dir}/*")]


class GoToolchain(ToolchainSpec):
    """Backend service binary."""

    component = Component.GO
    cache_prefix = "go"
    source_dir = "backend"
    lock_glob = "**/go.sum"
    cache_paths = ["~/go/pkg/mod", "~/.cache/go-build"]

    def steps(self, product: str) -> List[StepConfig]:
        return [
            StepConfig(
                run=["go", "build", "-o", f"{product}-backend", f"./{self.source_dir}/main.go"],
                optional=True,
                name="Build Go binaries",
            ),
        ]

    def outputs(self, product: str) -> List[OutputConfig]:
        return [OutputConfig(path=f"{product}-backend")]


class TypeScriptToolchain(ToolchainSpec):
    """Frontend bundle."""

    component = Component.TYPESCRIPT
    cache_prefix = "npm"
    source_dir = "frontend"
    lock_glob = "**/package-lock.json"
    cache_paths = ["~/.npm"]

    def steps(self, product: str) -> List[StepConfig]:
        return [
            StepConfig(
                run=["npm", "install"],
                cwd=self.source_dir,
                optional=True,
                name="Install frontend dependencies",
            ),
            StepConfig(
                run=["npm", "run", "build"],
                cwd=self.source_dir,
                optional=True,
                name="Build frontend",
            ),
        ]

    def outputs(self, product: str) -> List[OutputConfig]:
        return [OutputConfig(path=f"{self.source_dir}/build/*")]


TOOLCHAINS: Dict[Component, ToolchainSpec] = {
    Component.RUST: RustToolchain(),
    Component.PYTHON: PythonToolchain(),
    Component.GO: GoToolchain(),
    Component.TYPESCRIPT: TypeScriptToolchain(),
}


def get_toolchain(component: Component) -> ToolchainSpec:
    return TOOLCHAINS[component]


class BuildTrack:
    """Build, package and upload one component.

    Missing optional inputs (source directory, build outputs) are logged and
    tolerated; the archive is always produced, possibly empty. A required
    step that fails moves the track to ``failed``.
    """

    def __init__(
        self,
        toolchain: ToolchainSpec,
        project_root: Path,
        store: ArtifactStore,
        artifacts_dir: Path,
        product: str = DEFAULT_PRODUCT,
        overrides: Optional[ComponentConfig] = None,
        cache: Optional[DependencyCache] = None,
        step_timeout: int = DEFAULT_TIMEOUT,
    ) -> None:
        """Initialize the track.

        Args:
            toolchain: Component toolchain defaults.
            project_root: Repository root; steps run from here.
            store: Artifact store the archive is uploaded to.
            artifacts_dir: Working directory for staging and archives.
            product: Product name used in artifact and binary names.
            overrides: Configuration overriding the toolchain defaults.
            cache: Dependency cache, or None to disable caching.
            step_timeout: Timeout for each build step in seconds.
        """
        overrides = overrides or ComponentConfig()
        self._toolchain = toolchain
        self._project_root = project_root
        self._store = store
        self._artifacts_dir = artifacts_dir
        self._product = product
        self._cache = cache
        self._step_timeout = step_timeout

        self.source_dir = overrides.source_dir or toolchain.source_dir
        self.lock_glob = overrides.lock_glob or toolchain.lock_glob
        self.steps = overrides.steps if overrides.steps is not None else toolchain.steps(product)
        self.outputs = (
            overrides.outputs if overrides.outputs is not None else toolchain.outputs(product)
        )
        self.cache_paths = (
            overrides.cache_paths if overrides.cache_paths is not None else toolchain.cache_paths
        )
        self._state = TrackState.PENDING
        self._notes: List[str] = []

    @property
    def component(self) -> Component:
        return self._toolchain.component

    @property
    def state(self) -> TrackState:
        return self._state

    def _transition(self, new_state: TrackState) -> None:
        if new_state not in _TRANSITIONS.get(self._state, []):
            raise TrackStateError(
                f"{self.component.value}: illegal transition "
                f"{self._state.value} -> {new_state.value}"
            )
        LOGGER.debug(f"{self.component.value}: {self._state.value} -> {new_state.value}")
        self._state = new_state

    def _note(self, message: str) -> None:
        LOGGER.info(f"[{self.component.value}] {message}")
        self._notes.append(message)

    def run(self, decision: ReleaseDecision) -> TrackResult:
        """Execute the track for a release decision.

        Args:
            decision: The run's release decision; a ``none`` release skips
                the track.

        Returns:
            TrackResult in a terminal state.
        """
        if self._state.is_terminal:
            raise TrackStateError(
                f"{self.component.value}: track already finished ({self._state.value})"
            )
        start = time.monotonic()
        if not decision.should_release:
            self._transition(TrackState.SKIPPED)
            self._note("No release required, skipping build.")
            return self._result(start)

        version = decision.new_version
        self._transition(TrackState.BUILDING)
        try:
            cache_key = self._restore_cache()
            self._build()

            self._transition(TrackState.PACKAGING)
            archive_path = self._package(version)

            artifact = self._store.upload(
                BuildArtifact(component=self.component, version=version, archive_path=archive_path)
            )
            self._transition(TrackState.UPLOADED)

            if self._cache is not None and cache_key is not None:
                self._cache.save(cache_key, self.cache_paths)
            return self._result(start, artifact=artifact)

        except (BuildStepError, ToolNotFoundError, ArtifactMissingError, tarfile.TarError, OSError) as e:
            LOGGER.error(f"[{self.component.value}] Track failed: {e}")
            self._transition(TrackState.FAILED)
            return self._result(start, error=str(e))

    def _restore_cache(self) -> Optional[CacheKey]:
        """Restore the dependency cache. Never fails the track."""
        if self._cache is None:
            return None
        try:
            cache_key = self._cache.compute_key(self._toolchain.cache_prefix, self.lock_glob)
        except OSError as e:
            LOGGER.warning(f"[{self.component.value}] Cannot hash lock files, building without cache: {e}")
            return None
        self._cache.restore(cache_key)
        return cache_key

    def _result(
        self,
        start: float,
        artifact: Optional[BuildArtifact] = None,
        error: Optional[str] = None,
    ) -> TrackResult:
        return TrackResult(
            component=self.component,
            state=self._state,
            artifact=artifact,
            error=error,
            notes=list(self._notes),
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    def _build(self) -> None:
        source = self._project_root / self.source_dir
        if not source.is_dir():
            self._note(f"No {self.source_dir} directory found, skipping.")
            return

        for step in self.steps:
            self._run_step(step)

    def _run_step(self, step: StepConfig) -> None:
        command = [arg.replace("{product}", self._product) for arg in step.run]
        label = step.name or " ".join(command)

        cwd = self._project_root
        if step.cwd:
            cwd = self._project_root / step.cwd
            if not cwd.is_dir():
                self._note(f"No {step.cwd} directory found, skipping '{label}'.")
                return

        LOGGER.info(f"[{self.component.value}] {label}")
        try:
            result = run_command(command, cwd=cwd, timeout=self._step_timeout)
        except ToolNotFoundError as e:
            if step.optional:
                self._note(f"{e}, skipping '{label}'.")
                return
            raise

        if result.success:
            return
        detail = result.stderr.strip().splitlines()[-1:] or [f"exit code {result.returncode}"]
        if step.optional:
            self._note(f"'{label}' failed ({detail[0]}), skipping.")
            return
        raise BuildStepError(f"'{label}' failed: {detail[0]}")

    def _package(self, version: str) -> Path:
        """Copy outputs into a staging directory and archive it."""
        staging = self._artifacts_dir / self.component.value
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir(parents=True)

        for output in self.outputs:
            self._collect_output(output, staging)

        archive_path = self._artifacts_dir / archive_name(self.component, version, self._product)
        with tarfile.open(archive_path, "w:gz") as tar:
            tar.add(staging, arcname=".")
        LOGGER.info(f"[{self.component.value}] Created {archive_path.name}")
        return archive_path

    def _collect_output(self, output: OutputConfig, staging: Path) -> None:
        pattern = output.path.replace("{product}", self._product)
        matches = sorted(self._project_root.glob(pattern))
        if not matches:
            message = f"No output matching {pattern} found, skipping."
            if output.optional:
                self._note(message)
            else:
                LOGGER.warning(f"[{self.component.value}] {message}")
                self._notes.append(message)
            return

        for match in matches:
            target = staging / match.name
            if match.is_dir():
                shutil.copytree(match, target, dirs_exist_ok=True)
            else:
                shutil.copy2(match, target)
