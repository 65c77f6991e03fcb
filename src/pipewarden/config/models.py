"""Configuration data models for pipewarden.

Defines typed configuration classes that represent .pipewarden.yml structure.
Every field has a default matching the stock pipelines, so an empty config
file (or none at all) reproduces the standard behavior.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from pipewarden.core.models import DEFAULT_PRODUCT

# Jobs whose result decides the security summary
DEFAULT_GATING_JOBS: List[str] = ["dependency-check", "trivy-scan", "semgrep-scan"]

VALID_ANALYZERS = {"conventional", "semantic-release"}


@dataclass
class StepConfig:
    """One build command in a component track."""

    run: List[str]
    optional: bool = False
    cwd: Optional[str] = None  # Relative to project root
    name: str = ""


@dataclass
class OutputConfig:
    """A build output copied into the component's staging directory."""

    path: str  # Glob relative to project root
    optional: bool = True


@dataclass
class ComponentConfig:
    """Overrides for one component build track.

    ``None`` means "use the toolchain default".
    """

    enabled: bool = True
    source_dir: Optional[str] = None
    lock_glob: Optional[str] = None
    steps: Optional[List[StepConfig]] = None
    outputs: Optional[List[OutputConfig]] = None
    cache_paths: Optional[List[str]] = None


@dataclass
class CacheConfig:
    """Dependency cache settings."""

    enabled: bool = True
    directory: Optional[Path] = None  # Default: ~/.pipewarden/cache/deps


@dataclass
class ReleaseConfig:
    """Release pipeline configuration."""

    analyzer: str = "conventional"
    pre_release_markers: List[str] = field(default_factory=lambda: ["pre-release"])
    artifacts_dir: str = "release-artifacts"
    download_dir: str = "downloaded-artifacts"
    max_workers: int = 4
    sequential: bool = False
    remote: str = "origin"
    tag_user_name: str = "GitHub Actions Bot"
    tag_user_email: str = "actions@github.com"
    components: Dict[str, ComponentConfig] = field(default_factory=dict)
    cache: CacheConfig = field(default_factory=CacheConfig)

    def get_component(self, name: str) -> ComponentConfig:
        return self.components.get(name, ComponentConfig())


@dataclass
class DependencyCheckConfig:
    command: str = "dependency-check.sh"
    fail_on_cvss: float = 7.0
    enable_experimental: bool = True
    output_dir: str = "dependency-check-report"
    timeout: int = 3600


@dataclass
class TrivyConfig:
    command: str = "trivy"
    severity: str = "HIGH,CRITICAL"
    scanners: str = "vuln,secret,config"
    image: Optional[str] = None  # Defaults to the product name
    image_tag: str = "latest"
    timeout: int = 1800


@dataclass
class SemgrepConfig:
    command: str = "semgrep"
    config: str = "auto"
    severity: str = "ERROR"
    exclude: List[str] = field(
        default_factory=lambda: ["**/node_modules/**", "**/target/**"]
    )
    app_token: str = ""
    timeout: int = 1800


@dataclass
class SecurityConfig:
    """Security pipeline configuration."""

    report_dir: str = "security-reports"
    gating_jobs: List[str] = field(default_factory=lambda: list(DEFAULT_GATING_JOBS))
    max_workers: int = 4
    sequential: bool = False
    dependency_check: DependencyCheckConfig = field(default_factory=DependencyCheckConfig)
    trivy: TrivyConfig = field(default_factory=TrivyConfig)
    semgrep: SemgrepConfig = field(default_factory=SemgrepConfig)


@dataclass
class NotificationConfig:
    slack_token: str = ""
    security_channel: str = "security-alerts"
    release_channel: str = "releases"
    api_url: str = "https://slack.com/api"


@dataclass
class GitHubConfig:
    token: str = ""
    api_url: str = "https://api.github.com"
    repository: str = ""  # owner/name, defaults to the trigger's repository


@dataclass
class TriggerPolicyConfig:
    """Which events start a pipeline."""

    push: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    pull_request: List[str] = field(default_factory=list)
    schedule: bool = False
    workflow_dispatch: bool = True


def _default_security_triggers() -> TriggerPolicyConfig:
    return TriggerPolicyConfig(
        push=["main", "develop", "feature/**"],
        pull_request=["main", "develop"],
        schedule=True,
    )


def _default_release_triggers() -> TriggerPolicyConfig:
    return TriggerPolicyConfig(
        push=["main", "release/**"],
        tags=["v*.*.*"],
    )


@dataclass
class TriggersConfig:
    security: TriggerPolicyConfig = field(default_factory=_default_security_triggers)
    release: TriggerPolicyConfig = field(default_factory=_default_release_triggers)


@dataclass
class PipewardenConfig:
    """Complete pipewarden configuration.

    Example .pipewarden.yml:
        product: ontora-ai
        release:
          analyzer: conventional
          components:
            go:
              source_dir: services/backend
        notifications:
          slack_token: ${SLACK_BOT_TOKEN:-}
    """

    product: str = DEFAULT_PRODUCT
    product_name: str = ""
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    security: SecurityConfig = field(default_factory=SecurityConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    triggers: TriggersConfig = field(default_factory=TriggersConfig)

    # Metadata (not from YAML, set by loader)
    _config_sources: List[str] = field(default_factory=list, repr=False)

    @property
    def display_name(self) -> str:
        """Human-readable product name used in changelogs and messages."""
        if self.product_name:
            return self.product_name
        return " ".join(
            part.upper() if len(part) <= 2 else part.capitalize()
            for part in self.product.replace("_", "-").split("-")
        )

    @property
    def container_image(self) -> str:
        return self.security.trivy.image or self.product
