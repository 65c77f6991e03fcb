"""Configuration file loading and merging.

Handles loading configuration from YAML files with:
- Project-level config (.pipewarden.yml)
- Global config (~/.pipewarden/config/config.yml)
- Environment variable expansion (${VAR})
- Config merging with proper precedence
"""

from __future__ import annotations

import os
import re
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from pipewarden.bootstrap.paths import PipewardenPaths
from pipewarden.config.models import (
    CacheConfig,
    ComponentConfig,
    DependencyCheckConfig,
    GitHubConfig,
    NotificationConfig,
    OutputConfig,
    PipewardenConfig,
    ReleaseConfig,
    SecurityConfig,
    SemgrepConfig,
    StepConfig,
    TriggerPolicyConfig,
    TriggersConfig,
    TrivyConfig,
)
from pipewarden.config.validation import validate_config
from pipewarden.core.errors import ConfigError
from pipewarden.core.logging import get_logger

LOGGER = get_logger(__name__)

# Config file names
PROJECT_CONFIG_NAMES = [
    ".pipewarden.yml",
    ".pipewarden.yaml",
    "pipewarden.yml",
    "pipewarden.yaml",
]
GLOBAL_CONFIG_NAME = "config.yml"

# Environment variable pattern: ${VAR} or ${VAR:-default}
ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def load_config(
    project_root: Path,
    cli_config_path: Optional[Path] = None,
    cli_overrides: Optional[Dict[str, Any]] = None,
) -> PipewardenConfig:
    """Load configuration with proper precedence.

    Precedence (highest to lowest):
    1. CLI flags (cli_overrides)
    2. Custom config file (cli_config_path) OR project config (.pipewarden.yml)
    3. Global config (~/.pipewarden/config/config.yml)
    4. Built-in defaults

    Args:
        project_root: Project root directory for finding .pipewarden.yml.
        cli_config_path: Optional path to custom config file (--config flag).
        cli_overrides: Dict of CLI flag overrides.

    Returns:
        Merged PipewardenConfig instance.

    Raises:
        ConfigError: If specified config file doesn't exist or has parse errors.
    """
    sources: List[str] = []
    merged: Dict[str, Any] = {}

    # Layer 1: Global config
    global_path = find_global_config()
    if global_path and global_path.exists():
        try:
            global_dict = load_yaml_file(global_path)
            validate_config(global_dict, source=str(global_path))
            merged = merge_configs(merged, global_dict)
            sources.append(f"global:{global_path}")
            LOGGER.debug(f"Loaded global config from {global_path}")
        except (yaml.YAMLError, ConfigError, OSError) as e:
            LOGGER.warning(f"Failed to load global config: {e}")

    # Layer 2: Project or custom config
    if cli_config_path:
        if not cli_config_path.exists():
            raise ConfigError(f"Config file not found: {cli_config_path}")
        config_path: Optional[Path] = cli_config_path
        label = "custom"
    else:
        config_path = find_project_config(project_root)
        label = "project"

    if config_path and config_path.exists():
        try:
            project_dict = load_yaml_file(config_path)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
        validate_config(project_dict, source=str(config_path))
        merged = merge_configs(merged, project_dict)
        sources.append(f"{label}:{config_path}")
        LOGGER.debug(f"Loaded {label} config from {config_path}")

    # Layer 3: CLI overrides
    if cli_overrides:
        merged = merge_configs(merged, cli_overrides)
        sources.append("cli")
        LOGGER.debug("Applied CLI overrides")

    config = dict_to_config(merged)
    config._config_sources = sources

    LOGGER.debug(f"Config loaded from sources: {sources}")
    return config


def find_project_config(project_root: Path) -> Optional[Path]:
    """Find config file in project root.

    Args:
        project_root: Directory to search in.

    Returns:
        Path to config file if found, None otherwise.
    """
    for name in PROJECT_CONFIG_NAMES:
        config_path = project_root / name
        if config_path.exists():
            return config_path
    return None


def find_global_config() -> Optional[Path]:
    """Find global config at ~/.pipewarden/config/config.yml.

    Returns:
        Path to global config if it exists, None otherwise.
    """
    config_path = PipewardenPaths.default().config_dir / GLOBAL_CONFIG_NAME
    if config_path.exists():
        return config_path
    return None


def load_yaml_file(path: Path) -> Dict[str, Any]:
    """Load and parse a YAML config file.

    Performs environment variable expansion on string values.

    Args:
        path: Path to YAML file.

    Returns:
        Parsed dictionary.

    Raises:
        yaml.YAMLError: If YAML parsing fails.
        ConfigError: If the document is not a mapping.
    """
    with open(path, "r", encoding="utf-8") as f:
        content = f.read()

    data = yaml.safe_load(content)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigError(f"Config file must be a YAML mapping, got {type(data).__name__}")

    return expand_env_vars(data)


def expand_env_vars(data: Any) -> Any:
    """Recursively expand environment variables in config values.

    Supports ${VAR} and ${VAR:-default} syntax.

    Args:
        data: Config data (dict, list, or scalar).

    Returns:
        Data with environment variables expanded.
    """
    if isinstance(data, dict):
        return {k: expand_env_vars(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        return ENV_VAR_PATTERN.sub(_env_var_replacer, data)
    else:
        return data


def _env_var_replacer(match: re.Match[str]) -> str:
    """Replace environment variable reference with its value."""
    var_name = match.group(1)
    default_value = match.group(2)

    value = os.environ.get(var_name)
    if value is not None:
        return value
    if default_value is not None:
        return default_value

    LOGGER.warning(f"Environment variable ${var_name} is not set and has no default")
    return ""


def merge_configs(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge two config dicts, with overlay taking precedence.

    Rules:
    - Scalar values: overlay replaces base
    - Lists: overlay replaces base (no merging)
    - Dicts: recursive merge

    Args:
        base: Base configuration dictionary.
        overlay: Overlay configuration to merge on top.

    Returns:
        Merged configuration dictionary.
    """
    result = base.copy()

    for key, overlay_value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(overlay_value, dict):
            result[key] = merge_configs(result[key], overlay_value)
        else:
            result[key] = overlay_value

    return result


def _parse_command(value: Any) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    return shlex.split(str(value))


def _parse_steps(data: Any) -> Optional[List[StepConfig]]:
    if data is None:
        return None
    steps: List[StepConfig] = []
    for item in data:
        if isinstance(item, dict):
            if "run" not in item:
                raise ConfigError(f"Build step is missing 'run': {item}")
            steps.append(StepConfig(
                run=_parse_command(item["run"]),
                optional=bool(item.get("optional", False)),
                cwd=item.get("cwd"),
                name=str(item.get("name", "")),
            ))
        else:
            steps.append(StepConfig(run=_parse_command(item)))
    return steps


def _parse_outputs(data: Any) -> Optional[List[OutputConfig]]:
    if data is None:
        return None
    outputs: List[OutputConfig] = []
    for item in data:
        if isinstance(item, dict):
            outputs.append(OutputConfig(
                path=str(item["path"]),
                optional=bool(item.get("optional", True)),
            ))
        else:
            outputs.append(OutputConfig(path=str(item)))
    return outputs


def _parse_release(data: Dict[str, Any]) -> ReleaseConfig:
    defaults = ReleaseConfig()

    components: Dict[str, ComponentConfig] = {}
    for name, component_data in (data.get("components") or {}).items():
        if not isinstance(component_data, dict):
            continue
        components[name] = ComponentConfig(
            enabled=component_data.get("enabled", True),
            source_dir=component_data.get("source_dir"),
            lock_glob=component_data.get("lock_glob"),
            steps=_parse_steps(component_data.get("steps")),
            outputs=_parse_outputs(component_data.get("outputs")),
            cache_paths=component_data.get("cache_paths"),
        )

    cache_data = data.get("cache") or {}
    cache_dir = cache_data.get("directory")
    cache = CacheConfig(
        enabled=cache_data.get("enabled", True),
        directory=Path(cache_dir).expanduser() if cache_dir else None,
    )

    return ReleaseConfig(
        analyzer=data.get("analyzer", defaults.analyzer),
        pre_release_markers=data.get("pre_release_markers", defaults.pre_release_markers),
        artifacts_dir=data.get("artifacts_dir", defaults.artifacts_dir),
        download_dir=data.get("download_dir", defaults.download_dir),
        max_workers=int(data.get("max_workers", defaults.max_workers)),
        sequential=bool(data.get("sequential", defaults.sequential)),
        remote=data.get("remote", defaults.remote),
        tag_user_name=data.get("tag_user_name", defaults.tag_user_name),
        tag_user_email=data.get("tag_user_email", defaults.tag_user_email),
        components=components,
        cache=cache,
    )


def _parse_security(data: Dict[str, Any]) -> SecurityConfig:
    defaults = SecurityConfig()

    dc_data = data.get("dependency_check") or {}
    dependency_check = DependencyCheckConfig(
        command=dc_data.get("command", defaults.dependency_check.command),
        fail_on_cvss=float(dc_data.get("fail_on_cvss", defaults.dependency_check.fail_on_cvss)),
        enable_experimental=dc_data.get(
            "enable_experimental", defaults.dependency_check.enable_experimental
        ),
        output_dir=dc_data.get("output_dir", defaults.dependency_check.output_dir),
        timeout=int(dc_data.get("timeout", defaults.dependency_check.timeout)),
    )

    trivy_data = data.get("trivy") or {}
    trivy = TrivyConfig(
        command=trivy_data.get("command", defaults.trivy.command),
        severity=trivy_data.get("severity", defaults.trivy.severity),
        scanners=trivy_data.get("scanners", defaults.trivy.scanners),
        image=trivy_data.get("image"),
        image_tag=trivy_data.get("image_tag", defaults.trivy.image_tag),
        timeout=int(trivy_data.get("timeout", defaults.trivy.timeout)),
    )

    semgrep_data = data.get("semgrep") or {}
    semgrep = SemgrepConfig(
        command=semgrep_data.get("command", defaults.semgrep.command),
        config=semgrep_data.get("config", defaults.semgrep.config),
        severity=semgrep_data.get("severity", defaults.semgrep.severity),
        exclude=semgrep_data.get("exclude", defaults.semgrep.exclude),
        app_token=semgrep_data.get("app_token", defaults.semgrep.app_token),
        timeout=int(semgrep_data.get("timeout", defaults.semgrep.timeout)),
    )

    return SecurityConfig(
        report_dir=data.get("report_dir", defaults.report_dir),
        gating_jobs=data.get("gating_jobs", defaults.gating_jobs),
        max_workers=int(data.get("max_workers", defaults.max_workers)),
        sequential=bool(data.get("sequential", defaults.sequential)),
        dependency_check=dependency_check,
        trivy=trivy,
        semgrep=semgrep,
    )


def _parse_trigger_policy(
    data: Optional[Dict[str, Any]], defaults: TriggerPolicyConfig
) -> TriggerPolicyConfig:
    if not data:
        return defaults
    return TriggerPolicyConfig(
        push=data.get("push", defaults.push),
        tags=data.get("tags", defaults.tags),
        pull_request=data.get("pull_request", defaults.pull_request),
        schedule=data.get("schedule", defaults.schedule),
        workflow_dispatch=data.get("workflow_dispatch", defaults.workflow_dispatch),
    )


def dict_to_config(data: Dict[str, Any]) -> PipewardenConfig:
    """Convert validated dict to typed PipewardenConfig.

    Args:
        data: Configuration dictionary.

    Returns:
        Typed PipewardenConfig instance.
    """
    defaults = PipewardenConfig()

    notifications_data = data.get("notifications") or {}
    notifications = NotificationConfig(
        slack_token=notifications_data.get("slack_token", ""),
        security_channel=notifications_data.get(
            "security_channel", defaults.notifications.security_channel
        ),
        release_channel=notifications_data.get(
            "release_channel", defaults.notifications.release_channel
        ),
        api_url=notifications_data.get("api_url", defaults.notifications.api_url),
    )

    github_data = data.get("github") or {}
    github = GitHubConfig(
        token=github_data.get("token", ""),
        api_url=github_data.get("api_url", defaults.github.api_url),
        repository=github_data.get("repository", ""),
    )

    triggers_data = data.get("triggers") or {}
    triggers = TriggersConfig(
        security=_parse_trigger_policy(triggers_data.get("security"), defaults.triggers.security),
        release=_parse_trigger_policy(triggers_data.get("release"), defaults.triggers.release),
    )

    return PipewardenConfig(
        product=data.get("product", defaults.product),
        product_name=data.get("product_name", ""),
        release=_parse_release(data.get("release") or {}),
        security=_parse_security(data.get("security") or {}),
        notifications=notifications,
        github=github,
        triggers=triggers,
    )


def get_default_config() -> PipewardenConfig:
    """Get default configuration.

    Returns:
        Default PipewardenConfig instance.
    """
    return PipewardenConfig()
