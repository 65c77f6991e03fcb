"""Configuration validation for pipewarden.

Validates configuration keys and value types, warning on unknown keys.
Never raises: problems are returned (and logged) as warnings.
"""

from __future__ import annotations

from dataclasses import dataclass
from difflib import get_close_matches
from typing import Any, Dict, List, Optional, Set

from pipewarden.config.models import VALID_ANALYZERS
from pipewarden.core.logging import get_logger
from pipewarden.core.models import ALL_COMPONENTS

LOGGER = get_logger(__name__)

VALID_TOP_LEVEL_KEYS: Set[str] = {
    "product",
    "product_name",
    "release",
    "security",
    "notifications",
    "github",
    "triggers",
}

VALID_RELEASE_KEYS: Set[str] = {
    "analyzer",
    "pre_release_markers",
    "artifacts_dir",
    "download_dir",
    "max_workers",
    "sequential",
    "remote",
    "tag_user_name",
    "tag_user_email",
    "components",
    "cache",
}

VALID_COMPONENT_KEYS: Set[str] = {
    "enabled",
    "source_dir",
    "lock_glob",
    "steps",
    "outputs",
    "cache_paths",
}

VALID_SECURITY_KEYS: Set[str] = {
    "report_dir",
    "gating_jobs",
    "max_workers",
    "sequential",
    "dependency_check",
    "trivy",
    "semgrep",
}

VALID_NOTIFICATION_KEYS: Set[str] = {
    "slack_token",
    "security_channel",
    "release_channel",
    "api_url",
}

VALID_GITHUB_KEYS: Set[str] = {"token", "api_url", "repository"}

VALID_TRIGGER_PIPELINES: Set[str] = {"security", "release"}

VALID_TRIGGER_KEYS: Set[str] = {
    "push",
    "tags",
    "pull_request",
    "schedule",
    "workflow_dispatch",
}

VALID_COMPONENTS: Set[str] = {c.value for c in ALL_COMPONENTS}

VALID_JOBS: Set[str] = {
    "dependabot-alerts",
    "dependency-check",
    "trivy-scan",
    "semgrep-scan",
}


@dataclass
class ConfigValidationWarning:
    """A validation warning for configuration."""

    message: str
    source: str
    key: Optional[str] = None
    suggestion: Optional[str] = None


class _Collector:
    def __init__(self, source: str) -> None:
        self.source = source
        self.warnings: List[ConfigValidationWarning] = []

    def add(
        self,
        message: str,
        key: Optional[str] = None,
        suggestion: Optional[str] = None,
    ) -> None:
        warning = ConfigValidationWarning(
            message=message,
            source=self.source,
            key=key,
            suggestion=suggestion,
        )
        self.warnings.append(warning)
        _log_warning(warning)

    def unknown_keys(self, data: Dict[str, Any], valid: Set[str], prefix: str = "") -> None:
        for key in data.keys():
            if key not in valid:
                label = f"{prefix}{key}"
                kind = "top-level key" if not prefix else "key"
                self.add(
                    f"Unknown {kind} '{label}'",
                    key=label,
                    suggestion=_suggest_key(str(key), valid),
                )

    def mapping(self, data: Dict[str, Any], key: str) -> Optional[Dict[str, Any]]:
        value = data.get(key)
        if value is None:
            return None
        if not isinstance(value, dict):
            self.add(f"'{key}' must be a mapping, got {type(value).__name__}", key=key)
            return None
        return value

    def typed(self, data: Dict[str, Any], key: str, expected: type, label: str) -> None:
        value = data.get(key)
        if value is None:
            return
        # bool is a subclass of int; reject it for numeric fields
        if expected in (int, float) and isinstance(value, bool):
            self.add(f"'{label}' must be a {expected.__name__}", key=label)
            return
        if expected is float and isinstance(value, int):
            return
        if not isinstance(value, expected):
            self.add(f"'{label}' must be a {expected.__name__}", key=label)


def validate_config(
    data: Dict[str, Any],
    source: str,
) -> List[ConfigValidationWarning]:
    """Validate configuration dictionary.

    Args:
        data: Config dictionary to validate.
        source: Source file path for warning messages.

    Returns:
        List of validation warnings.
    """
    collector = _Collector(source)

    if not isinstance(data, dict):
        collector.add(f"Config must be a mapping, got {type(data).__name__}")
        return collector.warnings

    collector.unknown_keys(data, VALID_TOP_LEVEL_KEYS)
    collector.typed(data, "product", str, "product")
    collector.typed(data, "product_name", str, "product_name")

    release = collector.mapping(data, "release")
    if release is not None:
        _validate_release(release, collector)

    security = collector.mapping(data, "security")
    if security is not None:
        _validate_security(security, collector)

    notifications = collector.mapping(data, "notifications")
    if notifications is not None:
        collector.unknown_keys(notifications, VALID_NOTIFICATION_KEYS, "notifications.")

    github = collector.mapping(data, "github")
    if github is not None:
        collector.unknown_keys(github, VALID_GITHUB_KEYS, "github.")

    triggers = collector.mapping(data, "triggers")
    if triggers is not None:
        collector.unknown_keys(triggers, VALID_TRIGGER_PIPELINES, "triggers.")
        for pipeline, policy in triggers.items():
            if isinstance(policy, dict):
                collector.unknown_keys(policy, VALID_TRIGGER_KEYS, f"triggers.{pipeline}.")
                for list_key in ("push", "tags", "pull_request"):
                    collector.typed(policy, list_key, list, f"triggers.{pipeline}.{list_key}")

    return collector.warnings


def _validate_release(release: Dict[str, Any], collector: _Collector) -> None:
    collector.unknown_keys(release, VALID_RELEASE_KEYS, "release.")
    collector.typed(release, "max_workers", int, "release.max_workers")
    collector.typed(release, "sequential", bool, "release.sequential")
    collector.typed(release, "pre_release_markers", list, "release.pre_release_markers")

    analyzer = release.get("analyzer")
    if analyzer is not None and analyzer not in VALID_ANALYZERS:
        collector.add(
            f"Invalid analyzer '{analyzer}' for 'release.analyzer'",
            key="release.analyzer",
            suggestion=_suggest_key(str(analyzer), VALID_ANALYZERS),
        )

    components = release.get("components")
    if components is None:
        return
    if not isinstance(components, dict):
        collector.add("'release.components' must be a mapping", key="release.components")
        return

    for name, component in components.items():
        prefix = f"release.components.{name}"
        if name not in VALID_COMPONENTS:
            collector.add(
                f"Unknown component '{name}'",
                key=prefix,
                suggestion=_suggest_key(str(name), VALID_COMPONENTS),
            )
        if not isinstance(component, dict):
            continue
        collector.unknown_keys(component, VALID_COMPONENT_KEYS, f"{prefix}.")
        collector.typed(component, "enabled", bool, f"{prefix}.enabled")
        collector.typed(component, "steps", list, f"{prefix}.steps")
        collector.typed(component, "outputs", list, f"{prefix}.outputs")


def _validate_security(security: Dict[str, Any], collector: _Collector) -> None:
    collector.unknown_keys(security, VALID_SECURITY_KEYS, "security.")
    collector.typed(security, "max_workers", int, "security.max_workers")

    gating = security.get("gating_jobs")
    if gating is not None:
        if not isinstance(gating, list):
            collector.add("'security.gating_jobs' must be a list", key="security.gating_jobs")
        else:
            for job in gating:
                if job not in VALID_JOBS:
                    collector.add(
                        f"Unknown job '{job}' in 'security.gating_jobs'",
                        key="security.gating_jobs",
                        suggestion=_suggest_key(str(job), VALID_JOBS),
                    )

    dependency_check = security.get("dependency_check")
    if isinstance(dependency_check, dict):
        collector.typed(
            dependency_check, "fail_on_cvss", float, "security.dependency_check.fail_on_cvss"
        )


def _suggest_key(invalid_key: str, valid_keys: Set[str]) -> Optional[str]:
    """Suggest a valid key for a potential typo.

    Args:
        invalid_key: The invalid key entered.
        valid_keys: Set of valid keys.

    Returns:
        Closest matching valid key, or None if no good match.
    """
    matches = get_close_matches(invalid_key, list(valid_keys), n=1, cutoff=0.6)
    return matches[0] if matches else None


def _log_warning(warning: ConfigValidationWarning) -> None:
    """Log a validation warning."""
    msg = f"{warning.message} in {warning.source}"
    if warning.suggestion:
        msg += f" (did you mean '{warning.suggestion}'?)"
    LOGGER.warning(msg)
