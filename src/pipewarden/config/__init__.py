"""Configuration module for pipewarden.

Provides configuration file loading, parsing, and validation with support for:
- Project-level config (.pipewarden.yml)
- Global config (~/.pipewarden/config/config.yml)
- Environment variable expansion
"""

from pipewarden.config.models import (
    ComponentConfig,
    PipewardenConfig,
    ReleaseConfig,
    SecurityConfig,
    StepConfig,
)
from pipewarden.config.loader import (
    find_global_config,
    find_project_config,
    get_default_config,
    load_config,
)
from pipewarden.config.validation import ConfigValidationWarning, validate_config

__all__ = [
    "ComponentConfig",
    "PipewardenConfig",
    "ReleaseConfig",
    "SecurityConfig",
    "StepConfig",
    "find_global_config",
    "find_project_config",
    "get_default_config",
    "load_config",
    "ConfigValidationWarning",
    "validate_config",
]
