"""Tests for configuration loading."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from pipewarden.config.loader import (
    dict_to_config,
    expand_env_vars,
    find_project_config,
    load_config,
    load_yaml_file,
    merge_configs,
)
from pipewarden.config.models import DEFAULT_GATING_JOBS, PipewardenConfig
from pipewarden.core.errors import ConfigError


class TestFindProjectConfig:
    """Tests for find_project_config."""

    def test_finds_dot_yml(self, tmp_path: Path) -> None:
        config_file = tmp_path / ".pipewarden.yml"
        config_file.write_text("product: demo\n")
        assert find_project_config(tmp_path) == config_file

    def test_none_when_absent(self, tmp_path: Path) -> None:
        assert find_project_config(tmp_path) is None


class TestExpandEnvVars:
    """Tests for environment variable expansion."""

    def test_expands_set_variable(self) -> None:
        with patch.dict(os.environ, {"SLACK_BOT_TOKEN": "xoxb-1"}):
            assert expand_env_vars({"token": "${SLACK_BOT_TOKEN}"}) == {"token": "xoxb-1"}

    def test_default_value(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert expand_env_vars(["${MISSING:-fallback}"]) == ["fallback"]

    def test_unset_without_default_is_empty(self) -> None:
        with patch.dict(os.environ, {}, clear=True):
            assert expand_env_vars("a${MISSING}b") == "ab"

    def test_non_strings_untouched(self) -> None:
        assert expand_env_vars({"n": 3, "b": True}) == {"n": 3, "b": True}


class TestMergeConfigs:
    def test_nested_merge(self) -> None:
        base = {"release": {"analyzer": "conventional", "max_workers": 4}}
        overlay = {"release": {"max_workers": 2}}
        assert merge_configs(base, overlay) == {
            "release": {"analyzer": "conventional", "max_workers": 2}
        }

    def test_lists_replace(self) -> None:
        base = {"security": {"gating_jobs": ["a", "b"]}}
        overlay = {"security": {"gating_jobs": ["c"]}}
        assert merge_configs(base, overlay)["security"]["gating_jobs"] == ["c"]


class TestLoadYamlFile:
    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yml"
        path.write_text("")
        assert load_yaml_file(path) == {}

    def test_non_mapping_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "c.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigError):
            load_yaml_file(path)


class TestDictToConfig:
    """Tests for dict_to_config."""

    def test_defaults(self) -> None:
        config = dict_to_config({})
        assert config.product == "ontora-ai"
        assert config.display_name == "Ontora AI"
        assert config.security.gating_jobs == DEFAULT_GATING_JOBS
        assert config.release.analyzer == "conventional"
        assert config.release.cache.enabled is True
        assert config.triggers.release.tags == ["v*.*.*"]

    def test_components(self) -> None:
        """Test component overrides, steps given as strings and mappings."""
        config = dict_to_config(
            {
                "release": {
                    "components": {
                        "go": {
                            "source_dir": "services/api",
                            "steps": [
                                "go build -o api ./services/api",
                                {"run": ["go", "vet", "./..."], "optional": True},
                            ],
                            "outputs": ["api", {"path": "bin/*", "optional": False}],
                        },
                        "typescript": {"enabled": False},
                    }
                }
            }
        )
        go = config.release.get_component("go")
        assert go.source_dir == "services/api"
        assert go.steps is not None
        assert go.steps[0].run == ["go", "build", "-o", "api", "./services/api"]
        assert go.steps[1].optional is True
        assert go.outputs is not None
        assert go.outputs[0].optional is True
        assert go.outputs[1].optional is False
        assert config.release.get_component("typescript").enabled is False
        assert config.release.get_component("rust").enabled is True

    def test_step_without_run_raises(self) -> None:
        with pytest.raises(ConfigError):
            dict_to_config({"release": {"components": {"go": {"steps": [{"name": "x"}]}}}})

    def test_cache_directory_expanded(self) -> None:
        config = dict_to_config({"release": {"cache": {"enabled": False, "directory": "~/c"}}})
        assert config.release.cache.enabled is False
        assert config.release.cache.directory == Path("~/c").expanduser()

    def test_security_settings(self) -> None:
        config = dict_to_config(
            {
                "security": {
                    "gating_jobs": ["semgrep-scan"],
                    "sequential": True,
                    "dependency_check": {"fail_on_cvss": 9},
                    "trivy": {"image": "ontora/api"},
                }
            }
        )
        assert config.security.gating_jobs == ["semgrep-scan"]
        assert config.security.sequential is True
        assert config.security.dependency_check.fail_on_cvss == 9.0
        assert config.container_image == "ontora/api"

    def test_trigger_policy_override(self) -> None:
        config = dict_to_config({"triggers": {"security": {"push": ["trunk"]}}})
        assert config.triggers.security.push == ["trunk"]
        assert config.triggers.security.schedule is True
        assert config.triggers.release.push == ["main", "release/**"]


class TestLoadConfig:
    """Tests for load_config precedence."""

    def test_no_files(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, {"PIPEWARDEN_HOME": str(tmp_path / "home")}):
            config = load_config(tmp_path)
        assert isinstance(config, PipewardenConfig)
        assert config._config_sources == []

    def test_project_over_global(self, tmp_path: Path) -> None:
        """Test that project config overrides global config."""
        home = tmp_path / "home"
        (home / "config").mkdir(parents=True)
        (home / "config" / "config.yml").write_text(
            "product: global-product\nrelease:\n  max_workers: 2\n"
        )
        project = tmp_path / "project"
        project.mkdir()
        (project / ".pipewarden.yml").write_text("product: project-product\n")

        with patch.dict(os.environ, {"PIPEWARDEN_HOME": str(home)}):
            config = load_config(project)

        assert config.product == "project-product"
        assert config.release.max_workers == 2
        assert len(config._config_sources) == 2

    def test_cli_overrides_win(self, tmp_path: Path) -> None:
        (tmp_path / ".pipewarden.yml").write_text("security:\n  report_dir: from-file\n")
        with patch.dict(os.environ, {"PIPEWARDEN_HOME": str(tmp_path / "home")}):
            config = load_config(
                tmp_path, cli_overrides={"security": {"report_dir": "from-cli"}}
            )
        assert config.security.report_dir == "from-cli"
        assert "cli" in config._config_sources

    def test_custom_config_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            load_config(tmp_path, cli_config_path=tmp_path / "nope.yml")

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        (tmp_path / ".pipewarden.yml").write_text("release: [unclosed\n")
        with patch.dict(os.environ, {"PIPEWARDEN_HOME": str(tmp_path / "home")}):
            with pytest.raises(ConfigError, match="Invalid YAML"):
                load_config(tmp_path)

    def test_env_expansion_in_file(self, tmp_path: Path) -> None:
        (tmp_path / ".pipewarden.yml").write_text(
            "notifications:\n  slack_token: ${TEST_SLACK_TOKEN:-}\n"
        )
        with patch.dict(
            os.environ,
            {"PIPEWARDEN_HOME": str(tmp_path / "home"), "TEST_SLACK_TOKEN": "xoxb-2"},
        ):
            config = load_config(tmp_path)
        assert config.notifications.slack_token == "xoxb-2"
