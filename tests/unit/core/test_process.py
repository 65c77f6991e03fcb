"""Tests for subprocess helpers."""

from __future__ import annotations

import os
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from pipewarden.core.errors import ToolNotFoundError
from pipewarden.core.process import CommandResult, find_tool, run_command, tool_available


class TestCommandResult:
    def test_success(self) -> None:
        assert CommandResult(["x"], 0).success is True
        assert CommandResult(["x"], 1).success is False
        assert CommandResult(["x"], 0, timed_out=True).success is False

    def test_output_combines_streams(self) -> None:
        assert CommandResult(["x"], 0, stdout="out", stderr="err").output == "out\nerr"
        assert CommandResult(["x"], 0, stdout="out").output == "out"


class TestFindTool:
    """Tests for find_tool."""

    def test_found(self) -> None:
        with patch("pipewarden.core.process.shutil.which", return_value="/usr/bin/trivy"):
            assert str(find_tool("trivy")) == "/usr/bin/trivy"
            assert tool_available("trivy") is True

    def test_missing_includes_hint(self) -> None:
        """Test that the install hint is part of the error message."""
        with patch("pipewarden.core.process.shutil.which", return_value=None):
            with pytest.raises(ToolNotFoundError, match="Install me"):
                find_tool("semgrep", "Install me")
            assert tool_available("semgrep") is False


class TestRunCommand:
    """Tests for run_command."""

    def test_captures_output(self) -> None:
        completed = MagicMock(returncode=3, stdout="hello", stderr="oops")
        with patch("pipewarden.core.process.subprocess.run", return_value=completed) as mock_run:
            result = run_command(["tool", "--flag"], timeout=5)
        assert result.returncode == 3
        assert result.stdout == "hello"
        assert result.stderr == "oops"
        assert mock_run.call_args.kwargs["timeout"] == 5

    def test_missing_binary_raises(self) -> None:
        with patch(
            "pipewarden.core.process.subprocess.run", side_effect=FileNotFoundError()
        ):
            with pytest.raises(ToolNotFoundError):
                run_command(["nonexistent-tool"])

    def test_timeout_is_reported(self) -> None:
        """Test that a timeout is returned, not raised."""
        error = subprocess.TimeoutExpired(cmd=["slow"], timeout=1, output=b"partial")
        with patch("pipewarden.core.process.subprocess.run", side_effect=error):
            result = run_command(["slow"], timeout=1)
        assert result.timed_out is True
        assert result.success is False
        assert result.stdout == "partial"
        assert "Timeout after 1 seconds" in result.stderr

    def test_env_is_merged(self) -> None:
        completed = MagicMock(returncode=0, stdout="", stderr="")
        with patch.dict(os.environ, {"BASE_VAR": "base"}):
            with patch("pipewarden.core.process.subprocess.run", return_value=completed) as mock_run:
                run_command(["tool"], env={"EXTRA": "1"})
        env = mock_run.call_args.kwargs["env"]
        assert env["EXTRA"] == "1"
        assert env["BASE_VAR"] == "base"
