# ==============================================================================
# Tests for CLI Help Commands
# ==============================================================================
"""
Tests that all CLI help commands generate the expected output.

Verifies that every command and subcommand in the sitetrack CLI:
- Exits with code 0 when invoked with --help
- Contains the expected description text
- Lists the expected subcommands or options

These tests use the real app from sitetrack.app (not minimal Typer apps)
to ensure the full command tree is wired up correctly and that Typer can
introspect all command function signatures without errors.
"""

import pytest
from typer.testing import CliRunner

from sitetrack.app import app

runner = CliRunner()


# ==============================================================================
# Root App
# ==============================================================================


class TestRootHelp:
    """Tests for the root `sitetrack --help` output."""

    def test_exit_code(self):
        """Root --help exits successfully."""
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0

    def test_description(self):
        """Root --help shows the app description."""
        result = runner.invoke(app, ["--help"])
        assert "Marketing-page tracking and analytics CLI" in result.output

    def test_lists_all_subcommands(self):
        """Root --help lists every top-level command."""
        result = runner.invoke(app, ["--help"])
        for cmd in ["config", "db", "export", "serve", "status", "summary"]:
            assert cmd in result.output, f"Missing command: {cmd}"


# ==============================================================================
# Groups
# ==============================================================================


class TestConfigHelp:
    """Tests for `sitetrack config` help output."""

    def test_exit_code(self):
        result = runner.invoke(app, ["config", "--help"])
        assert result.exit_code == 0

    def test_description(self):
        result = runner.invoke(app, ["config", "--help"])
        assert "Configuration management" in result.output

    def test_lists_subcommands(self):
        result = runner.invoke(app, ["config", "--help"])
        assert "show" in result.output


class TestDbHelp:
    """Tests for `sitetrack db` help output."""

    def test_exit_code(self):
        result = runner.invoke(app, ["db", "--help"])
        assert result.exit_code == 0

    def test_description(self):
        result = runner.invoke(app, ["db", "--help"])
        assert "Database schema operations" in result.output

    def test_lists_subcommands(self):
        result = runner.invoke(app, ["db", "--help"])
        for cmd in ["init", "reset"]:
            assert cmd in result.output, f"Missing command: {cmd}"


# ==============================================================================
# Commands
# ==============================================================================


class TestCommandHelp:
    """Tests for leaf command help output."""

    @pytest.mark.parametrize(
        "args,expected",
        [
            (["summary", "--help"], ["--days", "--from", "--to", "--path", "--sort", "--asc", "--json"]),
            (["export", "--help"], ["--days", "--path", "--sort", "--output"]),
            (["serve", "--help"], ["--host", "--port", "--reload"]),
            (["status", "--help"], ["--json"]),
            (["config", "show", "--help"], ["--json"]),
            (["db", "reset", "--help"], ["--yes"]),
            (["db", "init", "--help"], []),
        ],
    )
    def test_options_listed(self, args, expected):
        """Each command's --help exits 0 and lists its options."""
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        for option in expected:
            assert option in result.output, f"Missing option: {option}"
