"""Integration-style tests for the Typer CLI."""

from pathlib import Path
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from hubsync_pkg.cli.main import app


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def script(temp_dir: Path) -> Path:
    path = temp_dir / "orbit.m"
    path.write_text("mass = 12.5;\ngains = [1 2; 3 4];\ntotal = mass * 2;\n")
    return path


class TestCLIBasics:
    def test_cli_help(self, runner):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("validate", "show-config", "parse-script", "diff", "info"):
            assert command in result.stdout

    def test_info_command(self, runner):
        result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "hubsync v0.1.0" in result.stdout
        assert "FromDstToHub: VariableToElementRule" in result.stdout

    def test_info_with_custom_rules(self, runner):
        with patch("hubsync_pkg.cli.main.app_api.list_mapping_rules", return_value={"FromHubToDst": "custom"}):
            result = runner.invoke(app, ["info"])
        assert result.exit_code == 0
        assert "Mapping rules: 1" in result.stdout
        assert "FromHubToDst: custom" in result.stdout

    def test_diff_command(self, runner):
        result = runner.invoke(app, ["diff", "2", "3"])
        assert result.exit_code == 0
        assert "+1 (+50%)" in result.stdout


class TestConfigCommands:
    def test_validate_valid_config(self, runner, temp_dir):
        path = temp_dir / "good.toml"
        path.write_text('[mapping]\nconfiguration_name = "thermal"\n')

        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 0
        assert "valid" in result.stdout

    def test_validate_invalid_config(self, runner, temp_dir):
        path = temp_dir / "bad.toml"
        path.write_text('[script]\ntemp_suffix = "m"\n')

        result = runner.invoke(app, ["validate", str(path)])
        assert result.exit_code == 1
        assert "temp_suffix" in result.stdout

    def test_validate_nonexistent_config(self, runner):
        result = runner.invoke(app, ["validate", "nonexistent.toml"])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_show_config(self, runner, temp_dir):
        path = temp_dir / "hubsync.toml"
        path.write_text('[mapping]\nconfiguration_name = "thermal"\n')

        result = runner.invoke(app, ["show-config", "--config", str(path)])
        assert result.exit_code == 0
        assert 'configuration_name = "thermal"' in result.stdout


class TestScriptCommands:
    def test_parse_script_removes_copy(self, runner, script):
        result = runner.invoke(app, ["parse-script", str(script)])
        assert result.exit_code == 0
        assert "orbit-mass" in result.stdout
        assert "orbit-gains[1,1]" in result.stdout
        assert [path.name for path in script.parent.iterdir()] == ["orbit.m"]

    def test_parse_script_keep(self, runner, script):
        result = runner.invoke(app, ["parse-script", str(script), "--keep"])
        assert result.exit_code == 0
        assert "Script without inputs" in result.stdout
        assert len(list(script.parent.iterdir())) == 2

    def test_parse_script_duplicates(self, runner, temp_dir):
        path = temp_dir / "dup.m"
        path.write_text("a = 1;\na = 2;\nb = 3;\n")

        result = runner.invoke(app, ["parse-script", str(path)])
        assert result.exit_code == 0
        assert "Ignored inputs assigned more than once: a" in result.stdout

    def test_parse_missing_script(self, runner, temp_dir):
        result = runner.invoke(app, ["parse-script", str(temp_dir / "missing.m")])
        assert result.exit_code == 1
        assert "Cannot read script" in result.stdout
