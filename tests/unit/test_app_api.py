"""Tests for the API facade."""

from pathlib import Path

import pytest

from hubsync_pkg import app_api
from hubsync_pkg.adapters import InMemoryEngine, InMemoryRepository
from hubsync_pkg.config import AppConfig
from hubsync_pkg.contracts import ConfigError, ValidationError


class TestConfiguration:
    """Test configuration helpers."""

    def test_load_from_file(self, temp_dir: Path):
        path = temp_dir / "hubsync.toml"
        path.write_text('[mapping]\nconfiguration_name = "thermal"\n')

        config = app_api.load_config_from_file(path)

        assert config.mapping.configuration_name == "thermal"

    def test_invalid_file_rejected(self, temp_dir: Path):
        path = temp_dir / "hubsync.toml"
        path.write_text('[engine]\nrun_command = "run"\n')

        with pytest.raises(ValidationError, match="placeholder"):
            app_api.load_config_from_file(path)

    def test_missing_file(self, temp_dir: Path):
        with pytest.raises(ConfigError):
            app_api.load_config_from_file(temp_dir / "missing.toml")


class TestScripts:
    """Test script inspection."""

    def test_parse_script(self, temp_dir: Path):
        path = temp_dir / "thermal.m"
        path.write_text("power = 40;\nlayout = [1 2];\nheat = power * 2;\n")

        result, variables = app_api.parse_script(path)

        assert [variable.identifier for variable in variables] == [
            "thermal-power",
            "thermal-layout",
            "thermal-layout[0,0]",
            "thermal-layout[0,1]",
        ]
        assert Path(result.script_without_inputs_path).exists()


class TestWiring:
    """Test controller wiring and registry listing."""

    def test_build_controller_defaults(self, sample_config: AppConfig):
        controller = app_api.build_controller(config=sample_config)

        assert isinstance(controller.engine, InMemoryEngine)
        assert isinstance(controller.repository, InMemoryRepository)
        assert controller.config is sample_config

    def test_build_controller_keeps_collaborators(self, engine, repository, sample_config):
        provider = lambda: "entry"  # noqa: E731

        controller = app_api.build_controller(engine, repository, sample_config, provider)

        assert controller.engine is engine
        assert controller.repository is repository
        assert controller.log_entry_provider is provider

    def test_list_rules(self):
        assert app_api.list_mapping_rules() == {
            "FromDstToHub": "VariableToElementRule",
            "FromHubToDst": "ParameterToVariableRule",
        }

    def test_compare_values(self):
        assert app_api.compare_values("4", "5") == ("+1", "+25%")
        assert app_api.compare_values("4", "abc") == ("N/A", "N/A")
