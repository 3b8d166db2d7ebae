"""
Tests for configuration loading, saving and defaults.
"""

import yaml

import config_manager
from config_manager import DEFAULT_CONFIG, get_config_path, get_setting, load_config, save_config


class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_file_returns_defaults(self, tmp_path):
        """A missing config file yields the full default configuration."""
        config = load_config(tmp_path / "missing.yaml")

        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_partial_file_is_merged_with_defaults(self, tmp_path):
        """Values from the file win; missing keys come from the defaults."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({
            "budget": {"monthly_default": 500},
            "storage": {"encrypt": True},
        }))

        config = load_config(path)

        assert config["budget"]["monthly_default"] == 500
        assert config["storage"]["encrypt"] is True
        assert config["storage"]["path"] == "expenses.db"
        assert config["analysis"]["anomaly_multiplier"] == 3.0

    def test_invalid_yaml_falls_back_to_defaults(self, tmp_path):
        """Unparseable YAML is logged and the defaults are used."""
        path = tmp_path / "config.yaml"
        path.write_text("storage: [unclosed")

        assert load_config(path) == DEFAULT_CONFIG

    def test_non_mapping_root_falls_back_to_defaults(self, tmp_path):
        """A YAML list at the root is rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")

        assert load_config(path) == DEFAULT_CONFIG


class TestConfigPath:
    """Tests for config path resolution."""

    def test_explicit_path_wins(self, monkeypatch, tmp_path):
        monkeypatch.setenv(config_manager.CONFIG_ENV_VAR, str(tmp_path / "env.yaml"))
        assert get_config_path(tmp_path / "explicit.yaml") == tmp_path / "explicit.yaml"

    def test_env_var_used_when_no_argument(self, monkeypatch, tmp_path):
        monkeypatch.setenv(config_manager.CONFIG_ENV_VAR, str(tmp_path / "env.yaml"))
        assert get_config_path() == tmp_path / "env.yaml"

    def test_default_file_name(self, monkeypatch):
        monkeypatch.delenv(config_manager.CONFIG_ENV_VAR, raising=False)
        assert get_config_path().name == "config.yaml"


class TestSaveConfig:
    """Tests for save_config."""

    def test_save_preserves_existing_sections(self, tmp_path):
        """Saving merges into the file instead of dropping unrelated sections."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"security": {"encryption_key": "abc"}}))

        assert save_config({"currency": {"base": "EUR"}}, path) is True

        saved = yaml.safe_load(path.read_text())
        assert saved["security"]["encryption_key"] == "abc"
        assert saved["currency"]["base"] == "EUR"


def test_get_setting_with_default():
    """get_setting returns the fallback for missing sections or keys."""
    config = {"budget": {"monthly_default": 100}}

    assert get_setting(config, "budget", "monthly_default") == 100
    assert get_setting(config, "budget", "missing", 7) == 7
    assert get_setting(config, "nope", "key", "x") == "x"
