"""Tests for configuration loading."""

import json

import pytest

from app_config import DEFAULT_CONFIG, get_default_config, load_config
from statement_sources import ConfigurationError


class TestDefaults:
    """Tests for built-in defaults."""

    def test_default_rates(self) -> None:
        config = load_config(environ={})

        assert config["default_settings"] == {
            "portal_commission_percentage": 15,
            "cleaning_fee_per_invoice": 75,
            "management_fee_percentage": 25,
        }
        assert config["billing"]["base_url"] is None
        assert config["billing"]["timeout"] == 20.0
        assert config["log_level"] == "INFO"

    def test_default_config_is_a_copy(self) -> None:
        config = get_default_config()
        config["default_settings"]["management_fee_percentage"] = 99

        assert DEFAULT_CONFIG["default_settings"]["management_fee_percentage"] == 25


class TestEnvironment:
    """Tests for environment overrides."""

    def test_billing_from_env(self) -> None:
        config = load_config(environ={
            "BILLING_API_URL": "https://billing.example.com",
            "BILLING_API_KEY": "secret",
            "BILLING_TIMEOUT": "7.5",
            "LOG_LEVEL": "DEBUG",
        })

        assert config["billing"] == {
            "base_url": "https://billing.example.com",
            "api_key": "secret",
            "timeout": 7.5,
        }
        assert config["log_level"] == "DEBUG"

    def test_invalid_timeout(self) -> None:
        with pytest.raises(ConfigurationError):
            load_config(environ={"BILLING_TIMEOUT": "soon"})


class TestConfigFile:
    """Tests for JSON config files."""

    def test_file_merged_over_defaults(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({
            "default_settings": {"management_fee_percentage": 20},
            "properties": [{"id": 1, "name": "Studio"}],
            "billing": {"base_url": "https://file.example.com"},
        }))

        config = load_config(str(path), environ={})

        assert config["default_settings"]["management_fee_percentage"] == 20
        assert config["default_settings"]["portal_commission_percentage"] == 15
        assert config["properties"] == [{"id": 1, "name": "Studio"}]
        assert config["billing"]["base_url"] == "https://file.example.com"
        assert config["billing"]["timeout"] == 20.0

    def test_env_wins_over_file(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"billing": {"base_url": "https://file.example.com"}}))

        config = load_config(environ={"STATEMENT_CONFIG": str(path), "BILLING_API_URL": "https://env.example.com"})

        assert config["billing"]["base_url"] == "https://env.example.com"

    def test_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(str(tmp_path / "missing.json"), environ={})

    def test_invalid_json(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text("{not json")

        with pytest.raises(ConfigurationError, match="not valid JSON"):
            load_config(str(path), environ={})

    def test_non_object(self, tmp_path) -> None:
        path = tmp_path / "config.json"
        path.write_text("[1, 2]")

        with pytest.raises(ConfigurationError, match="JSON object"):
            load_config(str(path), environ={})
