"""
Tests unitaires pour ConfigLoader.
"""

import pytest

from pipeline_crm.core import ClientSettings, ConfigIntegrityError, ConfigLoader


@pytest.fixture
def configs_path(tmp_path):
    return tmp_path


def write_config(path, name, content):
    (path / f"{name}.yaml").write_text(content, encoding="utf-8")


class TestConfigLoader:
    """Tests pour ConfigLoader."""

    def test_missing_file_uses_defaults(self, configs_path):
        """Sans fichier, les valeurs par défaut s'appliquent."""
        settings = ConfigLoader(str(configs_path), environ={}).load("client")

        assert settings == ClientSettings()
        assert settings.api_base_url == "https://democrm-rsqo.onrender.com"
        assert settings.expiry_check_interval_seconds == 300

    def test_load_yaml(self, configs_path):
        write_config(
            configs_path,
            "client",
            "api_base_url: https://crm.example.com\n"
            "expiry_check_interval_seconds: 120\n"
            "storage_path: ~/.pipeline-crm/session.json\n",
        )

        settings = ConfigLoader(str(configs_path), environ={}).load("client")

        assert settings.api_base_url == "https://crm.example.com"
        assert settings.expiry_check_interval_seconds == 120
        assert settings.storage_path == "~/.pipeline-crm/session.json"

    def test_client_section(self, configs_path):
        """Les réglages peuvent être regroupés sous une clé "client"."""
        write_config(configs_path, "client", "client:\n  log_level: DEBUG\n")

        settings = ConfigLoader(str(configs_path), environ={}).load("client")

        assert settings.log_level == "DEBUG"

    def test_env_overrides_file(self, configs_path):
        write_config(configs_path, "client", "api_base_url: https://crm.example.com\nlog_level: INFO\n")
        environ = {
            "CRM_API_BASE_URL": "https://staging.example.com",
            "CRM_LOG_LEVEL": "WARN",
            "CRM_STORAGE_PATH": "/tmp/session.json",
            "CRM_STORAGE_KEY": "key",
        }

        settings = ConfigLoader(str(configs_path), environ=environ).load("client")

        assert settings.api_base_url == "https://staging.example.com"
        assert settings.log_level == "WARN"
        assert settings.storage_path == "/tmp/session.json"
        assert settings.storage_encryption_key == "key"

    def test_empty_env_value_ignored(self, configs_path):
        settings = ConfigLoader(str(configs_path), environ={"CRM_API_BASE_URL": ""}).load("client")
        assert settings.api_base_url == ClientSettings().api_base_url

    def test_empty_file(self, configs_path):
        write_config(configs_path, "client", "")
        assert ConfigLoader(str(configs_path), environ={}).load("client") == ClientSettings()

    def test_invalid_yaml_raises(self, configs_path):
        write_config(configs_path, "client", "api_base_url: [unclosed\n")

        with pytest.raises(ConfigIntegrityError) as exc_info:
            ConfigLoader(str(configs_path), environ={}).load("client")

        assert "YAML" in str(exc_info.value)

    def test_non_mapping_raises(self, configs_path):
        write_config(configs_path, "client", "- a\n- b\n")

        with pytest.raises(ConfigIntegrityError):
            ConfigLoader(str(configs_path), environ={}).load("client")

    def test_unknown_field_raises(self, configs_path):
        write_config(configs_path, "client", "api_url: https://crm.example.com\n")

        with pytest.raises(ConfigIntegrityError) as exc_info:
            ConfigLoader(str(configs_path), environ={}).load("client")

        assert "api_url" in str(exc_info.value)

    def test_wrong_type_raises(self, configs_path):
        write_config(configs_path, "client", "request_timeout: soon\n")

        with pytest.raises(ConfigIntegrityError):
            ConfigLoader(str(configs_path), environ={}).load("client")
