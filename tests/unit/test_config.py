"""Unit tests for configuration management."""

from pathlib import Path

import pytest
import yaml

from magento_woowup.exceptions import TransientRemoteFault
from magento_woowup.models.config import ConfigManager, SyncConfig

REQUIRED = {"host": "https://shop.example.com/", "apiuser": "woowup", "apikey": "secret"}


def test_sync_config_defaults():
    """Test that SyncConfig has the connector's default values."""
    config = SyncConfig(**REQUIRED)

    assert config.host == "https://shop.example.com"
    assert config.version == 1
    assert config.session_timeout == 300
    assert config.stores == []
    assert config.store_id is None
    assert config.status == ["complete"]
    assert config.branch_name == "MAGENTO"
    assert config.customer_tag == "Magento"
    assert config.categories is False
    assert config.categories_field == "category_ids"
    assert config.url_field == "url_path"
    assert config.product_types == ["simple"]
    assert config.retry_mode == "filtered"
    assert config.retry_fault_pattern == "not exists."
    assert config.retry_max_attempts == 3
    assert config.retry_base == 2.0
    assert config.output_path == Path("out") / "summary.json"


def test_sync_config_validators():
    with pytest.raises(ValueError, match="must start with http"):
        SyncConfig(**{**REQUIRED, "host": "ftp://shop.example.com"})

    with pytest.raises(ValueError, match="credentials must be specified"):
        SyncConfig(**{**REQUIRED, "apikey": "  "})

    with pytest.raises(ValueError, match="version can be only 1 or 2"):
        SyncConfig(**{**REQUIRED, "version": 3})

    with pytest.raises(ValueError, match="retry_mode"):
        SyncConfig(**{**REQUIRED, "retry_mode": "sometimes"})

    with pytest.raises(ValueError, match="retry_max_attempts must be positive"):
        SyncConfig(**{**REQUIRED, "retry_max_attempts": 0})

    with pytest.raises(ValueError, match="must be positive"):
        SyncConfig(**{**REQUIRED, "session_timeout": 0})


def test_empty_status_falls_back_to_complete():
    assert SyncConfig(**{**REQUIRED, "status": []}).status == ["complete"]


def test_retry_policy_modes():
    filtered = SyncConfig(**REQUIRED).retry_policy()
    always = SyncConfig(**{**REQUIRED, "retry_mode": "always", "retry_max_attempts": 5}).retry_policy()

    assert not filtered.should_retry(TransientRemoteFault("Internal error"))
    assert filtered.should_retry(TransientRemoteFault("Customer not exists."))
    assert always.should_retry(TransientRemoteFault("Internal error"))
    assert always.max_attempts == 5


def test_config_manager_loads_yaml(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump({**REQUIRED, "status": ["complete", "processing"], "version": 2}))

    config = ConfigManager(config_file).load_config()

    assert config.status == ["complete", "processing"]
    assert config.version == 2


def test_env_overrides_yaml(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump({**REQUIRED, "log_level": "INFO"}))
    monkeypatch.setenv("MAGENTO_API_VERSION", "2")
    monkeypatch.setenv("SYNC_LOG_LEVEL", "DEBUG")
    monkeypatch.setenv("WOOWUP_API_KEY", "env-key")

    config = ConfigManager(config_file).load_config()

    assert config.version == 2
    assert config.log_level == "DEBUG"
    assert config.woowup_api_key == "env-key"


def test_cli_overrides_env(tmp_path, monkeypatch):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.dump(REQUIRED))
    monkeypatch.setenv("SYNC_LOG_LEVEL", "DEBUG")

    config = ConfigManager(config_file).load_config({"log_level": "ERROR", "store_id": None})

    assert config.log_level == "ERROR"
    assert config.store_id is None


def test_missing_file_uses_env_only(tmp_path, monkeypatch):
    monkeypatch.setenv("MAGENTO_HOST", "https://env.example.com")
    monkeypatch.setenv("MAGENTO_API_USER", "env-user")
    monkeypatch.setenv("MAGENTO_API_KEY", "env-secret")

    manager = ConfigManager(tmp_path / "missing.yaml")

    assert manager.config.host == "https://env.example.com"
