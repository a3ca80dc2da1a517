"""Tests for configuration loading."""

import json

import pytest

from sitetracker.config import (
    ConfigError,
    ConfigManager,
    SiteTrackerConfig,
    _validate_jwt_secret_key,
)

STRONG_KEY = "Qm9vdHN0cmFwLWtleS1mb3ItdGVzdHMtb25seS0xOTg3NjU0"


@pytest.fixture
def manager(monkeypatch):
    for name in (
        "SITETRACKER_CONFIG_FILE",
        "SITETRACKER_DATABASE_URL",
        "SITETRACKER_STORE_TIMEOUT_SECONDS",
        "SITETRACKER_DEBUG",
        "SITETRACKER_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("SITETRACKER_JWT_SECRET_KEY", STRONG_KEY)
    return ConfigManager()


@pytest.mark.unit
class TestConfigManager:
    """Environment and file based configuration."""

    def test_defaults(self, manager):
        config = manager.load_config()
        assert config.database.url == "sqlite:///sitetracker.db"
        assert config.app.store_timeout_seconds == 5.0
        assert config.auth.jwt_secret_key == STRONG_KEY

    def test_environment_overrides(self, manager, monkeypatch):
        monkeypatch.setenv("SITETRACKER_DATABASE_URL", "sqlite:///other.db")
        monkeypatch.setenv("SITETRACKER_STORE_TIMEOUT_SECONDS", "0.5")
        monkeypatch.setenv("SITETRACKER_DEBUG", "1")

        config = manager.load_config()

        assert config.database.url == "sqlite:///other.db"
        assert config.app.store_timeout_seconds == 0.5
        assert config.app.debug is True
        assert config.app.log_level == "DEBUG"

    def test_config_is_cached_until_reset(self, manager, monkeypatch):
        first = manager.load_config()
        monkeypatch.setenv("SITETRACKER_DATABASE_URL", "sqlite:///changed.db")
        assert manager.load_config() is first

        manager.reset()
        assert manager.load_config().database.url == "sqlite:///changed.db"

    def test_config_file(self, manager, monkeypatch, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"app": {"store_timeout_seconds": 9}}), encoding="utf-8")
        monkeypatch.setenv("SITETRACKER_CONFIG_FILE", str(path))

        assert manager.load_config().app.store_timeout_seconds == 9

    def test_missing_config_file(self, manager, monkeypatch, tmp_path):
        monkeypatch.setenv("SITETRACKER_CONFIG_FILE", str(tmp_path / "absent.json"))
        with pytest.raises(ConfigError):
            manager.load_config()

    def test_unknown_keys_rejected(self):
        with pytest.raises(ConfigError):
            SiteTrackerConfig.from_dict({"app": {"no_such_option": True}})

    def test_non_numeric_timeout(self, manager, monkeypatch):
        monkeypatch.setenv("SITETRACKER_STORE_TIMEOUT_SECONDS", "soon")
        with pytest.raises(ConfigError):
            manager.load_config()

    def test_non_positive_timeout(self, manager, monkeypatch):
        monkeypatch.setenv("SITETRACKER_STORE_TIMEOUT_SECONDS", "0")
        with pytest.raises(ConfigError):
            manager.load_config()

    def test_generates_secret_when_unset(self, manager, monkeypatch):
        monkeypatch.delenv("SITETRACKER_JWT_SECRET_KEY")
        assert len(manager.load_config().auth.jwt_secret_key) >= 64

    def test_round_trip_dict(self, manager):
        config = manager.load_config()
        assert SiteTrackerConfig.from_dict(config.to_dict()) == config


@pytest.mark.unit
class TestJwtSecretValidation:
    """Weak secrets are refused."""

    @pytest.mark.parametrize("secret", ["", "short", "secret", "a" * 40, "ab" * 20])
    def test_weak_secrets(self, secret):
        with pytest.raises(ConfigError):
            _validate_jwt_secret_key(secret)

    def test_strong_secret(self):
        _validate_jwt_secret_key(STRONG_KEY)
