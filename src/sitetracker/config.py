"""
Configuration management for the site tracker core.

Builds configuration from environment variables with sensible defaults and
an optional JSON config file.
"""

import json
import logging
import os
import secrets
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

# List of known weak/default JWT secrets that should be rejected
WEAK_JWT_SECRETS = {
    "your-secret-key-change-in-production",
    "secret",
    "key",
    "password",
    "jwt-secret",
    "secret-key",
    "change-me",
    "default",
    "test",
    "development",
    "dev",
    "demo",
    "example",
    "sample",
}

ENV_PREFIX = "SITETRACKER_"


class ConfigError(Exception):
    """Raised when the configuration is unusable."""


def _validate_jwt_secret_key(jwt_secret_key: str) -> None:
    """Validate JWT secret key security and reject weak/default keys.

    Args:
        jwt_secret_key: The JWT secret key to validate

    Raises:
        ConfigError: If the secret key is weak, default, or insecure
    """
    if not jwt_secret_key:
        raise ConfigError("JWT secret key is empty")

    if len(jwt_secret_key) < 32:
        raise ConfigError(
            f"JWT secret key is too short ({len(jwt_secret_key)} chars). "
            f"Minimum 32 characters required."
        )

    if jwt_secret_key.lower() in WEAK_JWT_SECRETS:
        raise ConfigError("JWT secret key is a known weak/default secret")

    unique_chars = len(set(jwt_secret_key))
    if unique_chars < 8:
        raise ConfigError(
            f"JWT secret key has insufficient entropy ({unique_chars} unique characters)"
        )

    if any(
        pattern in jwt_secret_key.lower()
        for pattern in ["123", "abc", "password", "secret", "qwerty", "admin"]
    ):
        logging.warning(
            "JWT secret key contains common patterns that may indicate weak security. "
            "Consider using a fully random key generated with secrets.token_urlsafe(64)."
        )


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(ENV_PREFIX + name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_number(name: str, default, cast):
    value = os.getenv(ENV_PREFIX + name)
    if value is None or value == "":
        return default
    try:
        return cast(value)
    except ValueError as exc:
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {value!r}") from exc


@dataclass
class DatabaseConfig:
    """Database configuration."""

    url: str = "sqlite:///sitetracker.db"
    echo: bool = False
    busy_timeout_ms: int = 5000  # SQLite lock wait for concurrent writers


@dataclass
class AuthConfig:
    """Token and session configuration."""

    # Must be set at runtime - generated if not provided
    jwt_secret_key: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expires_minutes: int = 15


@dataclass
class AppConfig:
    """Main application configuration."""

    app_name: str = "Site Tracker"
    version: str = "1.0.0"

    # Upper bound for every session/site store call, in seconds
    store_timeout_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    debug: bool = False


@dataclass
class SiteTrackerConfig:
    """Complete configuration for the site tracker."""

    app: AppConfig = field(default_factory=AppConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "app": asdict(self.app),
            "auth": asdict(self.auth),
            "database": asdict(self.database),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SiteTrackerConfig":
        """Create from dictionary."""
        try:
            return cls(
                app=AppConfig(**data.get("app", {})),
                auth=AuthConfig(**data.get("auth", {})),
                database=DatabaseConfig(**data.get("database", {})),
            )
        except TypeError as exc:
            raise ConfigError(f"Unknown configuration key: {exc}") from exc


class ConfigManager:
    """Manages configuration loading and environment overrides."""

    def __init__(self):
        self.config: Optional[SiteTrackerConfig] = None

    def get_config_file_path(self) -> Optional[Path]:
        """Get the path of the optional JSON config file."""
        path = os.getenv(ENV_PREFIX + "CONFIG_FILE")
        return Path(path) if path else None

    def _read_config_file(self) -> Dict[str, Any]:
        config_file = self.get_config_file_path()
        if config_file is None:
            return {}
        if not config_file.exists():
            raise ConfigError(f"Config file not found: {config_file}")
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"Config file {config_file} is not valid JSON: {exc}") from exc
        logging.info(f"Loaded configuration from {config_file}")
        return data

    def apply_environment(self, config: SiteTrackerConfig) -> SiteTrackerConfig:
        """Override configuration values from SITETRACKER_* environment variables."""
        db_url = os.getenv(ENV_PREFIX + "DATABASE_URL")
        if db_url:
            config.database.url = db_url
        config.database.echo = _env_bool("SQL_DEBUG", config.database.echo)
        config.database.busy_timeout_ms = _env_number(
            "BUSY_TIMEOUT_MS", config.database.busy_timeout_ms, int
        )

        secret = os.getenv(ENV_PREFIX + "JWT_SECRET_KEY")
        if secret:
            config.auth.jwt_secret_key = secret
        config.auth.access_token_expires_minutes = _env_number(
            "ACCESS_TOKEN_MINUTES", config.auth.access_token_expires_minutes, int
        )

        config.app.store_timeout_seconds = _env_number(
            "STORE_TIMEOUT_SECONDS", config.app.store_timeout_seconds, float
        )
        config.app.log_level = os.getenv(ENV_PREFIX + "LOG_LEVEL", config.app.log_level).upper()
        config.app.log_dir = os.getenv(ENV_PREFIX + "LOG_DIR", config.app.log_dir)
        config.app.log_to_file = _env_bool("LOG_TO_FILE", config.app.log_to_file)
        config.app.debug = _env_bool("DEBUG", config.app.debug)
        if config.app.debug:
            config.app.log_level = "DEBUG"
        return config

    def load_config(self) -> SiteTrackerConfig:
        """Load configuration from file and environment, once."""
        if self.config is not None:
            return self.config

        config = SiteTrackerConfig.from_dict(self._read_config_file())
        config = self.apply_environment(config)

        if not config.auth.jwt_secret_key:
            # Generate cryptographically secure 64-byte secret
            config.auth.jwt_secret_key = secrets.token_urlsafe(64)
            logging.info("Generated new JWT secret key (not from environment)")

        self.config = config
        try:
            self.validate_config()
        except ConfigError:
            self.config = None
            raise
        return self.config

    def validate_config(self) -> List[str]:
        """Validate configuration, raising on fatal problems and returning warnings."""
        if self.config is None:
            self.load_config()

        issues = []
        _validate_jwt_secret_key(self.config.auth.jwt_secret_key)

        if self.config.app.store_timeout_seconds <= 0:
            raise ConfigError("store_timeout_seconds must be positive")
        if self.config.auth.access_token_expires_minutes <= 0:
            raise ConfigError("access_token_expires_minutes must be positive")

        if not isinstance(logging.getLevelName(self.config.app.log_level), int):
            issues.append(f"Unknown log level: {self.config.app.log_level}")
            self.config.app.log_level = "INFO"

        return issues

    def reset(self) -> None:
        """Forget the cached configuration."""
        self.config = None


# Global config manager instance
config_manager = ConfigManager()


def get_config() -> SiteTrackerConfig:
    """Get the current configuration."""
    return config_manager.load_config()


def reset_config() -> None:
    """Clear cached configuration so the next get_config() re-reads the environment."""
    config_manager.reset()
