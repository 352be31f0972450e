"""Configuration management for the weather alert workflow service."""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, field_validator
from enum import Enum

from .core.exceptions import ConfigurationError
from .core.execution_engine import CONDITION_MET_LABEL, CONDITION_NOT_MET_LABEL
from .core.handlers import DEFAULT_EMAIL_SENDER
from .services.open_meteo import DEFAULT_GEOCODING_URL


class LogLevel(str, Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AppConfig(BaseModel):
    """Application configuration settings."""

    # Application settings
    app_name: str = Field(default="Weather Alert Workflow Engine", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server settings
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port")

    # Database settings
    database_url: str = Field(
        default="sqlite:///./weatherflow.db",
        description="Database connection URL"
    )
    database_echo: bool = Field(default=False, description="Enable SQLAlchemy query logging")

    # Logging settings
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_format: Optional[str] = Field(default=None, description="Log message format")
    log_file: Optional[str] = Field(default=None, description="Log file path")
    log_structured: bool = Field(default=False, description="Emit JSON log lines")

    # External services
    geocoding_url: str = Field(default=DEFAULT_GEOCODING_URL, description="Geocoding search endpoint")
    http_timeout: Optional[float] = Field(
        default=None,
        description="Timeout in seconds for external calls; unset means no timeout"
    )

    # Workflow behaviour
    email_sender: str = Field(default=DEFAULT_EMAIL_SENDER, description="From address of alert emails")
    condition_met_label: str = Field(default=CONDITION_MET_LABEL, description="Edge label followed when a condition holds")
    condition_not_met_label: str = Field(default=CONDITION_NOT_MET_LABEL, description="Edge label followed otherwise")

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v):
        """Validate database URL format."""
        if not v:
            raise ValueError("Database URL cannot be empty")

        supported_schemes = ['sqlite', 'postgresql', 'mysql']
        scheme = v.split('://')[0].split('+')[0].lower()

        if scheme not in supported_schemes:
            raise ValueError(f"Unsupported database scheme: {scheme}. Supported: {supported_schemes}")

        return v

    @field_validator('port')
    @classmethod
    def validate_port(cls, v):
        """Validate port number."""
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @field_validator('http_timeout')
    @classmethod
    def validate_http_timeout(cls, v):
        """Validate timeout value."""
        if v is not None and v <= 0:
            raise ValueError("HTTP timeout must be positive")
        return v

    @property
    def is_sqlite(self) -> bool:
        """Check if using SQLite database."""
        return self.database_url.lower().startswith("sqlite")

    def get_database_connect_args(self) -> Dict[str, Any]:
        """Get database connection arguments based on database type."""
        if self.is_sqlite:
            return {"check_same_thread": False}
        return {}

    def get_uvicorn_config(self) -> Dict[str, Any]:
        """Get Uvicorn server configuration."""
        return {
            "host": self.host,
            "port": self.port,
            "log_level": self.log_level.value.lower(),
            "access_log": self.debug
        }

    @classmethod
    def from_env(cls) -> 'AppConfig':
        """
        Create configuration from environment variables.

        Raises:
            ConfigurationError: If a variable cannot be converted or fails validation
        """
        def get_env(key: str, default=None, type_func=str):
            """Get environment variable with type conversion."""
            value = os.getenv(f"WEATHERFLOW_{key}")
            if value is None or value == "":
                return default
            if type_func == bool:
                return str(value).lower() in ('true', '1', 'yes', 'on')
            return type_func(value)

        try:
            return cls._from_env_values(get_env)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    @classmethod
    def _from_env_values(cls, get_env) -> 'AppConfig':
        return cls(
            app_name=get_env("APP_NAME", "Weather Alert Workflow Engine"),
            app_version=get_env("APP_VERSION", "1.0.0"),
            debug=get_env("DEBUG", False, bool),
            host=get_env("HOST", "0.0.0.0"),
            port=get_env("PORT", 8000, int),
            database_url=get_env("DATABASE_URL", "sqlite:///./weatherflow.db"),
            database_echo=get_env("DATABASE_ECHO", False, bool),
            log_level=LogLevel(get_env("LOG_LEVEL", "INFO").upper()),
            log_format=get_env("LOG_FORMAT", None),
            log_file=get_env("LOG_FILE", None),
            log_structured=get_env("LOG_STRUCTURED", False, bool),
            geocoding_url=get_env("GEOCODING_URL", DEFAULT_GEOCODING_URL),
            http_timeout=get_env("HTTP_TIMEOUT", None, float),
            email_sender=get_env("EMAIL_SENDER", DEFAULT_EMAIL_SENDER),
            condition_met_label=get_env("CONDITION_MET_LABEL", CONDITION_MET_LABEL),
            condition_not_met_label=get_env("CONDITION_NOT_MET_LABEL", CONDITION_NOT_MET_LABEL)
        )


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def load_config(config_file: Optional[str] = None) -> AppConfig:
    """Load configuration from a .env file and environment variables."""
    global _config

    from dotenv import load_dotenv

    if config_file and os.path.exists(config_file):
        load_dotenv(config_file)
    elif os.path.exists('.env'):
        load_dotenv('.env')

    _config = AppConfig.from_env()

    return _config


def reset_config():
    """Reset the global configuration instance (mainly for testing)."""
    global _config
    _config = None


def get_testing_config() -> AppConfig:
    """Get testing configuration."""
    return AppConfig(
        debug=True,
        database_url="sqlite:///:memory:",
        log_level=LogLevel.WARNING
    )
