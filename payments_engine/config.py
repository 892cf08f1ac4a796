"""
Configuration Management Module

Provides centralized configuration using pydantic-settings for environment-based configuration.
"""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class PaymentsConfig(BaseSettings):
    """Payments engine configuration"""

    model_config = SettingsConfigDict(
        env_prefix="PAYMENTS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Logging configuration
    log_level: str = "WARNING"  # Skip diagnostics are INFO, hidden by default
    log_format: str = "json"  # json or text

    # Diagnostics
    verbose: bool = False
    verbose_log_level: str = "INFO"  # Level used when verbose mode is on

    @field_validator("log_level", "verbose_log_level")
    @classmethod
    def _check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @field_validator("log_format")
    @classmethod
    def _check_format(cls, value: str) -> str:
        fmt = value.lower()
        if fmt not in ("json", "text"):
            raise ValueError(f"Unknown log format {value!r}")
        return fmt

    def effective_log_level(self, verbose: bool = False) -> str:
        """Log level after applying verbose mode from config or caller"""
        if verbose or self.verbose:
            return min(self.log_level, self.verbose_log_level, key=logging.getLevelName)
        return self.log_level


# Global configuration instance
config = PaymentsConfig()


def get_config() -> PaymentsConfig:
    """Get global configuration instance"""
    return config


def reload_config() -> PaymentsConfig:
    """Reload configuration from environment"""
    global config
    config = PaymentsConfig()
    return config
