import os
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseAppSettings(BaseSettings):
    """
    Base configuration for pollvote.
    Loads from .env and .env.{POLLVOTE_ENV} files.
    """

    # We determine the env file names dynamically before class initialization
    _env = os.getenv("POLLVOTE_ENV", "development").lower()
    model_config = SettingsConfigDict(
        env_file=(".env", f".env.{_env}"), env_file_encoding="utf-8", extra="ignore"
    )

    # Core Environment
    pollvote_env: Literal["development", "testing", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["pretty", "json"] = "pretty"

    # Crypto backend, selected once per process
    crypto_backend: Literal["cryptography", "tink"] = "cryptography"

    @field_validator("crypto_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v: str | None) -> str:
        if not v:
            return "cryptography"
        return v.lower()

    @property
    def is_production(self) -> bool:
        return self.pollvote_env == "production"

    @property
    def is_testing(self) -> bool:
        return self.pollvote_env == "testing"


class DevelopmentSettings(BaseAppSettings):
    """Configuration for development environment."""

    pollvote_env: Literal["development"] = "development"  # type: ignore
    log_format: Literal["pretty"] = "pretty"  # type: ignore


class TestingSettings(BaseAppSettings):
    """Configuration for testing environment."""

    pollvote_env: Literal["testing"] = "testing"  # type: ignore
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "DEBUG"
    log_format: Literal["pretty"] = "pretty"  # type: ignore


class ProductionSettings(BaseAppSettings):
    """Configuration for production environment. Enforces strict requirements."""

    pollvote_env: Literal["production"] = "production"  # type: ignore
    log_format: Literal["json"] = "json"  # type: ignore

    @field_validator("log_level")
    @classmethod
    def no_debug_in_prod(cls, v: str) -> str:
        if v == "DEBUG":
            raise ValueError("LOG_LEVEL cannot be DEBUG in production mode")
        return v


def get_settings() -> BaseAppSettings:
    """Factory to return the correct settings object based on POLLVOTE_ENV."""
    env = os.getenv("POLLVOTE_ENV", "development").lower()

    if env == "production":
        return ProductionSettings()
    elif env == "testing":
        return TestingSettings()
    else:
        return DevelopmentSettings()


settings = get_settings()
