"""
Shared configuration management for the eBill console.
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_SESSION_FILE = Path.home() / ".ebill" / "session.json"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="EBILL_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Logging
    log_level: str = Field(default="info")

    # Backend
    backend_url: str = Field(default="http://localhost:8080")
    api_prefix: str = Field(default="/api")
    request_timeout: Optional[float] = Field(default=None)

    # Session
    session_file: Path = Field(default=DEFAULT_SESSION_FILE)

    # Public portal
    portal_payment_method: str = Field(default="Online Portal")


class ConsoleConfig(BaseConfig):
    """Console-specific configuration."""

    service_name: str = "console"

    def __init__(self, service_name: str = "console", **kwargs):
        super().__init__(service_name=service_name, **kwargs)


def get_config(service_name: str = "console", **overrides) -> ConsoleConfig:
    """Get configuration for the console."""
    return ConsoleConfig(service_name=service_name, **overrides)
