"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Logging
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_json: bool = False  # JSON format for log shippers, False for human-readable

    # Graceful Shutdown
    shutdown_timeout: float = 120.0  # SIGTERM: seconds to drain before forced exit
    interrupt_timeout: Optional[float] = None  # SIGINT: None waits for drain indefinitely

    # Simulated work behind /long-running
    long_running_seconds: float = 300.0


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
