"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Herstel recovery server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default: the server has no auth layer and handles patient data.
    herstel_host: str = "127.0.0.1"
    herstel_port: int = 8003
    herstel_log_level: str = "info"
    herstel_allow_insecure_bind: bool = False

    # Storage (daily assessment history)
    db_path: str = "~/.herstel/recovery.db"

    # Encryption; empty disables persistence
    encryption_key: str = ""

    # Scoring defaults
    default_step_target: int = 2000
    trend_history_limit: int = 30


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
