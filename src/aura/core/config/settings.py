"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Aura Wellness server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Default to loopback: the wellness server has no auth layer, so remote
    # access must be opted into explicitly.
    aura_host: str = "127.0.0.1"
    aura_port: int = 8001
    aura_log_level: str = "info"
    aura_allow_insecure_bind: bool = False

    # Storage (wellness data bank)
    db_path: str = "~/.aura/wellness.db"

    # Encryption
    encryption_key: str = ""

    # The MCP server is single-user; tools act on this user unless told otherwise.
    default_user_id: str = "local"

    # Pattern engine
    analysis_timezone: str = "UTC"
    history_window_days: int = 30
    min_data_points: int = 7


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
