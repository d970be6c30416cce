"""Application settings loaded from environment variables."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Network Insight server configuration."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    # Server
    # Loopback by default; the MCP surface has no auth layer of its own.
    insight_host: str = "127.0.0.1"
    insight_port: int = 8010
    insight_log_level: str = "info"
    insight_allow_insecure_bind: bool = False

    # Persistence (baseline sample envelope)
    storage_backend: Literal["sqlite", "file", "memory"] = "sqlite"
    db_path: str = "~/.netinsight/baseline.db"
    storage_dir: str = "~/.netinsight/blobs"
    # Empty key = envelope stored as plain JSON
    encryption_key: str = ""

    # Adaptive baseline
    baseline_storage_key: str = "edge_ai_baseline_v1"
    baseline_max_samples: int = 500
    baseline_save_debounce_s: float = 1.0
    baseline_max_age_s: float = 900.0

    # Environment profiles
    profiles_dir: str = ""
    default_profile: str = "campus"


def get_settings() -> Settings:
    """Create and return a Settings instance."""
    return Settings()
