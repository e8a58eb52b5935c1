"""Application settings using pydantic-settings.

Loads configuration from environment variables with .env file support.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    environment: Literal["development", "staging", "production", "testing"] = "development"
    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Container runtime
    sandbox_image: str = Field(
        default="codebox-sandbox:latest",
        description="Container image used for snippet execution",
    )
    sandbox_runtime: str = Field(
        default="docker",
        description="Docker-CLI compatible runtime binary (docker, podman, ...)",
    )
    sandbox_max_output_bytes: int = Field(
        default=512 * 1024,
        ge=0,
        description="Per-stream output ceiling; only the most recent bytes are kept",
    )
    sandbox_workspace_root: Path | None = Field(
        default=None,
        description="Root for relative mount sources (defaults to the working directory)",
    )
    sandbox_temp_dir: Path | None = Field(
        default=None,
        description="Parent directory for staging directories (defaults to the system temp dir)",
    )

    # Policy
    sandbox_policy_file: str = Field(
        default="sandbox.policy.yaml",
        description="Policy document looked up relative to the policy working directory",
    )

    # Tool output
    sandbox_summary_max_chars: int = Field(
        default=2000,
        ge=0,
        description="Character budget for the human-readable execution summary",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded once and reused.
    """
    return Settings()
