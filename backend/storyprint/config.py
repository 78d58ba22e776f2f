"""Application configuration from environment variables."""

from __future__ import annotations

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    storyprint_env: str = "development"
    storyprint_log_level: str = "debug"

    # CORS
    cors_origins: list[str] = ["http://localhost:3000"]

    # Layout
    # Fixed seed for the initial scatter; unset means a fresh layout every solve
    solver_seed: int | None = None
    layout_cache_size: int = 8

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
