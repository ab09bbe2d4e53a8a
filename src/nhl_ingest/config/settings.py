import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Application settings loaded from environment variables or .env file."""

    # Supabase Configuration
    supabase_url: Optional[str] = Field(
        None, description="URL for the Supabase project holding the player documents."
    )
    supabase_key: Optional[str] = Field(
        None, description="Key for the Supabase project (service role for writes)."
    )
    players_table: str = Field("players", description="Table of player documents.")
    progress_table: str = Field(
        "scraper_progress", description="Table holding the resume checkpoint."
    )

    # Upstream API
    stats_api_base_url: str = Field(
        "https://api.nhle.com/stats/rest/en",
        description="Base URL for the team list and paginated player summaries.",
    )
    web_api_base_url: str = Field(
        "https://api-web.nhle.com/v1", description="Base URL for player detail pages."
    )
    assets_base_url: str = Field(
        "https://assets.nhle.com", description="Base URL for logos and headshots."
    )
    http_timeout: float = Field(30.0, gt=0, description="Per-request timeout (s).")

    # Rate limiting and retries
    requests_per_minute: int = Field(
        30, gt=0, description="Global outbound request rate."
    )
    scheduler_queue_size: int = Field(
        100, gt=0, description="Maximum number of operations waiting for dispatch."
    )
    max_attempts: int = Field(3, ge=1, description="Attempts per upstream request.")
    rate_limit_backoff_base: float = Field(
        2.0, ge=0, description="Exponential backoff base (s) for 429/503 responses."
    )
    server_error_backoff_step: float = Field(
        1.0, ge=0, description="Linear backoff step (s) for other 5xx responses."
    )

    # Ingestion
    page_size: int = Field(100, gt=0, description="Summary page size (API maximum).")
    batch_size: int = Field(50, gt=0, description="Players buffered per bulk upsert.")
    active_grace_years: int = Field(
        1,
        ge=0,
        description="A tenure ending this many years before the current one still counts as active.",
    )
    target_league: str = Field("NHL", description="League kept when reconciling seasons.")

    # Logging Configuration
    log_level: str = Field(
        "INFO", description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."
    )

    # Pydantic Settings Configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )


def load_settings() -> AppSettings:
    """Loads and validates application settings."""
    try:
        settings = AppSettings()
        log_level_upper = settings.log_level.upper()
        # Validate log_level even if loaded from .env
        if log_level_upper not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            logging.warning(
                f"Invalid LOG_LEVEL '{settings.log_level}' found in .env or default. Using INFO."
            )
            settings.log_level = "INFO"
        else:
            settings.log_level = log_level_upper
        return settings
    except Exception as e:
        logging.exception(f"Error loading application settings: {e}")
        raise SystemExit("Failed to load application settings. Exiting.")


settings: AppSettings = load_settings()
