"""Service settings for airm-risk-engine.

Settings use the AIRM_ environment prefix and cover:
- Primary database connection
- Logging
- Bulk import batching and preview size
- Risk velocity window and trend threshold
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for airm-risk-engine.

    Environment variable prefix: AIRM_
    """

    service_name: str = "airm-risk-engine"

    # -------------------------------------------------------------------------
    # Database
    # -------------------------------------------------------------------------

    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/airm",
        description="SQLAlchemy async URL for the primary database.",
    )
    db_pool_size: int = Field(
        default=10,
        description="Connection pool size for the primary database.",
    )
    db_max_overflow: int = Field(
        default=5,
        description="Max overflow connections above db_pool_size.",
    )

    # -------------------------------------------------------------------------
    # Logging
    # -------------------------------------------------------------------------

    log_level: str = Field(default="INFO", description="Root log level.")
    log_json: bool = Field(
        default=True,
        description="Emit JSON log lines. Set false for console output in local development.",
    )

    # -------------------------------------------------------------------------
    # Bulk import
    # -------------------------------------------------------------------------

    import_chunk_size: int = Field(
        default=100,
        ge=1,
        description="Valid rows persisted per transaction during a committed import.",
    )
    import_preview_limit: int = Field(
        default=10,
        ge=0,
        description="Number of parsed rows returned as preview by a dry run.",
    )

    # -------------------------------------------------------------------------
    # Risk velocity
    # -------------------------------------------------------------------------

    velocity_period_days: int = Field(
        default=10,
        ge=1,
        description="Default look-back window in days for velocity calculations.",
    )
    velocity_trend_threshold: float = Field(
        default=0.1,
        ge=0,
        description="Residual score points per day that must be exceeded to leave the stable band.",
    )

    model_config = SettingsConfigDict(env_prefix="AIRM_")


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance.

    Returns:
        Cached Settings loaded from the environment.
    """
    return Settings()
