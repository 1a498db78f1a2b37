"""Grid configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class GridSettings(BaseSettings):
    """Row list settings loaded from ``EXTRAGRID_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="EXTRAGRID_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Sorting: reorder rows locally, or only record the option and let a
    # remote layer refetch.
    use_client_sort: bool = True

    # Identity column name in output rows; also the "natural order" sort column
    row_key_name: str = "rowKey"

    # What to do when a rowSpan declaration runs past the last row
    span_overflow: Literal["clamp", "reject"] = "clamp"

    # Logging
    log_level: str = "INFO"
    json_logs: bool = False


@lru_cache
def get_settings() -> GridSettings:
    """Get cached settings instance."""
    return GridSettings()
