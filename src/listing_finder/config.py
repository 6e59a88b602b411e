"""Application configuration using pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from listing_finder.db.store import MAX_ROWS, SqliteStore, Store


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="LISTING_FINDER_",
        extra="ignore",
    )

    # Stores
    database_paths: str = Field(
        default="data/listings.db",
        description="Comma-separated SQLite database paths, one listing store each",
    )
    row_limit: int = Field(
        default=MAX_ROWS,
        ge=1,
        le=MAX_ROWS,
        description="Maximum rows read from each store per search",
    )

    # Logging
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines instead of console output",
    )

    def get_database_paths(self) -> list[str]:
        """Parse database_paths into a list of paths."""
        return [p.strip() for p in self.database_paths.split(",") if p.strip()]

    def build_stores(self) -> list[Store]:
        """One SqliteStore per configured path, in configured order."""
        return [SqliteStore(path) for path in self.get_database_paths()]
