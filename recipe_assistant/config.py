from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (recipes + persisted workstates)
    database_url: str = "sqlite:///./recipe_assistant.db"
    database_echo: bool = False

    # Knowledge base - leave empty to use the bundled data file
    knowledge_base_path: str = ""

    # Assistant tuning
    default_step_seconds: int = 120  # Estimate for steps without an embedded duration

    # Logging
    log_level: str = "INFO"

    # API metadata
    api_title: str = "Recipe Assistant API"
    api_version: str = "1.0.0"

    @property
    def is_sqlite(self) -> bool:
        """True when the configured database is SQLite (needs thread check disabled)."""
        return self.database_url.startswith("sqlite")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "RECIPE_ASSISTANT_"


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
