"""Application configuration."""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # OpenAI
    openai_api_key: str
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.3

    # Database
    database_url: str

    # Shop
    shop_name: str = "BrewChat Coffee"
    catalog_file: Optional[str] = None  # Defaults to the bundled catalog.yaml
    tax_rate: float = 0.0
    max_line_quantity: int = 20

    # Agent loop
    max_tool_iterations: int = 6
    infra_retry_attempts: int = 3
    infra_retry_backoff_seconds: float = 0.25

    # Concurrency
    session_lock_wait_seconds: float = 0.0  # 0 rejects a second turn immediately
    turn_timeout_seconds: float = 60.0

    # Identity supplied by upstream auth middleware
    principal_header: str = "X-Verified-Principal"

    # Logging
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )


settings = Settings()
