"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./fd_catalog.db"
    database_pool_size: int = 10

    # Service
    service_name: str = "fd-catalog"
    log_level: str = "INFO"

    # Catalog
    issuer_key_max_attempts: int = 100  # Suffix attempts when deriving an issuer id
    quote_history_limit: int = 50


settings = Settings()
