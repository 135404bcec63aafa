from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Loading priority (highest to lowest):
    1. Environment variables
    2. .env file
    3. Default values below
    """

    # Environment
    environment: str = "development"
    debug: bool = True

    # Application
    app_name: str = "ShortLink"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8000

    # Public prefix for display URLs: <base_url>/<code>
    base_url: str = "http://127.0.0.1:8000"

    # Tenant namespace, used as the Redis key prefix
    app_id: str = "url-shortener-v1"

    # Link store
    link_store_backend: str = "sql"  # Options: "sql", "redis", "memory"
    database_url: str = "sqlite:///./shortlink.db"
    redis_url: str = "redis://localhost:6379/0"

    # Allocation
    short_code_length: int = 6
    max_allocation_attempts: int = 300
    default_validity_minutes: int = 30

    # Per-request bound for allocate/resolve, in seconds
    request_timeout_seconds: float = 5.0

    # Logging
    log_level: str = "INFO"
    log_format: str = "text"  # Options: "text", "json"

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
