from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


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
    log_level: str = "INFO"
    
    # Application
    app_name: str = "URL Shortener"
    app_version: str = "1.0.0"
    service_name: str = "URL"  # Reported by /health
    
    # Database (durable store)
    database_url: str = "sqlite:///./url_shortener.db"
    
    # URL Shortener specific
    base_url: str = "http://127.0.0.1:8000"
    max_url_length: int = 2048
    
    # Short code generation
    short_code_strategy: str = "random"  # Options: "random", "uuid"
    short_code_length: int = 7  # 62^7 ~ 3.5e12 possible codes
    short_code_max_retries: int = 5
    custom_code_min_length: int = 3
    custom_code_max_length: int = 32
    
    # Cache settings
    # No redis_url means the in-memory fallback cache is wired at startup
    redis_url: Optional[str] = None
    cache_instance_name: str = "UrlShortener"  # Key prefix in Redis
    cache_ttl: int = 3600  # Default absolute TTL in seconds (1 hour)
    cache_sliding_ttl: Optional[int] = None  # Sliding TTL in seconds, disabled by default
    cache_timeout: float = 0.5  # Per-operation timeout for Redis calls (seconds)
    cache_connect_timeout: float = 2.0
    local_cache_max_entries: Optional[int] = 10000
    
    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
