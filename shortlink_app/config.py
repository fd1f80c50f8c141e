from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


DEFAULT_CHARSET = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"


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
    app_name: str = "Shortlink"
    app_version: str = "1.0.0"

    # Server
    host: str = "127.0.0.1"
    port: int = 8080

    # Database
    database_url: str = "sqlite:///./shortlink.db"

    # Short code allocation
    base_url: str = "http://127.0.0.1:8080"
    code_length: int = 6
    code_charset: str = DEFAULT_CHARSET

    # Cache settings
    cache_backend: str = "redis"  # Options: "redis", "memory", "null"
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 3600  # Base TTL, multiplied by code_length
    cache_prefix: str = "shorten:"
    cache_socket_timeout: float = 2.0

    # GeoIP settings
    geoip_backend: str = "null"  # Options: "file", "http", "null"
    geoip_db_path: str = "data/ip_ranges.txt"
    geoip_http_url: str = "http://ip-api.com/json"
    geoip_timeout: float = 2.0

    # Client IP header set by a trusted reverse proxy (e.g. CF-Connecting-IP)
    trusted_platform: Optional[str] = None

    # Auth
    api_key: str = "change-me"
    admin_username: str = "admin"
    admin_password: str = "admin123"
    token_ttl: int = 86400

    @field_validator("code_length")
    @classmethod
    def check_code_length(cls, value: int) -> int:
        if value < 4 or value > 16:
            raise ValueError("code_length must be between 4 and 16")
        return value

    @field_validator("code_charset")
    @classmethod
    def check_code_charset(cls, value: str) -> str:
        if not value:
            raise ValueError("code_charset cannot be empty")
        return value

    # Pydantic v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )


# Create settings instance
settings = Settings()
