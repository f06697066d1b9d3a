"""
Configuration management for the pig gallery.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = Field(default="Pig Gallery", env="APP_NAME")
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="development", env="ENVIRONMENT")

    # API
    api_host: str = Field(default="0.0.0.0", env="API_HOST")
    api_port: int = Field(default=3000, env="API_PORT")
    api_workers: int = Field(default=1, env="API_WORKERS")

    # Database
    database_url: str = Field(default="sqlite:///./pigs.db", env="DATABASE_URL")

    # Admin
    admin_token: Optional[str] = Field(default=None, env="ADMIN_TOKEN")

    # Client addresses
    geoip_database_path: Optional[str] = Field(default=None, env="GEOIP_DATABASE_PATH")
    trust_proxy_headers: bool = Field(default=True, env="TRUST_PROXY_HEADERS")

    # Rate limiting
    submission_limit: int = Field(default=3, env="SUBMISSION_LIMIT")
    comment_limit: int = Field(default=5, env="COMMENT_LIMIT")
    rate_limit_window_minutes: int = Field(default=10, env="RATE_LIMIT_WINDOW_MINUTES")

    # Pagination
    default_page_size: int = Field(default=20, env="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, env="MAX_PAGE_SIZE")

    # Static frontend
    static_dir: Optional[str] = Field(default=None, env="STATIC_DIR")

    # AI image generation
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.0-flash-exp", env="GEMINI_MODEL")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")

    @property
    def rate_limit_window_ms(self) -> int:
        return self.rate_limit_window_minutes * 60 * 1000

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
