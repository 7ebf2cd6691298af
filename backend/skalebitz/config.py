"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"
    mongo_server_selection_timeout_ms: int = 5000

    # Redis
    redis_host: str = "redis"
    redis_port: int = 6379

    # JWT Configuration
    jwt_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60 * 24

    # One-time tokens (password reset, email verification)
    password_reset_token_expire_minutes: int = 60
    email_verification_token_expire_minutes: int = 60 * 24

    # Rate limiting on /auth (15 minute window, 100 requests per IP)
    auth_rate_limit_attempts: int = 100
    auth_rate_limit_window_seconds: int = 15 * 60
    user_lockout_threshold: int = 10
    user_lockout_duration_minutes: int = 30

    # Marketplace rules
    max_investment_amount: float = 1_000_000_000
    default_facility_size: float = 10_000

    # HTTP
    cors_origins: list[str] = [
        "http://localhost:8501",  # Streamlit default
        "http://streamlit_frontend:8501",  # Docker network
        "http://localhost:3000",
    ]
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
