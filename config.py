"""
Application configuration, loaded from environment variables (or a .env file).
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(default="sqlite:///./data/markit.db")

    # signs the session cookie
    secret_key: str = Field(default="change-me-session-key")

    jwt_secret_key: str = Field(default="change-me-jwt-key")
    jwt_algorithm: str = Field(default="HS256")
    session_expiration_minutes: int = Field(default=30)

    lookup_base_url: str = Field(default="https://world.openfoodfacts.org")
    lookup_timeout: float = Field(default=5.0)

    log_level: str = Field(default="INFO")


@lru_cache
def get_settings():
    return Settings()
