from functools import lru_cache
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Placeholders shipped in example env files; never valid as real values.
INSECURE_JWT_SECRETS = {"change_me_immediately", "changeme", "secret"}
SYMMETRIC_JWT_ALGORITHMS = {"HS256", "HS384", "HS512"}
MIN_PRODUCTION_SECRET_LENGTH = 32


class Settings(BaseSettings):
    app_name: str = "Personal Assistant API"
    environment: Literal["development", "production", "test"] = "development"
    host: str = "127.0.0.1"
    port: int = 3000

    groq_api_key: str = ""
    groq_model: str = "llama-3.3-70b-versatile"
    groq_base_url: str = "https://api.groq.com/openai/v1"
    # bounded wait for one chat-completion round trip
    groq_timeout_seconds: float = 30.0
    groq_temperature: float = 0.7
    groq_max_tokens: int = 1024

    database_url: str = ""
    db_pool_max_size: int = 5
    # Comma-separated origins for CORS.
    cors_allow_origins: str = "*"

    jwt_secret_key: str
    jwt_algorithm: str = "HS256"

    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore", frozen=True)

    @field_validator("jwt_secret_key")
    @classmethod
    def check_secret(cls, value: str) -> str:
        secret = value.strip()
        if not secret:
            raise ValueError("JWT_SECRET_KEY must be set")
        if secret.lower() in INSECURE_JWT_SECRETS:
            raise ValueError("JWT_SECRET_KEY is a known placeholder; generate a real secret")
        return secret

    @field_validator("jwt_algorithm")
    @classmethod
    def check_algorithm(cls, value: str) -> str:
        algorithm = value.strip().upper()
        if algorithm not in SYMMETRIC_JWT_ALGORITHMS:
            raise ValueError("JWT_ALGORITHM must be one of: HS256, HS384, HS512")
        return algorithm

    @model_validator(mode="after")
    def check_production_secret(self) -> "Settings":
        if self.environment == "production" and len(self.jwt_secret_key) < MIN_PRODUCTION_SECRET_LENGTH:
            raise ValueError(
                f"JWT_SECRET_KEY must be at least {MIN_PRODUCTION_SECRET_LENGTH} characters in production")
        return self

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Build the process-wide settings once; later calls return the same object."""
    return Settings()
