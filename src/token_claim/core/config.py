"""
Token Claim Service - Configuration
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    # Application
    APP_NAME: str = "Token Claim"
    VERSION: str = "1.0.0"
    ENV: str = "development"
    DEBUG: bool = False

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8090
    WORKERS: int = 1
    LOG_LEVEL: str = "INFO"

    # Database
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "token_claim"
    DB_USER: str = "token_claim"
    DB_PASSWORD: str = ""
    DB_URL: Optional[str] = None
    DB_POOL_SIZE: int = 5
    DB_POOL_MAX_OVERFLOW: int = 10

    @property
    def DATABASE_URL(self) -> str:
        if self.DB_URL:
            return self.DB_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # Accounts
    ADMIN_ADDRESS: str = Field(
        default="0x0000000000000000000000000000000000000001",
        pattern=r"^0x[0-9a-fA-F]{40}$",
    )
    TREASURY_ADDRESS: str = Field(
        default="0x00000000000000000000000000000000000c1a17",
        pattern=r"^0x[0-9a-fA-F]{40}$",
    )

    # API authentication for administrator routes
    API_AUTH_ENABLED: bool = False
    API_KEY: Optional[str] = Field(default=None, min_length=16)

    # Metrics
    METRICS_ENABLED: bool = True

    @model_validator(mode="after")
    def check_deployment(self) -> "Settings":
        if self.ADMIN_ADDRESS.lower() == self.TREASURY_ADDRESS.lower():
            raise ValueError("ADMIN_ADDRESS and TREASURY_ADDRESS must differ")
        if self.WORKERS > 1 and self.DATABASE_URL.startswith("sqlite"):
            raise ValueError("WORKERS > 1 requires a PostgreSQL database")
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
