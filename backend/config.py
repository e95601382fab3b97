from functools import lru_cache
from typing import Annotated, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8",
        case_sensitive=False, extra="ignore",
    )

    app_name: str = "YT Comment Ideas"
    app_version: str = "0.1.0"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./ideas.db"
    sql_echo: bool = False

    # Gemini
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    comment_batch_size: int = Field(default=50, gt=0)
    max_ideas: int = Field(default=5, gt=0)

    # Clerk session tokens
    clerk_jwks_url: Optional[str] = None
    clerk_issuer: Optional[str] = None

    # HTTP
    cors_origins: Annotated[List[str], NoDecode] = ["http://localhost:3000"]
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value):
        # CORS_ORIGINS is a comma separated list
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    return Settings()
