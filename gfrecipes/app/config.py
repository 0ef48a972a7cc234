from __future__ import annotations

from typing import Literal, Optional

from pydantic import AnyUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8-sig",
        case_sensitive=False,
        extra="ignore",
    )

    SUPABASE_URL: AnyUrl
    SUPABASE_SERVICE_ROLE_KEY: str
    APP_ENV: str = "local"
    FRONTEND_CORS_ORIGINS: list[str] = Field(
        default_factory=lambda: ["http://localhost:5173", "http://localhost:8080"],
    )

    STORE_BACKEND: Literal["supabase", "memory"] = "supabase"

    EXTRACTION_PROVIDER: Literal["gemini", "static"] = "gemini"
    EXTRACTION_MODE: Literal["text", "draft"] = "text"
    EXTRACTION_TIMEOUT_SECONDS: float = 30.0
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash"

    CATALOG_REGION: str = "CA"
    SUBSTITUTION_CATALOG_PATH: Optional[str] = None


settings = Settings()
