from __future__ import annotations

import json
import os
from functools import lru_cache
from typing import Annotated, List, Optional

import boto3
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from urllib.parse import quote_plus


class Settings(BaseSettings):
    # ---- Pydantic v2 settings ----
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",          # accept extra env vars without error
    )

    # ---- App basics ----
    APP_NAME: str = "Buyer Ledger API"
    STAGE: str = "development"

    # ---- Database ----
    DATABASE_URL: Optional[str] = None
    SECRET_NAME: Optional[str] = None           # if set, fetch creds from AWS SM
    AWS_REGION: str = os.getenv("AWS_REGION", "ap-south-1")
    DB_STATEMENT_TIMEOUT_MS: int = 5000

    # ---- Uploads / ingestion ----
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    MAX_ROWS: int = 10_000
    INSERT_BATCH_SIZE: int = 500
    INGEST_TIMEOUT_SECONDS: float = 60.0

    # ---- Logging ----
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # ---- CORS ----
    CORS_ORIGINS: Annotated[List[str], NoDecode] = Field(default_factory=lambda: ["http://localhost:5173"])

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors(cls, v):
        """
        Accept either JSON (e.g. '["https://a","https://b"]')
        or comma-separated string (e.g. 'https://a, https://b')
        """
        if not v:
            return []
        if isinstance(v, str):
            v = v.strip()
            if v.startswith("["):
                try:
                    return json.loads(v)
                except ValueError:
                    pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("STAGE", mode="before")
    @classmethod
    def _normalize_stage(cls, v):
        v = str(v or "development").strip().lower()
        if v in ("prod", "production"):
            return "production"
        return v

    @property
    def is_production(self) -> bool:
        return self.STAGE == "production"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_db_url(settings: Settings) -> str:
    """Return an async SQLAlchemy URL. If SECRET_NAME is set, read from AWS SM."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL

    if not settings.SECRET_NAME:
        raise RuntimeError("No DATABASE_URL or SECRET_NAME provided.")

    sm = boto3.client("secretsmanager", region_name=settings.AWS_REGION)
    secret = sm.get_secret_value(SecretId=settings.SECRET_NAME)["SecretString"]
    s = json.loads(secret)  # expected keys: host, port, username, password, dbname

    user = s["username"]
    pwd = quote_plus(s["password"])  # encode @ : / etc.
    host = s["host"]
    port = s.get("port", 5432)
    db = s["dbname"]

    return f"postgresql+asyncpg://{user}:{pwd}@{host}:{port}/{db}"
