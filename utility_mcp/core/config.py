# utility_mcp/core/config.py

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # project root
ENV_PATH = BASE_DIR / ".env"

DEFAULT_MONGO_URI = "mongodb://localhost:27017/energy_meters_db"


class Settings(BaseSettings):
    """
    Process configuration, read once at import.

    - OS environment wins over the local .env file.
    - extra="ignore" so unrelated keys in .env do not break startup.
    """

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # -------------------------
    # Server
    # -------------------------
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8085)
    SERVER_NAME: str = Field(default="NRECA Utility MCP")
    SERVER_VERSION: str = Field(default="1.0.0")

    # -------------------------
    # Mongo (any of the three URI keys)
    # -------------------------
    MONGODB_URI: Optional[str] = None
    MONGODB_URL: Optional[str] = None
    MONGO_URI: Optional[str] = None
    MONGODB_DB: str = Field(default="energy_meters_db")

    MONGODB_MAX_POOL_SIZE: int = Field(default=20)
    MONGODB_SERVER_SELECTION_TIMEOUT_MS: int = Field(default=30000)
    MONGODB_SOCKET_TIMEOUT_MS: int = Field(default=30000)

    def get_mongo_uri(self) -> str:
        uri = (self.MONGODB_URI or self.MONGODB_URL or self.MONGO_URI or "").strip()
        return uri or DEFAULT_MONGO_URI

    def get_db_name(self) -> str:
        # If the URI carries /dbname, use it; otherwise fall back to MONGODB_DB.
        uri = self.get_mongo_uri()
        without_scheme = uri.split("://", 1)[-1]
        if "/" not in without_scheme:
            return self.MONGODB_DB
        path = without_scheme.split("/", 1)[1].split("?", 1)[0].strip()
        return path or self.MONGODB_DB


settings = Settings()
