import json
import re
from pathlib import Path
from typing import Annotated, List, Optional

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = Field(default="Escrow Marketplace API", validation_alias="PROJECT_NAME")
    environment: str = "dev"
    build_version: Optional[str] = None
    database_url: str = "sqlite+pysqlite:///./marketplace-dev.db"
    # API prefix used by FastAPI router include (e.g. "/api/v1").
    api_prefix: str = Field(default="", validation_alias="API_V1_STR")
    enable_docs: Optional[bool] = Field(default=None, validate_default=True)
    secret_key: str = "change-me"
    access_token_expire_minutes: int = 30
    algorithm: str = "HS256"
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=list, validate_default=True
    )
    run_migrations_on_start: bool = False
    seed_dev_users: bool = True

    # Two fixed currencies: goods are priced in the foreign one, clients pay in the local one.
    foreign_currency: str = "CNY"
    local_currency: str = "BRL"
    exchange_rate: float = Field(default=0.75, gt=0)
    default_fee_percentage: float = Field(default=5.0, ge=0, le=100)
    short_code_length: int = Field(default=6, ge=4, le=12)

    @field_validator("enable_docs", mode="before")
    @classmethod
    def default_enable_docs(cls, value, info: ValidationInfo):
        if value is None or value == "":
            env = str(info.data.get("environment", "dev") or "dev").lower()
            return env in {"dev", "development", "test"}
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y", "on"}
        return bool(value)

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_and_default_cors_origins(cls, value, info: ValidationInfo):
        env = str(info.data.get("environment", "dev") or "dev").lower()

        def _normalize_origin(o: str) -> str:
            s = str(o).strip().strip('"').strip("'")
            # Browsers send the Origin header without a trailing slash.
            if s.endswith("/"):
                s = s[:-1]
            return s

        if value is None or value == "" or value == []:
            if env in {"prod", "production"}:
                raise ValueError("CORS_ORIGINS must be explicitly set in production")
            return [
                "http://localhost:5173",
                "http://localhost:3000",
                "http://127.0.0.1:5173",
            ]

        if isinstance(value, str):
            s = value.strip()
            if (s.startswith('"') and s.endswith('"')) or (s.startswith("'") and s.endswith("'")):
                s = s[1:-1].strip()

            try:
                parsed = json.loads(s)
                if isinstance(parsed, str):
                    return [_normalize_origin(parsed)]
                if isinstance(parsed, list):
                    return [_normalize_origin(v) for v in parsed if str(v).strip()]
                return [_normalize_origin(str(parsed))]
            except json.JSONDecodeError:
                pass

            # Fall back to comma-separated origins.
            return [_normalize_origin(v) for v in s.split(",") if str(v).strip()]

        return [_normalize_origin(v) for v in value]

    @field_validator("api_prefix", mode="before")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        if v is None:
            return ""
        s = str(v).strip()
        if not s:
            return ""
        if s.startswith("/api/") or s == "/api":
            return s

        # Git Bash on Windows rewrites "/api/v1" into a filesystem path.
        m = re.search(r"(/api/[^\\s]+)$", s.replace("\\", "/"))
        if m:
            return m.group(1)
        if s.startswith("api"):
            return f"/{s}"
        return s

    @field_validator("database_url", mode="before")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Make SQLite relative paths stable across working directories.

        Relative URLs such as ``sqlite+pysqlite:///./marketplace-dev.db`` are
        resolved against the backend folder, so running uvicorn from another
        directory does not silently create an empty database elsewhere.
        Postgres URLs are coerced to the psycopg3 driver.
        """

        if v is None:
            return v

        s = str(v).strip()
        if not s:
            return s

        if s.startswith("postgres://"):
            s = "postgresql://" + s[len("postgres://") :]
        if s.startswith("postgresql://"):
            return "postgresql+psycopg://" + s[len("postgresql://") :]
        if s.startswith("postgresql+psycopg2://"):
            return "postgresql+psycopg://" + s[len("postgresql+psycopg2://") :]

        if not s.startswith("sqlite"):
            return s

        marker = ":///"
        i = s.find(marker)
        if i == -1:
            return s

        path_part = s[i + len(marker) :]
        if path_part.startswith(":memory:"):
            return s
        if path_part.startswith("/") or re.match(r"^[A-Za-z]:/", path_part):
            return s

        if path_part.startswith("./") or path_part.startswith(".\\"):
            backend_root = Path(__file__).resolve().parents[1]
            abs_path = (backend_root / path_part[2:]).resolve().as_posix()
            return f"{s[: i + len(marker)]}{abs_path}"

        return s

    @field_validator("database_url")
    @classmethod
    def validate_database_url_for_environment(cls, v: str, info: ValidationInfo) -> str:
        env = str(info.data.get("environment", "dev") or "dev").strip().lower()
        s = str(v or "").strip()
        if env in {"prod", "production"}:
            if s.startswith("sqlite"):
                raise ValueError("SQLite DATABASE_URL is not allowed in production")
            if "localhost" in s or "127.0.0.1" in s:
                raise ValueError("DATABASE_URL must not point to localhost in production")
        return s

    @field_validator("secret_key")
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        if not v or v.lower() in {"change-me", "secret", "changeme"}:
            raise ValueError("SECRET_KEY must be set to a strong value")
        return v


settings = Settings()
