from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

SUPPORTED_DB_TYPES = {"sqlite", "postgres"}
DEFAULT_MAX_UPLOAD_BYTES = 100 * 1024 * 1024


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"true", "1", "yes"}


def normalize_database_url(db_type: str, url: str) -> str:
    """Accept the short sqlite:// and postgres:// spellings alongside SQLAlchemy URLs."""
    if db_type == "sqlite" and url.startswith("sqlite://") and not url.startswith("sqlite:///"):
        # sqlite://./bitbeam.sqlite -> sqlite:///./bitbeam.sqlite
        return "sqlite:///" + url[len("sqlite://"):]
    if db_type == "postgres" and url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


@dataclass(frozen=True)
class Config:
    db_type: str
    database_url: str
    data_path: str
    listener_addr: str
    port: int
    log_level: str
    log_location: str | None
    use_tls: bool
    base_url: str
    allow_register: bool
    admin_key: str | None
    max_upload_bytes: int
    cors_origins: str

    @property
    def db_connect_args(self) -> dict:
        return {"check_same_thread": False} if self.database_url.startswith("sqlite") else {}

    @property
    def scheme(self) -> str:
        return "https" if self.use_tls else "http"


def load_config() -> Config:
    db_type = os.getenv("BITBEAM_DB_TYPE", "sqlite").strip().lower()
    if db_type not in SUPPORTED_DB_TYPES:
        raise ValueError(f"Unsupported BITBEAM_DB_TYPE: {db_type}")

    database_url = normalize_database_url(
        db_type, os.getenv("BITBEAM_DATABASE_URL", "sqlite:///./bitbeam.sqlite")
    )
    if db_type == "postgres" and database_url.startswith("sqlite"):
        raise ValueError("BITBEAM_DATABASE_URL must be set for Postgres")

    return Config(
        db_type=db_type,
        database_url=database_url,
        data_path=os.getenv(
            "BITBEAM_DATA_PATH", os.path.abspath(os.path.join(os.getcwd(), "media_store"))
        ),
        listener_addr=os.getenv("BITBEAM_ADDR", "0.0.0.0"),
        port=int(os.getenv("BITBEAM_PORT", "3000")),
        log_level=os.getenv("BITBEAM_LOG_LEVEL", "info"),
        log_location=os.getenv("BITBEAM_LOG_LOCATION") or None,
        use_tls=_flag("BITBEAM_USE_TLS", "false"),
        base_url=os.getenv("BITBEAM_BASE_URL", "localhost:3000").rstrip("/"),
        allow_register=_flag("BITBEAM_ALLOW_REGISTER", "true"),
        admin_key=os.getenv("BITBEAM_ADMIN_KEY") or None,
        max_upload_bytes=int(os.getenv("BITBEAM_MAX_UPLOAD_BYTES", str(DEFAULT_MAX_UPLOAD_BYTES))),
        cors_origins=os.getenv("BITBEAM_CORS_ORIGINS", "*"),
    )
