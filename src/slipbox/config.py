# src/slipbox/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole service.
- No secrets required at import time.
- Components receive settings by injection; nothing reads os.environ later.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "SLIPBOX"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment always wins over .env.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- HTTP listener ----
    host: str
    port: int

    # ---- Local data ----
    data_dir: Path
    db_path: Path

    # ---- Identity authority ----
    jwks_url: str
    expected_issuer: str
    jwks_timeout_seconds: float

    # ---- Background work ----
    detached_workers: int

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "slipbox").strip() or "slipbox"
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        host = _env(_k("HOST"), "127.0.0.1").strip() or "127.0.0.1"
        port = _env_int(_k("PORT"), 9090)

        data_dir = _env_path(_k("DATA_DIR"), Path(".local/slipbox"))
        db_path = _env_path(_k("DB_PATH"), data_dir / "slipbox.sqlite3")

        jwks_url = _env(_k("JWKS_URL"), "http://localhost:8080/.well-known/jwks.json").strip()
        expected_issuer = _env(_k("EXPECTED_ISSUER"), "identra").strip()
        jwks_timeout_seconds = _env_float(_k("JWKS_TIMEOUT_SECONDS"), 10.0)

        detached_workers = max(1, _env_int(_k("DETACHED_WORKERS"), 2))

        return Settings(
            app_name=app_name,
            log_level=log_level,
            host=host,
            port=port,
            data_dir=data_dir,
            db_path=db_path,
            jwks_url=jwks_url,
            expected_issuer=expected_issuer,
            jwks_timeout_seconds=jwks_timeout_seconds,
            detached_workers=detached_workers,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
