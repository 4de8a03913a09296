# backend/stockroom/config.py
from __future__ import annotations
import os


def _split_csv(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stockroom.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Front-end origins allowed to call the API with credentials
    ALLOWED_ORIGINS = _split_csv(
        os.environ.get("ALLOWED_ORIGINS", "http://localhost:3000")
    )

    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "stockroom.session_token")
    SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "true").lower() == "true"

    # Upper bound for any single store statement (PostgreSQL only)
    STORE_STATEMENT_TIMEOUT_MS = int(os.environ.get("STORE_STATEMENT_TIMEOUT_MS", "5000"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
