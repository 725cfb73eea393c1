# backend/permitflow/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/permitflow.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///permitflow.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Permit numbers look like "PTW JAN 2026 - 0001"
    PERMIT_NUMBER_PREFIX = os.environ.get("PERMIT_NUMBER_PREFIX", "PTW")

    # Session tokens
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Background auto-close of expired permits
    AUTO_CLOSE_SCHEDULER_ENABLED = _env_bool("AUTO_CLOSE_SCHEDULER_ENABLED", False)
    AUTO_CLOSE_INTERVAL_SECONDS = int(os.environ.get("AUTO_CLOSE_INTERVAL_SECONDS", "300"))

    CORS_ALLOWED_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173",
        ).split(",")
        if o.strip()
    ]


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    AUTO_CLOSE_SCHEDULER_ENABLED = False
    CORS_ALLOWED_ORIGINS = ["http://localhost:5173"]
