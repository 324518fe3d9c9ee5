from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _normalise_prefix(raw_prefix: str) -> str:
    raw_prefix = raw_prefix.strip()
    if not raw_prefix or raw_prefix == "/":
        return ""
    if not raw_prefix.startswith("/"):
        raw_prefix = f"/{raw_prefix}"
    return raw_prefix.rstrip("/")


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    SECRET_KEY: str = os.getenv("SECRET_KEY", "change_me")
    SQLALCHEMY_DATABASE_URI: str = os.getenv("DATABASE_URL", "sqlite:///planning.db")
    SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
    SQLALCHEMY_ECHO: bool = os.getenv("DB_ECHO", "false").lower() == "true"
    API_TITLE: str = os.getenv("API_TITLE", "Planning des formations API")
    API_VERSION: str = os.getenv("API_VERSION", "0.1.0")
    URL_PREFIX: str = _normalise_prefix(os.getenv("URL_PREFIX", ""))
    # Local "now" for past-date and start-time rules.
    TIMEZONE: str = os.getenv("PLANNING_TIMEZONE", "Africa/Tunis")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    RESTX_ERROR_404_HELP: bool = False
    RESTX_MASK_SWAGGER: bool = False


@dataclass
class TestConfig(Config):
    TESTING: bool = True
    SQLALCHEMY_DATABASE_URI: str = "sqlite:///:memory:"
    SECRET_KEY: str = "test"


config = Config()
