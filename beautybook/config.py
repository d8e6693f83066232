"""Environment-driven configuration for the booking backend."""
from __future__ import annotations

import os


class Config:
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///beautybook.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Used when a provider has no timezone of its own
    DEFAULT_TIMEZONE = os.environ.get("DEFAULT_TIMEZONE", "UTC")
    # Applied to providers created without an interval
    DEFAULT_SLOT_INTERVAL_MINUTES = int(os.environ.get("DEFAULT_SLOT_INTERVAL_MINUTES", "30"))

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    DEFAULT_TIMEZONE = "UTC"
    DEFAULT_SLOT_INTERVAL_MINUTES = 30
