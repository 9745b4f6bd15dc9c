# backend/threadcraft/config.py
from __future__ import annotations
import os


class Config:
    # SQLite DB stored in backend/instance/threadcraft.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///threadcraft.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("THREADCRAFT_LOG_LEVEL", "INFO")

    # Create missing tables when the app starts
    AUTO_CREATE_TABLES = True
