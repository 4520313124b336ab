# backend/pos_engine/config.py
from __future__ import annotations
import os


class Config:
    # SQLite DB stored in backend/instance/pos_engine.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///pos_engine.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Transaction numbers look like ELADAS-2026-0001
    TRANSACTION_NUMBER_PREFIX = os.environ.get("TRANSACTION_NUMBER_PREFIX", "ELADAS")
    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "HUF")
    DEFAULT_WAREHOUSE_ID = os.environ.get("DEFAULT_WAREHOUSE_ID", "default")

    # "http" talks to the card terminal API, "memory" approves everything (dev/tests)
    CARD_GATEWAY_BACKEND = os.environ.get("CARD_GATEWAY_BACKEND", "http")
    CARD_GATEWAY_URL = os.environ.get("CARD_GATEWAY_URL", "https://sandbox.mypos.example/api")
    CARD_GATEWAY_API_KEY = os.environ.get("CARD_GATEWAY_API_KEY", "")
    CARD_GATEWAY_TIMEOUT = float(os.environ.get("CARD_GATEWAY_TIMEOUT", "30"))
