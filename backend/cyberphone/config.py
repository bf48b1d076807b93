# backend/cyberphone/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # One embedded store per installation (SQLite file in the working directory by default)
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///cyberphone.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Checkout rejects carts the buyer cannot pay for from their balance
    ENFORCE_SUFFICIENT_FUNDS = _env_bool("ENFORCE_SUFFICIENT_FUNDS", True)
    # Store owner receives sale amount minus affiliate commission
    CREDIT_SELLER_ON_CHECKOUT = _env_bool("CREDIT_SELLER_ON_CHECKOUT", True)

    # 100.00 in the wallet currency
    MIN_WITHDRAWAL_CENTS = int(os.environ.get("MIN_WITHDRAWAL_CENTS", "10000"))
    # Smallest campaign budget the ad centre accepts (0.20)
    MIN_AD_BUDGET_CENTS = int(os.environ.get("MIN_AD_BUDGET_CENTS", "20"))

    TRANSACTION_TIMEOUT_SECONDS = float(os.environ.get("TRANSACTION_TIMEOUT_SECONDS", "5.0"))
    TRANSACTION_RETRY_ATTEMPTS = int(os.environ.get("TRANSACTION_RETRY_ATTEMPTS", "3"))

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    CORS_ALLOWED_ORIGINS = {
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    }
