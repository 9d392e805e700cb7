"""Runtime configuration read from the environment."""

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_ORIGINS = [
    "https://essentix-studio-frontend.vercel.app",  # production frontend
    "http://127.0.0.1:5500",
    "http://localhost:5500",
]


def _split(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


@dataclass(frozen=True)
class Settings:
    database_url: str = "mongodb://localhost:27017"
    database_name: str = "storefront"
    admin_key: str = "essentix-secret"
    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    payment_currency: str = "INR"
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_ORIGINS))
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS")
        return cls(
            database_url=os.getenv("DATABASE_URL") or os.getenv("MONGO_URI") or cls.database_url,
            database_name=os.getenv("DATABASE_NAME", cls.database_name),
            admin_key=os.getenv("ADMIN_KEY", cls.admin_key),
            razorpay_key_id=os.getenv("RAZORPAY_KEY_ID", ""),
            razorpay_key_secret=os.getenv("RAZORPAY_KEY_SECRET", ""),
            payment_currency=os.getenv("PAYMENT_CURRENCY", cls.payment_currency),
            cors_origins=_split(origins) if origins else list(DEFAULT_ORIGINS),
            log_level=os.getenv("LOG_LEVEL", cls.log_level).upper(),
        )
