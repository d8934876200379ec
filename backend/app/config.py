import logging
import os

logger = logging.getLogger(__name__)


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        logger.warning("Invalid %s value; falling back to default %s", name, default)
        return default


class Settings:
    """Centralized backend settings with environment variable overrides"""
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///../offers.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

    # Overlap search cap; the search is exponential in concurrent offers
    MAX_OVERLAP_OFFERS = _int_env("MAX_OVERLAP_OFFERS", 15)
    URGENT_DAYS = _int_env("URGENT_DAYS", 7)

    CORS_ORIGINS = [
        origin.strip()
        for origin in os.getenv(
            "CORS_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        ).split(",")
        if origin.strip()
    ]

    @classmethod
    def engine_config(cls) -> dict:
        return {
            "max_overlap_offers": cls.MAX_OVERLAP_OFFERS,
            "urgent_days": cls.URGENT_DAYS,
        }


settings = Settings()
