import os
import logging

logger = logging.getLogger(__name__)


def _split_origins(raw: str) -> list:
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


class Settings:
    """Application settings loaded from environment variables."""

    # API Keys
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-pro")

    # Database
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./counsellor.db")

    # Server
    PORT: int = int(os.getenv("PORT", "8000"))
    HOST: str = os.getenv("HOST", "0.0.0.0")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOWED_ORIGINS: list = _split_origins(
        os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173")
    )

    # University directory (Hipo Labs)
    UNIVERSITY_API_URL: str = os.getenv("UNIVERSITY_API_URL", "http://universities.hipolabs.com/search")
    UNIVERSITY_API_TIMEOUT: float = float(os.getenv("UNIVERSITY_API_TIMEOUT", "45"))
    UNIVERSITY_API_RETRIES: int = int(os.getenv("UNIVERSITY_API_RETRIES", "3"))
    UNIVERSITY_CACHE_TTL_SECONDS: int = int(os.getenv("UNIVERSITY_CACHE_TTL_SECONDS", "300"))

    # Recommendations
    RECOMMENDATIONS_PER_CATEGORY: int = int(os.getenv("RECOMMENDATIONS_PER_CATEGORY", "10"))

    @classmethod
    def validate(cls):
        """Warn about missing optional environment variables."""
        if not cls.GEMINI_API_KEY:
            logger.warning("GEMINI_API_KEY not set. Recommendation summaries will use the built-in text.")
        if not os.getenv("DATABASE_URL"):
            logger.warning(f"DATABASE_URL not set. Using {cls.DATABASE_URL}")

settings = Settings()
