import os
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEV_SECRET_KEY = "dev-secret-change-me"

DEFAULT_CORS_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://ohplus.ph",
    "https://app.ohplus.ph",
)


def _csv(value: str | None) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class Settings:
    """Process-wide settings.

    Integration keys (Resend, Algolia, Maps, AccuWeather, storage) are not
    held here; their modules read them from the environment on every call.
    """

    def __init__(self) -> None:
        self.APP_NAME: str = os.getenv("APP_NAME", "OH Plus API")
        self.ENV: str = os.getenv("ENV", "development")
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", DEV_SECRET_KEY)
        self.ALGORITHM: str = os.getenv("ALGORITHM", "HS256")
        self.VIEW_TOKEN_EXPIRE_HOURS: int = int(os.getenv("VIEW_TOKEN_EXPIRE_HOURS", "12"))
        self.APP_BASE_URL: str = os.getenv("APP_BASE_URL", "https://app.ohplus.ph").rstrip("/")
        self.EMAIL_FROM: str = os.getenv("EMAIL_FROM", "OH Plus <noreply@ohplus.ph>")
        self.BACKEND_CORS_ORIGINS: List[str] = _csv(os.getenv("BACKEND_CORS_ORIGINS")) or list(
            DEFAULT_CORS_ORIGINS
        )

    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
