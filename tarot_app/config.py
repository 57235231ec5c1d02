# tarot_app/config.py
from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    GOOGLE_GENERATIVE_AI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-2.5-flash-lite"
    INTERPRETATION_LANGUAGE: str = "ko"

    # The generation call has its own timeout; the session wraps it in a slightly longer one.
    GENERATION_TIMEOUT_SECONDS: float = 30.0
    INTERPRETATION_TIMEOUT_SECONDS: float = 35.0
    MIN_INTERPRETATION_WAIT_SECONDS: float = 5.0
    SHUFFLE_DELAY_SECONDS: float = 2.0
    REVERSED_PROBABILITY: float = 0.3

    STORAGE_BACKEND: str = "local"  # "local" or "database"
    LOCAL_STORAGE_PATH: str = "tarot-readings.json"
    DATABASE_URL: Optional[str] = None

    SECRET_KEY: Optional[str] = None
    ALGORITHM: str = "HS256"

    CORS_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
    ]

    DEBUG: bool = False

    class Config:
        env_file = ".env"
        extra = "allow"


def get_settings() -> Settings:
    return Settings()
