import os
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel


load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class Settings(BaseModel):
    """Application settings, read from the environment (and .env)."""

    APP_NAME: str = "Friendmap Backend"
    ENV: str = os.getenv("ENV", "development")
    DEBUG: bool = _env_bool("DEBUG")
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "3030"))

    # Mongo
    MONGO_URL: str = os.getenv("MONGO_URL", "mongodb://localhost:27017")
    DB_NAME: str = os.getenv("DB_NAME", "friendmap_db")

    # Auth
    SECRET: str = os.getenv("SECRET", "Secret-Puk-1234")
    TOKEN_COOKIE_NAME: str = "loginToken"
    GUEST_MODE: bool = _env_bool("GUEST_MODE")

    # CORS (development only; production serves same-origin)
    CORS_ORIGINS: List[str] = [
        "http://127.0.0.1:3000",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://localhost:5173",
    ]

    # Friend requests: keep resolved records with their final status instead of deleting them
    RETAIN_RESOLVED_REQUESTS: bool = _env_bool("RETAIN_RESOLVED_REQUESTS")

    DEFAULT_MARKER_RADIUS: float = float(os.getenv("DEFAULT_MARKER_RADIUS", "500.0"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_DIR: Optional[str] = os.getenv("LOG_DIR", "./logs") or None

    # Realtime / push
    REDIS_URL: Optional[str] = os.getenv("REDIS_URL") or None
    FCM_SERVICE_ACCOUNT_FILE: Optional[str] = os.getenv("FCM_SERVICE_ACCOUNT_FILE") or None
    FCM_PROJECT_ID: Optional[str] = os.getenv("FCM_PROJECT_ID") or None

    @property
    def is_production(self) -> bool:
        return self.ENV == "production"


settings = Settings()
