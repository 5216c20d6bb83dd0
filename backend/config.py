# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./retail_manager.db"
    FRONTEND_URL: Optional[str] = None

    # Blob/file storage root and the public URL it is served under
    UPLOAD_DIR: str = "static/uploads"
    PUBLIC_BASE_URL: str = "http://127.0.0.1:8000"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024

    # Order notifications (webhook); logged only when no URL is set
    NOTIFY_WEBHOOK_URL: Optional[str] = None
    NOTIFY_TOPIC: str = "orders"
    NOTIFY_TIMEOUT: float = 5.0

    # Storage retry policy
    RETRY_MAX_ATTEMPTS: int = 3
    RETRY_BASE_DELAY: float = 1.0

    # Reference list cache lifetimes (seconds)
    CUSTOMER_CACHE_TTL: float = 600
    PRODUCT_CACHE_TTL: float = 300
    ORDER_CACHE_TTL: float = 300

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
