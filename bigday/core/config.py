"""
Configuration settings for the application
"""

import os
from typing import List
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings"""

    # Key-value backend
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./bigday.db")
    USE_FIREBASE: bool = os.getenv("USE_FIREBASE", "false").lower() in ("1", "true", "yes")
    FIREBASE_CREDENTIALS_JSON: str | None = os.getenv("FIREBASE_CREDENTIALS_JSON")
    FIREBASE_CREDENTIALS_FILE: str | None = os.getenv("FIREBASE_CREDENTIALS_FILE")
    FIREBASE_CREDENTIALS_B64: str | None = os.getenv("FIREBASE_CREDENTIALS_B64")
    FIRESTORE_KV_COLLECTION: str = os.getenv("FIRESTORE_KV_COLLECTION", "kv")

    # Guest storage layout: "legacy" (single array) or "entity" (per-group keys)
    STORAGE_MODE: str = os.getenv("STORAGE_MODE", "legacy").lower()
    LEGACY_SHADOW_WRITES: bool = os.getenv("LEGACY_SHADOW_WRITES", "true").lower() in ("1", "true", "yes")

    # Security
    ADMIN_KEY: str | None = os.getenv("ADMIN_KEY")
    SESSION_TTL_SECONDS: int = 24 * 60 * 60
    SESSION_COOKIE_NAME: str = "admin_session"

    # Application
    BASE_URL: str = os.getenv("BASE_URL", "http://localhost:8000")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "false").lower() in ("1", "true", "yes")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    # CORS
    ALLOW_ORIGINS: List[str] = [
        "http://localhost:3210",
        "http://localhost:3333",
        "http://localhost:8000",
    ]

    # Body limits
    MAX_IMPORT_SIZE: int = 4 * 1024 * 1024  # 4MB

    # Rate limiting
    RATE_LIMIT_PER_MINUTE: int = 30

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def debug_enabled(self) -> bool:
        """Debug output is never exposed in production, whatever DEBUG says."""
        return self.DEBUG and not self.is_production

settings = Settings()
