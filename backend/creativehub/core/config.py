"""
Application configuration using Pydantic Settings
"""
import os
from typing import List, Optional
from pydantic_settings import BaseSettings
from functools import lru_cache


def normalize_private_key(raw: str) -> str:
    """Service-account keys pasted into env vars usually carry literal \\n"""
    return (raw or "").replace("\\n", "\n")


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "info"

    # MongoDB
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB: str = "creativehub"

    # Redis (server-side sessions)
    REDIS_URL: str = "redis://localhost:6379"

    # Session cookie
    SESSION_SECRET: str = "dev-secret"
    SESSION_COOKIE_NAME: str = "sid"
    SESSION_MAX_AGE_SECONDS: int = 24 * 3600

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
    ]

    # Google identity
    GOOGLE_CLIENT_ID: str = ""
    ALLOWED_EMAIL_DOMAINS: List[str] = ["pw.live"]

    # Role directory spreadsheet
    ROLES_SHEET_ID: str = ""
    ROLES_SHEET_RANGE: str = "Roles!A2:B"
    GOOGLE_SHEET_SA_EMAIL: str = ""
    GOOGLE_SHEET_SA_PRIVATE_KEY: str = ""

    # Taxonomy spreadsheet (read with the Drive service account)
    GOOGLE_SHEETS_TAXONOMY_SHEET_ID: str = ""

    # Google Drive
    DRIVE_ROOT_FOLDER_ID: str = ""
    GOOGLE_DRIVE_SA_EMAIL: str = ""
    GOOGLE_DRIVE_PRIVATE_KEY: str = ""
    GOOGLE_DRIVE_PRIVATE_KEY_FILE: str = "/etc/secrets/GOOGLE_DRIVE_PRIVATE_KEY"

    # Cache TTLs
    ROLE_CACHE_TTL_SECONDS: float = 300
    TAXONOMY_CACHE_TTL_SECONDS: float = 60
    SHEETS_CACHE_TTL_SECONDS: float = 60

    # Application
    PUBLIC_BASE_URL: Optional[str] = None

    # File Upload
    MAX_UPLOAD_SIZE_MB: int = 10
    UPLOAD_DIR: str = "uploads"

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def drive_private_key(self) -> str:
        """Drive key from env, falling back to a mounted secret file"""
        key = normalize_private_key(self.GOOGLE_DRIVE_PRIVATE_KEY)
        if not key and os.path.exists(self.GOOGLE_DRIVE_PRIVATE_KEY_FILE):
            with open(self.GOOGLE_DRIVE_PRIVATE_KEY_FILE, "r", encoding="utf-8") as f:
                key = f.read()
        return key

    @property
    def sheet_private_key(self) -> str:
        return normalize_private_key(self.GOOGLE_SHEET_SA_PRIVATE_KEY)

    @property
    def public_base_url(self) -> str:
        return (self.PUBLIC_BASE_URL or "").rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance"""
    return Settings()


settings = get_settings()
