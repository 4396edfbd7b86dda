from pydantic_settings import BaseSettings
from typing import List, Optional, Literal
from functools import lru_cache

class Settings(BaseSettings):
    # Environment
    ENVIRONMENT: Literal["development", "testing", "production"] = "development"

    # Project
    PROJECT_NAME: str = "Armstrong Haulage API"
    VERSION: str = "1.0.0"
    DEBUG: bool = False
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Store
    STORE_BACKEND: Literal["memory", "firebase"] = "memory"
    FIREBASE_DATABASE_URL: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    FIREBASE_SERVICE_ACCOUNT_BASE64: Optional[str] = None
    FIREBASE_PROJECT_ID: Optional[str] = None

    # Security
    CORS_ORIGINS: List[str] = ["*"]
    API_PREFIX: str = "/api"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    FOLLOW_RATE_LIMIT: str = "30/minute"
    VIEW_RATE_LIMIT: str = "120/minute"
    READ_RATE_LIMIT: str = "60/minute"

    # Notifications
    NOTIFICATION_CLEANUP_INTERVAL: int = 60  # seconds

    # Testing
    TESTING: bool = False

    @property
    def is_testing(self) -> bool:
        return self.TESTING or self.ENVIRONMENT == "testing"

    @property
    def store_backend(self) -> str:
        """Tests always run against the in-memory store"""
        if self.is_testing:
            return "memory"
        return self.STORE_BACKEND

    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
