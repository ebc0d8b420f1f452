"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Database
    DATABASE_URL: str = "sqlite:///./grading.db"

    # Redis
    REDIS_URL: str = "redis://redis:6379/0"
    CACHE_ENABLED: bool = True
    GRADE_CACHE_TTL: int = 3600  # 1 hour

    # Application
    APP_NAME: str = "Quiz Grading Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]

    # Grading defaults (overridable per quiz)
    PARTIAL_CREDIT_ENABLED: bool = True
    CASE_SENSITIVE_TEXT_MATCH: bool = False
    ROUNDING_PRECISION: int = Field(2, ge=0, le=4)

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
