"""
Configuration management using Pydantic Settings
"""
from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Database
    DATABASE_URL: str
    
    # Redis (empty string disables invalidation fan-out and caching)
    REDIS_URL: str = "redis://redis:6379/0"
    
    # Gemini API
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-flash-latest"
    
    # Application
    APP_NAME: str = "Watch Party Quiz"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000", "http://localhost:8000"]
    
    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 120
    RATE_LIMIT_PER_HOUR: int = 3000
    
    # Rooms
    ROOM_CODE_LENGTH: int = 6
    
    # Question limits
    MAX_QUESTIONS_PER_ROOM: int = 15
    MIN_OPTIONS: int = 2
    MAX_OPTIONS: int = 6
    MIN_DURATION_SECONDS: int = 5
    MAX_DURATION_SECONDS: int = 60
    DEFAULT_DURATION_SECONDS: int = 20
    
    # Scoring
    DEFAULT_SCORING_MODE: str = "time_weighted"  # or "fixed"
    FIXED_POINTS: int = 100
    TIME_WEIGHTED_BASE_POINTS: int = 500
    TIME_WEIGHTED_SPEED_POINTS: int = 500
    
    # Question generation
    GENERATED_QUESTIONS_CACHE_TTL: int = 3600  # 1 hour
    MAX_GENERATED_QUESTIONS: int = 10
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
