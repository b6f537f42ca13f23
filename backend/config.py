# backend/config.py
from pydantic_settings import BaseSettings
from typing import ClassVar, Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    DATABASE_URL: str = "sqlite:///./database_warehouseapp.db"

    # Business limits
    MAX_ACTIVE_TASKS_PER_WORKER: int = 10
    DEFAULT_MINIMUM_LEVEL: int = 10

    LOG_LEVEL: str = "INFO"

    # Extra origin allowed by CORS (deployed frontend)
    FRONTEND_URL: Optional[str] = None

    class Config:
        env_file: ClassVar[str] = str(env_path)
        extra: ClassVar[str] = "ignore"

settings = Settings()
