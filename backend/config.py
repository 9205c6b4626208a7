# backend/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pathlib import Path

# Resolve absolute path to the .env file for reliable loading
env_path = Path(__file__).parent.parent / ".env"

class Settings(BaseSettings):
    SECRET_KEY: str = "dev-secret-change-me"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24
    DATABASE_URL: str = "sqlite:///./inventory.db"

    FRONTEND_URL: Optional[str] = None
    LOG_LEVEL: str = "INFO"

    # Stock engine tuning
    STOCK_CAS_ATTEMPTS: int = 5
    ACTIVITY_WINDOW_DAYS: int = 30
    TOP_MOVERS_LIMIT: int = 5

    model_config = SettingsConfigDict(env_file=str(env_path), extra="ignore")

settings = Settings()
