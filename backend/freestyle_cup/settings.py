from datetime import datetime
from typing import Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Security
    CUP_SECRET_KEY: str = "dev-secret-change-me"
    CUP_ADMIN_EMAIL: str = "admin@localhost"
    CUP_ADMIN_NAME: str = "Admin"
    CUP_ADMIN_PASSWORD: str = "change-me"
    CUP_RELOAD_DB_TOKEN: Optional[str] = None
    CUP_COOKIE_SECURE: bool = False
    CUP_SESSION_HOURS: int = 12

    # Database
    CUP_DB_URL: str = "sqlite:///./freestyle_cup.db"

    # Registration windows (naive UTC, unset = open)
    CUP_START_REGISTER_DATE: Optional[datetime] = None
    CUP_END_REGISTER_DATE: Optional[datetime] = None
    CUP_END_MUSIC_UPLOAD_DATE: Optional[datetime] = None

    CUP_LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
