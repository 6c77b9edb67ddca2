from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="QRID_",
        extra="ignore",
    )

    database_url: str = "sqlite:///./school_qr.db"
    log_level: str = "INFO"

    # Issued codes
    token_length: int = 8
    token_max_attempts: int = 5
    qr_box_size: int = 10
    qr_border: int = 4

    # Demo admin credentials for the /admin routes
    admin_username: str = "admin"
    admin_password: Optional[str] = "admin1"


@lru_cache
def get_settings() -> Settings:
    return Settings()
