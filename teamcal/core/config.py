from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    environment: Literal["development", "staging", "production"] = Field(
        default="development"
    )
    database_url: str = Field(default="sqlite:///./teamcal.db")
    jwt_secret_key: str = Field(default="change-me")
    jwt_algorithm: str = Field(default="HS256")
    access_token_expire_minutes: int = Field(default=60 * 24)

    # Fallback calendar zone for users without one
    default_timezone: str = Field(default="UTC")

    # Grid geometry shared with the frontend
    snap_step_minutes: int = Field(default=15, ge=1)
    drag_threshold_px: float = Field(default=4.0, ge=0)
    day_hour_height_px: float = Field(default=80.0, gt=0)
    week_hour_height_px: float = Field(default=64.0, gt=0)
    clock_tick_seconds: float = Field(default=60.0, gt=0)

    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ]
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
