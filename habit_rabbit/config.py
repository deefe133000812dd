from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str = Field(
        "sqlite+aiosqlite:///./habit_rabbit.db",
        description="SQLAlchemy async URL, e.g., postgresql+asyncpg://...",
    )

    # Calendar days (streaks, "today", week/month windows) are computed in this zone
    APP_TIMEZONE: str = "UTC"

    # Focus timer
    FOCUS_MINUTES: int = 25
    BREAK_MINUTES: int = 5
    FOCUS_SESSION_XP: int = 25

    # Server-side weekly consolidation sweep (UTC hour, runs daily)
    ENABLE_SCHEDULER: bool = True
    CONSOLIDATION_SWEEP_HOUR: int = 3

settings = Settings()
