# backend/app/config.py

from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # project root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/booking.db"
    redis_url: str = "redis://localhost:6379/0"
    log_level: str = "INFO"

    # Rules, overrides and holds are interpreted in this zone
    working_timezone: str = "Europe/Brussels"
    # Display only
    secondary_timezone: str = "America/New_York"

    horizon_days: int = 365
    fallback_when_empty: bool = True

    manage_token_ttl_days: int = 7
    manage_window_hours: int = 72

    events_queue: str = "events:p2p"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
