from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite:///./ticketsync.db"
    ticketing_api_base_url: str = "http://localhost:8080/api"
    ticketing_api_key: str = ""  # seeds the config row on first start only
    request_timeout_seconds: Optional[float] = 30.0
    fetch_max_attempts: int = 3
    backoff_base_seconds: float = 1.0
    remote_stats_ttl_seconds: float = 300.0
    sync_page_limit: int = 1000
    poll_interval_minutes: int = 15  # used when the config row has no interval
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
