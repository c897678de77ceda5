from functools import lru_cache
from typing import Optional
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    HOST: str = '0.0.0.0'
    PORT: int = 8000
    ENVIRONMENT: str = 'development'
    LOG_LEVEL: str = 'INFO'
    LOG_FORMAT: str = 'json'
    # empty disables the rotating file handlers
    LOG_FILE_PATH: Optional[str] = 'logs'
    LOG_MAX_SIZE: int = 10 * 1024 * 1024
    LOG_MAX_FILES: int = 7
    CORS_ORIGIN: str = '*'
    SHUTDOWN_TIMEOUT_MS: int = 15000

    # persisted snapshot slot
    STORE_NAME: str = 'flashcard-store'
    SNAPSHOT_DIR: str = 'data'
    REDIS_URL: Optional[str] = None
    REDIS_RETRY_ATTEMPTS: int = 3
    REDIS_RETRY_MULTIPLIER: float = 0.5
    REDIS_RETRY_MAX_WAIT: float = 4

    # calendar days for streaks and daily stats are taken in this zone
    STUDY_TIMEZONE: str = 'UTC'
    DEFAULT_LEARNER_ID: str = 'anonymous-user'

    @property
    def study_tz(self) -> ZoneInfo:
        return ZoneInfo(self.STUDY_TIMEZONE)


@lru_cache()
def get_settings() -> Settings:
    return Settings()
