# assetsync/core/config.py

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


DEFAULT_SYNCABLE_ENTITY_TYPES = "asset,task,schedule,location"


def _parse_csv(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    return tuple(part.strip().lower() for part in value.split(",") if part.strip())


class Settings(BaseSettings):
    """
    Application settings.
    Loads values from environment variables (.env file)
    """
    # Database settings
    DATABASE_URL: str = ""

    # Entity types whose mutations are tracked (comma-separated)
    SYNCABLE_ENTITY_TYPES: str = DEFAULT_SYNCABLE_ENTITY_TYPES

    # Sync queue policy
    SYNC_MAX_RETRIES: int = 3
    SYNC_BATCH_SIZE: int = 100
    SYNC_CRITICAL_PRIORITY: int = 10
    SYNC_QUEUE_RETENTION_DAYS: int = 30

    # Health scoring
    HEALTH_BACKLOG_THRESHOLD: int = 50
    HEALTH_BACKLOG_PENALTY: int = 20
    HEALTH_FAILURE_RATE_THRESHOLD: float = 0.2
    HEALTH_FAILURE_PENALTY_WEIGHT: float = 100.0

    # Background sync registration
    BACKGROUND_SYNC_MIN_INTERVAL_MS: int = 5 * 60 * 1000

    # Scheduler
    SCHEDULER_ENABLED: bool = False
    CLEANUP_SCHEDULE: str = "0 3 * * *"
    RETRY_SCHEDULE_MINUTES: int = 15

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"
    DEBUG: bool = False

    model_config = ConfigDict(
        env_file=os.environ.get('ENV_FILE', '.env') if os.path.exists('.env') else None,
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def syncable_entity_types(self) -> Tuple[str, ...]:
        return _parse_csv(self.SYNCABLE_ENTITY_TYPES)

    @property
    def async_database_url(self) -> str:
        url = self.DATABASE_URL or os.environ.get('DATABASE_URL', '')
        # Convert postgresql:// to postgresql+asyncpg:// for async support
        if url.startswith('postgresql://'):
            url = url.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return url


@dataclass(frozen=True)
class SyncPolicy:
    """Tunable constants for the sync queue, event router and health evaluator."""

    syncable_entity_types: Tuple[str, ...] = tuple(_parse_csv(DEFAULT_SYNCABLE_ENTITY_TYPES))
    max_retries: int = 3
    batch_size: int = 100
    critical_priority: int = 10
    retention_days: int = 30
    backlog_threshold: int = 50
    backlog_penalty: int = 20
    failure_rate_threshold: float = 0.2
    failure_penalty_weight: float = 100.0
    min_sync_interval_ms: int = 5 * 60 * 1000

    @classmethod
    def from_settings(cls, settings: Settings) -> "SyncPolicy":
        return cls(
            syncable_entity_types=settings.syncable_entity_types,
            max_retries=settings.SYNC_MAX_RETRIES,
            batch_size=settings.SYNC_BATCH_SIZE,
            critical_priority=settings.SYNC_CRITICAL_PRIORITY,
            retention_days=settings.SYNC_QUEUE_RETENTION_DAYS,
            backlog_threshold=settings.HEALTH_BACKLOG_THRESHOLD,
            backlog_penalty=settings.HEALTH_BACKLOG_PENALTY,
            failure_rate_threshold=settings.HEALTH_FAILURE_RATE_THRESHOLD,
            failure_penalty_weight=settings.HEALTH_FAILURE_PENALTY_WEIGHT,
            min_sync_interval_ms=settings.BACKGROUND_SYNC_MIN_INTERVAL_MS,
        )


@lru_cache()
def get_settings():
    """Cached settings to avoid loading .env file for every request"""
    return Settings()


def clear_settings_cache():
    """Clear the settings cache - useful when switching between environments"""
    get_settings.cache_clear()


def get_sync_policy() -> SyncPolicy:
    return SyncPolicy.from_settings(get_settings())
