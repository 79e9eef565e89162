from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Scheduling engine
    SCHEDULING_LOOKAHEAD_DAYS: int = 7
    SCHEDULING_MAX_SEGMENTS: int = 50
    SCHEDULING_SLOT_MINUTES: int = 15

    # Queue manager
    QUEUE_LOCK_TIMEOUT_SECONDS: float = 30.0

    # Availability cache
    AVAILABILITY_CACHE_MAX_ENTRIES: int = 10_000

    # Observability Configuration
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # "json" or "console"
    ENABLE_METRICS: bool = True

    @model_validator(mode="after")
    def _check_scheduling_bounds(self) -> Self:
        if self.SCHEDULING_SLOT_MINUTES <= 0 or 60 % self.SCHEDULING_SLOT_MINUTES:
            raise ValueError(
                "SCHEDULING_SLOT_MINUTES must be a positive divisor of 60, "
                f"got {self.SCHEDULING_SLOT_MINUTES}"
            )
        if self.SCHEDULING_LOOKAHEAD_DAYS < 0:
            raise ValueError("SCHEDULING_LOOKAHEAD_DAYS must not be negative")
        if self.SCHEDULING_MAX_SEGMENTS < 1:
            raise ValueError("SCHEDULING_MAX_SEGMENTS must be at least 1")
        if self.QUEUE_LOCK_TIMEOUT_SECONDS <= 0:
            raise ValueError("QUEUE_LOCK_TIMEOUT_SECONDS must be positive")
        return self


settings = Settings()  # type: ignore
