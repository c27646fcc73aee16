from datetime import time
from functools import lru_cache

from dateutil import tz
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BOOKING_", env_file=".env", extra="ignore")

    APP_NAME: str = "Resource Booking Engine"
    LOG_LEVEL: str = "INFO"

    # Every operating-window calculation uses this zone, never the caller's locale.
    TIMEZONE: str = "UTC"
    DAY_START: time = time(8, 0)
    DAY_END: time = time(20, 0)

    MAX_SUGGESTIONS: int = Field(default=3, ge=0)
    # Attempts per admission when the store reports a racing insert.
    ADMISSION_RETRIES: int = Field(default=3, ge=1)

    SEED_CATALOG: bool = True

    @field_validator("TIMEZONE", mode="after")
    @classmethod
    def known_timezone(cls, v: str) -> str:
        if tz.gettz(v) is None:
            raise ValueError(f"unknown timezone: {v}")
        return v

    @model_validator(mode="after")
    def window_is_ordered(self) -> "Settings":
        if self.DAY_START >= self.DAY_END:
            raise ValueError("DAY_START must be before DAY_END")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
