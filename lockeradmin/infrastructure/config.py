from __future__ import annotations

from datetime import timezone, tzinfo
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="LOCKERADMIN_")

    database_url: str = "sqlite+pysqlite:///:memory:"
    lockers_collection: str = "lockers"
    reservations_collection: str = "reservations"
    reservations_order_by: str | None = "createdAt"
    local_timezone: str = "UTC"
    top_lockers_limit: int = 5
    log_level: str = "INFO"

    def local_tzinfo(self) -> tzinfo:
        """Timezone used for hour-of-day bucketing."""
        if self.local_timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.local_timezone)


settings = Settings()
