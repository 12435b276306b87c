from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Empty string means "no store configured": reads degrade to defaults
    # and every write returns a STORE_UNAVAILABLE result.
    DATABASE_URL: str = "postgresql://flextime:flextime@db:5432/flextime"
    APP_ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Comma-separated allowed origins, or "*" to allow all.
    # Example: "https://flex.example.com,https://kids.example.com"
    CORS_ORIGINS: str = "*"

    # IANA zone name (e.g. "America/Chicago") or "local" for the system zone.
    TIMEZONE: str = "local"

    # Week boundaries. 0=Monday ... 6=Sunday; 5 anchors the week on Saturday.
    WEEK_ANCHOR_WEEKDAY: int = 5
    VIEWING_START_HOUR: int = 10
    VIEWING_END_HOUR: int = 12
    VOTING_LOCK_LEAD_HOURS: int = 24
    VOTING_GRACE_HOURS: int = 12

    COUNTDOWN_INTERVAL_SECONDS: int = 60

    # Parent bearer tokens: "token:uid:email:name" entries, comma separated.
    # Example: "s3cret:u-1:mom@example.com:Mom,0th3r:u-2:dad@example.com:Dad"
    PARENT_TOKENS: str = ""

    @field_validator("WEEK_ANCHOR_WEEKDAY")
    @classmethod
    def _weekday_in_range(cls, v: int) -> int:
        if not 0 <= v <= 6:
            raise ValueError("WEEK_ANCHOR_WEEKDAY must be between 0 (Monday) and 6 (Sunday)")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_dev(self) -> bool:
        return self.APP_ENV.lower() in {"dev", "development", "local"}


settings = Settings()
