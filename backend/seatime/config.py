from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    DATABASE_URL: str = "sqlite:///seatime.db"
    LOG_LEVEL: str = "INFO"
    # Connection pool (ignored for SQLite)
    DB_POOL_SIZE: int = 5
    DB_MAX_OVERFLOW: int = 10
    # MyShipTracking - position provider (if unset, polling is disabled)
    MYSHIPTRACKING_API_KEY: str | None = None
    AIS_PROVIDER_URL: str = (
        "https://www.myshiptracking.com/requests/vesselsonmap-api-key/{api_key}/mmsi/{mmsi}"
    )
    AIS_FETCH_TIMEOUT: float = 10.0
    # Truncation for raw provider bodies stored in provider_audit_logs
    AUDIT_BODY_MAX_CHARS: int = 4000
    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TICK_SECONDS: float = 60.0
    DEFAULT_TASK_INTERVAL_HOURS: float = 2.0
    # Movement detection
    LOOKBACK_WINDOW_HOURS: float = 2.0
    MOVEMENT_THRESHOLD_DEG: float = 0.1
    MOVING_SPEED_THRESHOLD_KN: float = 0.5
    # Entries at or above this duration meet the MCA 4-hour day rule
    MCA_MIN_SEA_HOURS: float = 4.0
    # "local" (server wall clock) or "utc"
    CALENDAR_DAY_POLICY: str = "local"
    # API authentication (if unset, all requests pass - local dev)
    SEATIME_API_KEY: str | None = None
    # CORS origins (comma-separated string for env var support)
    CORS_ORIGINS: str = "http://localhost:8081"


settings = Settings()
