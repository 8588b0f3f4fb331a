# telepsy/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
import urllib.parse

class Settings(BaseSettings):
    # Read env from .env; ignore unknown keys so extra lines don't crash startup
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # --- Database ---
    # Full URL wins over the Postgres parts (tests use sqlite+aiosqlite)
    DATABASE_URL: str | None = None
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "telepsy"
    POSTGRES_USER: str = "telepsy"
    POSTGRES_PASSWORD: str = ""

    # --- Security ---
    TELEPSY_API_KEY: str | None = None

    # --- Monitoring & Logging ---
    APP_ENV: str = "production"
    LOG_LEVEL: str = "INFO"
    LOG_REQUESTS: bool = False
    LOG_RESPONSES: bool = False
    MAX_LOG_LENGTH: int = 200
    SLOW_REQUEST_THRESHOLD: float = 2.0
    ERROR_AGGREGATION_THRESHOLD: int = 10

    # --- Scheduling ---
    BUSINESS_TIMEZONE: str = "Europe/Lisbon"
    APPOINTMENT_DURATION_MIN: int = 45
    SLOT_GRID_MIN: int = 30
    OCCUPIED_BUFFER_MIN: int = 30
    BOOKING_LEAD_MIN: int = 60
    RESCHEDULE_CUTOFF_MIN: int = 60
    LATE_CANCEL_MIN: int = 60
    NUMBER_RETRY_LIMIT: int = 20
    MAX_DAYS_PER_SAVE: int = 7
    # An appointment stays "upcoming" until this long after its start
    UPCOMING_GRACE_MIN: int = 60
    SEARCH_PAGE_SIZE: int = 10

    # --- Notifications ---
    NOTIFY_WEBHOOK_URL: str | None = None
    NOTIFY_TIMEOUT: float = 5.0

    ALLOWED_CORS_ORIGINS: str = "*"  # comma-separated list

    # Sync URI (Alembic)
    @property
    def sync_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL.replace("+asyncpg", "").replace("+aiosqlite", "")
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    # Async URI (SQLAlchemy engine)
    @property
    def async_db_uri(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        pwd = urllib.parse.quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{pwd}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def allowed_origins_list(self) -> list[str]:
        return [o.strip() for o in self.ALLOWED_CORS_ORIGINS.split(",") if o.strip()]

    @property
    def is_development(self) -> bool:
        return self.APP_ENV.lower() in ("development", "dev", "local")

# Singleton
settings = Settings()
