from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'luna_user'
    POSTGRES_PASSWORD: str = 'luna_pass'
    POSTGRES_DB: str = 'luna_pos'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432

    # Full SQLAlchemy URL, overrides the POSTGRES_* parts when set
    DATABASE_URL: Optional[str] = None
    AUTO_CREATE_TABLES: bool = True

    # HTTP
    API_PREFIX: str = '/api'
    FRONTEND_URL: str = '*'  # Comma separated list of allowed origins
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Local time zone of the shop (IANA name). Empty means the host's local time.
    TIMEZONE: Optional[str] = None

    # Orders / shifts
    HELD_ORDERS_LIMIT: int = 50
    LEDGER_RECOMPUTE_TIMEOUT: float = 5.0
    LEDGER_MAX_RETRIES: int = 3

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def is_sqlite(self) -> bool:
        return self.async_database_url.startswith("sqlite")

    @property
    def allowed_origins(self) -> List[str]:
        origins = [origin.strip() for origin in self.FRONTEND_URL.split(",") if origin.strip()]
        return origins or ["*"]

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", "AUTO_CREATE_TABLES", mode="before")
    @classmethod
    def parse_bool(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("TIMEZONE", mode="before")
    @classmethod
    def parse_timezone(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

settings = Settings()
