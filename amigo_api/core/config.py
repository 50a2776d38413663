from urllib.parse import quote

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "amigo-api"
    env: str = "dev"
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"
    port: int = 8080

    # Auth
    auth_secret: str = "dev-secret-change-me"
    access_token_ttl_hours: int = 24

    # OTP (dev: single fixed code, expiry is advisory and only written to the audit log)
    otp_fixed_code: str = "000000"
    otp_expires_minutes: int = 5

    # Data
    database_url: str | None = None
    pghost: str = "127.0.0.1"
    pgport: int = 5432
    pguser: str = "postgres"
    pgpassword: str = ""
    pgdatabase: str = "postgres"
    pgsslmode: str = "disable"
    db_read_timeout_seconds: float = 1.0
    db_write_timeout_seconds: float = 2.0
    # MVP: create tables on startup. Schema ownership belongs to migrations.
    auto_create_tables: bool = True

    # CORS (dev)
    cors_allow_origins: str = "http://localhost:3000,http://127.0.0.1:3000"

    @field_validator("database_url", mode="before")
    @classmethod
    def _normalize_database_url(cls, v: str | None) -> str | None:
        # Some providers emit `postgres://...` which SQLAlchemy rejects.
        if isinstance(v, str) and v.startswith("postgres://"):
            return "postgresql+psycopg://" + v[len("postgres://") :]
        if isinstance(v, str) and v.startswith("postgresql://"):
            return "postgresql+psycopg://" + v[len("postgresql://") :]
        return v or None

    @model_validator(mode="after")
    def _compose_database_url(self) -> "Settings":
        if not self.database_url:
            auth = quote(self.pguser, safe="")
            if self.pgpassword:
                auth += ":" + quote(self.pgpassword, safe="")
            self.database_url = (
                f"postgresql+psycopg://{auth}@{self.pghost}:{self.pgport}/{self.pgdatabase}"
                f"?sslmode={self.pgsslmode}"
            )
        return self


settings = Settings()
