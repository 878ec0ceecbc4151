from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    database_url: str = "sqlite:///./flipwatch.db"

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = ["*"]

    # ---- SFR API ----
    sfr_api_key: str | None = None
    sfr_api_url: str | None = None
    sfr_api_token_header: str = "X-API-TOKEN"
    sfr_timeout_seconds: float = 60.0

    # ---- Sync ----
    sync_default_start_date: str = "2025-12-03"
    sync_page_size: int = 100
    sync_batch_fetch_size: int = 100

    # ---- Schedule (matches the nightly 2:00 AM Pacific run) ----
    sync_timezone: str = "America/Los_Angeles"
    sync_cron_hour: int = 2
    sync_cron_minute: int = 0

    # ---- Celery ----
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/1"

    def model_post_init(self, __context) -> None:
        env = (self.app_env or "local").strip().lower()
        if env in ("prod", "production"):
            if not self.sfr_api_key or not self.sfr_api_url:
                raise ValueError("SFR_API_KEY and SFR_API_URL are required in prod")

        if self.sync_page_size <= 0 or self.sync_batch_fetch_size <= 0:
            raise ValueError("sync page/batch sizes must be positive")


settings = Settings()
