from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Ignore unknown env vars so a shared .env with other services' keys still loads.
    model_config = SettingsConfigDict(env_file=(".env", "../.env"), case_sensitive=True, extra="ignore")

    PROJECT_NAME: str = "LeaseDesk"
    ENVIRONMENT: str = "development"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    BACKEND_CORS_ORIGINS: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])
    ALLOWED_HOSTS: list[str] = Field(default_factory=lambda: ["localhost", "127.0.0.1", "testserver"])
    ENABLE_API_DOCS: bool = False

    COMPANY_NAME: str = "CashNdrive"
    EXPORT_FORMAT_VERSION: str = "1.0"

    # Funnel analytics thresholds
    FUNNEL_PERCENTAGE_TOLERANCE: float = 0.5
    FUNNEL_DWELL_DAYS_THRESHOLD: float = 7.0
    FUNNEL_MAX_ACTION_ITEMS: int = 5
    FUNNEL_LATEST_NOTES_LIMIT: int = 3
    FUNNEL_TOP_DECLINED_REASONS: int = 5
    FUNNEL_STAGE_TOP_REASONS: int = 3

    # Print export settle delays (seconds) before and after the printer runs.
    PRINT_SETTLE_SECONDS: float = 0.1
    PRINT_RESTORE_SECONDS: float = 1.0

    # TTF used by the PDF printer; unset means the first installed system font.
    PDF_FONT_PATH: str | None = None

    @model_validator(mode="after")
    def _prod_guards(self):
        if self.ENVIRONMENT.lower() == "production":
            if self.ENABLE_API_DOCS:
                raise ValueError("ENABLE_API_DOCS must be false in production")
            if any(h == "*" for h in self.ALLOWED_HOSTS):
                raise ValueError('ALLOWED_HOSTS must not contain "*" in production')
        elif not self.ALLOWED_HOSTS:
            self.ALLOWED_HOSTS = ["*"]
        return self


@lru_cache
def get_settings() -> Settings:
    return Settings()
