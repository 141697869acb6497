from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Pulse"
    version: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    APP_DOMAIN: str = "example.com"
    APP_DATABASE_DSN: str = "sqlite:////tmp/pulse.db"

    # CORS
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Rate limiting: "memory" keeps counters per process, "redis" shares them
    RATE_LIMIT_BACKEND: str = "memory"
    REDIS_URL: str = "redis://localhost:6379"

    RATE_LIMIT_COUPON_ISSUE_MAX: int = 3
    RATE_LIMIT_COUPON_ISSUE_WINDOW: int = 10
    RATE_LIMIT_COUPON_CHECK_MAX: int = 20
    RATE_LIMIT_COUPON_CHECK_WINDOW: int = 60
    RATE_LIMIT_SURVEY_SUBMIT_MAX: int = 3
    RATE_LIMIT_SURVEY_SUBMIT_WINDOW: int = 60
    RATE_LIMIT_EMAIL_SUBMIT_MAX: int = 5
    RATE_LIMIT_EMAIL_SUBMIT_WINDOW: int = 60
    RATE_LIMIT_EMAIL_OPT_IN_MAX: int = 5
    RATE_LIMIT_EMAIL_OPT_IN_WINDOW: int = 60

    # Coupon issuance
    COUPON_CODE_PREFIX: str = "CPN"
    COUPON_CODE_MAX_ATTEMPTS: int = 10
    DEFAULT_MAX_REDEMPTIONS: int = 1
    # "proceed" issues a new code when the duplicate lookup fails, "reject" refuses
    ISSUANCE_DUPLICATE_CHECK_FAILURE_POLICY: Literal["proceed", "reject"] = "proceed"

    # Staff API keys
    API_KEY_PREFIX: str = "pls_"

    @property
    def redis_rate_limiting(self) -> bool:
        return self.RATE_LIMIT_BACKEND == "redis"


settings = Settings()
