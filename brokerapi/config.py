from functools import lru_cache
from typing import Literal
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="brokerapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Broker Ledger API"
    PROJECT_NAME: str = "Broker Ledger API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USERNAME: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DATABASE: str = "broker"
    POSTGRES_SCHEMA: str = "public"

    # Full URL override (e.g. Railway/Heroku style DATABASE_URL)
    DATABASE_URL: str | None = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    @property
    def database_url(self) -> str:
        """Construct database URL from individual components"""
        if self.DATABASE_URL:
            return self.DATABASE_URL

        # URL encode the password to handle special characters
        encoded_password = quote_plus(self.POSTGRES_PASSWORD)
        return f"postgresql+psycopg2://{self.POSTGRES_USERNAME}:{encoded_password}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"

    # Internal service token (user auth is handled by the upstream web layer)
    AUTH_TOKEN: str = ""

    # Ledger rules
    # CLAMP: 잔액 이상 차감 시 0으로 내림 (기존 운영 동작) | REJECT: 차감 거부
    BALANCE_DEDUCTION_POLICY: Literal["CLAMP", "REJECT"] = "CLAMP"
    INVESTMENT_PERIOD_HOURS: int = 24  # 투자 상품 수익 지급 주기 (일 단위)
    LIVE_TRADE_PERIOD_HOURS: int = 1  # 라이브 트레이드 수익 지급 주기 (시간 단위)
    TRANSACTION_PAGE_MAX: int = 100


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return settings
