"""Application configuration via pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "Chargeback Desk"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False
    log_level: str = "INFO"
    api_prefix: str = "/api/v1"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "chargeback"
    postgres_password: str = Field(default="chargeback_secret")
    postgres_db: str = "chargeback_desk"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = None  # e.g. sqlite+aiosqlite:// for local runs

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @computed_field
    @property
    def sync_database_url(self) -> str:
        """Sync PostgreSQL connection URL for Alembic."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT Authentication
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 15

    # AWS S3 (dispute documents)
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_bucket_name: str = "dispute-documents"
    s3_endpoint_url: Optional[str] = None  # For MinIO in dev

    # AI - Claude API
    anthropic_api_key: Optional[str] = None
    claude_model: str = "claude-sonnet-4-20250514"
    claude_vision_model: str = "claude-sonnet-4-20250514"
    claude_max_tokens: int = 1024

    # Credit ledger
    ledger_gateway: Literal["manual", "core_banking"] = "manual"
    core_banking_url: Optional[str] = None
    core_banking_api_key: Optional[str] = None
    core_banking_signing_secret: Optional[str] = None
    core_banking_timeout_seconds: float = 30.0

    # Rate Limiting
    rate_limit_per_minute: int = 100
    classification_rate_per_minute: int = 20
    verification_rate_per_minute: int = 10

    # CORS
    cors_origins: List[str] = ["*"]

    # Eligibility rules
    base_currency: str = "USD"
    write_off_threshold: float = 15.0
    min_settlement_days: int = 3
    max_settlement_days: int = 21
    max_dispute_age_days: int = 120
    otp_secured_indications: List[int] = [2, 212]
    strong_auth_wallets: List[str] = ["Apple Pay", "Google Pay"]

    # Chargeback filing rules
    magstripe_pos_modes: List[int] = [90, 91]
    chip_pos_mode: int = 5
    contactless_pos_mode: int = 7
    wait_for_refund_days: int = 7
    wait_for_refund_merchants: List[str] = ["facebook", "meta"]
    restricted_mccs: List[int] = [
        5968, 4215, 5815, 6300, 5411, 7922, 7011, 4121,
        4722, 9399, 4814, 7375, 7394, 4899, 7997,
    ]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
