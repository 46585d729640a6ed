from typing import Optional, List
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.core.constants import (
    Environment,
    LockProviderType,
    NotificationProviderType,
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Environment Profile
    environment: Environment = Environment.LOCAL

    # API Settings
    app_name: str = "tenant-metering"
    api_version: str = "0.1.0"
    debug: bool = False

    # Database Components
    db_user: str = "postgres"
    db_password: str = "postgres"
    db_host: str = "localhost"
    db_port: int = 5432
    db_name: str = "metering"
    db_use_nullpool: bool = (
        False  # True for workers (sequential), False for API (concurrent)
    )
    db_pool_size: int = 10
    db_pool_overflow: int = 5

    @property
    def database_url(self) -> str:
        """Construct database URL from components."""
        return f"postgresql://{self.db_user}:{self.db_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @property
    def redis_connection_url(self) -> str:
        """Construct Redis URL from components."""
        if self.redis_password:
            return f"redis://:{self.redis_password}@{self.redis_host}:{self.redis_port}/{self.redis_db}"
        else:
            return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # Distributed locking (single-flight reconciliation per tenant)
    lock_provider: LockProviderType = LockProviderType.REDIS

    # OpenTelemetry
    otel_service_name: str = "tenant-metering"
    otel_service_version: str = "0.1.0"

    # Axiom (exporters are only attached when a token is configured)
    axiom_token: Optional[str] = None
    axiom_dataset: Optional[str] = None

    # Billing - Stripe (payments)
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    stripe_timeout_seconds: float = 10.0
    # Stripe price IDs for subscription tiers
    stripe_price_id_starter: str = "price_starter"
    stripe_price_id_growth: str = "price_growth"
    stripe_price_id_professional: str = "price_professional"
    stripe_price_id_enterprise: str = "price_enterprise"
    stripe_price_id_enterprise_plus: str = "price_enterprise_plus"

    # Reconciliation
    reconcile_max_concurrency: int = 4
    reconcile_lock_ttl_seconds: int = 300
    reconcile_lock_wait_seconds: float = 5.0
    reconcile_batch_size: int = 500  # content records fetched per round trip
    reconcile_interval_seconds: int = 3600

    # Notifications
    notification_provider: NotificationProviderType = NotificationProviderType.LOG
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    notification_from_email: str = "billing@localhost"

    @property
    def cors_allowed_origins(self) -> List[str]:
        """Auto-select CORS origins based on environment."""
        if self.environment == Environment.LOCAL:
            return [
                "http://localhost:3000",
                "http://localhost:3001",
            ]
        return []


settings = Settings()
