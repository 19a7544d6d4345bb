from decimal import Decimal
from urllib.parse import quote_plus

from pydantic import Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application configuration loaded from environment variables (and .env).

    Calculators never read this directly; use cases translate the relevant
    values into explicit parameters.
    """

    # API Configuration
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Storefront Checkout API"
    PROJECT_DESCRIPTION: str = "Checkout pricing, GST, shipping and order lifecycle"
    VERSION: str = "0.1.0"

    # Application Settings
    DEBUG: bool = Field(False, description="Debug mode")
    ENVIRONMENT: str = Field("production", description="Runtime environment")
    LOG_LEVEL: str = Field("INFO", description="Root log level")
    CORS_ORIGINS: list[str] = Field(default=["*"], description="Allowed CORS origins")

    # PostgreSQL Database Settings
    DB_HOST: str = Field("localhost", description="PostgreSQL host")
    DB_PORT: int = Field(5432, description="PostgreSQL port")
    DB_NAME: str = Field("storefront", description="Database name")
    DB_USER: str = Field("postgres", description="Database user")
    DB_PASSWORD: str | None = Field(None, description="Database password")
    DB_ECHO: bool = Field(False, description="Log SQL queries (debug only)")
    DB_CREATE_TABLES: bool = Field(False, description="Create missing tables at startup")

    # Database connection pool settings
    DB_POOL_SIZE: int = Field(20, description="Connection pool size")
    DB_MAX_OVERFLOW: int = Field(30, description="Maximum pool overflow")
    DB_POOL_RECYCLE: int = Field(3600, description="Recycle connections every N seconds")
    DB_POOL_TIMEOUT: int = Field(30, description="Timeout to obtain a pooled connection")

    # Razorpay payment gateway
    RAZORPAY_ENABLED: bool = Field(True, description="Enable Razorpay order creation")
    RAZORPAY_API_BASE: str = Field("https://api.razorpay.com/v1", description="Razorpay REST base URL")
    RAZORPAY_KEY_ID: str | None = Field(None, description="Razorpay key id")
    RAZORPAY_KEY_SECRET: str | None = Field(None, description="Razorpay key secret (payment signatures)")
    RAZORPAY_WEBHOOK_SECRET: str | None = Field(None, description="Shared secret for webhook HMAC")
    RAZORPAY_TIMEOUT: int = Field(30, description="Razorpay request timeout in seconds")

    # Pending-order expiry sweep
    CRON_SECRET: str | None = Field(None, description="Bearer token required to trigger the sweep")
    ORDER_EXPIRY_HOURS: int = Field(24, description="Age after which unpaid gateway orders expire")
    ORDER_EXPIRY_SWEEP_ENABLED: bool = Field(False, description="Run the expiry sweep in-process")
    ORDER_EXPIRY_SWEEP_INTERVAL_SECONDS: int = Field(900, description="In-process sweep interval")

    # Pricing fallbacks
    CURRENCY: str = Field("INR", description="ISO currency code")
    DEFAULT_GST_RATE: Decimal = Field(Decimal("18"), description="GST rate used without tax settings")
    DEFAULT_STORE_STATE: str = Field("Tamil Nadu", description="Registered store state")
    DEFAULT_PRICE_INCLUDES_TAX: bool = Field(False, description="Prices are tax-inclusive by default")
    SHIPPING_FALLBACK_RATE: Decimal = Field(Decimal("99"), description="Rate used when no shipping rule matches")
    SHIPPING_FALLBACK_PROVIDER: str = Field("Standard", description="Provider label for the fallback rate")
    SHIPPING_MAX_DELIVERY_DAYS: int = Field(7, description="Delivery estimate in days")
    TRACKING_COURIER: str = Field("ST Courier", description="Default courier for shipments")

    # Notifications (Resend)
    NOTIFICATIONS_ENABLED: bool = Field(False, description="Send order emails")
    RESEND_API_BASE: str = Field("https://api.resend.com", description="Resend API base URL")
    RESEND_API_KEY: str | None = Field(None, description="Resend API key")
    NOTIFICATION_FROM_EMAIL: str = Field("orders@example.com", description="Sender address")
    NOTIFICATION_TIMEOUT: int = Field(10, description="Notification request timeout in seconds")

    # Sentry Configuration
    SENTRY_DSN: str | None = Field(None, description="Sentry DSN for error tracking")

    model_config = SettingsConfigDict(
        case_sensitive=True,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("DB_POOL_SIZE")
    @classmethod
    def validate_pool_size(cls, v):
        if v < 1:
            raise ValueError("DB_POOL_SIZE must be at least 1")
        if v > 100:
            raise ValueError("DB_POOL_SIZE should not exceed 100")
        return v

    @field_validator("DB_MAX_OVERFLOW")
    @classmethod
    def validate_max_overflow(cls, v):
        if v < 0:
            raise ValueError("DB_MAX_OVERFLOW must be 0 or greater")
        if v > 200:
            raise ValueError("DB_MAX_OVERFLOW should not exceed 200")
        return v

    @field_validator("DEFAULT_GST_RATE")
    @classmethod
    def validate_gst_rate(cls, v):
        if v < 0 or v > 100:
            raise ValueError("DEFAULT_GST_RATE must be between 0 and 100")
        return v

    @field_validator("ORDER_EXPIRY_HOURS", "ORDER_EXPIRY_SWEEP_INTERVAL_SECONDS")
    @classmethod
    def validate_positive(cls, v):
        if v < 1:
            raise ValueError("Value must be at least 1")
        return v

    @computed_field
    @property
    def database_url(self) -> str:
        """PostgreSQL connection URL"""
        if self.DB_PASSWORD:
            return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return f"postgresql://{self.DB_USER}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @computed_field
    @property
    def async_database_url(self) -> str:
        """asyncpg connection URL with URL-encoded credentials"""
        user = quote_plus(self.DB_USER)
        if self.DB_PASSWORD:
            return f"postgresql+asyncpg://{user}:{quote_plus(self.DB_PASSWORD)}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        return f"postgresql+asyncpg://{user}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    @computed_field
    @property
    def is_development(self) -> bool:
        return self.DEBUG or self.ENVIRONMENT.lower() in ["development", "dev", "local"]


# Settings singleton
_settings_instance = None


def get_settings() -> Settings:
    """
    Return a cached settings instance.

    Avoids re-reading the environment on every call.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings()
    return _settings_instance
