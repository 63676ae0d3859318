"""Application-wide configuration settings."""

from pathlib import Path
from typing import Dict

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables
load_dotenv(override=True)

# Base paths
BASE_DIR = Path(__file__).parent
LOGS_DIR = BASE_DIR / "logs"


class APISettings(BaseSettings):
    """API-related settings."""

    cors_origins: list[str] = Field(default=["http://localhost:3000"], validation_alias="CORS_ORIGINS")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class DatabaseSettings(BaseSettings):
    """Database-related settings."""

    mongodb_uri: str = Field(default="mongodb://localhost:27017", validation_alias="MONGODB_URI")
    database_name: str = Field(default="sitfit", validation_alias="DATABASE_NAME")
    users_collection: str = Field(default="users")
    tryon_results_collection: str = Field(default="tryon_results")
    server_selection_timeout_ms: int = Field(default=5000)

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class AuthSettings(BaseSettings):
    """Identity provider settings."""

    secret_key: SecretStr = Field(default=SecretStr(""), validation_alias="AUTH_SECRET_KEY")
    token_lifetime_seconds: int = Field(default=3600, validation_alias="AUTH_TOKEN_LIFETIME")

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class CreditSettings(BaseSettings):
    """Free-tier credit settings."""

    free_allotment: int = Field(default=2, validation_alias="FREE_MONTHLY_CREDITS")
    reset_period_days: int = Field(default=30)

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class PaymentSettings(BaseSettings):
    """Payment provider settings."""

    key_id: str = Field(default="", validation_alias="RAZORPAY_KEY_ID")
    key_secret: SecretStr = Field(default=SecretStr(""), validation_alias="RAZORPAY_KEY_SECRET")
    base_url: str = Field(default="https://api.razorpay.com", validation_alias="RAZORPAY_BASE_URL")
    currency: str = Field(default="INR")
    request_timeout: float = Field(default=30.0)
    # Authoritative prices in major currency units
    plan_prices: Dict[str, int] = Field(default={"monthly": 299, "yearly": 2999})

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class TryOnSettings(BaseSettings):
    """Image-generation provider settings."""

    api_key: SecretStr = Field(default=SecretStr(""), validation_alias="MIRAGIC_API_KEY")
    base_url: str = Field(default="https://backend.miragic.ai", validation_alias="MIRAGIC_BASE_URL")
    request_timeout: float = Field(default=60.0)
    poll_timeout: float = Field(default=10.0)
    poll_interval: float = Field(default=2.0)
    max_poll_attempts: int = Field(default=30)
    max_image_bytes: int = Field(default=10 * 1024 * 1024)  # 10MB

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class WeatherSettings(BaseSettings):
    """Weather provider settings."""

    api_key: SecretStr = Field(default=SecretStr(""), validation_alias="WEATHER_API_KEY")
    base_url: str = Field(default="https://api.openweathermap.org/data/2.5", validation_alias="WEATHER_BASE_URL")
    request_timeout: float = Field(default=10.0)

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class LoggingSettings(BaseSettings):
    """Logging-related settings."""

    log_level: str = Field(default="INFO")
    file_log_level: str = Field(default="DEBUG")
    backup_count: int = Field(default=9)
    format: str = Field(default="%(name)s - %(levelname)s - %(message)s")
    file_format: str = Field(default="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    enable_request_logging: bool = Field(default=False, validation_alias="ENABLE_REQUEST_LOGGING")
    noisy_loggers: Dict[str, str] = Field(
        default={
            "uvicorn": "WARNING",
            "pymongo": "WARNING",
            "pymongo.topology": "WARNING",
            "pymongo.server": "WARNING",
            "pymongo.connection": "WARNING",
            "pymongo.monitoring": "WARNING",
            "httpx": "WARNING",
            "httpcore": "WARNING",
            "watchfiles": "WARNING",
        }
    )

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


class Settings(BaseSettings):
    """Global settings container."""

    api: APISettings = Field(default_factory=APISettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    credits: CreditSettings = Field(default_factory=CreditSettings)
    payments: PaymentSettings = Field(default_factory=PaymentSettings)
    tryon: TryOnSettings = Field(default_factory=TryOnSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(env_file=".env", extra="allow")


# Create global settings instance
settings = Settings()
