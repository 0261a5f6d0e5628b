import json
import boto3
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


def _load_secrets(secret_name: str, region: str) -> dict:
    """Fetch sensitive config from AWS Secrets Manager."""
    client = boto3.client("secretsmanager", region_name=region)
    response = client.get_secret_value(SecretId=secret_name)
    return json.loads(response["SecretString"])


class Settings(BaseSettings):
    """Application settings and configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # API Settings
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "Portfolio Manager API"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # Rate Limiting
    RATE_LIMIT_PER_MINUTE: int = 60

    # AWS Settings
    AWS_REGION: str = "us-east-1"
    SECRETS_NAME: Optional[str] = None  # e.g. "portfolio-manager/config"

    # Database
    DYNAMODB_ENDPOINT: Optional[str] = None  # For local development

    # Quote provider
    FINNHUB_API_KEY: str = ""
    FINNHUB_BASE_URL: str = "https://finnhub.io/api/v1"
    FINNHUB_MAX_RETRIES: int = 3
    FINNHUB_TIMEOUT: int = 10

    # Portfolios
    DEFAULT_BASE_CURRENCY: str = "USD"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: Optional[bool] = None  # None = auto-detect Lambda


def get_settings() -> Settings:
    """Build settings, overlaying secrets when a Secrets Manager name is configured."""
    base = Settings()
    if not base.SECRETS_NAME:
        return base

    secrets = _load_secrets(base.SECRETS_NAME, base.AWS_REGION)
    overrides = {
        key: value for key, value in secrets.items()
        if key in Settings.model_fields
    }
    return base.model_copy(update=overrides)


settings = get_settings()
