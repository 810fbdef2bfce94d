import base64
import binascii
import json
import logging
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file="tradapi/.env",
        env_file_encoding="utf-8",
        extra="allow",
    )
    # Application
    APP_NAME: str = "Tradinta Marketplace API"
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Database
    # DATABASE_URL wins over the service-account credential when both are set.
    DATABASE_URL: Optional[str] = None
    SERVICE_ACCOUNT_BASE64: Optional[str] = None
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    AUTO_CREATE_TABLES: bool = False

    # Security
    AUTH_TOKEN: str = ""

    # Background dispatch
    BACKGROUND_MAX_WORKERS: int = 4
    BACKGROUND_MAX_PENDING: int = 1000

    # Points
    DEFAULT_FIVE_STAR_REVIEW_POINTS: int = 10
    LEDGER_AUDIT_BATCH_SIZE: int = 500

    # Ratings
    RATING_MAX_ATTEMPTS: int = 5
    RATING_RECOMPUTE_BATCH_SIZE: int = 100

    # Discovery
    DISCOVERY_DEFAULT_LIMIT: int = 12
    DISCOVERY_MAX_LIMIT: int = 100
    DISCOVERY_MOQ_RANGE: int = 50
    LOOKUP_SEARCH_LIMIT: int = 20

    # Shortlinks / attribution
    REFERRAL_COOKIE_NAME: str = "referralCode"
    REFERRAL_COOKIE_MAX_AGE: int = 60 * 60 * 24 * 30  # 30 days
    SHORTLINK_NOT_FOUND_PATH: str = "/not-found"
    SHORTLINK_CODE_LENGTH: int = 7

    @property
    def database_url(self) -> Optional[str]:
        """Resolve the store URL, or None when server-side store access is disabled"""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if not self.SERVICE_ACCOUNT_BASE64:
            return None

        try:
            raw = base64.b64decode(self.SERVICE_ACCOUNT_BASE64).decode("utf-8")
            credential = json.loads(raw)
        except (binascii.Error, UnicodeDecodeError, ValueError) as e:
            logger.error(f"Invalid SERVICE_ACCOUNT_BASE64 credential: {e}")
            return None

        if not isinstance(credential, dict):
            logger.error("Invalid SERVICE_ACCOUNT_BASE64 credential: not a JSON object")
            return None

        if credential.get("url"):
            return credential["url"]

        try:
            driver = credential.get("driver", "postgresql+psycopg2")
            # URL encode the password to handle special characters
            encoded_password = quote_plus(str(credential["password"]))
            return (
                f"{driver}://{credential['username']}:{encoded_password}"
                f"@{credential['host']}:{credential.get('port', 5432)}/{credential['database']}"
            )
        except KeyError as e:
            logger.error(f"Service account credential is missing {e}")
            return None


@lru_cache
def get_settings() -> Settings:
    return Settings()
