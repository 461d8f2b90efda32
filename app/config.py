import logging
from functools import lru_cache
from typing import Any, Dict

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore"
    )

    database_url: str = "sqlite+aiosqlite:///./orders.db"
    HTTP_PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    PAYMENT_URL_SUCCESS: str | None = None
    PAYMENT_URL_FAILURE: str | None = None
    PAYMENT_URL_CANCEL: str | None = None
    PAYMENT_URL_UPDATE: str | None = None

    SAFERPAY_API_USERNAME: str | None = None
    SAFERPAY_API_PASSWORD: str | None = None
    SAFERPAY_API_TEST_MODE: bool = True
    SAFERPAY_CUSTOMER_ID: str | None = None
    SAFERPAY_TERMINAL_ID: str | None = None
    SAFERPAY_CONFIG_SET: str | None = None
    SAFERPAY_PAYMENT_METHODS: str | None = None
    SAFERPAY_MERCHANT_EMAILS: str | None = Field(
        default=None,
        validation_alias=AliasChoices(
            "SAFERPAY_MERCHANT_EMAILS", "SAFERPAY_MERCHANT_EMAIL"
        ),
    )
    SAFERPAY_TIMEOUT: float = 30.0

    @property
    def log_level(self) -> int:
        level = logging.getLevelName(self.LOG_LEVEL.upper())
        return level if isinstance(level, int) else logging.INFO

    def service_config(self) -> Dict[str, Any]:
        """Saferpay service configuration as entered in the shop backend."""
        return {
            "saferpay.ApiUsername": self.SAFERPAY_API_USERNAME,
            "saferpay.ApiPassword": self.SAFERPAY_API_PASSWORD,
            "saferpay.ApiTestMode": self.SAFERPAY_API_TEST_MODE,
            "saferpay.CustomerId": self.SAFERPAY_CUSTOMER_ID,
            "saferpay.TerminalId": self.SAFERPAY_TERMINAL_ID,
            "saferpay.ConfigSet": self.SAFERPAY_CONFIG_SET,
            "saferpay.PaymentMethods": self.SAFERPAY_PAYMENT_METHODS,
            "saferpay.MerchantEmails": self.SAFERPAY_MERCHANT_EMAILS,
        }

    def platform_config(self) -> Dict[str, Any]:
        """Shop wide payment URLs shared by all payment providers."""
        return {
            "payment.url-success": self.PAYMENT_URL_SUCCESS,
            "payment.url-failure": self.PAYMENT_URL_FAILURE,
            "payment.url-cancel": self.PAYMENT_URL_CANCEL,
            "payment.url-update": self.PAYMENT_URL_UPDATE,
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached Settings instance."""
    return Settings()
