"""
Configuration for Catalog Sync

Settings come from environment variables (or a ``.env`` file). When Vault is
configured (VAULT_ADDR and VAULT_TOKEN), credentials found there override the
environment.
"""

import logging
import os
from typing import Dict, List, Mapping, Optional

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from catalog_sync.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_FEED_URL = "https://www.bti-usa.com/inventory?full=true"
DEFAULT_API_VERSION = "2024-04"
MAX_PAGE_SIZE = 250

REQUIRED_SETTINGS = ("store_domain", "admin_api_token", "feed_username", "feed_password")

SECRET_SETTINGS = frozenset({"admin_api_token", "feed_password", "resend_api_key"})

# Vault secret key -> SyncConfig field, per credentials section
VAULT_FIELD_MAP = {
    "feed": {"username": "feed_username", "password": "feed_password", "url": "feed_url"},
    "storefront": {"store_domain": "store_domain", "admin_api_token": "admin_api_token"},
    "notifier": {"api_key": "resend_api_key", "email_to": "report_email_to", "email_from": "report_email_from"},
}


class LoggingSettings(BaseSettings):
    """Settings needed before a full SyncConfig can be loaded."""

    json_logging: bool = Field(default=False, validation_alias="JSON_LOGGING")

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True, extra="ignore")


class SyncConfig(BaseSettings):
    """
    Settings for one sync deployment.

    Attributes:
        store_domain: Storefront admin host, e.g. "shop.myshopify.com"
        admin_api_token: Storefront admin API access token
        api_version: Storefront admin API version
        feed_url: Distributor full inventory CSV URL
        feed_username: Distributor basic-auth user
        feed_password: Distributor basic-auth password
        resend_api_key: Resend API key; notifications are disabled without it
        report_email_to: Notification recipient(s), comma separated
        report_email_from: Notification sender
        subject_prefix: Prefix for notification subjects
        write_delay_seconds: Minimum spacing between intents
        max_attempts: Attempts per remote call
        backoff_seconds: Base retry backoff
        request_timeout_seconds: HTTP timeout
        page_size: Variants per catalog page
        dry_run: Compute intents but do not write
        pushgateway_url: Prometheus Pushgateway, optional
        json_logging: Structured JSON logs
        part_number_key: Variant metafield holding the distributor part number
        out_of_stock_key: Product metafield holding the out-of-stock hint
        markup_key: Product metafield holding the price markup percent
        exclude_key: Product metafield excluding the product from price sync
        metafield_namespace: Namespace of the metafields above
    """

    store_domain: str = Field(default="", validation_alias="SHOPIFY_STORE_DOMAIN")
    admin_api_token: str = Field(default="", validation_alias="SHOPIFY_ADMIN_API_TOKEN")
    api_version: str = Field(default=DEFAULT_API_VERSION, validation_alias="SHOPIFY_API_VERSION")
    feed_url: str = Field(default=DEFAULT_FEED_URL, validation_alias="BTI_FEED_URL")
    feed_username: str = Field(default="", validation_alias="BTI_USERNAME")
    feed_password: str = Field(default="", validation_alias="BTI_PASSWORD")
    resend_api_key: str = Field(default="", validation_alias="RESEND_API_KEY")
    report_email_to: str = Field(default="", validation_alias="REPORT_EMAIL_TO")
    report_email_from: str = Field(default="BTI Sync <sync@example.com>", validation_alias="REPORT_EMAIL_FROM")
    subject_prefix: str = Field(default="BTI", validation_alias="REPORT_SUBJECT_PREFIX")
    write_delay_seconds: float = Field(default=0.55, validation_alias="SYNC_WRITE_DELAY_SECONDS")
    max_attempts: int = Field(default=3, validation_alias="SYNC_MAX_ATTEMPTS")
    backoff_seconds: float = Field(default=2.0, validation_alias="SYNC_BACKOFF_SECONDS")
    request_timeout_seconds: float = Field(default=30.0, validation_alias="SYNC_REQUEST_TIMEOUT_SECONDS")
    page_size: int = Field(default=MAX_PAGE_SIZE, validation_alias="SYNC_PAGE_SIZE")
    dry_run: bool = Field(default=False, validation_alias="SYNC_DRY_RUN")
    pushgateway_url: str = Field(default="", validation_alias="PUSHGATEWAY_URL")
    json_logging: bool = Field(default=False, validation_alias="JSON_LOGGING")
    part_number_key: str = "bti_part_number"
    out_of_stock_key: str = "out_of_stock_action"
    markup_key: str = "price_adjustment_percentage"
    exclude_key: str = "exclude_from_price_sync"
    metafield_namespace: str = "custom"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
        frozen=True,
        populate_by_name=True,
    )

    @field_validator("store_domain")
    @classmethod
    def _bare_host(cls, value: str) -> str:
        return value.replace("https://", "").strip("/ ")

    @field_validator("max_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("SYNC_MAX_ATTEMPTS must be at least 1")
        return value

    @field_validator("page_size")
    @classmethod
    def _page_size_in_range(cls, value: int) -> int:
        if value < 1 or value > MAX_PAGE_SIZE:
            raise ValueError(f"SYNC_PAGE_SIZE must be between 1 and {MAX_PAGE_SIZE}")
        return value

    @classmethod
    def env_name(cls, field_name: str) -> str:
        """Environment variable a field is read from."""
        alias = cls.model_fields[field_name].validation_alias
        return alias if isinstance(alias, str) else field_name.upper()

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "SyncConfig":
        """
        Build settings from environment variables.

        Args:
            env: Mapping to read instead of os.environ and .env

        Raises:
            ConfigurationError: If a setting has an invalid value
        """
        try:
            if env is None:
                return cls()
            return cls.model_validate({key: value for key, value in env.items() if value != ""})
        except ValidationError as e:
            raise ConfigurationError(cls._describe(e)) from e

    @classmethod
    def _describe(cls, error: ValidationError) -> str:
        problems = []
        for detail in error.errors():
            location = str(detail["loc"][0]) if detail["loc"] else ""
            if location in cls.model_fields:
                location = cls.env_name(location)
            message = detail["msg"].replace("Value error, ", "")
            problems.append(message if location in message else f"{location}: {message}")
        return "Invalid settings: " + "; ".join(problems)

    @classmethod
    def load(cls, env: Optional[Mapping[str, str]] = None, vault_client=None) -> "SyncConfig":
        """
        Build settings from the environment, overlaid with Vault secrets.

        Vault is consulted when ``vault_client`` is given or VAULT_ADDR and
        VAULT_TOKEN are set.
        """
        config = cls.from_env(env)
        env = os.environ if env is None else env

        if vault_client is None and env.get("VAULT_ADDR") and env.get("VAULT_TOKEN"):
            from catalog_sync.utils.vault_client import VaultClient
            vault_client = VaultClient(vault_url=env["VAULT_ADDR"], vault_token=env["VAULT_TOKEN"])

        if vault_client is not None:
            config = config.with_secrets(vault_client.get_sync_credentials())

        return config

    def with_secrets(self, secrets: Dict[str, Dict[str, str]]) -> "SyncConfig":
        """Return a copy with non-empty Vault values applied."""
        overrides = {}
        for section, mapping in VAULT_FIELD_MAP.items():
            values = secrets.get(section) or {}
            for secret_key, field_name in mapping.items():
                if values.get(secret_key):
                    overrides[field_name] = values[secret_key]

        if overrides:
            logger.info(f"Applied {len(overrides)} settings from Vault")
        return self.model_copy(update=overrides)

    def missing_settings(self) -> List[str]:
        return [self.env_name(name) for name in REQUIRED_SETTINGS if not getattr(self, name)]

    def require_complete(self) -> None:
        """
        Raises:
            ConfigurationError: If required settings are missing
        """
        missing = self.missing_settings()
        if missing:
            raise ConfigurationError(f"Missing required settings: {', '.join(missing)}")

    @property
    def notifications_enabled(self) -> bool:
        return bool(self.resend_api_key and self.report_email_to)

    def redacted(self) -> Dict[str, object]:
        """Settings with secrets masked, for logging."""
        values = self.model_dump()
        for name in SECRET_SETTINGS:
            if values.get(name):
                values[name] = "***"
        return values
