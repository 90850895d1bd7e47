"""
Vault Client Utility for Catalog Sync

Provides an interface to HashiCorp Vault for retrieving the distributor,
storefront and e-mail credentials used by a sync run.
"""

import os
from typing import Dict, Any, Optional
import hvac
from hvac.exceptions import VaultError, InvalidPath
import logging

logger = logging.getLogger(__name__)

FEED_CREDENTIALS_PATH = "bti-credentials"
STOREFRONT_CREDENTIALS_PATH = "shopify-credentials"
NOTIFIER_CREDENTIALS_PATH = "resend-credentials"


class VaultClient:
    """
    Client for interacting with HashiCorp Vault.

    Reads secrets from a KV v2 secrets engine.
    """

    def __init__(
        self,
        vault_url: Optional[str] = None,
        vault_token: Optional[str] = None,
        verify_ssl: bool = True,
        mount_point: str = "secret"
    ):
        """
        Initialize Vault client.

        Args:
            vault_url: Vault server URL (defaults to VAULT_ADDR env var)
            vault_token: Vault authentication token (defaults to VAULT_TOKEN env var)
            verify_ssl: Whether to verify SSL certificates
            mount_point: KV secrets engine mount point

        Raises:
            ValueError: If required parameters are missing
            VaultError: If connection to Vault fails
        """
        self.vault_url = vault_url or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.mount_point = mount_point

        if not self.vault_url:
            raise ValueError("Vault URL must be provided via parameter or VAULT_ADDR environment variable")

        if not self.vault_token:
            raise ValueError("Vault token must be provided via parameter or VAULT_TOKEN environment variable")

        try:
            self.client = hvac.Client(
                url=self.vault_url,
                token=self.vault_token,
                verify=verify_ssl
            )

            if not self.client.is_authenticated():
                raise VaultError("Failed to authenticate with Vault")

            logger.info(f"Connected to Vault at {self.vault_url}")

        except Exception as e:
            logger.error(f"Failed to initialize Vault client: {e}")
            raise VaultError(f"Vault initialization failed: {e}")

    def get_secret(self, path: str) -> Dict[str, Any]:
        """
        Retrieve a secret from Vault.

        Args:
            path: Secret path (e.g., "shopify-credentials")

        Returns:
            Dictionary containing secret data

        Raises:
            InvalidPath: If secret path does not exist
            VaultError: If retrieval fails
        """
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=path,
                mount_point=self.mount_point
            )

            if not response or "data" not in response:
                raise InvalidPath(f"No data found at path: {path}")

            secret_data = response["data"].get("data", {})
            logger.debug(f"Retrieved secret from {path}")

            return secret_data

        except InvalidPath:
            logger.error(f"Secret not found at path: {path}")
            raise
        except Exception as e:
            logger.error(f"Failed to retrieve secret from {path}: {e}")
            raise VaultError(f"Secret retrieval failed: {e}")

    def get_optional_secret(self, path: str) -> Dict[str, Any]:
        """Like get_secret, but a missing path yields an empty dict."""
        try:
            return self.get_secret(path)
        except InvalidPath:
            return {}

    def get_sync_credentials(self) -> Dict[str, Dict[str, Any]]:
        """
        Retrieve all credentials a sync run needs.

        Returns:
            Dictionary with "feed", "storefront" and "notifier" sections;
            sections whose path does not exist are empty
        """
        return {
            "feed": self.get_optional_secret(FEED_CREDENTIALS_PATH),
            "storefront": self.get_optional_secret(STOREFRONT_CREDENTIALS_PATH),
            "notifier": self.get_optional_secret(NOTIFIER_CREDENTIALS_PATH),
        }

    def close(self):
        """Close the Vault client connection."""
        self.client = None
        logger.debug("Vault client connection closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
