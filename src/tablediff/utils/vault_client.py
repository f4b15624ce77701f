"""
HashiCorp Vault client for fetching connection URLs

Reads the source/target connection URLs from the KV v2 secrets engine so
credentials never appear on the command line or in shell history.
"""

import logging
import os
import re
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_SECRET_PREFIX = "secret/tablediff"
VALID_SECRET_PATH = re.compile(r"^[a-zA-Z0-9/_-]+$")
VALID_SIDES = ("source", "target")


class VaultClient:
    """
    HashiCorp Vault client for secrets management

    This client uses the KV v2 secrets engine. Each side's secret holds a
    ``url`` field with a full connection URL.
    """

    def __init__(
        self,
        vault_addr: Optional[str] = None,
        vault_token: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: float = 10.0,
    ):
        """
        Initialize Vault client

        Args:
            vault_addr: Vault server address (default: from VAULT_ADDR env var)
            vault_token: Vault authentication token (default: from VAULT_TOKEN env var)
            namespace: Vault namespace (optional, for Vault Enterprise)
            timeout: HTTP request timeout in seconds

        Raises:
            ValueError: If vault_addr or vault_token are not provided
        """
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        self.vault_token = vault_token or os.getenv("VAULT_TOKEN")
        self.namespace = namespace or os.getenv("VAULT_NAMESPACE")
        self.timeout = timeout

        if not self.vault_addr:
            raise ValueError(
                "Vault address not provided. Set VAULT_ADDR environment variable "
                "or pass vault_addr parameter."
            )

        if not self.vault_token:
            raise ValueError(
                "Vault token not provided. Set VAULT_TOKEN environment variable "
                "or pass vault_token parameter."
            )

        self.vault_addr = self.vault_addr.rstrip("/")

        self.headers = {
            "X-Vault-Token": self.vault_token,
            "Content-Type": "application/json",
        }
        if self.namespace:
            self.headers["X-Vault-Namespace"] = self.namespace

        logger.info(f"Initialized Vault client for {self.vault_addr}")

    def get_secret(self, secret_path: str) -> Dict[str, Any]:
        """
        Fetch secret from Vault KV v2 secrets engine

        Args:
            secret_path: Path to secret (e.g., "secret/tablediff/source")

        Returns:
            Dictionary containing secret data

        Raises:
            ValueError: If secret_path is invalid or the secret is missing/empty
            requests.RequestException: If Vault request fails
        """
        if not secret_path or not isinstance(secret_path, str):
            raise ValueError("secret_path must be a non-empty string")

        if ".." in secret_path or secret_path.startswith("//"):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Path traversal attempts are not allowed."
            )

        if not VALID_SECRET_PATH.match(secret_path):
            raise ValueError(
                f"Invalid secret_path: {secret_path}. "
                "Only alphanumeric characters, slashes, underscores, and hyphens are allowed."
            )

        # KV v2 requires /data/ after the mount point
        if "/data/" not in secret_path:
            mount, _, rest = secret_path.partition("/")
            secret_path = f"{mount}/data/{rest}" if rest else f"{mount}/data"

        url = f"{self.vault_addr}/v1/{secret_path}"
        logger.debug(f"Fetching secret from: {url}")

        response = requests.get(url, headers=self.headers, timeout=self.timeout)

        if response.status_code == 404:
            raise ValueError(f"Secret not found at path: {secret_path}")

        response.raise_for_status()

        secret_data = response.json().get("data", {}).get("data", {})
        if not secret_data:
            raise ValueError(f"No data found in secret at path: {secret_path}")

        return secret_data

    def get_connection_url(self, side: str, prefix: str = DEFAULT_SECRET_PREFIX) -> str:
        """
        Fetch the connection URL for one side of the comparison

        Args:
            side: "source" or "target"
            prefix: Secret path prefix (default: secret/tablediff)

        Returns:
            Connection URL stored in the secret's ``url`` field

        Raises:
            ValueError: If side is invalid or the secret has no url
        """
        if side not in VALID_SIDES:
            raise ValueError(f"Invalid side: {side!r}. Must be one of {VALID_SIDES}.")

        secret_data = self.get_secret(f"{prefix.rstrip('/')}/{side}")

        url = secret_data.get("url")
        if not url:
            raise ValueError(f"Secret for {side} has no 'url' field")

        logger.info(f"Fetched {side} connection URL from Vault")
        return url

    def health_check(self) -> bool:
        """
        Check if Vault is accessible and healthy

        Returns:
            True if Vault is healthy, False otherwise
        """
        url = f"{self.vault_addr}/v1/sys/health"

        try:
            response = requests.get(url, timeout=5)
            # 200 active, 429 standby, 472 DR secondary, 473 performance standby
            return response.status_code in (200, 429, 472, 473)
        except requests.RequestException as e:
            logger.error(f"Vault health check failed: {e}")
            return False
