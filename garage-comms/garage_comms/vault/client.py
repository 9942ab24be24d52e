"""
Secrets Providers
=================
Resolve the OTP secret and provider credentials from the environment or
HashiCorp Vault.

Usage:
    from garage_comms.vault import VaultSecretsProvider, apply_secrets

    settings = apply_secrets(Settings(), VaultSecretsProvider())
"""

import os
from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import hvac
import structlog

from garage_comms.config import Settings
from garage_comms.exceptions import ConfigurationError

logger = structlog.get_logger(__name__)

# Secret name -> (settings section, attribute)
SECRET_BINDINGS = {
    "OTP_SECRET": ("otp", "secret"),
    "TWILIO_ACCOUNT_SID": ("twilio", "account_sid"),
    "TWILIO_AUTH_TOKEN": ("twilio", "auth_token"),
    "SENDGRID_API_KEY": ("sendgrid", "api_key"),
}


class SecretsProvider(ABC):
    """Source of named secrets."""

    @abstractmethod
    def get(self, name: str) -> Optional[str]:
        """Return the secret value, or None when it is not defined."""


class EnvSecretsProvider(SecretsProvider):
    """Secrets from process environment variables."""

    def get(self, name: str) -> Optional[str]:
        return os.environ.get(name) or None


class VaultSecretsProvider(SecretsProvider):
    """
    Secrets from one Vault KV v2 path.

    The path is read once and cached; call ``refresh()`` after rotation.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        token: Optional[str] = None,
        mount_point: str = "garage",
        path: str = "comms",
        client: Optional[hvac.Client] = None,
    ):
        self.url = url or os.environ.get("VAULT_ADDR", "http://127.0.0.1:8200")
        self.token = token or os.environ.get("VAULT_TOKEN")
        self.mount_point = mount_point
        self.path = path
        self._client = client
        self._cache: Optional[Dict[str, Any]] = None

    @property
    def client(self) -> hvac.Client:
        """Lazy-loaded Vault client."""
        if self._client is None:
            self._client = hvac.Client(url=self.url, token=self.token)
            if not self._client.is_authenticated():
                self._client = None
                raise ConfigurationError("Vault authentication failed. Check VAULT_TOKEN.")
        return self._client

    def _read(self) -> Dict[str, Any]:
        try:
            secret = self.client.secrets.kv.v2.read_secret_version(
                path=self.path,
                mount_point=self.mount_point,
                raise_on_deleted_version=True,
            )
        except hvac.exceptions.InvalidPath:
            logger.error("vault_path_not_found", path=f"{self.mount_point}/{self.path}")
            raise
        return secret["data"]["data"]

    def refresh(self) -> None:
        self._cache = None

    def get(self, name: str) -> Optional[str]:
        if self._cache is None:
            self._cache = self._read()
            logger.info("vault_secrets_loaded", path=f"{self.mount_point}/{self.path}")
        value = self._cache.get(name)
        return str(value) if value else None


def apply_secrets(settings: Settings, provider: SecretsProvider) -> Settings:
    """
    Overwrite credential fields on ``settings`` with values from ``provider``.

    Secrets the provider does not define leave the existing value alone.
    """
    for name, (section, attribute) in SECRET_BINDINGS.items():
        value = provider.get(name)
        if value:
            setattr(getattr(settings, section), attribute, value)
    return settings
