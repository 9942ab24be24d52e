"""Secrets providers (environment, HashiCorp Vault)."""

from .client import (
    SECRET_BINDINGS,
    SecretsProvider,
    EnvSecretsProvider,
    VaultSecretsProvider,
    apply_secrets,
)

__all__ = [
    "SECRET_BINDINGS",
    "SecretsProvider",
    "EnvSecretsProvider",
    "VaultSecretsProvider",
    "apply_secrets",
]
