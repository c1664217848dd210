"""Secure credential storage helpers for the Scriptvoice CLI.

Responsibilities:
- Persist provider API keys in an OS-backed secure credential store.
- Provide deterministic read/write/delete operations per provider account.
- Avoid logging or exposing secret values in diagnostics.

Key types:
- `CredentialStore`: interface for provider credential persistence.
- `KeyringCredentialStore`: keyring-backed secure credential storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import ModuleType

import keyring
from keyring.errors import KeyringError

_DEFAULT_SERVICE_NAME = "scriptvoice"
TEXT_API_KEY_ACCOUNT = "text_api_key"
FISH_AUDIO_API_KEY_ACCOUNT = "fish_audio_api_key"
CREDENTIAL_ACCOUNTS = (TEXT_API_KEY_ACCOUNT, FISH_AUDIO_API_KEY_ACCOUNT)


class CredentialStore:
    """Interface for secure provider credential operations."""

    def is_available(self) -> bool:
        """Return whether secure credential operations are available."""

        raise NotImplementedError

    def get_api_key(self, account: str) -> str | None:
        """Load the stored API key for an account, when present."""

        raise NotImplementedError

    def set_api_key(self, account: str, api_key: str) -> None:
        """Persist an API key for an account."""

        raise NotImplementedError

    def clear_api_key(self, account: str) -> bool:
        """Delete a stored API key and return whether one existed."""

        raise NotImplementedError

    def load_all(self) -> dict[str, str]:
        """Return every stored key by account name, skipping missing ones."""

        loaded: dict[str, str] = {}
        for account in CREDENTIAL_ACCOUNTS:
            value = self.get_api_key(account)
            if value is not None:
                loaded[account] = value
        return loaded


@dataclass(slots=True)
class KeyringCredentialStore(CredentialStore):
    """Secure credential store backed by the `keyring` package."""

    service_name: str = _DEFAULT_SERVICE_NAME

    def _load_keyring_module(self) -> ModuleType:
        """Return the keyring module used for storage operations."""

        return keyring

    def is_available(self) -> bool:
        """Return `True` when a usable (non-fail) keyring backend is configured."""

        try:
            backend = self._load_keyring_module().get_keyring()
        except (KeyringError, RuntimeError):
            return False
        return getattr(backend, "priority", 1) > 0

    @staticmethod
    def _require_account(account: str) -> None:
        """Reject unknown account names."""

        if account not in CREDENTIAL_ACCOUNTS:
            raise ValueError(f"Unknown credential account `{account}`.")

    def get_api_key(self, account: str) -> str | None:
        """Get a normalized API key from keyring, returning `None` when missing."""

        self._require_account(account)
        try:
            value = self._load_keyring_module().get_password(self.service_name, account)
        except KeyringError:
            return None
        if value is None:
            return None
        normalized = value.strip()
        return normalized or None

    def set_api_key(self, account: str, api_key: str) -> None:
        """Persist a normalized API key in keyring."""

        self._require_account(account)
        normalized = api_key.strip()
        if not normalized:
            raise ValueError("API key must be a non-empty string.")
        try:
            self._load_keyring_module().set_password(self.service_name, account, normalized)
        except KeyringError as exc:
            raise RuntimeError(
                "Secure credential storage is unavailable on this system."
            ) from exc

    def clear_api_key(self, account: str) -> bool:
        """Remove the stored API key from keyring and report if one was present."""

        if self.get_api_key(account) is None:
            return False
        try:
            self._load_keyring_module().delete_password(self.service_name, account)
        except KeyringError:
            return False
        return True


def create_credential_store() -> CredentialStore:
    """Create the default secure credential store implementation."""

    return KeyringCredentialStore()
