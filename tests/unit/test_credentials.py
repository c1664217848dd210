"""Unit tests for secure credential store helpers."""

from __future__ import annotations

import pytest
from keyring.errors import KeyringError

from scriptvoice.credentials import (
    FISH_AUDIO_API_KEY_ACCOUNT,
    TEXT_API_KEY_ACCOUNT,
    KeyringCredentialStore,
)


class FakeKeyringModule:
    """In-memory keyring stub for deterministic credential store tests."""

    def __init__(self) -> None:
        """Initialize fake storage dictionary."""

        self._storage: dict[tuple[str, str], str] = {}

    def get_keyring(self) -> object:
        """Return a backend object with a usable priority."""

        return type("Backend", (), {"priority": 1})()

    def get_password(self, service_name: str, account_name: str) -> str | None:
        """Return previously stored password if present."""

        return self._storage.get((service_name, account_name))

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        """Store password value for the service/account key."""

        self._storage[(service_name, account_name)] = value

    def delete_password(self, service_name: str, account_name: str) -> None:
        """Delete password value for the service/account key."""

        self._storage.pop((service_name, account_name), None)


class BrokenKeyringModule(FakeKeyringModule):
    """Keyring stub whose backend fails every operation."""

    def get_keyring(self) -> object:
        raise KeyringError("no backend")

    def get_password(self, service_name: str, account_name: str) -> str | None:
        raise KeyringError("no backend")

    def set_password(self, service_name: str, account_name: str, value: str) -> None:
        raise KeyringError("no backend")


def test_keyring_store_roundtrip_set_get_clear(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keyring store should set/get/clear keys per account."""

    fake_keyring = FakeKeyringModule()
    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", lambda: fake_keyring)

    assert store.is_available() is True
    assert store.get_api_key(TEXT_API_KEY_ACCOUNT) is None

    store.set_api_key(TEXT_API_KEY_ACCOUNT, "  abc123  ")
    store.set_api_key(FISH_AUDIO_API_KEY_ACCOUNT, "fish-1")
    assert store.get_api_key(TEXT_API_KEY_ACCOUNT) == "abc123"
    assert store.load_all() == {"text_api_key": "abc123", "fish_audio_api_key": "fish-1"}

    assert store.clear_api_key(TEXT_API_KEY_ACCOUNT) is True
    assert store.get_api_key(TEXT_API_KEY_ACCOUNT) is None
    assert store.clear_api_key(TEXT_API_KEY_ACCOUNT) is False
    assert store.load_all() == {"fish_audio_api_key": "fish-1"}


def test_keyring_store_degrades_when_backend_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    """Backend errors should read as unavailable and missing, and writes should fail loudly."""

    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", lambda: BrokenKeyringModule())

    assert store.is_available() is False
    assert store.get_api_key(FISH_AUDIO_API_KEY_ACCOUNT) is None
    assert store.clear_api_key(FISH_AUDIO_API_KEY_ACCOUNT) is False
    with pytest.raises(RuntimeError, match="unavailable"):
        store.set_api_key(FISH_AUDIO_API_KEY_ACCOUNT, "fish-1")


def test_keyring_store_rejects_unknown_accounts_and_blank_keys(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Unknown accounts and blank keys should raise `ValueError`."""

    store = KeyringCredentialStore()
    monkeypatch.setattr(store, "_load_keyring_module", lambda: FakeKeyringModule())

    with pytest.raises(ValueError):
        store.get_api_key("github_token")
    with pytest.raises(ValueError):
        store.set_api_key(TEXT_API_KEY_ACCOUNT, "   ")
