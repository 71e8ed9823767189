from __future__ import annotations

import pytest

from fakes import PromptCounter, RecordingNotifier
from services.credentials import CredentialProvider, KeyStore


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def key_store(tmp_path) -> KeyStore:
    return KeyStore(tmp_path / "credentials.json")


@pytest.fixture
def prompt() -> PromptCounter:
    return PromptCounter("key-1", "key-2")


@pytest.fixture
def credentials(key_store, prompt) -> CredentialProvider:
    return CredentialProvider(store=key_store, prompt=prompt)
