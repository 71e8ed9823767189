import asyncio
import getpass
import json
import logging
from pathlib import Path
from typing import Awaitable, Callable

from config.settings import settings
from solving.errors import MissingKeyError

logger = logging.getLogger(__name__)

CREDENTIAL_KEY = "GOOGLE_API_KEY"

KeyPrompt = Callable[[], Awaitable[str | None]]


class KeyStore:
    """Durable single-value store: a small JSON file under one fixed key."""

    def __init__(self, path: Path | None = None, key: str = CREDENTIAL_KEY):
        self.path = path or settings.credential_file
        self.key = key

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except Exception as exc:
            logger.warning("Failed to read credential file; ignoring it: %s", exc)
            return {}
        return payload if isinstance(payload, dict) else {}

    def read(self) -> str | None:
        value = self._load().get(self.key)
        return value if isinstance(value, str) and value else None

    def write(self, value: str) -> None:
        payload = self._load()
        payload[self.key] = value
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        try:
            self.path.chmod(0o600)
        except OSError:
            pass

    def remove(self) -> None:
        payload = self._load()
        if self.key not in payload:
            return
        payload.pop(self.key)
        if payload:
            self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        else:
            self.path.unlink(missing_ok=True)


async def prompt_for_key() -> str | None:
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, lambda: getpass.getpass("\nPlease enter your Google API key (it will be saved locally): ")
    )


class CredentialProvider:
    """Lazily obtains the API key, at most one interactive prompt per invalidation."""

    def __init__(self, store: KeyStore | None = None, prompt: KeyPrompt | None = None):
        self.store = store or KeyStore()
        self._prompt = prompt or prompt_for_key
        self._cached: str | None = None
        self._lock = asyncio.Lock()

    @property
    def has_credential(self) -> bool:
        return self._cached is not None

    async def ensure(self) -> str:
        if self._cached:
            return self._cached

        async with self._lock:
            if self._cached:
                return self._cached

            stored = self.store.read()
            if stored:
                self._cached = stored
                return stored

            logger.info("No stored API key, asking the user")
            entered = ((await self._prompt()) or "").strip()
            if not entered:
                raise MissingKeyError("API key is required")

            self.store.write(entered)
            self._cached = entered
            logger.info("API key saved to %s", self.store.path)
            return entered

    def invalidate(self) -> None:
        self._cached = None
        self.store.remove()
        logger.info("API key cleared")
