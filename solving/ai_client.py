import asyncio
import json
import logging
import socket
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel

from config.settings import settings
from services.credentials import CredentialProvider
from solving.decoder import ResponseDecoder
from solving.errors import AuthError, BackendError

logger = logging.getLogger(__name__)

GEMINI_URL = "{base}/models/{model}:generateContent?key={key}"

AUTH_MARKERS = ("api key not valid", "api_key_invalid", "api key expired", "permission_denied")

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Keys of a JSON schema node that Gemini's responseSchema understands
_SCHEMA_KEYS = ("type", "properties", "required", "items", "description", "enum")

# Slack on top of the socket timeout before the run stops waiting on the executor
GUARD_MARGIN_SECONDS = 5.0


@dataclass
class GenerationRequest:
    model: str
    prompt: str
    schema: type[BaseModel]


class GenerativeBackend(Protocol):
    def generate(self, request: GenerationRequest, api_key: str, timeout: float) -> Any:
        """Return a parsed JSON object, or free text expected to contain one."""
        ...


def response_schema(model: type[BaseModel]) -> dict[str, Any]:
    """``model``'s JSON schema by alias, with $refs inlined and unsupported keys dropped."""
    raw = model.model_json_schema(by_alias=True)
    defs = raw.get("$defs", {})

    def convert(node: dict[str, Any]) -> dict[str, Any]:
        if "$ref" in node:
            node = defs[node["$ref"].rsplit("/", 1)[-1]]
        out: dict[str, Any] = {}
        for key in _SCHEMA_KEYS:
            if key not in node:
                continue
            value = node[key]
            if key == "type":
                value = str(value).upper()
            elif key == "properties":
                value = {name: convert(sub) for name, sub in value.items()}
            elif key == "items":
                value = convert(value)
            out[key] = value
        return out

    return convert(raw)


def _looks_like_auth_failure(code: int, body: str) -> bool:
    if code in (401, 403):
        return True
    lowered = body.lower()
    return code == 400 and any(marker in lowered for marker in AUTH_MARKERS)


class GeminiBackend:
    """Single generateContent call against the Gemini REST API."""

    def __init__(
        self,
        api_base: str | None = None,
        structured_output: bool | None = None,
        send_schema: bool | None = None,
    ):
        self.api_base = (api_base or settings.gemini_api_base).rstrip("/")
        self.structured_output = settings.structured_output if structured_output is None else structured_output
        self.send_schema = settings.send_response_schema if send_schema is None else send_schema

    def _payload(self, request: GenerationRequest) -> bytes:
        generation_config: dict[str, Any] = {
            "temperature": settings.temperature,
            "maxOutputTokens": settings.max_output_tokens,
        }
        if self.structured_output:
            generation_config["responseMimeType"] = "application/json"
            if self.send_schema:
                generation_config["responseSchema"] = response_schema(request.schema)
        return json.dumps({
            "contents": [{"parts": [{"text": request.prompt}]}],
            "generationConfig": generation_config,
        }).encode()

    def generate(self, request: GenerationRequest, api_key: str, timeout: float) -> Any:
        url = GEMINI_URL.format(base=self.api_base, model=request.model, key=api_key)
        req = urllib.request.Request(
            url,
            data=self._payload(request),
            headers={"Content-Type": "application/json"},
            method="POST",
        )

        logger.info("Calling Gemini model: %s", request.model)
        try:
            with urllib.request.urlopen(req, timeout=timeout) as resp:
                raw_body = resp.read()
        except urllib.error.HTTPError as e:
            body = e.read().decode(errors="replace")
            if _looks_like_auth_failure(e.code, body):
                raise AuthError(f"Gemini rejected the API key (HTTP {e.code})") from e
            raise BackendError(f"Gemini {request.model} HTTP {e.code}: {body[:500]}") from e
        except (socket.timeout, TimeoutError) as e:
            raise BackendError(f"Gemini {request.model} timed out after {timeout:.0f}s") from e
        except urllib.error.URLError as e:
            raise BackendError(f"Gemini {request.model} network error: {e.reason}") from e

        try:
            data = json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise BackendError(f"Gemini returned a non-JSON envelope: {raw_body[:200]!r}") from e

        candidates = data.get("candidates") or []
        if not candidates:
            raise BackendError(f"Gemini returned no candidates: {str(data)[:300]}")

        parts = candidates[0].get("content", {}).get("parts") or [{}]
        text = "".join(part.get("text") or "" for part in parts).strip()
        logger.info("Model responded: %d chars", len(text))

        if self.structured_output:
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError:
                return text
            if isinstance(parsed, dict):
                return parsed
        return text


class AIClient:
    """Owns prompting, the single backend call per run, decoding and the auth policy."""

    def __init__(
        self,
        credentials: CredentialProvider,
        backend: GenerativeBackend | None = None,
        decoder: ResponseDecoder | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ):
        self.credentials = credentials
        self.backend = backend or GeminiBackend()
        self.decoder = decoder or ResponseDecoder()
        self.model = model or settings.gemini_model
        self.timeout = settings.request_timeout_seconds if timeout is None else timeout
        self.last_raw_output: Any = None

    async def _call_backend(self, request: GenerationRequest, api_key: str) -> Any:
        loop = asyncio.get_running_loop()
        call = loop.run_in_executor(None, self.backend.generate, request, api_key, self.timeout)
        try:
            return await asyncio.wait_for(call, timeout=self.timeout + GUARD_MARGIN_SECONDS)
        except asyncio.TimeoutError as e:
            raise BackendError(f"Backend call exceeded {self.timeout:.0f}s") from e

    async def solve(self, prompt: str, schema: type[SchemaT], batch: list) -> SchemaT:
        api_key = await self.credentials.ensure()
        request = GenerationRequest(model=self.model, prompt=prompt, schema=schema)

        try:
            raw = await self._call_backend(request, api_key)
        except AuthError:
            self.credentials.invalidate()
            raise

        self.last_raw_output = raw
        return self.decoder.decode(raw, schema, batch)
