import json
import logging
from collections.abc import Iterator
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from solving.errors import DecodingError

logger = logging.getLogger(__name__)

_CLOSERS = {"{": "}", "[": "]"}

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def iter_object_spans(text: str) -> Iterator[str]:
    """Yield every balanced top-level ``{...}`` span in ``text``, in order.

    Brackets are matched with a stack, and anything inside a JSON string
    literal (including escaped quotes) is ignored, so braces in explanation
    text do not end the object early. Quotes in the prose around an object
    are not tracked.
    """
    start = text.find("{")
    while start != -1:
        stack: list[str] = []
        in_string = False
        escaped = False
        end = -1
        for pos in range(start, len(text)):
            ch = text[pos]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch in _CLOSERS:
                stack.append(_CLOSERS[ch])
            elif ch in "}]":
                if not stack or stack.pop() != ch:
                    break
                if not stack:
                    end = pos
                    break
        if end != -1:
            yield text[start:end + 1]
            start = text.find("{", end + 1)
        else:
            start = text.find("{", start + 1)


def find_json_object(text: str) -> str | None:
    """First balanced object span in ``text``, or None."""
    return next(iter_object_spans(text or ""), None)


def extract_json_object(text: str) -> dict[str, Any]:
    raw = (text or "").strip()
    if not raw:
        raise DecodingError("Model returned an empty response")

    for span in iter_object_spans(raw):
        try:
            payload = json.loads(span)
        except json.JSONDecodeError:
            logger.debug("Skipping balanced span that is not JSON: %.80s", span)
            continue
        if isinstance(payload, dict):
            return payload

    raise DecodingError(f"No JSON object found in model output: {raw[:200]!r}")


class ResponseDecoder:
    """Turns raw backend output into a validated answer set."""

    def decode(self, raw: Any, schema: type[SchemaT], batch: list) -> SchemaT:
        if isinstance(raw, BaseModel):
            raw = raw.model_dump(by_alias=True)
        if isinstance(raw, (str, bytes)):
            if isinstance(raw, bytes):
                raw = raw.decode("utf-8", errors="replace")
            payload = extract_json_object(raw)
        elif isinstance(raw, dict):
            payload = raw
        else:
            raise DecodingError(f"Unsupported model output type: {type(raw).__name__}")

        try:
            answer_set = schema.model_validate(payload)
        except ValidationError as exc:
            raise DecodingError(f"Model output does not match {schema.__name__}: {exc}") from exc

        try:
            answer_set.check_batch(batch)
        except ValueError as exc:
            raise DecodingError(str(exc)) from exc

        return answer_set
