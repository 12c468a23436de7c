"""Parsed provider response bodies.

A body is either JSON (``JsonBody``) or something else (``OpaqueBody``),
typically an HTML error page from a PHP backend. Parsing never raises.
"""

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class JsonBody:
    """Body that parsed as JSON."""

    data: Any
    raw: str

    @property
    def is_object(self) -> bool:
        return isinstance(self.data, dict)

    def get(self, key: str, default: Any = None) -> Any:
        if isinstance(self.data, dict):
            return self.data.get(key, default)
        return default


@dataclass(frozen=True)
class OpaqueBody:
    """Body that is not JSON (HTML, plain text, empty)."""

    raw: str


ResponseBody = JsonBody | OpaqueBody


def decode_body(raw: str | bytes | None) -> str:
    """Decode a body to text, replacing undecodable bytes."""
    if raw is None:
        return ""
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def parse_body(raw: str | bytes | None) -> ResponseBody:
    """Classify a response body as JSON or opaque text."""
    text = decode_body(raw)
    if not text.strip():
        return OpaqueBody(raw=text)
    try:
        return JsonBody(data=json.loads(text), raw=text)
    except ValueError:
        return OpaqueBody(raw=text)


def dig(data: Any, path: tuple[str, ...]) -> Any:
    """Follow a key path through nested dicts; None if any step is missing."""
    current = data
    for key in path:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current
