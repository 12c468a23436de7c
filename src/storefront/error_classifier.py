"""Turn raw provider HTTP failures into one human-readable error."""

import logging
import re
from datetime import datetime, timezone
from html.parser import HTMLParser
from typing import Any

import httpx

from .errors import (
    AuthenticationError,
    AuthorizationError,
    CourierError,
    CourierValidationError,
    RateLimitedError,
    ServerFaultError,
    ServiceUnavailableError,
)
from .response_body import JsonBody, decode_body, parse_body

logger = logging.getLogger(__name__)

TEXT_PREVIEW_LIMIT = 500
FALLBACK_MESSAGE = "Unreadable response from server"

DUPLICATE_INVOICE_MESSAGE = (
    "Duplicate invoice: the courier already has a consignment for this order. "
    "Check whether this invoice was already submitted before retrying."
)

_DIAGNOSTIC_PATTERN = re.compile(
    r"[^\n]*(?:SQLSTATE|Exception|Error|Duplicate|Undefined)[^\n]*"
)


class _MarkupText(HTMLParser):
    """Collects visible text and the first <h1> from an HTML document."""

    _SKIP = {"script", "style", "head", "title"}

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.parts: list[str] = []
        self.h1: str | None = None
        self._h1_parts: list[str] | None = None
        self._skip_depth = 0

    def handle_starttag(self, tag: str, attrs: Any) -> None:
        if tag in self._SKIP:
            self._skip_depth += 1
        elif tag == "h1" and self.h1 is None:
            self._h1_parts = []

    def handle_endtag(self, tag: str) -> None:
        if tag in self._SKIP and self._skip_depth:
            self._skip_depth -= 1
        elif tag == "h1" and self._h1_parts is not None:
            self.h1 = " ".join(" ".join(self._h1_parts).split())
            self._h1_parts = None

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        self.parts.append(data)
        if self._h1_parts is not None:
            self._h1_parts.append(data)

    @property
    def text(self) -> str:
        lines = (" ".join(chunk.split()) for chunk in "\n".join(self.parts).splitlines())
        return "\n".join(line for line in lines if line)


def _message_from_json(data: Any) -> str | None:
    """Pull a message out of the common error shapes."""
    if isinstance(data, str):
        return data.strip() or None
    if not isinstance(data, dict):
        return None

    message = data.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()

    error = data.get("error")
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"].strip()
    if isinstance(error, str) and error.strip():
        return error.strip()

    errors = data.get("errors")
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict) and isinstance(first.get("message"), str):
            return first["message"].strip()
        if isinstance(first, str):
            return first.strip()
    if isinstance(errors, dict) and errors:
        # Laravel-style {"field": ["msg", ...]}
        field_name, messages = next(iter(errors.items()))
        if isinstance(messages, list) and messages:
            return f"{field_name}: {messages[0]}"
        return f"{field_name}: {messages}"

    return None


def _message_from_markup(raw: str) -> str:
    """Best-effort message from an HTML or plain-text body."""
    lowered = raw.lower()
    if "duplicate" in lowered and "invoice" in lowered:
        return DUPLICATE_INVOICE_MESSAGE

    try:
        parser = _MarkupText()
        parser.feed(raw)
        parser.close()
        heading, text = parser.h1, parser.text
    except Exception:
        heading, text = None, raw

    if heading:
        return heading

    preview = text[:TEXT_PREVIEW_LIMIT]
    match = _DIAGNOSTIC_PATTERN.search(preview)
    if match:
        return match.group(0).strip()[:TEXT_PREVIEW_LIMIT]

    preview = " ".join(preview.split())
    if not preview:
        return FALLBACK_MESSAGE
    if len(text) > TEXT_PREVIEW_LIMIT:
        return preview + "..."
    return preview


def extract_message(raw: str | bytes | None) -> str:
    """
    Extract one display message from a response body.

    JSON bodies use the common `message` / `error` / `errors` shapes;
    anything else is treated as markup. Never raises.
    """
    try:
        body = parse_body(raw)
        if isinstance(body, JsonBody):
            message = _message_from_json(body.data)
            if message:
                if "duplicate" in message.lower() and "invoice" in message.lower():
                    return DUPLICATE_INVOICE_MESSAGE
                return message
            return body.raw.strip()[:TEXT_PREVIEW_LIMIT] or FALLBACK_MESSAGE
        return _message_from_markup(body.raw)
    except Exception:
        return FALLBACK_MESSAGE


def classify_response(
    status_code: int,
    raw: str | bytes | None,
    *,
    url: str = "",
    context: str = "",
    provider: str | None = None,
) -> CourierError:
    """
    Build the error for a failed response.

    Args:
        status_code: HTTP status of the response.
        raw: Response body, read once.
        url: Request URL (for diagnostics only).
        context: Free-text label of the operation, e.g. "SteadFast create order".
        provider: Courier name attached to the error.

    Returns:
        A CourierError subclass matching the status code.
    """
    text = decode_body(raw)
    detail = extract_message(text)
    label = context or "Request"

    logger.error(
        "%s failed: status=%s url=%s at=%s detail=%s",
        label,
        status_code,
        url,
        datetime.now(timezone.utc).isoformat(),
        detail,
    )
    if status_code == 500:
        logger.error("%s full 500 response body:\n%s", label, text)

    if status_code == 401:
        return AuthenticationError(
            f"Authentication failed: check the API credentials. ({detail})",
            status_code,
            provider,
        )
    if status_code == 403:
        return AuthorizationError(
            f"Access denied: these credentials are not allowed to do this. ({detail})",
            status_code,
            provider,
        )
    if status_code == 422:
        return CourierValidationError(
            f"Validation failed: {detail}", status_code, provider
        )
    if status_code == 429:
        return RateLimitedError(
            "Too many requests: wait a minute before trying again.",
            status_code,
            provider,
        )
    if status_code == 500:
        if detail == DUPLICATE_INVOICE_MESSAGE:
            return ServerFaultError(detail, status_code, provider)
        return ServerFaultError(
            f"Courier internal server error: {detail}. The order may or may not "
            "have been created; check the courier dashboard before resubmitting.",
            status_code,
            provider,
        )
    if status_code == 503:
        return ServiceUnavailableError(
            "Courier service is unavailable or under maintenance. Try again later.",
            status_code,
            provider,
        )
    if status_code > 500:
        return ServerFaultError(
            f"Courier server error (HTTP {status_code}): {detail}",
            status_code,
            provider,
        )
    return CourierError(
        f"{label} failed (HTTP {status_code}): {detail}", status_code, provider
    )


def raise_for_response(
    response: httpx.Response, context: str, provider: str | None = None
) -> None:
    """Raise a classified CourierError if `response` is not 2xx."""
    if response.is_success:
        return
    try:
        url = str(response.request.url)
    except RuntimeError:
        url = ""
    raise classify_response(
        response.status_code,
        response.content,
        url=url,
        context=context,
        provider=provider,
    )
