"""Checkout-funnel event delivery to the browser tag and the conversion API."""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable

import httpx

from ..config import CONVERSION_TIMEOUT, GRAPH_HOST
from ..error_classifier import extract_message
from ..models import PIXEL_ACTIVE, CartItem, Order, PixelSettings, Product
from .retry import AttemptOutcome, RetryScheduler
from .tag import BrowserTag

logger = logging.getLogger(__name__)

EVENT_PURCHASE = "Purchase"
EVENT_ADD_TO_CART = "AddToCart"
EVENT_INITIATE_CHECKOUT = "InitiateCheckout"

STATUS_SUCCESS = "Success"
STATUS_FAILED = "Failed"


@dataclass
class DeliveryStats:
    sent: int = 0
    failed: int = 0
    last_status: str | None = None  # "Success" | "Failed"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def normalize_identity(value: str) -> str:
    """
    Trim and lower-case a user identifier.

    The conversion API expects SHA-256 hashes here; values are sent
    normalized but unhashed.
    """
    return (value or "").strip().lower()


def purchase_user_data(order: Order) -> dict[str, list[str]]:
    first, _, last = (order.customer_name or "").strip().partition(" ")
    return {
        "em": [normalize_identity(order.customer_email)],
        "ph": [normalize_identity(order.customer_phone)],
        "fn": [normalize_identity(first)],
        "ln": [normalize_identity(last)],
    }


class ConversionPipeline:
    """
    Reports funnel events without ever blocking or failing the caller.

    Each event goes to the browser tag (if loaded) and, when an access
    token is configured, to the conversion API through the retry
    scheduler. Outcomes are visible only through `stats()`.
    """

    def __init__(
        self,
        *,
        graph_host: str = GRAPH_HOST,
        timeout: float = CONVERSION_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        scheduler: RetryScheduler | None = None,
        tag: BrowserTag | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.graph_host = graph_host.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.scheduler = scheduler or RetryScheduler()
        self.tag = tag or BrowserTag()
        self._clock = clock
        self._stats = DeliveryStats()

    def stats(self) -> DeliveryStats:
        """Copy of the process-wide delivery counters."""
        return DeliveryStats(**asdict(self._stats))

    def _record(self, outcome: AttemptOutcome) -> None:
        if outcome.succeeded:
            self._stats.sent += 1
            self._stats.last_status = STATUS_SUCCESS
        else:
            self._stats.failed += 1
            self._stats.last_status = STATUS_FAILED

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.graph_host,
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    def build_envelope(
        self, event_name: str, data: dict[str, Any], settings: PixelSettings
    ) -> dict[str, Any]:
        event: dict[str, Any] = {
            "event_name": event_name,
            "event_time": int(self._clock()),
            "action_source": "website",
            "user_data": data.get("user_data") or {},
            "custom_data": {
                "currency": settings.currency or "BDT",
                "value": data.get("value") or 0,
                "content_ids": list(data.get("content_ids") or []),
                "content_type": data.get("content_type") or "product",
            },
        }
        if settings.test_event_code:
            event["test_event_code"] = settings.test_event_code
        return {"data": [event]}

    async def send_event(
        self, event_name: str, data: dict[str, Any], settings: PixelSettings
    ) -> AttemptOutcome:
        """One POST to the conversion API. Failures come back as outcomes."""
        envelope = self.build_envelope(event_name, data, settings)
        try:
            async with self._client() as client:
                response = await client.post(
                    f"/{settings.pixel_id}/events",
                    params={"access_token": settings.access_token},
                    json=envelope,
                )
        except httpx.TimeoutException:
            return AttemptOutcome.failure(
                f"timed out after {self.timeout:g} seconds"
            )
        except httpx.InvalidURL as e:
            return AttemptOutcome.failure(f"invalid request URL: {e}")
        except httpx.HTTPError as e:
            return AttemptOutcome.failure(f"network error: {e}")

        if not response.is_success:
            return AttemptOutcome.failure(
                f"HTTP {response.status_code}: {extract_message(response.content)}",
                response.status_code,
            )
        return AttemptOutcome.success(response.status_code)

    def track_event(
        self, event_name: str, data: dict[str, Any], settings: PixelSettings
    ) -> asyncio.Task | None:
        """
        Fire an event on both paths and return at once.

        Skipped unless the pixel is Active with an id. The server path runs
        only with an access token; its task is returned for callers that
        want to await it.
        """
        if settings.status != PIXEL_ACTIVE or not settings.pixel_id:
            return None

        self.tag.track(event_name, data)

        if not settings.access_token:
            return None

        async def attempt(n: int) -> AttemptOutcome:
            return await self.send_event(event_name, data, settings)

        try:
            return self.scheduler.schedule(
                attempt, on_done=self._record, label=f"Conversion {event_name}"
            )
        except RuntimeError:
            logger.warning("No running event loop; %s event not delivered", event_name)
            return None

    def track_purchase(self, order: Order, settings: PixelSettings) -> asyncio.Task | None:
        data = {
            "value": order.total_price,
            "content_ids": [item.product.id for item in order.items],
            "content_type": "product",
            "user_data": purchase_user_data(order),
        }
        return self.track_event(EVENT_PURCHASE, data, settings)

    def track_add_to_cart(
        self, product: Product, quantity: int, settings: PixelSettings
    ) -> asyncio.Task | None:
        data = {
            "value": product.price * quantity,
            "content_ids": [product.id],
            "content_type": "product",
        }
        return self.track_event(EVENT_ADD_TO_CART, data, settings)

    def track_initiate_checkout(
        self, items: list[CartItem], settings: PixelSettings
    ) -> asyncio.Task | None:
        data = {
            "value": sum(item.line_total for item in items),
            "content_ids": [item.product.id for item in items],
            "content_type": "product",
        }
        return self.track_event(EVENT_INITIATE_CHECKOUT, data, settings)

    async def verify_connection(self, settings: PixelSettings) -> AttemptOutcome:
        """Health-check the pixel id and access token against the Graph API."""
        if not settings.pixel_id or not settings.access_token:
            return AttemptOutcome.failure("pixel id and access token are required")
        try:
            async with self._client() as client:
                response = await client.get(
                    f"/{settings.pixel_id}",
                    params={"access_token": settings.access_token, "fields": "id"},
                )
        except httpx.InvalidURL as e:
            logger.warning("Pixel health check not sent, invalid URL: %s", e)
            return AttemptOutcome.failure(f"invalid request URL: {e}")
        except httpx.HTTPError as e:
            logger.warning("Pixel health check failed: %s", e)
            return AttemptOutcome.failure(f"network error: {e}")

        if not response.is_success:
            message = extract_message(response.content)
            logger.warning(
                "Pixel health check rejected (HTTP %s): %s", response.status_code, message
            )
            return AttemptOutcome.failure(message, response.status_code)
        return AttemptOutcome.success(response.status_code)

    async def shutdown(self) -> None:
        await self.scheduler.shutdown()
