"""HTTP plumbing shared by the courier adapters."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Any

import httpx

from ..config import COURIER_TIMEOUT, SIMULATION_DELAY
from ..error_classifier import TEXT_PREVIEW_LIMIT, extract_message, raise_for_response
from ..errors import NetworkError, NetworkTimeoutError, ProviderRejectionError
from ..response_body import JsonBody, dig, parse_body
from .protocol import DispatchRequest, DispatchResult

logger = logging.getLogger(__name__)


class HttpCourier:
    """Base for adapters that talk JSON over HTTPS with httpx."""

    name: str = ""
    simulation_prefix: str = ""
    # Key paths tried in order when looking for the tracking id
    tracking_id_fields: tuple[tuple[str, ...], ...] = ()

    def __init__(
        self,
        *,
        timeout: float = COURIER_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        simulation_delay: float = SIMULATION_DELAY,
    ):
        self.timeout = timeout
        self.transport = transport
        self.simulation_delay = simulation_delay

    def _client(self, base_url: str, headers: dict[str, str] | None = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Accept": "application/json", **(headers or {})},
            timeout=httpx.Timeout(self.timeout),
            transport=self.transport,
        )

    async def _request(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        *,
        context: str,
        **kwargs: Any,
    ) -> JsonBody:
        """
        Perform one request and return its JSON body.

        Raises:
            NetworkTimeoutError: No response within the timeout.
            NetworkError: Connection-level failure.
            CourierError: Non-2xx response (classified).
            ProviderRejectionError: 2xx response that is not JSON.
        """
        try:
            response = await client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning("%s timed out after %ss: %s", context, self.timeout, e)
            raise NetworkTimeoutError(
                f"{context} timed out after {self.timeout:g} seconds. "
                "The courier may still have received the request.",
                provider=self.name,
            ) from e
        except httpx.TransportError as e:
            logger.warning("%s network failure: %s", context, e)
            raise NetworkError(
                f"{context} could not reach the courier: {e}", provider=self.name
            ) from e

        raise_for_response(response, context, provider=self.name)

        body = parse_body(response.content)
        if not isinstance(body, JsonBody) or not body.is_object:
            raise ProviderRejectionError(
                f"{context} returned an unexpected response: "
                f"{extract_message(body.raw)[:TEXT_PREVIEW_LIMIT]}",
                response.status_code,
                self.name,
            )
        return body

    def _tracking_id(self, body: JsonBody) -> str | None:
        for path in self.tracking_id_fields:
            value = dig(body.data, path)
            if value not in (None, ""):
                return str(value)
        return None

    def _accept(self, body: JsonBody, request: DispatchRequest, context: str) -> DispatchResult:
        """Build the result from a success body, or reject it if no id came back."""
        tracking_id = self._tracking_id(body)
        if tracking_id is None:
            raise ProviderRejectionError(
                f"{context} succeeded but no tracking id was returned: "
                f"{extract_message(body.raw)}",
                provider=self.name,
            )
        logger.info(
            "%s accepted order %s (tracking id %s)",
            self.name,
            request.merchant_order_id,
            tracking_id,
        )
        return DispatchResult(
            courier=self.name,
            tracking_id=tracking_id,
            message=str(body.get("message") or ""),
            raw=body.data,
        )

    async def _simulate(self, request: DispatchRequest) -> DispatchResult:
        """Fake a successful dispatch when no credentials are configured."""
        logger.info(
            "Simulating %s dispatch for order %s (no credentials configured)",
            self.name,
            request.merchant_order_id,
        )
        await asyncio.sleep(self.simulation_delay)
        return DispatchResult(
            courier=self.name,
            tracking_id=f"{self.simulation_prefix}-{random.randint(0, 99999)}",
            message="Order placed successfully (Simulation)",
            simulated=True,
        )
