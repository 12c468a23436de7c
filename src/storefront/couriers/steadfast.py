"""SteadFast courier adapter (static Api-Key / Secret-Key headers)."""

from __future__ import annotations

import logging
from typing import Any

from ..config import STEADFAST_LIVE_URL
from ..error_classifier import extract_message
from ..errors import AuthenticationError, ProviderRejectionError
from ..models import COURIER_STEADFAST, SteadfastCredentials
from ..response_body import JsonBody
from .base import HttpCourier
from .normalize import clean_text
from .protocol import DispatchRequest, DispatchResult

logger = logging.getLogger(__name__)

ADDRESS_LIMIT = 250
NOTE_LIMIT = 500
NAME_LIMIT = 100
DEFAULT_NOTE = "Order from storefront"


def steadfast_base_url(credentials: SteadfastCredentials) -> str:
    return credentials.base_url or STEADFAST_LIVE_URL


def _inner_status_ok(value: Any) -> bool:
    try:
        return int(value) == 200
    except (TypeError, ValueError):
        return False


class SteadfastCourier(HttpCourier):
    """Courier-B: every request carries the API key pair; no token step.

    SteadFast reports failures in an inner ``status`` field even when the
    HTTP status is 200, so both layers are checked.
    """

    name = COURIER_STEADFAST
    simulation_prefix = "STF"
    tracking_id_fields = (
        ("consignment", "consignment_id"),
        ("consignment", "tracking_code"),
        ("consignment_id",),
        ("tracking_code",),
        ("data", "consignment_id"),
        ("id",),
    )

    def _headers(self, credentials: SteadfastCredentials) -> dict[str, str]:
        return {
            "Api-Key": credentials.api_key,
            "Secret-Key": credentials.secret_key,
            "Content-Type": "application/json",
        }

    def _check_inner_status(self, body: JsonBody, context: str) -> None:
        status = body.get("status")
        if not _inner_status_ok(status):
            raise ProviderRejectionError(
                f"{context} rejected by SteadFast (status {status}): {extract_message(body.raw)}",
                provider=self.name,
            )

    async def verify(self, credentials: SteadfastCredentials) -> None:
        """Read the account balance; any inner status other than 200 is a rejection."""
        if not credentials.is_configured:
            raise AuthenticationError(
                "SteadFast API key and secret key are required", provider=self.name
            )
        async with self._client(
            steadfast_base_url(credentials), self._headers(credentials)
        ) as client:
            body = await self._request(
                client, "GET", "/get_balance", context="SteadFast balance check"
            )
        self._check_inner_status(body, "SteadFast balance check")
        logger.info(
            "SteadFast credentials verified (balance %s)", body.get("current_balance")
        )

    def build_payload(self, request: DispatchRequest) -> dict:
        return {
            "invoice": request.merchant_order_id,
            "recipient_name": clean_text(request.recipient_name, NAME_LIMIT),
            "recipient_phone": request.recipient_phone,
            "recipient_address": clean_text(request.recipient_address, ADDRESS_LIMIT),
            "cod_amount": request.cod_amount,
            "note": clean_text(request.note, NOTE_LIMIT) or DEFAULT_NOTE,
        }

    async def dispatch(
        self, request: DispatchRequest, credentials: SteadfastCredentials
    ) -> DispatchResult:
        """Create a SteadFast consignment; invoice is the Order id."""
        if not credentials.is_configured:
            return await self._simulate(request)

        logger.info("Dispatching order %s to SteadFast", request.merchant_order_id)
        async with self._client(
            steadfast_base_url(credentials), self._headers(credentials)
        ) as client:
            body = await self._request(
                client,
                "POST",
                "/create_order",
                context="SteadFast create order",
                json=self.build_payload(request),
            )
        self._check_inner_status(body, "SteadFast create order")
        return self._accept(body, request, "SteadFast create order")
