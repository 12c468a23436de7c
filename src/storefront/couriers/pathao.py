"""Pathao courier adapter (password-grant token, then bearer-authenticated order)."""

from __future__ import annotations

import logging

import httpx

from ..config import PATHAO_LIVE_URL, PATHAO_SANDBOX_URL
from ..errors import AuthenticationError
from ..models import COURIER_PATHAO, PathaoCredentials
from .base import HttpCourier
from .normalize import clean_text
from .protocol import DispatchRequest, DispatchResult

logger = logging.getLogger(__name__)

ADDRESS_LIMIT = 220
NOTE_LIMIT = 500
NAME_LIMIT = 100

DEFAULT_CITY_ID = 1  # Dhaka
DEFAULT_ZONE_ID = 1
ITEM_TYPE_PARCEL = 2
DELIVERY_TYPE_NORMAL = 48


def pathao_base_url(credentials: PathaoCredentials) -> str:
    if credentials.base_url:
        return credentials.base_url
    if credentials.mode == "sandbox":
        return PATHAO_SANDBOX_URL
    return PATHAO_LIVE_URL


class PathaoCourier(HttpCourier):
    """Courier-A: exchanges credentials for a token before every submission."""

    name = COURIER_PATHAO
    simulation_prefix = "PTH"
    tracking_id_fields = (
        ("data", "consignment_id"),
        ("consignment_id",),
        ("data", "tracking_code"),
        ("tracking_code",),
        ("id",),
    )

    async def _issue_token(
        self, client: httpx.AsyncClient, credentials: PathaoCredentials
    ) -> str:
        body = await self._request(
            client,
            "POST",
            "/issue-token",
            context="Pathao authentication",
            json={
                "client_id": credentials.client_id,
                "client_secret": credentials.client_secret,
                "username": credentials.username,
                "password": credentials.password,
                "grant_type": "password",
            },
        )
        token = body.get("access_token")
        if not token:
            raise AuthenticationError(
                f"Pathao did not issue an access token: {body.get('message') or 'no token in response'}",
                provider=self.name,
            )
        return str(token)

    async def verify(self, credentials: PathaoCredentials) -> None:
        """Confirm the credentials by performing the token exchange."""
        if not credentials.is_configured:
            raise AuthenticationError(
                "Pathao client id and client secret are required", provider=self.name
            )
        async with self._client(pathao_base_url(credentials)) as client:
            await self._issue_token(client, credentials)
        logger.info("Pathao credentials verified")

    def build_payload(self, request: DispatchRequest, credentials: PathaoCredentials) -> dict:
        payload = {
            "store_id": credentials.store_id,
            "merchant_order_id": request.merchant_order_id,
            "recipient_name": clean_text(request.recipient_name, NAME_LIMIT),
            "recipient_phone": request.recipient_phone,
            "recipient_address": clean_text(request.recipient_address, ADDRESS_LIMIT),
            "recipient_city": DEFAULT_CITY_ID,
            "recipient_zone": DEFAULT_ZONE_ID,
            "amount_to_collect": request.cod_amount,
            "item_type": ITEM_TYPE_PARCEL,
            "delivery_type": DELIVERY_TYPE_NORMAL,
            "item_quantity": request.item_quantity,
            "item_weight": request.weight,
        }
        note = clean_text(request.note, NOTE_LIMIT)
        if note:
            payload["special_instruction"] = note
        return payload

    async def dispatch(
        self, request: DispatchRequest, credentials: PathaoCredentials
    ) -> DispatchResult:
        """Create a Pathao order; merchant_order_id is the Order id."""
        if not credentials.is_configured:
            return await self._simulate(request)

        logger.info("Dispatching order %s to Pathao", request.merchant_order_id)
        async with self._client(pathao_base_url(credentials)) as client:
            token = await self._issue_token(client, credentials)
            body = await self._request(
                client,
                "POST",
                "/orders",
                context="Pathao create order",
                json=self.build_payload(request, credentials),
                headers={"Authorization": f"Bearer {token}"},
            )
        return self._accept(body, request, "Pathao create order")
