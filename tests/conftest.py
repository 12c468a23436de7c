"""Pytest fixtures for storefront tests."""

import json
import tempfile
from pathlib import Path

import httpx
import pytest

from storefront.app import build_context
from storefront.config import AppConfig
from storefront.conversions import RetryScheduler
from storefront.lifecycle import CartLine, CustomerDetails
from storefront.models import (
    PIXEL_ACTIVE,
    CourierSettings,
    PixelSettings,
    SteadfastCredentials,
    PathaoCredentials,
)
from storefront.record_store import RecordStore


class RecordingSleep:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def json_response(status_code: int, data, headers=None) -> httpx.Response:
    return httpx.Response(
        status_code,
        content=json.dumps(data).encode(),
        headers={"Content-Type": "application/json", **(headers or {})},
    )


def html_response(status_code: int, html: str) -> httpx.Response:
    return httpx.Response(
        status_code, content=html.encode(), headers={"Content-Type": "text/html"}
    )


class Recorder:
    """MockTransport handler that replays queued responses and records requests."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(request)
        return response

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)

    def json_bodies(self) -> list:
        return [json.loads(r.content) if r.content else None for r in self.requests]


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def store(temp_dir):
    """RecordStore on a fresh snapshot (seeded)."""
    return RecordStore(temp_dir / "storefront.json")


@pytest.fixture
def customer():
    return CustomerDetails(
        name="Rahim Uddin",
        email="Rahim@Example.com ",
        phone="+880 1712-345678",
        address="House 12, Road 5",
        location="Dhanmondi",
        zip_code="1209",
    )


@pytest.fixture
def recording_sleep():
    return RecordingSleep()


@pytest.fixture
def make_context(temp_dir, recording_sleep):
    """Factory for an AppContext whose outbound calls go to `handler`."""

    def _make(handler=None):
        transport = httpx.MockTransport(handler) if handler is not None else None
        return build_context(
            AppConfig(data_dir=temp_dir),
            transport=transport,
            scheduler=RetryScheduler(sleep=recording_sleep),
            simulation_delay=0,
        )

    return _make


@pytest.fixture
def sample_order(make_context, customer):
    """A Pending order for one seed product, placed through the controller."""
    ctx = make_context()
    order = ctx.controller.place_order([CartLine("1", 2)], customer)
    return ctx, order


@pytest.fixture
def steadfast_credentials():
    return CourierSettings(
        steadfast=SteadfastCredentials(api_key="key-123", secret_key="secret-456"),
    )


@pytest.fixture
def pathao_credentials():
    return CourierSettings(
        pathao=PathaoCredentials(
            client_id="cid",
            client_secret="csecret",
            store_id="77",
            username="ops@example.com",
            password="pw",
        ),
    )


@pytest.fixture
def active_pixel():
    return PixelSettings(
        pixel_id="123456",
        access_token="token-abc",
        test_event_code="TEST42",
        status=PIXEL_ACTIVE,
    )
