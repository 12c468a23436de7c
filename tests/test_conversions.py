"""Tests for the conversion event pipeline."""

import asyncio

import httpx
import pytest

from storefront.conversions import (
    AttemptOutcome,
    BrowserTag,
    ConversionPipeline,
    RetryPolicy,
    RetryScheduler,
    normalize_identity,
)
from storefront.models import PIXEL_INACTIVE, CartItem, Order, PixelSettings, Product

from .conftest import Recorder, json_response


def make_pipeline(recorder, recording_sleep, clock=lambda: 1700000000.5):
    return ConversionPipeline(
        transport=recorder.transport,
        scheduler=RetryScheduler(sleep=recording_sleep),
        clock=clock,
    )


def make_order():
    return Order(
        id="250101-1234",
        customer_name="Rahim Uddin Khan",
        customer_email="  Rahim@Example.COM ",
        customer_phone="01712345678",
        customer_address="Road 1",
        items=[
            CartItem(product=Product(id="1", name="Soap", price=650.0), quantity=1),
            CartItem(product=Product(id="2", name="Soap", price=850.0), quantity=2),
        ],
        total_price=2350.0,
    )


class TestRetryScheduler:
    async def test_three_failures_two_retries_increasing_delays(self, recording_sleep):
        attempts = []

        async def attempt(n):
            attempts.append(n)
            return AttemptOutcome.failure("HTTP 500")

        scheduler = RetryScheduler(sleep=recording_sleep)
        outcome = await scheduler.run(attempt)

        assert not outcome.succeeded
        assert attempts == [1, 2, 3]
        assert recording_sleep.delays == [2, 4]

    async def test_success_stops_retrying(self, recording_sleep):
        attempts = []

        async def attempt(n):
            attempts.append(n)
            return AttemptOutcome.success(200) if n == 2 else AttemptOutcome.failure("x")

        outcome = await RetryScheduler(sleep=recording_sleep).run(attempt)

        assert outcome.succeeded
        assert attempts == [1, 2]
        assert recording_sleep.delays == [2]

    async def test_exception_counts_as_failed_attempt(self, recording_sleep):
        async def attempt(n):
            raise RuntimeError("boom")

        outcome = await RetryScheduler(sleep=recording_sleep).run(attempt)

        assert not outcome.succeeded
        assert "boom" in outcome.error

    async def test_schedule_reports_final_outcome(self, recording_sleep):
        outcomes = []

        async def attempt(n):
            return AttemptOutcome.success(200)

        scheduler = RetryScheduler(sleep=recording_sleep)
        task = scheduler.schedule(attempt, on_done=outcomes.append)
        await task

        assert outcomes == [AttemptOutcome.success(200)]
        assert scheduler.pending == 0

    async def test_shutdown_cancels_task_in_backoff(self):
        blocked = asyncio.Event()

        async def sleep_forever(delay):
            blocked.set()
            await asyncio.Event().wait()

        async def attempt(n):
            return AttemptOutcome.failure("down")

        outcomes = []
        scheduler = RetryScheduler(sleep=sleep_forever)
        task = scheduler.schedule(attempt, on_done=outcomes.append)
        await blocked.wait()

        await scheduler.shutdown()

        assert task.cancelled()
        assert outcomes == []
        assert scheduler.pending == 0

    def test_policy_delays(self):
        policy = RetryPolicy()

        assert [policy.delay(n) for n in (1, 2, 3)] == [2, 4, 8]
        assert policy.max_attempts == 3


class TestBrowserTag:
    def test_initialize_is_idempotent(self):
        tag = BrowserTag()

        assert tag.initialize("123")
        assert not tag.initialize("123")
        assert not tag.initialize("999")

        assert tag.drain() == [
            {"command": "init", "args": ["123"]},
            {"command": "track", "args": ["PageView"]},
        ]
        assert tag.pixel_id == "123"

    def test_track_requires_loaded_tag(self):
        tag = BrowserTag()

        assert not tag.track("Purchase", {"value": 1})
        assert tag.drain() == []

    def test_track_failure_is_swallowed(self):
        def emit(command):
            if command["args"][0] == "Purchase":
                raise RuntimeError("tag crashed")

        tag = BrowserTag(emit=emit)
        tag.initialize("123")

        assert tag.track("Purchase", {"value": 1}) is False

    def test_drain_clears_queue(self):
        tag = BrowserTag()
        tag.initialize("123")
        tag.drain()

        assert tag.drain() == []


class TestConversionPipeline:
    async def test_track_event_returns_before_first_attempt(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(200, {"events_received": 1}))
        pipeline = make_pipeline(recorder, recording_sleep)

        task = pipeline.track_event("Purchase", {"value": 10}, active_pixel)

        assert isinstance(task, asyncio.Task)
        assert recorder.requests == []
        await task
        assert len(recorder.requests) == 1
        assert pipeline.stats().sent == 1
        assert pipeline.stats().last_status == "Success"

    async def test_three_failures_record_one_failure(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(500, {"error": {"message": "Internal"}}))
        pipeline = make_pipeline(recorder, recording_sleep)

        await pipeline.track_event("Purchase", {"value": 10}, active_pixel)
        await pipeline.scheduler.join()

        assert len(recorder.requests) == 3
        assert recording_sleep.delays == [2, 4]
        stats = pipeline.stats()
        assert stats.failed == 1
        assert stats.sent == 0
        assert stats.last_status == "Failed"

    async def test_network_errors_are_retried(self, active_pixel, recording_sleep):
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) == 1:
                raise httpx.ConnectError("refused", request=request)
            if len(calls) == 2:
                raise httpx.ReadTimeout("slow", request=request)
            return json_response(200, {"events_received": 1})

        pipeline = ConversionPipeline(
            transport=httpx.MockTransport(handler),
            scheduler=RetryScheduler(sleep=recording_sleep),
        )

        await pipeline.track_event("AddToCart", {"value": 1}, active_pixel)

        assert len(calls) == 3
        assert pipeline.stats().sent == 1
        assert pipeline.stats().failed == 0

    async def test_envelope_and_url(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(200, {}))
        pipeline = make_pipeline(recorder, recording_sleep)

        await pipeline.track_event(
            "Purchase", {"value": 2350, "content_ids": ["1", "2"]}, active_pixel
        )

        (request,) = recorder.requests
        assert request.url.host == "graph.facebook.com"
        assert request.url.path == "/v18.0/123456/events"
        assert request.url.params["access_token"] == "token-abc"
        (event,) = recorder.json_bodies()[0]["data"]
        assert event == {
            "event_name": "Purchase",
            "event_time": 1700000000,
            "action_source": "website",
            "user_data": {},
            "custom_data": {
                "currency": "BDT",
                "value": 2350,
                "content_ids": ["1", "2"],
                "content_type": "product",
            },
            "test_event_code": "TEST42",
        }

    async def test_no_test_event_code_omits_field(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(200, {}))
        active_pixel.test_event_code = ""

        await make_pipeline(recorder, recording_sleep).track_event("Purchase", {}, active_pixel)

        (event,) = recorder.json_bodies()[0]["data"]
        assert "test_event_code" not in event

    @pytest.mark.parametrize(
        "changes",
        [{"status": PIXEL_INACTIVE}, {"pixel_id": ""}],
    )
    async def test_skipped_unless_active_with_pixel_id(
        self, active_pixel, recording_sleep, changes
    ):
        recorder = Recorder(json_response(200, {}))
        pipeline = make_pipeline(recorder, recording_sleep)
        pipeline.tag.initialize("123456")
        pipeline.tag.drain()
        for key, value in changes.items():
            setattr(active_pixel, key, value)

        assert pipeline.track_event("Purchase", {}, active_pixel) is None

        assert recorder.requests == []
        assert pipeline.tag.drain() == []

    async def test_browser_only_without_access_token(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(200, {}))
        pipeline = make_pipeline(recorder, recording_sleep)
        pipeline.tag.initialize("123456")
        pipeline.tag.drain()
        active_pixel.access_token = ""

        assert pipeline.track_event("Purchase", {"value": 5}, active_pixel) is None

        assert recorder.requests == []
        assert pipeline.tag.drain() == [
            {"command": "track", "args": ["Purchase", {"value": 5}]}
        ]

    async def test_track_purchase_payload(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(200, {}))
        pipeline = make_pipeline(recorder, recording_sleep)

        await pipeline.track_purchase(make_order(), active_pixel)

        (event,) = recorder.json_bodies()[0]["data"]
        assert event["event_name"] == "Purchase"
        assert event["custom_data"]["value"] == 2350.0
        assert event["custom_data"]["content_ids"] == ["1", "2"]
        assert event["user_data"] == {
            "em": ["rahim@example.com"],
            "ph": ["01712345678"],
            "fn": ["rahim"],
            "ln": ["uddin khan"],
        }

    async def test_initiate_checkout_value(self, active_pixel, recording_sleep):
        recorder = Recorder(json_response(200, {}))
        pipeline = make_pipeline(recorder, recording_sleep)

        await pipeline.track_initiate_checkout(make_order().items, active_pixel)

        (event,) = recorder.json_bodies()[0]["data"]
        assert event["event_name"] == "InitiateCheckout"
        assert event["custom_data"]["value"] == 2350.0

    def test_track_without_event_loop_is_dropped(self, active_pixel):
        pipeline = ConversionPipeline(transport=httpx.MockTransport(lambda r: json_response(200, {})))

        assert pipeline.track_event("Purchase", {}, active_pixel) is None
        assert pipeline.stats().sent == 0

    def test_stats_is_a_copy(self):
        pipeline = ConversionPipeline()

        pipeline.stats().sent = 99

        assert pipeline.stats().sent == 0


class TestVerifyConnection:
    async def test_success(self, active_pixel):
        recorder = Recorder(json_response(200, {"id": "123456"}))
        pipeline = ConversionPipeline(transport=recorder.transport)

        outcome = await pipeline.verify_connection(active_pixel)

        assert outcome.succeeded
        (request,) = recorder.requests
        assert request.method == "GET"
        assert request.url.path == "/v18.0/123456"
        assert request.url.params["fields"] == "id"

    async def test_rejected_token(self, active_pixel):
        recorder = Recorder(
            json_response(400, {"error": {"message": "Invalid OAuth access token."}})
        )

        outcome = await ConversionPipeline(transport=recorder.transport).verify_connection(
            active_pixel
        )

        assert not outcome.succeeded
        assert outcome.error == "Invalid OAuth access token."

    async def test_missing_settings(self):
        outcome = await ConversionPipeline().verify_connection(PixelSettings())

        assert not outcome.succeeded


def test_normalize_identity():
    assert normalize_identity("  Foo@Bar.COM ") == "foo@bar.com"
    assert normalize_identity("") == ""
