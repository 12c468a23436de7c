"""Tests for provider error classification."""

import json

import httpx
import pytest

from storefront.error_classifier import (
    DUPLICATE_INVOICE_MESSAGE,
    FALLBACK_MESSAGE,
    TEXT_PREVIEW_LIMIT,
    classify_response,
    extract_message,
    raise_for_response,
)
from storefront.errors import (
    AuthenticationError,
    AuthorizationError,
    CourierError,
    CourierValidationError,
    ErrorKind,
    RateLimitedError,
    ServerFaultError,
    ServiceUnavailableError,
)
from storefront.response_body import JsonBody, OpaqueBody, parse_body

LARAVEL_DUPLICATE_PAGE = """<!DOCTYPE html>
<html><head><title>Server Error</title>
<style>body { color: red; }</style></head>
<body>
<div class="exception">Illuminate\\Database\\QueryException</div>
<p>SQLSTATE[23000]: Integrity constraint violation: 1062 Duplicate entry
'250101-1234' for key 'consignments_invoice_unique'</p>
</body></html>"""


class TestParseBody:
    def test_json(self):
        body = parse_body(b'{"status": 200}')

        assert isinstance(body, JsonBody)
        assert body.get("status") == 200

    def test_html_is_opaque(self):
        assert isinstance(parse_body("<html></html>"), OpaqueBody)

    def test_empty_is_opaque(self):
        assert isinstance(parse_body(b""), OpaqueBody)
        assert isinstance(parse_body(None), OpaqueBody)

    def test_invalid_utf8_does_not_raise(self):
        assert isinstance(parse_body(b"\xff\xfe<html>"), OpaqueBody)


class TestExtractMessage:
    @pytest.mark.parametrize(
        "data,expected",
        [
            ({"message": "Invalid store"}, "Invalid store"),
            ({"error": {"message": "Token expired"}}, "Token expired"),
            ({"error": "invalid_grant"}, "invalid_grant"),
            ({"errors": [{"message": "Phone is invalid"}]}, "Phone is invalid"),
            ({"errors": ["Zone required"]}, "Zone required"),
            (
                {"errors": {"recipient_phone": ["The recipient phone must be 11 digits."]}},
                "recipient_phone: The recipient phone must be 11 digits.",
            ),
        ],
    )
    def test_json_shapes(self, data, expected):
        assert extract_message(json.dumps(data)) == expected

    def test_json_without_message_returns_raw(self):
        assert extract_message('{"code": 7}') == '{"code": 7}'

    def test_h1_heading(self):
        html = "<html><body><h1>Service   Maintenance</h1><p>Back soon</p></body></html>"

        assert extract_message(html) == "Service Maintenance"

    def test_diagnostic_line(self):
        html = "<html><body><p>Oops</p>\n<p>Undefined index: zone in Orders.php</p></body></html>"

        assert extract_message(html) == "Undefined index: zone in Orders.php"

    def test_duplicate_invoice_page(self):
        assert extract_message(LARAVEL_DUPLICATE_PAGE) == DUPLICATE_INVOICE_MESSAGE

    def test_long_text_truncated_with_ellipsis(self):
        message = extract_message("x" * (TEXT_PREVIEW_LIMIT + 100))

        assert message.endswith("...")
        assert len(message) == TEXT_PREVIEW_LIMIT + 3

    def test_scripts_are_ignored(self):
        html = "<html><script>var x = 1;</script><body>Bad gateway</body></html>"

        assert extract_message(html) == "Bad gateway"

    @pytest.mark.parametrize("raw", [None, b"", "   ", b"\x00\xff", "<<<>>>"])
    def test_malformed_input_never_raises(self, raw):
        assert isinstance(extract_message(raw), str)

    def test_empty_body_falls_back(self):
        assert extract_message("") == FALLBACK_MESSAGE


class TestClassifyResponse:
    @pytest.mark.parametrize(
        "status,error_class,kind",
        [
            (401, AuthenticationError, ErrorKind.AUTHENTICATION),
            (403, AuthorizationError, ErrorKind.AUTHORIZATION),
            (422, CourierValidationError, ErrorKind.VALIDATION),
            (429, RateLimitedError, ErrorKind.RATE_LIMITED),
            (500, ServerFaultError, ErrorKind.SERVER_FAULT),
            (502, ServerFaultError, ErrorKind.SERVER_FAULT),
            (503, ServiceUnavailableError, ErrorKind.SERVICE_UNAVAILABLE),
        ],
    )
    def test_status_mapping(self, status, error_class, kind):
        error = classify_response(status, '{"message": "nope"}', provider="Pathao")

        assert type(error) is error_class
        assert error.kind == kind
        assert error.status_code == status
        assert error.provider == "Pathao"

    def test_other_status_uses_context(self):
        error = classify_response(404, '{"message": "Not found"}', context="SteadFast create order")

        assert type(error) is CourierError
        assert str(error) == "SteadFast create order failed (HTTP 404): Not found"

    def test_validation_includes_detail(self):
        error = classify_response(422, '{"errors": {"recipient_zone": ["required"]}}')

        assert str(error) == "Validation failed: recipient_zone: required"

    def test_500_duplicate_invoice_page(self, caplog):
        error = classify_response(500, LARAVEL_DUPLICATE_PAGE, context="SteadFast create order")

        assert isinstance(error, ServerFaultError)
        assert str(error) == DUPLICATE_INVOICE_MESSAGE
        assert "already submitted" in str(error)
        # Full body is logged for 500s
        assert "SQLSTATE[23000]" in caplog.text

    def test_500_generic_warns_about_partial_creation(self):
        error = classify_response(500, "<h1>Whoops, looks like something went wrong.</h1>")

        assert "Whoops, looks like something went wrong." in str(error)
        assert "check the courier dashboard" in str(error)


class TestRaiseForResponse:
    def test_success_passes(self):
        response = httpx.Response(200, json={"ok": True})

        raise_for_response(response, "Test")

    def test_failure_raises_classified(self):
        request = httpx.Request("POST", "https://courier.test/orders")
        response = httpx.Response(401, json={"message": "Bad token"}, request=request)

        with pytest.raises(AuthenticationError) as exc_info:
            raise_for_response(response, "Pathao create order", provider="Pathao")

        assert "Bad token" in str(exc_info.value)
