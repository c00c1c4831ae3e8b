"""
Unit tests for the request gateway.
"""

import httpx
import pytest
from unittest.mock import MagicMock

from ebill_console.app.adapters.gateway import (
    DecodeError,
    DecodeKind,
    HttpError,
    RequestGateway,
    Success,
    Unauthenticated,
    decode_response,
)
from ebill_console.app.session.state import SessionState
from ebill_console.app.session.storage import MemoryStorage
from shared.errors import (
    MalformedResponse,
    RequestFailed,
    ServiceUnavailable,
    SessionExpired,
    UnexpectedFormat,
)
from shared.metrics import MetricsCollector
from shared.test_helpers import json_response, raw_json_response, text_response

BASE_URL = "http://backend.test"


class TestDecodeResponse:
    """Classification of raw backend responses."""

    def test_no_content_is_success_without_value(self):
        assert decode_response(httpx.Response(204)) == Success(None)

    def test_json_body(self):
        result = decode_response(json_response(200, [{"Customer_ID": 1}]))
        assert result == Success([{"Customer_ID": 1}])

    def test_declared_json_that_does_not_parse(self):
        result = decode_response(raw_json_response(200, "<html>oops</html>"))

        assert isinstance(result, DecodeError)
        assert result.kind is DecodeKind.MALFORMED
        assert result.excerpt == "<html>oops</html>"
        assert result.status_code == 200

    def test_excerpt_is_limited_to_100_characters(self):
        result = decode_response(raw_json_response(200, "x" * 500))
        assert len(result.excerpt) == 100

    def test_success_without_json_is_unexpected_format(self):
        result = decode_response(text_response(200, "<html></html>", content_type="text/html"))

        assert isinstance(result, DecodeError)
        assert result.kind is DecodeKind.UNEXPECTED_FORMAT
        assert result.content_type == "text/html"

    def test_error_without_json_uses_body_text(self):
        result = decode_response(text_response(502, "Bad Gateway"))
        assert result == HttpError(502, "Bad Gateway")

    def test_error_without_json_or_body_uses_generic_message(self):
        result = decode_response(httpx.Response(500))
        assert result == HttpError(500, "HTTP error, status 500")

    def test_json_error_field_becomes_message(self):
        result = decode_response(json_response(404, {"error": "Customer not found"}))
        assert result == HttpError(404, "Customer not found")

    def test_json_error_without_error_field_uses_generic_message(self):
        result = decode_response(json_response(500, {"detail": "boom"}))
        assert result == HttpError(500, "HTTP error, status 500")

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_json_auth_failure_is_unauthenticated(self, status_code):
        result = decode_response(json_response(status_code, {"error": "Token is not valid"}))
        assert result == Unauthenticated(status_code, "Token is not valid")

    def test_non_json_auth_failure_stays_plain_http_error(self):
        result = decode_response(text_response(401, "Unauthorized"))
        assert result == HttpError(401, "Unauthorized")


class TestRequestGateway:
    """Test cases for RequestGateway."""

    @pytest.fixture
    def storage(self):
        return MemoryStorage({"token": "T1", "username": "alice", "permission": "admin"})

    @pytest.fixture
    def session(self, storage):
        session = SessionState(storage)
        session.load()
        return session

    @pytest.fixture
    def metrics(self):
        return MetricsCollector("console-test")

    @pytest.fixture
    def captured(self):
        return []

    def make_gateway(self, session, metrics, captured, response):
        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return response(request) if callable(response) else response

        return RequestGateway(BASE_URL, session, transport=httpx.MockTransport(handler), metrics=metrics)

    @pytest.mark.asyncio
    async def test_adds_bearer_and_json_headers(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(200, []))

        await gateway.request("/customers")

        request = captured[0]
        assert request.headers["Authorization"] == "Bearer T1"
        assert request.headers["Content-Type"] == "application/json"
        assert request.url.path == "/api/customers"

    @pytest.mark.asyncio
    async def test_caller_headers_cannot_replace_credential(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(200, []))

        await gateway.request("/customers", headers={"Authorization": "Bearer forged", "X-Trace": "1"})

        assert captured[0].headers["Authorization"] == "Bearer T1"
        assert captured[0].headers["X-Trace"] == "1"

    @pytest.mark.asyncio
    async def test_caller_header_override_ignores_case(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(200, []))

        await gateway.request("/customers", headers={"content-type": "text/plain", "authorization": "Basic x"})

        assert captured[0].headers.get_list("content-type") == ["text/plain"]
        assert captured[0].headers.get_list("authorization") == ["Bearer T1"]

    @pytest.mark.asyncio
    async def test_no_authorization_header_without_token(self, metrics, captured):
        session = SessionState(MemoryStorage())
        gateway = self.make_gateway(session, metrics, captured, json_response(200, []))

        await gateway.request("/public/customer-bills?identifier=x", without_api_prefix=True)

        assert "Authorization" not in captured[0].headers
        assert captured[0].url.path == "/public/customer-bills"

    @pytest.mark.asyncio
    async def test_reads_credential_at_send_time(self, session, storage, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(200, []))
        storage.set_item("token", "T2")

        await gateway.request("/meters")

        assert captured[0].headers["Authorization"] == "Bearer T2"

    @pytest.mark.asyncio
    async def test_body_is_sent_verbatim(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(201, {"Customer_ID": 3}))

        data = await gateway.request("/customers", method="post", body='{"Name": "A"}')

        assert data == {"Customer_ID": 3}
        assert captured[0].method == "POST"
        assert captured[0].content == b'{"Name": "A"}'

    @pytest.mark.asyncio
    async def test_no_content_returns_none(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, httpx.Response(204))
        assert await gateway.request("/customers/1", method="DELETE") is None

    @pytest.mark.asyncio
    async def test_http_error_raises_request_failed(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(404, {"error": "Meter not found"}))

        with pytest.raises(RequestFailed) as exc_info:
            await gateway.request("/meters/9")

        assert exc_info.value.status_code == 404
        assert exc_info.value.message == "Meter not found"
        assert session.get() is not None

    @pytest.mark.asyncio
    async def test_malformed_json_raises(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, raw_json_response(200, "{broken"))

        with pytest.raises(MalformedResponse) as exc_info:
            await gateway.request("/billing")

        assert exc_info.value.message.startswith("Invalid JSON response from server: ")
        assert exc_info.value.message.endswith("Response started with: {broken")

    @pytest.mark.asyncio
    async def test_non_json_success_raises_unexpected_format(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, text_response(200, "ok", content_type="text/html"))

        with pytest.raises(UnexpectedFormat) as exc_info:
            await gateway.request("/billing")

        assert exc_info.value.message == "Unexpected response format. Expected JSON, got text/html."

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_failure_clears_session_and_notifies(self, session, storage, metrics, captured, status_code):
        gateway = self.make_gateway(session, metrics, captured, json_response(status_code, {"error": "Token is not valid"}))
        seen = []
        gateway.add_unauthenticated_observer(lambda result: seen.append((result, session.get())))

        with pytest.raises(SessionExpired) as exc_info:
            await gateway.request("/billing")

        assert exc_info.value.status_code == status_code
        assert session.get() is None
        assert storage.snapshot() == {}
        assert seen == [(Unauthenticated(status_code, "Token is not valid"), None)]
        assert metrics.sample_value("session_invalidations_total", status_code=str(status_code)) == 1.0

    @pytest.mark.asyncio
    async def test_send_does_not_apply_session_policy(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, json_response(401, {"error": "nope"}))
        observer = MagicMock()
        gateway.add_unauthenticated_observer(observer)

        result = await gateway.send("/login", method="POST", without_api_prefix=True)

        assert result == Unauthenticated(401, "nope")
        assert session.get() is not None
        observer.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_error_raises_service_unavailable(self, session, metrics, captured):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        gateway = self.make_gateway(session, metrics, captured, refuse)

        with pytest.raises(ServiceUnavailable):
            await gateway.request("/customers")

        assert metrics.sample_value("errors_total", error_type="transport", service="console-test") == 1.0

    @pytest.mark.asyncio
    async def test_records_request_metrics(self, session, metrics, captured):
        gateway = self.make_gateway(session, metrics, captured, lambda request: json_response(200, []))

        await gateway.request("/customers")
        await gateway.request("/customers")

        assert metrics.sample_value(
            "http_requests_total", method="GET", endpoint="/customers", status_code="200"
        ) == 2.0

    def test_build_url_strips_trailing_slashes(self, session, metrics):
        gateway = RequestGateway("http://backend.test/", session, api_prefix="/api/", metrics=metrics)

        assert gateway.build_url("/customers") == "http://backend.test/api/customers"
        assert gateway.build_url("/login", without_api_prefix=True) == "http://backend.test/login"
