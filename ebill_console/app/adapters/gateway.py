"""
Request gateway for the eBill backend.

Every backend call goes through ``RequestGateway``. Responses are turned
into one of four results by ``decode_response``:

- ``Success(value)``: 2xx with a JSON body, or 204 with no body
- ``HttpError(status_code, message)``: non-2xx
- ``Unauthenticated(status_code, message)``: JSON 401/403
- ``DecodeError(kind, reason, excerpt)``: body unusable for a JSON client

``send`` returns the result untouched. ``request`` applies the session
policy (clear and notify observers on ``Unauthenticated``) and raises the
matching exception from ``shared.errors`` for anything but ``Success``.
"""

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

import httpx

from shared.logging import get_logger, set_request_id
from shared.errors import (
    MalformedResponse,
    RequestFailed,
    ServiceUnavailable,
    SessionExpired,
    UnexpectedFormat,
    generic_http_message,
)
from shared.metrics import MetricsCollector, get_metrics_collector
from ..session.state import SessionState

JSON_CONTENT_TYPE = "application/json"
EXCERPT_LENGTH = 100
AUTH_FAILURE_STATUSES = (401, 403)


class DecodeKind(str, Enum):
    MALFORMED = "malformed"
    UNEXPECTED_FORMAT = "unexpected_format"


@dataclass(frozen=True)
class Success:
    value: Any = None


@dataclass(frozen=True)
class HttpError:
    status_code: int
    message: str


@dataclass(frozen=True)
class Unauthenticated:
    status_code: int
    message: str


@dataclass(frozen=True)
class DecodeError:
    kind: DecodeKind
    reason: str
    excerpt: str
    status_code: int
    content_type: Optional[str] = None


GatewayResult = Union[Success, HttpError, Unauthenticated, DecodeError]
UnauthenticatedObserver = Callable[[Unauthenticated], None]


def decode_response(response: httpx.Response) -> GatewayResult:
    """Classify a backend response."""
    status = response.status_code

    if status == 204:
        return Success(None)

    content_type = response.headers.get("content-type")

    if content_type and JSON_CONTENT_TYPE in content_type:
        try:
            data = response.json()
        except ValueError as e:
            text = response.text
            return DecodeError(
                kind=DecodeKind.MALFORMED,
                reason=str(e),
                excerpt=text[:EXCERPT_LENGTH],
                status_code=status,
                content_type=content_type,
            )
    else:
        text = response.text
        if not response.is_success:
            return HttpError(status, text or generic_http_message(status))
        return DecodeError(
            kind=DecodeKind.UNEXPECTED_FORMAT,
            reason=f"Expected JSON, got {content_type or 'unknown'}",
            excerpt=text[:EXCERPT_LENGTH],
            status_code=status,
            content_type=content_type,
        )

    if not response.is_success:
        message = None
        if isinstance(data, dict) and data.get("error"):
            message = str(data["error"])
        message = message or generic_http_message(status)
        if status in AUTH_FAILURE_STATUSES:
            return Unauthenticated(status, message)
        return HttpError(status, message)

    return Success(data)


class RequestGateway:
    """Single chokepoint for backend HTTP calls."""

    def __init__(
        self,
        base_url: str,
        session: SessionState,
        api_prefix: str = "/api",
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.api_prefix = api_prefix.rstrip('/')
        self.session = session
        self.timeout = timeout
        self.transport = transport
        self.metrics = metrics or get_metrics_collector("console")
        self.logger = get_logger("console.gateway")
        self._observers: List[UnauthenticatedObserver] = []

    def add_unauthenticated_observer(self, observer: UnauthenticatedObserver) -> None:
        """Register a callback run after the session is cleared on 401/403."""
        self._observers.append(observer)

    def build_url(self, endpoint: str, without_api_prefix: bool = False) -> str:
        prefix = "" if without_api_prefix else self.api_prefix
        return f"{self.base_url}{prefix}{endpoint}"

    def build_headers(self, headers: Optional[Dict[str, str]] = None) -> httpx.Headers:
        merged = httpx.Headers({"Content-Type": JSON_CONTENT_TYPE})
        merged.update(headers or {})
        token = self.session.credential()
        if token:
            merged["Authorization"] = f"Bearer {token}"
        return merged

    async def send(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        without_api_prefix: bool = False,
    ) -> GatewayResult:
        """Perform one round-trip and classify the response."""
        method = method.upper()
        url = self.build_url(endpoint, without_api_prefix)
        request_id = set_request_id()
        start_time = time.time()

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method,
                    url,
                    content=body,
                    headers=self.build_headers(headers),
                )
        except httpx.RequestError as e:
            self.logger.error(
                "Backend request error",
                method=method,
                endpoint=endpoint,
                error=str(e)
            )
            self.metrics.record_error("transport")
            raise ServiceUnavailable(
                f"Backend unavailable: {e}",
                details={"method": method, "endpoint": endpoint, "request_id": request_id}
            )

        duration = time.time() - start_time
        self.metrics.record_http_request(method, endpoint, response.status_code, duration)
        self.logger.debug(
            "Backend request",
            method=method,
            endpoint=endpoint,
            status_code=response.status_code,
            duration_ms=round(duration * 1000, 2)
        )
        return decode_response(response)

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        without_api_prefix: bool = False,
    ) -> Any:
        """Perform a call and return its parsed JSON body (``None`` for 204)."""
        result = await self.send(
            endpoint,
            method=method,
            body=body,
            headers=headers,
            without_api_prefix=without_api_prefix,
        )
        return self.settle(result, method=method.upper(), endpoint=endpoint)

    def settle(self, result: GatewayResult, method: str = "GET", endpoint: str = "") -> Any:
        """Unwrap a result, enforcing the session policy on auth failure."""
        if isinstance(result, Success):
            return result.value

        if isinstance(result, Unauthenticated):
            self._invalidate_session(result)
            raise SessionExpired(result.status_code, result.message)

        if isinstance(result, HttpError):
            self.logger.warning(
                "Backend request failed",
                method=method,
                endpoint=endpoint,
                status_code=result.status_code,
                error=result.message
            )
            self.metrics.record_error("request_failed")
            raise RequestFailed(result.status_code, result.message)

        if result.kind is DecodeKind.MALFORMED:
            self.logger.error(
                "Failed to parse JSON response",
                method=method,
                endpoint=endpoint,
                error=result.reason,
                excerpt=result.excerpt
            )
            self.metrics.record_error("malformed_response")
            raise MalformedResponse(result.reason, result.excerpt, details={"status_code": result.status_code})

        self.logger.warning(
            "Response was not JSON",
            method=method,
            endpoint=endpoint,
            content_type=result.content_type,
            excerpt=result.excerpt
        )
        self.metrics.record_error("unexpected_format")
        raise UnexpectedFormat(result.content_type, result.excerpt, details={"status_code": result.status_code})

    def _invalidate_session(self, result: Unauthenticated) -> None:
        self.logger.warning(
            "Credential rejected, clearing session",
            status_code=result.status_code,
            error=result.message
        )
        self.session.clear()
        self.metrics.record_session_invalidation(result.status_code)
        for observer in list(self._observers):
            observer(result)
