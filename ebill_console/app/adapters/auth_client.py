"""
Login client for the eBill backend.
"""

from pydantic import ValidationError as ModelValidationError

from shared.logging import get_logger
from shared.errors import AuthenticationError, MalformedResponse
from shared.metrics import MetricsCollector
from ..domain.models import LoginRequest, LoginResponse
from ..session.state import Session, SessionState
from .gateway import HttpError, RequestGateway, Success, Unauthenticated

LOGIN_ENDPOINT = "/login"


class AuthClient:
    """Exchanges credentials for a bearer token and stores the session."""

    def __init__(self, gateway: RequestGateway, session: SessionState):
        self.gateway = gateway
        self.session = session
        self.logger = get_logger("console.auth_client")

    @property
    def metrics(self) -> MetricsCollector:
        return self.gateway.metrics

    async def login(self, username: str, password: str) -> Session:
        """Authenticate and persist the session before returning it.

        A rejected login is reported as ``AuthenticationError`` and never
        triggers session invalidation.
        """
        credentials = LoginRequest(username=username, password=password)
        result = await self.gateway.send(
            LOGIN_ENDPOINT,
            method="POST",
            body=credentials.model_dump_json(),
            without_api_prefix=True,
        )

        if isinstance(result, (Unauthenticated, HttpError)):
            self.logger.warning("Login rejected", username=username, status_code=result.status_code)
            self.metrics.record_login("rejected")
            raise AuthenticationError(result.status_code, result.message)

        if not isinstance(result, Success):
            # Body unusable; settle raises the matching decode error.
            self.metrics.record_login("error")
            self.gateway.settle(result, method="POST", endpoint=LOGIN_ENDPOINT)

        try:
            payload = LoginResponse.model_validate(result.value)
        except ModelValidationError as e:
            self.metrics.record_login("error")
            raise MalformedResponse("login response is missing token or username", str(result.value)[:100],
                                    details={"errors": e.errors(include_url=False)})

        self.metrics.record_login("success")
        return self.session.login(payload.model_dump())

    def logout(self) -> None:
        self.session.logout()
