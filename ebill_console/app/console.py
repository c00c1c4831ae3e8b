"""
Console wiring.

Builds the object graph once: configuration, durable storage, the
session provider, the gateway, the navigator and the feature clients.
"""

from typing import Dict, Optional

import httpx

from shared.config import ConsoleConfig, get_config
from shared.errors import EbillClientException
from shared.logging import get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from .adapters.auth_client import AuthClient
from .adapters.gateway import RequestGateway
from .adapters.portal_client import PortalClient
from .adapters.resource_client import ResourceClient, build_resource_clients
from .domain.forms import FORMS
from .domain.views import ListView, PortalView
from .navigation import Navigator
from .session.guard import LOGIN_PATH, RouteGuard
from .session.state import Session, SessionState
from .session.storage import DurableStorage, FileStorage


class UnknownResource(EbillClientException):
    """Resource name the console does not know."""

    def __init__(self, resource: str):
        super().__init__("UNKNOWN_RESOURCE", f"Unknown resource: {resource}", {"resource": resource})


class Console:
    """Application root shared by every console command."""

    def __init__(
        self,
        config: Optional[ConsoleConfig] = None,
        storage: Optional[DurableStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or get_config()
        self.logger = get_logger("console.app")
        self.metrics = metrics or get_metrics_collector(self.config.service_name)

        self.session = SessionState(storage or FileStorage(self.config.session_file))
        self.session.load()

        self.gateway = RequestGateway(
            self.config.backend_url,
            self.session,
            api_prefix=self.config.api_prefix,
            timeout=self.config.request_timeout,
            transport=transport,
            metrics=self.metrics,
        )
        self.guard = RouteGuard(self.session)
        self.navigator = Navigator(self.guard)
        self.gateway.add_unauthenticated_observer(self.navigator.on_unauthenticated)

        self.auth = AuthClient(self.gateway, self.session)
        self.resources: Dict[str, ResourceClient] = build_resource_clients(self.gateway)
        self.portal = PortalClient(self.gateway, payment_method=self.config.portal_payment_method)

    async def login(self, username: str, password: str) -> Session:
        session = await self.auth.login(username, password)
        self.navigator.navigate("/")
        return session

    def logout(self) -> None:
        self.auth.logout()
        self.navigator.redirect(LOGIN_PATH)

    def resource(self, name: str) -> ResourceClient:
        try:
            return self.resources[name]
        except KeyError:
            raise UnknownResource(name)

    def list_view(self, name: str) -> ListView:
        return ListView(self.resource(name), FORMS.get(name))

    def portal_view(self) -> PortalView:
        return PortalView(self.portal)
