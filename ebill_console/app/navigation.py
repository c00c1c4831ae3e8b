"""
Console navigation.

The navigator is the only component that moves the user between views.
It is registered on the gateway as the unauthenticated observer, so a
rejected credential anywhere lands the user on the login view.
"""

from typing import List, Optional

from shared.logging import get_logger
from .adapters.gateway import Unauthenticated
from .session.guard import LOGIN_PATH, RouteGuard

HOME_PATH = "/users"
PROTECTED_PATHS = ("/users", "/customers", "/meters", "/billing", "/payments")
PORTAL_PATH = "/portal"


class Navigator:
    """Tracks the current view and applies the route guard."""

    def __init__(self, guard: RouteGuard):
        self.guard = guard
        self.current: Optional[str] = None
        self.history: List[str] = []
        self.logger = get_logger("console.navigator")

    def resolve(self, path: str) -> str:
        """Map a requested path onto a known view."""
        authenticated = self.guard.session.has_credential()
        if path == "/":
            return HOME_PATH if authenticated else LOGIN_PATH
        if path in PROTECTED_PATHS or self.guard.is_public(path):
            return path
        return HOME_PATH if authenticated else LOGIN_PATH

    def navigate(self, path: str) -> str:
        """Go to ``path`` if the guard admits it; return where we ended up."""
        destination = self.guard.admit(self.resolve(path))
        self._go(destination)
        return destination

    def redirect(self, path: str) -> None:
        """Unconditional navigation, bypassing the guard."""
        self._go(path)

    def on_unauthenticated(self, result: Unauthenticated) -> None:
        self.logger.warning("Session expired, redirecting to login", status_code=result.status_code)
        self.redirect(LOGIN_PATH)

    @property
    def at_login(self) -> bool:
        return self.current == LOGIN_PATH

    def _go(self, path: str) -> None:
        if self.current is not None:
            self.history.append(self.current)
        self.current = path
