"""
Route guard for protected console views.
"""

from typing import Iterable

from shared.logging import get_logger
from .state import SessionState

LOGIN_PATH = "/login"
PUBLIC_PATHS = frozenset({LOGIN_PATH, "/portal"})


class RouteGuard:
    """Admits protected paths only while a credential is stored."""

    def __init__(self, session: SessionState, public_paths: Iterable[str] = PUBLIC_PATHS):
        self.session = session
        self.public_paths = frozenset(public_paths)
        self.logger = get_logger("console.guard")

    def is_public(self, path: str) -> bool:
        return path in self.public_paths

    def admit(self, path: str) -> str:
        """Return the path to render: ``path`` itself or the login view.

        A rejected destination is dropped, not remembered.
        """
        if self.is_public(path) or self.session.has_credential():
            return path
        self.logger.info("Navigation blocked, redirecting to login", path=path)
        return LOGIN_PATH
