"""
Session state provider.

One ``SessionState`` instance is created at start-up and handed to the
request gateway, the route guard and the console commands. Storage and
the in-memory copy are only ever mutated together, under one lock.
"""

import threading
from typing import Any, Dict, Optional

from pydantic import BaseModel

from shared.logging import get_logger, set_user_context
from .storage import DurableStorage

TOKEN_KEY = "token"
USERNAME_KEY = "username"
PERMISSION_KEY = "permission"
SESSION_KEYS = (TOKEN_KEY, USERNAME_KEY, PERMISSION_KEY)


class Session(BaseModel):
    """Logged-in principal."""

    token: str
    username: str
    permission: Optional[str] = None


class SessionState:
    """Holds who is logged in, backed by durable storage."""

    def __init__(self, storage: DurableStorage):
        self.storage = storage
        self.logger = get_logger("console.session")
        self._lock = threading.RLock()
        self._session: Optional[Session] = None

    def load(self) -> Optional[Session]:
        """Populate the in-memory session from storage at start-up."""
        with self._lock:
            token = self.storage.get_item(TOKEN_KEY)
            username = self.storage.get_item(USERNAME_KEY)
            permission = self.storage.get_item(PERMISSION_KEY)

            if token and username:
                self._session = Session(token=token, username=username, permission=permission)
                set_user_context(username)
                self.logger.debug("Session restored", username=username)
            else:
                if token:
                    # Credential without a principal is a partial session.
                    self.logger.warning("Discarding partial session")
                    self.storage.remove_items(SESSION_KEYS)
                self._session = None
            return self._session

    def get(self) -> Optional[Session]:
        with self._lock:
            return self._session

    def set(self, session: Session) -> None:
        with self._lock:
            items = {TOKEN_KEY: session.token, USERNAME_KEY: session.username}
            if session.permission is not None:
                items[PERMISSION_KEY] = session.permission
            self.storage.remove_items([PERMISSION_KEY])
            self.storage.set_items(items)
            self._session = session
            set_user_context(session.username)

    def clear(self) -> None:
        with self._lock:
            self.storage.remove_items(SESSION_KEYS)
            self._session = None
            set_user_context(None)

    def login(self, response: Dict[str, Any]) -> Session:
        """Persist a successful login response."""
        session = Session.model_validate(response)
        self.set(session)
        self.logger.info("Logged in", username=session.username, permission=session.permission)
        return session

    def logout(self) -> None:
        """Forget the current session. Safe to call when logged out."""
        was_logged_in = self.get() is not None
        self.clear()
        if was_logged_in:
            self.logger.info("Logged out")

    def credential(self) -> Optional[str]:
        """Bearer credential as currently held in durable storage."""
        with self._lock:
            return self.storage.get_item(TOKEN_KEY)

    def has_credential(self) -> bool:
        return bool(self.credential())

    @property
    def is_authenticated(self) -> bool:
        return self.get() is not None
