"""
Session lifecycle for the eBill console.

- storage: durable key-value stores (file, memory)
- state: the injected session provider (load/login/logout, get/set/clear)
- guard: protected-route admission
"""

from .storage import DurableStorage, FileStorage, MemoryStorage
from .state import Session, SessionState, SESSION_KEYS
from .guard import RouteGuard, LOGIN_PATH

__all__ = [
    "DurableStorage",
    "FileStorage",
    "MemoryStorage",
    "Session",
    "SessionState",
    "SESSION_KEYS",
    "RouteGuard",
    "LOGIN_PATH",
]
