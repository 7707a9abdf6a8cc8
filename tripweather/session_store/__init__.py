"""Trip session storage backends."""

from .base import SessionStore
from .memory import InMemorySessionStore

__all__ = [
    "SessionStore",
    "InMemorySessionStore",
]
