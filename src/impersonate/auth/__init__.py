"""Guards, user providers and their registry."""

from src.impersonate.auth.contracts import Authenticatable, Guard, UserProvider
from src.impersonate.auth.guards import SessionGuard
from src.impersonate.auth.manager import AuthManager
from src.impersonate.auth.providers import DatabaseUserProvider, InMemoryUserProvider

__all__ = [
    "AuthManager",
    "Authenticatable",
    "DatabaseUserProvider",
    "Guard",
    "InMemoryUserProvider",
    "SessionGuard",
    "UserProvider",
]
