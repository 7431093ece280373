"""Test factories for generating test data.

Re-exports all factories for convenient imports:
    from tests.factories import UserFactory
"""

from tests.factories.base import BaseFactory, next_id
from tests.factories.user import UserFactory

__all__ = [
    "BaseFactory",
    "next_id",
    "UserFactory",
]
