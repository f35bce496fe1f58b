"""Test data factories for account service testing."""

from .user_factory import InactiveUserFactory, UserFactory, UserProfileFactory

__all__ = [
    "UserFactory",
    "InactiveUserFactory",
    "UserProfileFactory",
]
