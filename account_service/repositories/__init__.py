"""
Repository implementations following the Repository pattern.
"""

from .user_repository import UserRepository, active_user_query

__all__ = [
    "UserRepository",
    "active_user_query",
]
