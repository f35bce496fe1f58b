"""
Database models for the account service.
"""
from .base import Base
from .user import User, UserProfile

__all__ = [
    "Base",
    "User",
    "UserProfile",
]
