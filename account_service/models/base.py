"""
Declarative base and shared column helpers.
"""
from datetime import datetime, timezone
import uuid
from typing import Any, Dict, Optional

from sqlalchemy import Column, Uuid
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UUIDPrimaryKeyMixin:
    """Immutable UUID primary key assigned on the client side at creation."""

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    def to_dict(self, exclude: Optional[set] = None) -> Dict[str, Any]:
        """Convert model instance to dictionary."""
        exclude = exclude or set()
        return {
            column.name: getattr(self, column.name)
            for column in self.__table__.columns
            if column.name not in exclude
        }
