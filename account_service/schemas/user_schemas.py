"""
User-related Pydantic schemas for response serialization.
"""
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UserProfileResponse(BaseModel):
    """Profile embedded in the user view."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    phone_number: Optional[str] = None
    birth_date: Optional[date] = None
    github_link: Optional[str] = None


class UserResponse(BaseModel):
    """User view returned to clients. The password hash is never part of it."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    is_active: bool
    is_staff: bool
    is_superuser: bool
    thumbnail: Optional[str] = None
    date_joined: datetime
    profile: Optional[UserProfileResponse] = None
