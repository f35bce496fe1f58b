"""
User and UserProfile models.

Every User owns exactly one UserProfile. Both rows are written in the same
transaction and the profile goes away with its user.
"""
from sqlalchemy import (
    Boolean, Column, Date, DateTime, ForeignKey, Index, String, Uuid
)
from sqlalchemy.orm import relationship

from .base import Base, UUIDPrimaryKeyMixin, utcnow


class User(UUIDPrimaryKeyMixin, Base):
    """Identity and credential record."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=False)
    first_name = Column(String(255), nullable=False)
    last_name = Column(String(255), nullable=False)

    is_active = Column(Boolean, default=True, nullable=False)
    is_staff = Column(Boolean, default=False, nullable=False)
    is_superuser = Column(Boolean, default=False, nullable=False)

    thumbnail = Column(String(1024), nullable=True)
    date_joined = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    profile = relationship(
        "UserProfile",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_users_email_active", "email", "is_active"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email!r}, active={self.is_active})>"


class UserProfile(UUIDPrimaryKeyMixin, Base):
    """Optional personal details, one row per user."""

    __tablename__ = "user_profile"

    user_id = Column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    phone_number = Column(String(32), nullable=True)
    birth_date = Column(Date, nullable=True)
    github_link = Column(String(1024), nullable=True)

    user = relationship("User", back_populates="profile")

    def __repr__(self) -> str:
        return f"<UserProfile(user_id={self.user_id})>"
