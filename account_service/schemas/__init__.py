"""
Pydantic schemas for request/response validation.
"""
from .auth_schemas import (
    ErrorResponse,
    LoginRequest,
    PasswordResetRequest,
    RegistrationRequest,
    SuccessResponse,
)
from .user_schemas import UserProfileResponse, UserResponse

__all__ = [
    "RegistrationRequest",
    "LoginRequest",
    "PasswordResetRequest",
    "SuccessResponse",
    "ErrorResponse",
    "UserResponse",
    "UserProfileResponse",
]
