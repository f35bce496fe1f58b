"""
Authentication-related Pydantic schemas for request/response validation.
"""
from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, ConfigDict, Field, field_validator


def check_email_address(value: str) -> str:
    """Reject malformed addresses but keep the address exactly as typed."""
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError as e:
        raise ValueError(str(e)) from e
    return value


class RegistrationRequest(BaseModel):
    """Registration request schema."""

    email: str = Field(..., max_length=255, description="User's email address")
    password: str = Field(..., min_length=8, max_length=128, description="Plaintext password")
    first_name: str = Field(..., min_length=1, max_length=255)
    last_name: str = Field(..., min_length=1, max_length=255)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "a@x.com",
                "password": "Secret123!",
                "first_name": "Ann",
                "last_name": "Lee"
            }
        }
    )

    @field_validator("email")
    @classmethod
    def validate_email_address(cls, v: str) -> str:
        return check_email_address(v)


class LoginRequest(BaseModel):
    """Login request schema. The address is looked up as given, unchecked."""

    email: str = Field(..., max_length=255, description="User's email address")
    password: str = Field(..., min_length=1, max_length=128, description="User's password")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "a@x.com",
                "password": "Secret123!"
            }
        }
    )


class PasswordResetRequest(BaseModel):
    """Password reset request schema."""

    email: str = Field(..., max_length=255, description="User's email address")

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "a@x.com"}}
    )


class SuccessResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
