"""
Account workflows, one service per use case.
"""

from .authentication_service import AuthenticationService
from .password_service import PasswordService
from .registration_service import (
    RegistrationAttempt,
    RegistrationService,
    RegistrationStep,
)
from .token_broker import TokenBroker, TokenClaims, TokenPurpose

__all__ = [
    "AuthenticationService",
    "PasswordService",
    "RegistrationService",
    "RegistrationAttempt",
    "RegistrationStep",
    "TokenBroker",
    "TokenClaims",
    "TokenPurpose",
]
