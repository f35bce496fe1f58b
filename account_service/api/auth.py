"""
Account endpoints: registration, login and password reset requests.
"""
from fastapi import APIRouter, Depends, Response
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..container.container import Container
from ..schemas.auth_schemas import (
    ErrorResponse,
    LoginRequest,
    PasswordResetRequest,
    RegistrationRequest,
    SuccessResponse,
)
from ..schemas.user_schemas import UserResponse
from ..services.auth.registration_service import REGISTRATION_SUCCESS_MESSAGE
from ..services.session_service import Session
from .deps import get_client_session, get_container, get_db

logger = structlog.get_logger()
router = APIRouter(prefix="/users", tags=["users"])

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/register/", response_model=SuccessResponse, responses=ERROR_RESPONSES)
async def register(
    payload: RegistrationRequest,
    db: AsyncSession = Depends(get_db),
    container: Container = Depends(get_container)
):
    """
    Create an account and email the activation link.

    The account is only kept if the email was handed to the delivery channel.
    """
    await container.registration_service.register(
        db,
        email=payload.email,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
    )
    return SuccessResponse(message=REGISTRATION_SUCCESS_MESSAGE)


@router.post("/login/", response_model=UserResponse, responses=ERROR_RESPONSES)
async def login(
    payload: LoginRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    session: Session = Depends(get_client_session),
    container: Container = Depends(get_container)
):
    """Authenticate and start a session; the session id is set as a cookie."""
    user = await container.authentication_service.login(
        db,
        session,
        email=payload.email,
        password=payload.password,
    )

    settings = container.settings
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.session_id,
        max_age=settings.SESSION_LIFETIME_SECONDS,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )
    return UserResponse.model_validate(user)


@router.post("/request-password-change/", response_model=SuccessResponse, responses=ERROR_RESPONSES)
async def request_password_change(
    payload: PasswordResetRequest,
    db: AsyncSession = Depends(get_db),
    container: Container = Depends(get_container)
):
    message = await container.password_service.request_password_reset(db, email=payload.email)
    return SuccessResponse(message=message)
