"""
Password reset requests.

Issues a reset token and emails it. Nothing relational changes here, so the
only thing to undo on failure is the token itself.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...core.config import Settings
from ...core.exceptions import NotFoundError
from ...events.auth_events import PasswordResetRequestedEvent
from ...interfaces.event_interface import IEventBus
from ...interfaces.notification_interface import INotificationDispatcher
from ...interfaces.repository_interface import IUserRepository
from .token_broker import TokenBroker, TokenPurpose

logger = structlog.get_logger()

PASSWORD_RESET_TEMPLATE = "password_reset_email.html"

PASSWORD_RESET_SENT_MESSAGE = (
    "Password reset instructions have been sent to your email address. "
    "Kindly take action before its expiration"
)


def inactive_account_message(frontend_url: str) -> str:
    return (
        "An active user with this e-mail address does not exist. If you "
        "registered with this email, ensure you have activated your account. "
        "You can check by logging in. If you have not activated it, visit "
        f"{frontend_url}/auth/regenerate-token to regenerate the token that "
        "will allow you activate your account."
    )


class PasswordService:
    """Service responsible for password reset requests."""

    def __init__(
        self,
        settings: Settings,
        user_repository: IUserRepository,
        token_broker: TokenBroker,
        dispatcher: INotificationDispatcher,
        event_bus: IEventBus
    ):
        self.settings = settings
        self.user_repository = user_repository
        self.token_broker = token_broker
        self.dispatcher = dispatcher
        self.event_bus = event_bus

    async def request_password_reset(self, db: AsyncSession, email: str) -> str:
        """
        Send reset instructions to an active account.

        Returns:
            The message to show the user

        Raises:
            NotFoundError: no active user has this email, unless account
                existence is concealed
            RetryableError: token storage or dispatch failed
        """
        with structlog.contextvars.bound_contextvars(email=email, workflow="password_reset_request"):
            try:
                user = await self.user_repository.find_active_user(db, email=email)
            except NotFoundError as e:
                logger.info("Password reset requested for unknown or inactive account")
                if self.settings.CONCEAL_ACCOUNT_EXISTENCE:
                    return PASSWORD_RESET_SENT_MESSAGE
                raise NotFoundError(inactive_account_message(self.settings.FRONTEND_URL)) from e

            token = await self.token_broker.issue(
                user.id,
                TokenPurpose.PASSWORD_RESET,
                self.settings.password_reset_token_ttl,
            )

            try:
                await self.dispatcher.send(
                    subject=f"{self.settings.APP_NAME} - Password Reset Instructions",
                    user_id=user.id,
                    email=user.email,
                    first_name=user.first_name,
                    last_name=user.last_name,
                    template_name=PASSWORD_RESET_TEMPLATE,
                    context={
                        "token": token,
                        "frontend_url": self.settings.FRONTEND_URL,
                        "expiration_seconds": self.settings.PASSWORD_RESET_TOKEN_TTL_SECONDS,
                    },
                )
            except Exception:
                await self._revoke_quietly(token)
                raise

            logger.info("Password reset instructions dispatched", user_id=str(user.id))
            await self._publish_requested(user.id, user.email)
            return PASSWORD_RESET_SENT_MESSAGE

    async def _revoke_quietly(self, token: str) -> None:
        try:
            await self.token_broker.revoke(token)
        except Exception as e:
            logger.error("Reset token revocation failed", error=str(e))

    async def _publish_requested(self, user_id: UUID, email: str) -> None:
        try:
            await self.event_bus.publish(PasswordResetRequestedEvent(user_id=user_id, email=email))
        except Exception as e:
            logger.error("Failed to publish password reset event", error=str(e))
