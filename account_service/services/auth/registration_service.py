"""
Account registration.

Registration is a short state machine. The user row, the verification token
and the verification email must either all exist or none of them, so the
relational transaction stays open until the email has been handed off and is
only then committed. Every step is its own coroutine and every failure moves
the attempt to FAILED after undoing what was already done.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...core.config import Settings
from ...core.exceptions import AccountServiceError, InternalError, TransactionError
from ...core.security import CredentialHasher
from ...events.auth_events import UserRegisteredEvent
from ...interfaces.event_interface import IEventBus
from ...interfaces.notification_interface import INotificationDispatcher
from ...interfaces.repository_interface import IUserRepository
from .token_broker import TokenBroker, TokenPurpose

logger = structlog.get_logger()

VERIFICATION_TEMPLATE = "verification_email.html"

REGISTRATION_SUCCESS_MESSAGE = (
    "Your account was created successfully. Check your email address to "
    "activate your account as we just sent you an activation link. Ensure "
    "you activate your account before the link expires"
)


class RegistrationStep(str, Enum):
    STARTED = "started"
    CREDENTIALS_HASHED = "credentials_hashed"
    PERSISTED_PENDING = "persisted_pending"
    TOKEN_ISSUED = "token_issued"
    NOTIFICATION_SENT = "notification_sent"
    COMMITTED = "committed"
    FAILED = "failed"


@dataclass
class RegistrationAttempt:
    """Progress record for one registration."""

    email: str
    first_name: str
    last_name: str
    state: RegistrationStep = RegistrationStep.STARTED
    completed_steps: List[RegistrationStep] = field(default_factory=list)
    user_id: Optional[UUID] = None
    password_hash: Optional[str] = field(default=None, repr=False)
    token: Optional[str] = field(default=None, repr=False)
    failure: Optional[AccountServiceError] = None

    def mark_step_completed(self, step: RegistrationStep) -> None:
        self.completed_steps.append(step)
        self.state = step

    def mark_failed(self, error: AccountServiceError) -> None:
        self.failure = error
        self.state = RegistrationStep.FAILED

    @property
    def succeeded(self) -> bool:
        return self.state is RegistrationStep.COMMITTED


class RegistrationService:
    """Creates accounts and sends the email verification link."""

    def __init__(
        self,
        settings: Settings,
        user_repository: IUserRepository,
        hasher: CredentialHasher,
        token_broker: TokenBroker,
        dispatcher: INotificationDispatcher,
        event_bus: IEventBus
    ):
        self.settings = settings
        self.user_repository = user_repository
        self.hasher = hasher
        self.token_broker = token_broker
        self.dispatcher = dispatcher
        self.event_bus = event_bus

    async def register(
        self,
        db: AsyncSession,
        email: str,
        password: str,
        first_name: str,
        last_name: str
    ) -> RegistrationAttempt:
        """
        Register a new account.

        Returns:
            The committed attempt

        Raises:
            DuplicateEmailError: the email is taken
            RetryableError: a store or the notification channel failed
            TransactionError: the final commit failed
        """
        attempt = RegistrationAttempt(email=email, first_name=first_name, last_name=last_name)
        await self.execute(db, attempt, password)
        if attempt.failure is not None:
            raise attempt.failure
        return attempt

    async def execute(
        self,
        db: AsyncSession,
        attempt: RegistrationAttempt,
        password: str
    ) -> RegistrationAttempt:
        """Drive ``attempt`` to COMMITTED or FAILED. Failures are recorded, not raised."""
        with structlog.contextvars.bound_contextvars(email=attempt.email, workflow="registration"):
            attempt.mark_step_completed(RegistrationStep.STARTED)
            try:
                await self._hash_credentials(attempt, password)
                await self._persist_pending(db, attempt)
                await self._issue_token(attempt)
                await self._send_notification(attempt)
                await self._commit(db, attempt)
            except AccountServiceError as e:
                await self._compensate(db, attempt, e)
                return attempt
            except Exception as e:
                logger.exception("Unexpected registration failure", state=attempt.state.value)
                error = InternalError()
                error.__cause__ = e
                await self._compensate(db, attempt, error)
                return attempt

            logger.info("Registration committed", user_id=str(attempt.user_id))
            await self._publish_registered(attempt)
            return attempt

    async def _hash_credentials(self, attempt: RegistrationAttempt, password: str) -> None:
        attempt.password_hash = await self.hasher.hash(password)
        attempt.mark_step_completed(RegistrationStep.CREDENTIALS_HASHED)

    async def _persist_pending(self, db: AsyncSession, attempt: RegistrationAttempt) -> None:
        attempt.user_id = await self.user_repository.create_user_with_profile(
            db,
            email=attempt.email,
            password_hash=attempt.password_hash,
            first_name=attempt.first_name,
            last_name=attempt.last_name,
        )
        attempt.mark_step_completed(RegistrationStep.PERSISTED_PENDING)

    async def _issue_token(self, attempt: RegistrationAttempt) -> None:
        attempt.token = await self.token_broker.issue(
            attempt.user_id,
            TokenPurpose.EMAIL_VERIFICATION,
            self.settings.email_verification_token_ttl,
        )
        attempt.mark_step_completed(RegistrationStep.TOKEN_ISSUED)

    async def _send_notification(self, attempt: RegistrationAttempt) -> None:
        await self.dispatcher.send(
            subject=f"{self.settings.APP_NAME} - Let's get you verified",
            user_id=attempt.user_id,
            email=attempt.email,
            first_name=attempt.first_name,
            last_name=attempt.last_name,
            template_name=VERIFICATION_TEMPLATE,
            context={
                "token": attempt.token,
                "frontend_url": self.settings.FRONTEND_URL,
                "expiration_seconds": self.settings.EMAIL_VERIFICATION_TOKEN_TTL_SECONDS,
            },
        )
        attempt.mark_step_completed(RegistrationStep.NOTIFICATION_SENT)

    async def _commit(self, db: AsyncSession, attempt: RegistrationAttempt) -> None:
        try:
            await db.commit()
        except (SQLAlchemyError, OSError) as e:
            logger.error("Registration commit failed", user_id=str(attempt.user_id), error=str(e))
            raise TransactionError() from e
        attempt.mark_step_completed(RegistrationStep.COMMITTED)

    async def _compensate(
        self,
        db: AsyncSession,
        attempt: RegistrationAttempt,
        error: AccountServiceError
    ) -> None:
        """Roll back the open transaction and revoke an issued token."""
        failed_at = attempt.state
        attempt.mark_failed(error)

        logger.warning(
            "Registration failed",
            failed_after=failed_at.value,
            error_code=error.error_code,
            retryable=error.retryable
        )

        try:
            await db.rollback()
        except Exception as e:
            logger.error("Registration rollback failed", error=str(e))

        if attempt.token is not None:
            try:
                await self.token_broker.revoke(attempt.token)
            except Exception as e:
                logger.error("Verification token revocation failed", error=str(e))

    async def _publish_registered(self, attempt: RegistrationAttempt) -> None:
        event = UserRegisteredEvent(user_id=attempt.user_id, email=attempt.email)
        try:
            delivered = await self.event_bus.publish(event)
        except Exception as e:
            logger.error("Failed to publish registration event", error=str(e))
            return
        if not delivered:
            logger.warning("Registration event was not handled by every listener")
