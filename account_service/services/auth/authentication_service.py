"""
Password login.

Session state is written only after the password has been verified, and the
session id is always replaced before the claims are stored.
"""

from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ...core.config import Settings
from ...core.exceptions import MismatchError, NotFoundError, SessionError
from ...core.security import CredentialHasher
from ...events.auth_events import UserAuthenticatedEvent
from ...interfaces.event_interface import IEventBus
from ...interfaces.repository_interface import IUserRepository
from ...interfaces.session_interface import ISession
from ...models.user import User
from ..session_service import USER_EMAIL_KEY, USER_ID_KEY

logger = structlog.get_logger()


class AuthenticationService:
    """Checks credentials and establishes the login session."""

    def __init__(
        self,
        settings: Settings,
        user_repository: IUserRepository,
        hasher: CredentialHasher,
        event_bus: IEventBus
    ):
        self.settings = settings
        self.user_repository = user_repository
        self.hasher = hasher
        self.event_bus = event_bus

    async def login(
        self,
        db: AsyncSession,
        session: ISession,
        email: str,
        password: str
    ) -> User:
        """
        Authenticate ``email``/``password`` and bind the user to ``session``.

        Raises:
            NotFoundError: no active user has this email
            MismatchError: the password is wrong
            SessionError: the session could not be written; it has been purged
        """
        with structlog.contextvars.bound_contextvars(email=email, workflow="login"):
            try:
                user = await self.user_repository.find_active_user(db, email=email)
                await self.hasher.verify(user.password, password)
            except (NotFoundError, MismatchError) as e:
                logger.info("Login rejected", reason=e.error_code)
                if self.settings.CONCEAL_ACCOUNT_EXISTENCE:
                    raise MismatchError() from e
                raise

            await self._establish_session(session, user)

            logger.info("Login succeeded", user_id=str(user.id))
            await self._publish_authenticated(user)
            return user

    async def _establish_session(self, session: ISession, user: User) -> None:
        try:
            await session.renew()
            await session.insert(USER_ID_KEY, str(user.id))
            await session.insert(USER_EMAIL_KEY, user.email)
        except SessionError:
            logger.error("Session could not be established", user_id=str(user.id))
            try:
                await session.purge()
            except SessionError as purge_error:
                logger.error("Session purge failed", error=str(purge_error))
            raise

    async def _publish_authenticated(self, user: User) -> None:
        event = UserAuthenticatedEvent(user_id=user.id, email=user.email)
        try:
            await self.event_bus.publish(event)
        except Exception as e:
            logger.error("Failed to publish authentication event", error=str(e))
