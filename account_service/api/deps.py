"""
Dependency injection for FastAPI endpoints.
Resolves the container, database sessions and the client session.
"""
from typing import AsyncGenerator

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ..container.container import Container
from ..core.database import session_scope
from ..services.session_service import Session


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_db(
    container: Container = Depends(get_container)
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session; the workflow decides whether to commit."""
    async with session_scope(container.session_factory) as session:
        yield session


def get_client_session(
    request: Request,
    container: Container = Depends(get_container)
) -> Session:
    """Session bound to the id in the request cookie, or a fresh one."""
    session_id = request.cookies.get(container.settings.SESSION_COOKIE_NAME)
    return container.session_store.load(session_id)
