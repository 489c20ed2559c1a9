"""Shared FastAPI dependency helpers."""

from collections.abc import AsyncGenerator

from fastapi import HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from tsumitan.db.session import get_db_session


def get_current_user_id(request: Request) -> str:
    """Return the user id attached by the authentication middleware."""
    user_id = getattr(request.state, "user_id", None)
    if not isinstance(user_id, str) or not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized.")
    return user_id


async def get_database_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """Expose the request-scoped async database session dependency."""
    async for session in get_db_session(request.app.state.session_factory):
        yield session
