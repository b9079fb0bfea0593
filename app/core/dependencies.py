import logging
from dataclasses import dataclass

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import Settings, settings
from app.core.errors import Forbidden, Unauthorized
from app.core.security import SessionPayload, verify_session
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RequestSession:
    user_id: str
    email: str
    is_bypassed: bool = False


async def resolve_bypass_identity(db: AsyncSession, config: Settings = settings) -> SessionPayload | None:
    """
    Resolves the operator-configured bypass identity once, at startup.

    An explicit (id, email) pair is used as-is; an email alone is looked up.
    Returns None when the bypass is disabled or cannot be resolved.
    """
    if not config.ALLOW_UNAUTHENTICATED:
        return None

    user_id = config.bypass_user_id
    email = config.bypass_user_email

    if user_id and email:
        return SessionPayload(user_id=user_id, email=email)

    if email:
        try:
            q = await db.execute(select(User.id).where(User.email == email.lower()))
            found = q.scalar_one_or_none()
        except SQLAlchemyError:
            logger.exception("Failed to resolve bypass user %s", email)
            return None
        if found:
            return SessionPayload(user_id=found, email=email)

    logger.warning("ALLOW_UNAUTHENTICATED is set but no bypass user could be resolved")
    return None


def session_from_cookie(request: Request) -> SessionPayload | None:
    return verify_session(request.cookies.get(settings.SESSION_COOKIE_NAME))


async def get_request_session(request: Request) -> RequestSession | None:
    """
    Caller identity: a valid session cookie wins; otherwise the bypass
    identity resolved at startup (if any); otherwise None.
    """
    session = session_from_cookie(request)
    if session:
        return RequestSession(user_id=session.user_id, email=session.email, is_bypassed=False)

    bypass: SessionPayload | None = getattr(request.app.state, "bypass_identity", None)
    if bypass:
        return RequestSession(user_id=bypass.user_id, email=bypass.email, is_bypassed=True)

    return None


async def require_session(
    session: RequestSession | None = Depends(get_request_session),
) -> RequestSession:
    if session is None:
        raise Unauthorized()
    return session


def ensure_can_modify(session: RequestSession, owner_id: str | None, actor_role: str | None = None) -> None:
    """
    Ownership policy for write operations.
    Bypassed sessions are trusted; otherwise only the owner or an admin passes.
    """
    if session.is_bypassed:
        return
    if owner_id is not None and owner_id == session.user_id:
        return
    if actor_role == UserRole.ADMIN.value:
        return
    raise Forbidden()
