import logging

from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.identity_controller import GithubIdentity, GoogleIdentity, reconcile
from app.core.security import sign_session
from app.models.user import User
from app.schemas.auth import GoogleLoginRequest
from app.services import github_oauth

logger = logging.getLogger(__name__)


async def github_login(db: AsyncSession, code: str) -> tuple[User, str]:
    """Code exchange → profile → reconcile → session."""
    access_token = await github_oauth.exchange_code(code)
    profile = await github_oauth.fetch_profile(access_token)

    user = await reconcile(db, GithubIdentity(email=profile.email, login=profile.login))
    await db.commit()

    logger.info("GitHub login for user %s (%s)", user.id, profile.login)
    return user, sign_session(user.id, user.email)


async def github_connect(db: AsyncSession, access_token: str) -> User:
    """Links a GitHub handle to an already existing user; never creates one."""
    profile = await github_oauth.fetch_profile(access_token)
    user = await reconcile(db, GithubIdentity(email=profile.email, login=profile.login), create=False)
    await db.commit()
    return user


async def google_login(db: AsyncSession, payload: GoogleLoginRequest) -> tuple[User, str]:
    """
    The Google token is verified by the caller before this point; only the
    asserted email is trusted here.
    """
    identity = GoogleIdentity(email=str(payload.email), name=payload.name, sub=payload.sub)
    user = await reconcile(db, identity)
    await db.commit()

    logger.info("Google login for user %s", user.id)
    return user, sign_session(user.id, user.email)
