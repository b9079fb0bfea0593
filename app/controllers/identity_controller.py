"""
Identity reconciliation.

Every login flow (OTP, GitHub, Google) reduces to an identity assertion:
a normalized email plus the attributes that provider is allowed to write.
`reconcile` is the only place that creates or merges User rows, so no two
rows can ever exist for the same email.
"""
import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFound
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True)
class IdentityAssertion:
    email: str
    provider = "unknown"

    def create_fields(self) -> dict[str, Any]:
        return {"role": UserRole.USER.value, "xp_points": 0}

    def merge_fields(self, user: User) -> dict[str, Any]:
        return {}


@dataclass(frozen=True)
class OtpIdentity(IdentityAssertion):
    provider = "otp"

    @property
    def fallback_username(self) -> str | None:
        return _clean(self.email.split("@")[0])

    def create_fields(self) -> dict[str, Any]:
        return {**super().create_fields(), "username": self.fallback_username}

    def merge_fields(self, user: User) -> dict[str, Any]:
        # backfill only; never overwrite a username the user picked
        if not user.username and self.fallback_username:
            return {"username": self.fallback_username}
        return {}


@dataclass(frozen=True)
class GithubIdentity(IdentityAssertion):
    login: str = ""
    provider = "github"

    def create_fields(self) -> dict[str, Any]:
        return {**super().create_fields(), "github": self.login, "username": self.login}

    def merge_fields(self, user: User) -> dict[str, Any]:
        if self.login and user.github != self.login:
            return {"github": self.login}
        return {}


@dataclass(frozen=True)
class GoogleIdentity(IdentityAssertion):
    name: str | None = None
    sub: str | None = None
    provider = "google"


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    q = await db.execute(select(User).where(User.email == normalize_email(email)))
    return q.scalar_one_or_none()


async def _merge(db: AsyncSession, user: User, identity: IdentityAssertion) -> User:
    changes = identity.merge_fields(user)
    if changes:
        for field, value in changes.items():
            setattr(user, field, value)
        await db.flush()
        logger.info("Merged %s identity into user %s: %s", identity.provider, user.id, sorted(changes))
    return user


async def reconcile(db: AsyncSession, identity: IdentityAssertion, *, create: bool = True) -> User:
    """
    Maps an identity assertion onto exactly one User row keyed by email.

    The insert is the first write of the unit of work, so on a uniqueness
    violation (a concurrent first login won the insert) the whole session is
    rolled back and the winner's row is re-fetched and merged instead.
    """
    email = normalize_email(identity.email)

    user = await get_user_by_email(db, email)
    if user is not None:
        return await _merge(db, user, identity)

    if not create:
        raise NotFound("User not found")

    user = User(email=email, **identity.create_fields())
    db.add(user)
    try:
        await db.flush()
    except IntegrityError:
        await db.rollback()
        logger.warning("Concurrent first login for %s via %s; merging into existing row", email, identity.provider)
        user = await get_user_by_email(db, email)
        if user is None:
            raise
        return await _merge(db, user, identity)

    logger.info("Created user %s for %s via %s", user.id, email, identity.provider)
    return user
