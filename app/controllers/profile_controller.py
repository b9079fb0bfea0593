from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.identity_controller import get_user_by_email, normalize_email
from app.core.dependencies import RequestSession, ensure_can_modify
from app.core.errors import Conflict, NotFound, ValidationError
from app.models.user import User
from app.schemas.profile import ProfileUpsert, RoleUpdate


async def list_profiles(db: AsyncSession) -> list[User]:
    q = await db.execute(select(User).order_by(User.created_at.desc()))
    return list(q.scalars().all())


async def get_profile(
    db: AsyncSession,
    wallet_address: str | None,
    email: str | None,
    session: RequestSession | None,
) -> User:
    """
    Looks a profile up by wallet first, then email.
    With neither given, the caller's own session email is used.
    """
    wallet_address = wallet_address.strip() if wallet_address else None
    email = normalize_email(email) if email else None

    if not wallet_address and not email and session is not None:
        email = normalize_email(session.email)

    if not wallet_address and not email:
        raise ValidationError("Missing walletAddress or email")

    if wallet_address:
        q = await db.execute(select(User).where(User.wallet_address == wallet_address))
        user = q.scalar_one_or_none()
    else:
        user = await get_user_by_email(db, email)

    if user is None:
        raise NotFound("User not found")
    return user


async def upsert_profile(db: AsyncSession, payload: ProfileUpsert) -> User:
    """
    Creates or updates the profile keyed by email.
    Username and wallet must not belong to another user.
    """
    email = normalize_email(str(payload.email))

    if payload.username:
        q = await db.execute(
            select(User.id)
            .where(User.username == payload.username)
            .where(User.email != email)
            .limit(1)
        )
        if q.scalar_one_or_none():
            raise ValidationError({"username": ["Username is already taken"]})

    q = await db.execute(
        select(User.id)
        .where(User.wallet_address == payload.wallet_address)
        .where(User.email != email)
        .limit(1)
    )
    if q.scalar_one_or_none():
        raise ValidationError({"walletAddress": ["Wallet already belongs to another user"]})

    user = await get_user_by_email(db, email)
    if user is None:
        user = User(email=email)
        db.add(user)

    user.wallet_address = payload.wallet_address
    user.username = payload.username
    if payload.xp_points is not None:
        user.xp_points = payload.xp_points
    if payload.github:
        user.github = payload.github

    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        raise Conflict("Profile conflicts with an existing user") from e

    await db.commit()
    return user


async def update_role(db: AsyncSession, payload: RoleUpdate, session: RequestSession) -> User:
    """
    Roles are administered, not owned: only admins (or a bypassed caller)
    may change one, including their own.
    """
    actor_role = None
    if not session.is_bypassed:
        q = await db.execute(select(User.role).where(User.id == session.user_id))
        actor_role = q.scalar_one_or_none()
    ensure_can_modify(session, None, actor_role)

    target = await get_user_by_email(db, str(payload.email))
    if target is None:
        raise NotFound("User not found")

    target.role = payload.role
    await db.flush()
    await db.commit()
    await db.refresh(target)
    return target
