import logging
from datetime import datetime, timezone, timedelta

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.controllers.identity_controller import OtpIdentity, get_user_by_email, normalize_email, reconcile
from app.core.config import settings
from app.core.email_service import EmailDeliveryError, send_otp_email
from app.core.errors import (
    AttemptsExceeded,
    CodeMismatch,
    TokenExpired,
    TokenInvalid,
    TokenNotPending,
    UpstreamFailure,
)
from app.core.security import generate_numeric_otp, hash_otp, sign_session, verify_otp_hash
from app.models.otp_token import OtpStatus, OtpToken
from app.models.user import User

logger = logging.getLogger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is stored in UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


async def _expire_token(db: AsyncSession, token_id: str) -> None:
    await db.execute(
        update(OtpToken)
        .where(OtpToken.id == token_id)
        .where(OtpToken.status == OtpStatus.PENDING)
        .values(status=OtpStatus.EXPIRED)
    )
    await db.commit()


async def issue_otp(db: AsyncSession, email: str) -> str:
    """
    Issues a fresh code for `email` and returns the new token id.

    Every earlier PENDING token of the user is expired first, so at most one
    token per user is ever actionable.
    """
    email = normalize_email(email)
    user = await reconcile(db, OtpIdentity(email=email))

    await db.execute(
        update(OtpToken)
        .where(OtpToken.user_id == user.id)
        .where(OtpToken.status == OtpStatus.PENDING)
        .values(status=OtpStatus.EXPIRED)
    )

    otp = generate_numeric_otp()
    token = OtpToken(
        user_id=user.id,
        otp_hash=hash_otp(otp),
        expires_at=_now() + timedelta(seconds=settings.otp_ttl_seconds),
        attempts_left=settings.otp_max_attempts,
        status=OtpStatus.PENDING,
    )
    db.add(token)
    await db.commit()

    try:
        await send_otp_email(email, otp, token.id)
    except EmailDeliveryError as e:
        logger.error("OTP delivery failed for %s: %s", email, e)
        raise UpstreamFailure("Failed to send OTP email") from e

    return token.id


async def verify_otp(db: AsyncSession, email: str, otp: str, token_id: str) -> tuple[User, str]:
    """
    Verifies `otp` against token `token_id` and returns (user, session token).

    Failed comparisons are committed before raising so wrong guesses burn the
    attempt budget even though the request fails.
    """
    user = await get_user_by_email(db, email)

    q = await db.execute(select(OtpToken).where(OtpToken.id == token_id))
    record = q.scalar_one_or_none()

    if user is None or record is None or record.user_id != user.id:
        raise TokenInvalid()

    if record.status != OtpStatus.PENDING:
        raise TokenNotPending()

    if _now() > _as_utc(record.expires_at):
        await _expire_token(db, record.id)
        raise TokenExpired()

    if record.attempts_left <= 0:
        await _expire_token(db, record.id)
        raise AttemptsExceeded()

    if not verify_otp_hash(otp, record.otp_hash):
        remaining = max(record.attempts_left - 1, 0)
        await db.execute(
            update(OtpToken)
            .where(OtpToken.id == record.id)
            .where(OtpToken.attempts_left > 0)
            .values(attempts_left=OtpToken.attempts_left - 1)
            .execution_options(synchronize_session=False)
        )
        await db.commit()
        logger.info("OTP mismatch for token %s (%d attempts left)", record.id, remaining)
        raise CodeMismatch(remaining)

    # conditional update: only one concurrent verifier can flip PENDING -> USED
    result = await db.execute(
        update(OtpToken)
        .where(OtpToken.id == record.id)
        .where(OtpToken.status == OtpStatus.PENDING)
        .values(status=OtpStatus.USED)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        raise TokenNotPending()
    await db.commit()

    logger.info("OTP token %s used; session issued for user %s", record.id, user.id)
    return user, sign_session(user.id, user.email)
