import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from fastapi import Response
from jose import JWTError, jwt
from passlib.context import CryptContext

from app.core.config import settings

# ── Bcrypt OTP Hashing ────────────────────────────────────────────────
# bcrypt salts every hash; the same code gives a different hash each time
otp_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.OTP_HASH_ROUNDS,
)


def generate_numeric_otp(length: int | None = None) -> str:
    """Uniform over the digit space, zero-padded so leading zeros survive."""
    length = length or settings.OTP_LENGTH
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def hash_otp(code: str) -> str:
    return otp_context.hash(code)


def verify_otp_hash(code: str, hashed: str | None) -> bool:
    """
    Timing-safe bcrypt comparison.
    A missing or malformed stored hash never matches.
    """
    if not hashed:
        return False
    try:
        return otp_context.verify(code, hashed)
    except ValueError:
        return False


def is_valid_otp_format(code: str) -> bool:
    return len(code) == settings.OTP_LENGTH and code.isascii() and code.isdigit()


# ── Session JWT ───────────────────────────────────────────────────────
@dataclass(frozen=True)
class SessionPayload:
    user_id: str
    email: str


def sign_session(user_id: str, email: str, ttl_seconds: int | None = None) -> str:
    """
    Creates a signed session token. Rotating JWT_SECRET invalidates every
    outstanding session; there is no per-session revocation.

    Payload contains:
      userId: owning user id
      email:  owning user email
      iat:    issued at
      exp:    expiry (SESSION_TTL_SECONDS unless overridden)
    """
    now = datetime.now(timezone.utc)
    ttl = settings.SESSION_TTL_SECONDS if ttl_seconds is None else ttl_seconds
    payload = {
        "userId": str(user_id),
        "email":  email,
        "iat":    now,
        "exp":    now + timedelta(seconds=ttl),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_session(token: str | None, secret: str | None = None) -> SessionPayload | None:
    """Returns the session identity, or None for any invalid token. Never raises."""
    if not token:
        return None
    try:
        payload = jwt.decode(
            token,
            secret or settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except JWTError:
        return None

    user_id = payload.get("userId")
    email = payload.get("email")
    if not isinstance(user_id, str) or not isinstance(email, str) or not user_id or not email:
        return None
    return SessionPayload(user_id=user_id, email=email)


# ── Session Cookie ────────────────────────────────────────────────────
def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        max_age=settings.SESSION_TTL_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.SESSION_COOKIE_NAME,
        path="/",
        httponly=True,
        samesite="lax",
        secure=settings.is_production,
    )
