from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel

from app.core.config import settings
from app.core.security import is_valid_otp_format
from app.models.user import User


class CamelModel(BaseModel):
    """JSON uses camelCase; Python code uses snake_case."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Request Bodies ────────────────────────────────────────────────────
class RequestOtp(BaseModel):
    email: EmailStr

    model_config = {
        "json_schema_extra": {"example": {"email": "new@example.com"}}
    }


class VerifyOtp(CamelModel):
    email: EmailStr
    otp: str
    token_id: str = Field(..., min_length=8)

    @field_validator("otp")
    @classmethod
    def otp_digits(cls, v: str) -> str:
        if not is_valid_otp_format(v):
            raise ValueError(f"OTP must be exactly {settings.OTP_LENGTH} digits")
        return v


class GithubCodeRequest(BaseModel):
    code: str = Field(..., min_length=1)


class GithubConnectRequest(BaseModel):
    access_token: str = Field(..., min_length=1)


class GoogleLoginRequest(CamelModel):
    email: EmailStr
    name: str | None = None
    sub: str | None = None           # Google user id, not stored
    email_verified: bool | None = None

    @field_validator("name", "sub")
    @classmethod
    def strip(cls, v: str | None) -> str | None:
        return v.strip() if v is not None else None


# ── Response Bodies ───────────────────────────────────────────────────
class RequestOtpResponse(CamelModel):
    ok: bool = True
    token_id: str


class UserInfo(CamelModel):
    """
    Safe user info sent to the frontend after a login.
    """
    user_id: str
    email: str
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    display_name: str | None = None
    location: str | None = None
    skills: list[str] = []
    socials: str | None = None
    github: str | None = None
    bio: str | None = None
    role: str = "user"
    wallet_address: str | None = None
    xp_points: int = 0
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> "UserInfo":
        return cls(
            user_id=user.id,
            email=user.email,
            username=user.username,
            first_name=user.first_name,
            last_name=user.last_name,
            display_name=user.display_name,
            location=user.location,
            skills=user.skills or [],
            socials=user.socials,
            github=user.github,
            bio=user.bio,
            role=user.role or "user",
            wallet_address=user.wallet_address,
            xp_points=user.xp_points or 0,
            created_at=user.created_at,
        )


class LoginResponse(CamelModel):
    ok: bool = True
    user: UserInfo


class SessionInfo(CamelModel):
    user_id: str
    email: str


class MeResponse(CamelModel):
    """Session probe, returned by GET /auth/me"""
    ok: bool = True
    user: SessionInfo


class GithubUser(CamelModel):
    id: str
    email: str
    github_username: str | None
    wallet_address: str | None


class GithubLoginResponse(CamelModel):
    ok: bool = True
    session: str
    user: GithubUser


class GithubConnectResponse(CamelModel):
    ok: bool = True
    github: str | None
