from datetime import datetime
from typing import Literal

from pydantic import EmailStr, Field, field_validator

from app.models.user import User
from app.schemas.auth import CamelModel


class ProfileUpsert(CamelModel):
    email: EmailStr
    wallet_address: str = Field(..., min_length=1)
    username: str | None = Field(
        None,
        min_length=3,
        max_length=50,
        pattern=r"^[a-zA-Z0-9._-]+$",
    )
    xp_points: int | None = Field(None, ge=0)
    github: str | None = Field(None, min_length=1, max_length=100)

    @field_validator("wallet_address", "username", "github", mode="before")
    @classmethod
    def strip(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("wallet_address")
    @classmethod
    def wallet_not_blank(cls, v: str) -> str:
        if not v:
            raise ValueError("Wallet address must not be empty")
        return v


class Profile(CamelModel):
    id: str
    email: str
    wallet_address: str | None
    username: str
    xp_points: int
    role: str
    github_username: str | None
    created_at: datetime | None

    @classmethod
    def from_user(cls, user: User) -> "Profile":
        return cls(
            id=user.id,
            email=user.email,
            wallet_address=user.wallet_address,
            username=user.username or "",
            xp_points=user.xp_points or 0,
            role=user.role or "user",
            github_username=user.github,
            created_at=user.created_at,
        )


class ProfileResponse(CamelModel):
    ok: bool = True
    profile: Profile


class ProfileListResponse(CamelModel):
    ok: bool = True
    profiles: list[Profile]


class RoleUpdate(CamelModel):
    email: EmailStr
    role: Literal["user", "partner", "organizer", "admin"]


class RoleInfo(CamelModel):
    email: str
    role: str
    updated_at: datetime | None


class RoleUpdateResponse(CamelModel):
    ok: bool = True
    user: RoleInfo
