from __future__ import annotations

import uuid
from enum import Enum
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    String,
    Integer,
    DateTime,
    Text,
    func,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --------------------------------------------------
# ENUM
# --------------------------------------------------

class UserRole(str, Enum):
    USER = "user"
    PARTNER = "partner"
    ORGANIZER = "organizer"
    ADMIN = "admin"


# --------------------------------------------------
# MODEL
# --------------------------------------------------

class User(Base):
    """
    Identity record. `email` is the natural key every login flow merges on;
    it is always stored trimmed and lowercased.
    """
    __tablename__ = "users"

    __table_args__ = (
        UniqueConstraint("email", name="uq_users_email"),
        UniqueConstraint("wallet_address", name="uq_users_wallet_address"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    wallet_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    username: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, index=True)

    # stored as plain text so new roles need no enum migration
    role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=UserRole.USER.value,
        server_default=UserRole.USER.value,
    )

    github: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # --------------------------------------------------
    # PROFILE
    # --------------------------------------------------

    first_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    display_name: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    skills: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)
    socials: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    xp_points: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        server_default="0",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        onupdate=_utcnow,
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r} role={self.role}>"
