from __future__ import annotations

import uuid
from enum import Enum
from datetime import datetime, timezone

from sqlalchemy import DateTime, ForeignKey, Integer, String, Enum as SAEnum, Index, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class OtpStatus(str, Enum):
    PENDING = "PENDING"
    USED = "USED"
    EXPIRED = "EXPIRED"


class OtpToken(Base):
    """
    One-time login code. Only the bcrypt hash of the code is stored.

    PENDING -> USED     successful verification
    PENDING -> EXPIRED  TTL elapsed, attempts exhausted, or superseded
    Rows are kept as an audit trail and never deleted.
    """
    __tablename__ = "otp_tokens"

    __table_args__ = (
        Index("ix_otp_tokens_user_status", "user_id", "status"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    otp_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    attempts_left: Mapped[int] = mapped_column(Integer, nullable=False)

    status: Mapped[OtpStatus] = mapped_column(
        SAEnum(OtpStatus, name="otp_status_enum", native_enum=False, length=16),
        nullable=False,
        default=OtpStatus.PENDING,
        server_default=OtpStatus.PENDING.value,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<OtpToken id={self.id} user_id={self.user_id} status={self.status.value}>"
