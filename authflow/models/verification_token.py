# authflow/models/verification_token.py
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from sqlalchemy import String, DateTime, ForeignKey, Integer, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column, relationship
from authflow.db.database import Base

if TYPE_CHECKING:
    from authflow.models.user import User


class VerificationToken(Base):
    __tablename__ = "verification_tokens"
    # 4-digit codes repeat across users, so uniqueness is per user
    __table_args__ = (
        UniqueConstraint("user_id", "token", name="ux_verification_tokens_user_token"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    token: Mapped[str] = mapped_column(String(8), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="verification_tokens")
