# authflow/repositories/verification_token_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from authflow.models.verification_token import VerificationToken


def create_token(db: Session, user_id: str, token: str, expires_at: datetime) -> VerificationToken:
    row = VerificationToken(user_id=user_id, token=token, expires_at=expires_at)
    db.add(row)
    db.flush()
    return row


def find_token(db: Session, user_id: str, token: str) -> Optional[VerificationToken]:
    stmt = (
        select(VerificationToken)
        .where(VerificationToken.user_id == user_id, VerificationToken.token == token)
        .limit(1)
    )
    return db.execute(stmt).scalar_one_or_none()


def delete_token(db: Session, row) -> bool:
    """False when another request already removed the row."""
    res = db.execute(
        delete(VerificationToken).where(
            VerificationToken.id == row.id,
            VerificationToken.user_id == row.user_id,
            VerificationToken.token == row.token,
        )
    )
    return res.rowcount == 1


def delete_tokens_for_user(db: Session, user_id: str) -> int:
    res = db.execute(delete(VerificationToken).where(VerificationToken.user_id == user_id))
    return res.rowcount
