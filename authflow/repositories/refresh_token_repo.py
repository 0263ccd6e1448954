# authflow/repositories/refresh_token_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from authflow.models.refresh_token import RefreshToken


def create_token(db: Session, user_id: str, token_hash: str, expires_at: datetime) -> RefreshToken:
    rec = RefreshToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
    db.add(rec)
    db.flush()
    return rec


def find_token(db: Session, token_hash: str) -> Optional[RefreshToken]:
    stmt = select(RefreshToken).where(RefreshToken.token_hash == token_hash).limit(1)
    return db.scalars(stmt).first()


def delete_token(db: Session, rec) -> bool:
    """Deletes exactly the row that was read; False when it is already gone."""
    res = db.execute(
        delete(RefreshToken).where(RefreshToken.id == rec.id, RefreshToken.token_hash == rec.token_hash)
    )
    return res.rowcount == 1


def delete_tokens_for_user(db: Session, user_id: str) -> int:
    res = db.execute(delete(RefreshToken).where(RefreshToken.user_id == user_id))
    return res.rowcount


def delete_expired_older_than(db: Session, user_id: str, cutoff: datetime) -> int:
    """Drop this user's refresh rows whose expiry lies before ``cutoff``."""
    res = db.execute(
        delete(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.expires_at < cutoff,
        )
        # in-memory evaluation would compare naive and aware datetimes
        .execution_options(synchronize_session=False)
    )
    return res.rowcount
