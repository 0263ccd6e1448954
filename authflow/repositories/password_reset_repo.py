from sqlalchemy.orm import Session
from sqlalchemy import delete, select
from datetime import datetime
from typing import Optional
from authflow.models.password_reset_token import PasswordResetToken


def create_reset_token(db: Session, user_id: str, token_hash: str, expires_at: datetime) -> PasswordResetToken:
    rec = PasswordResetToken(user_id=user_id, token_hash=token_hash, expires_at=expires_at)
    db.add(rec)
    db.flush()
    return rec


def find_token(db: Session, token_hash: str) -> Optional[PasswordResetToken]:
    stmt = select(PasswordResetToken).where(PasswordResetToken.token_hash == token_hash).limit(1)
    return db.scalars(stmt).first()


def delete_token(db: Session, rec) -> bool:
    # ids can be reused after a delete, so match the hash too
    res = db.execute(
        delete(PasswordResetToken).where(
            PasswordResetToken.id == rec.id, PasswordResetToken.token_hash == rec.token_hash
        )
    )
    return res.rowcount == 1


def delete_tokens_for_user(db: Session, user_id: str) -> int:
    res = db.execute(delete(PasswordResetToken).where(PasswordResetToken.user_id == user_id))
    return res.rowcount
