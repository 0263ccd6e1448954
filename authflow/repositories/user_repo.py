# authflow/repositories/user_repo.py
from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql import exists

from authflow.models.user import User

# Repositories only flush; the calling flow owns commit/rollback.


# ------------------------------------------------------------
# READ
# ------------------------------------------------------------
def get_by_id(db: Session, user_id: str) -> Optional[User]:
    return db.get(User, user_id)


def get_by_email(db: Session, email: str) -> Optional[User]:
    return db.scalar(select(User).where(User.email == email))


def is_email_available(db: Session, email: str) -> bool:
    return not db.scalar(select(exists().where(User.email == email)))


# ------------------------------------------------------------
# CREATE
# ------------------------------------------------------------
def create_user(
    db: Session,
    *,
    email: str,
    password_hash: str,
    first_name: Optional[str] = None,
    last_name: Optional[str] = None,
) -> User:
    """Raises IntegrityError on a duplicate email."""
    user = User(
        email=email,
        password_hash=password_hash,
        first_name=first_name,
        last_name=last_name,
        is_email_verified=False,
    )
    db.add(user)
    db.flush()
    return user


# ------------------------------------------------------------
# UPDATE
# ------------------------------------------------------------
def mark_user_verified(db: Session, user_id: str, verified_at: datetime) -> bool:
    """
    Sets is_email_verified once. Idempotent for already verified users.
    Returns False when the user does not exist.
    """
    user = db.get(User, user_id)
    if not user:
        return False
    if user.is_email_verified:
        return True
    user.is_email_verified = True
    user.email_verified_at = verified_at
    db.flush()
    return True


def update_password_hash(db: Session, user_id: str, pwd_hash: str, changed_at: datetime) -> bool:
    """
    UPDATE users
       SET password_hash = :pwd_hash,
           password_changed_at = :changed_at
     WHERE id = :user_id
    """
    res = db.execute(
        update(User)
        .where(User.id == user_id)
        .values(password_hash=pwd_hash, password_changed_at=changed_at)
        .execution_options(synchronize_session="fetch")
    )
    return res.rowcount == 1
