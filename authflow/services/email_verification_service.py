# authflow/services/email_verification_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authflow.core.config import Settings
from authflow.core.errors import ErrorCode, Result, internal_error
from authflow.core.security import generate_verification_code
from authflow.db.database import transaction
from authflow.models.verification_token import VerificationToken
from authflow.repositories import user_repo, verification_token_repo
from authflow.services.mail_service import Mailer, deliver_quietly
from authflow.services.types import Message
from authflow.utils.timeutils import is_past, utcnow

log = logging.getLogger(__name__)

INVALID_TOKEN_MESSAGE = "Invalid verification token"
INVALID_TOKEN_DESCRIPTION = "Verification token is invalid or expired"


class EmailVerificationService:
    """Issues and consumes single-use 4-digit email verification codes.

    Reissuing a code deletes the user's earlier codes, so at most one is live.
    A code is deleted exactly once: on successful verification or when it is
    found expired.
    """

    def __init__(self, *, settings: Settings, mailer: Mailer, clock: Callable[[], datetime] = utcnow) -> None:
        self.settings = settings
        self.mailer = mailer
        self.clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.VERIFICATION_TOKEN_EXPIRE_MINUTES)

    def issue(self, db: Session, user_id: str) -> Result[VerificationToken]:
        try:
            with transaction(db):
                user = user_repo.get_by_id(db, user_id)
                if not user:
                    return Result.failure(ErrorCode.USER_NOT_FOUND, "User not found")
                verification_token_repo.delete_tokens_for_user(db, user.id)
                row = verification_token_repo.create_token(
                    db,
                    user.id,
                    generate_verification_code(),
                    self.clock() + self.ttl,
                )
        except SQLAlchemyError:
            log.exception("Could not store verification token for user %s", user_id)
            return internal_error()

        log.info("Verification token issued for user %s", user.id)
        # Registration must not depend on mail delivery
        deliver_quietly(self.mailer.send_verification_email, user.email, row.token, user.display_name)
        return Result.success(row)

    def consume(self, db: Session, token: str, email: str) -> Result[Message]:
        token = (token or "").strip()
        try:
            with transaction(db):
                user = user_repo.get_by_email(db, email)
                row = verification_token_repo.find_token(db, user.id, token) if user and token else None
                if row is None:
                    return Result.failure(
                        ErrorCode.TOKEN_NOT_FOUND, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_DESCRIPTION
                    )

                now = self.clock()
                if is_past(row.expires_at, now):
                    if not verification_token_repo.delete_token(db, row):
                        return Result.failure(
                            ErrorCode.TOKEN_NOT_FOUND, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_DESCRIPTION
                        )
                    log.info("Expired verification token removed for user %s", user.id)
                    return Result.failure(
                        ErrorCode.TOKEN_EXPIRED,
                        "Verification token expired",
                        "Verification token is expired",
                    )

                # zero rows: a concurrent request consumed it first
                if not verification_token_repo.delete_token(db, row):
                    return Result.failure(
                        ErrorCode.TOKEN_NOT_FOUND, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_DESCRIPTION
                    )
                user_repo.mark_user_verified(db, user.id, now)
        except SQLAlchemyError:
            log.exception("Verification failed on the store")
            return internal_error()

        log.info("Email verified for user %s", user.id)
        return Result.success(
            Message(
                message="Email verified successfully",
                description="Email verification completed successfully, You can now login",
            )
        )

    def resend(self, db: Session, email: str) -> Result[Message]:
        try:
            user = user_repo.get_by_email(db, email)
        except SQLAlchemyError:
            log.exception("User lookup failed")
            return internal_error()

        if not user:
            return Result.failure(
                ErrorCode.USER_NOT_FOUND,
                "User not found",
                "User with this email does not exist",
            )
        if user.is_email_verified:
            return Result.success(Message(message="Email is already verified", status="already_verified"))

        issued = self.issue(db, user.id)
        if not issued.ok:
            return Result(error=issued.error)
        return Result.success(
            Message(
                message="Verification email sent successfully",
                description="Verification email sent successfully",
                status="sent",
            )
        )
