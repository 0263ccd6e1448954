# authflow/services/password_reset_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from authflow.core.config import Settings
from authflow.core.errors import ErrorCode, Result, internal_error
from authflow.core.password_policy import PASSWORD_POLICY_MESSAGE, PasswordPolicyError, validate_password
from authflow.core.security import PasswordHasher, generate_reset_token, hash_token
from authflow.db.database import transaction
from authflow.repositories import password_reset_repo, refresh_token_repo, user_repo
from authflow.services.mail_service import Mailer, deliver_quietly
from authflow.services.types import Message
from authflow.utils.timeutils import is_past, utcnow

log = logging.getLogger(__name__)

# Same answer whether or not the email is registered
FORGOT_PASSWORD_MESSAGE = Message(
    message="Password reset instructions sent",
    description="If your email is registered, you will receive password reset instructions",
)

INVALID_TOKEN_MESSAGE = "Invalid reset token"
INVALID_TOKEN_DESCRIPTION = "Reset token is invalid or expired"

_MAX_TOKEN_ATTEMPTS = 5


class PasswordResetService:
    def __init__(
        self,
        *,
        settings: Settings,
        hasher: PasswordHasher,
        mailer: Mailer,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.hasher = hasher
        self.mailer = mailer
        self.clock = clock

    @property
    def ttl(self) -> timedelta:
        return timedelta(minutes=self.settings.RESET_TOKEN_EXPIRE_MINUTES)

    def _unused_token(self, db: Session) -> Optional[str]:
        for _ in range(_MAX_TOKEN_ATTEMPTS):
            raw = generate_reset_token()
            if password_reset_repo.find_token(db, hash_token(raw)) is None:
                return raw
        return None

    def forgot_password(self, db: Session, email: str) -> Result[Message]:
        """
        Replaces the user's reset token with a fresh one and mails it.
        Unknown emails get the identical response.
        """
        try:
            with transaction(db):
                user = user_repo.get_by_email(db, email)
                if not user:
                    return Result.success(FORGOT_PASSWORD_MESSAGE)
                raw_token = self._unused_token(db)
                if raw_token is None:
                    log.error("No unused reset token after %d attempts", _MAX_TOKEN_ATTEMPTS)
                    return internal_error()
                password_reset_repo.delete_tokens_for_user(db, user.id)
                password_reset_repo.create_reset_token(
                    db, user.id, hash_token(raw_token), self.clock() + self.ttl
                )
        except SQLAlchemyError:
            log.exception("Could not store reset token")
            return internal_error()

        log.info("Password reset token issued for user %s", user.id)
        deliver_quietly(self.mailer.send_reset_password_email, user.email, raw_token, user.display_name)
        return Result.success(FORGOT_PASSWORD_MESSAGE)

    def reset_password(self, db: Session, token: str, new_password: str) -> Result[Message]:
        """
        Validates the reset token and sets the new password. Password update,
        token deletion and the removal of every refresh token of the user are
        committed together.
        """
        try:
            validate_password(new_password)
        except PasswordPolicyError:
            return Result.failure(ErrorCode.WEAK_PASSWORD, "Password too weak", PASSWORD_POLICY_MESSAGE)

        token = (token or "").strip().upper()
        try:
            with transaction(db):
                rec = password_reset_repo.find_token(db, hash_token(token)) if token else None
                if rec is None:
                    return Result.failure(
                        ErrorCode.TOKEN_NOT_FOUND, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_DESCRIPTION
                    )

                now = self.clock()
                if is_past(rec.expires_at, now):
                    if not password_reset_repo.delete_token(db, rec):
                        return Result.failure(
                            ErrorCode.TOKEN_NOT_FOUND, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_DESCRIPTION
                        )
                    log.info("Expired reset token removed for user %s", rec.user_id)
                    return Result.failure(
                        ErrorCode.TOKEN_EXPIRED, "Reset token expired", "Reset token is expired"
                    )

                user_id = rec.user_id
                if user_repo.get_by_id(db, user_id) is None:
                    return Result.failure(ErrorCode.USER_NOT_FOUND, "User not found")
                if not password_reset_repo.delete_token(db, rec):
                    return Result.failure(
                        ErrorCode.TOKEN_NOT_FOUND, INVALID_TOKEN_MESSAGE, INVALID_TOKEN_DESCRIPTION
                    )
                user_repo.update_password_hash(db, user_id, self.hasher.hash(new_password), now)
                revoked = refresh_token_repo.delete_tokens_for_user(db, user_id)
        except SQLAlchemyError:
            log.exception("Password reset failed on the store")
            return internal_error()

        log.info("Password reset for user %s, %d refresh token(s) revoked", user_id, revoked)
        return Result.success(
            Message(
                message="Password reset successful",
                description="Your password has been reset successfully. You can now login with your new password.",
            )
        )
