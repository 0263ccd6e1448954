# authflow/services/auth_service.py
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from authflow.core.config import Settings
from authflow.core.errors import ErrorCode, Result, internal_error
from authflow.core.password_policy import PASSWORD_POLICY_MESSAGE, PasswordPolicyError, validate_password
from authflow.core.security import JWTService, PasswordHasher, hash_token
from authflow.db.database import transaction
from authflow.models.user import User
from authflow.repositories import refresh_token_repo, user_repo
from authflow.services.email_verification_service import EmailVerificationService
from authflow.services.types import Message, TokenPair
from authflow.utils.timeutils import is_past, utcnow

log = logging.getLogger(__name__)

LOGOUT_MESSAGE = Message(message="User Logged Out Successfully")


class AuthService:
    """Registration plus session issuance: login, refresh and logout.

    Access tokens are stateless JWTs. Refresh tokens are JWTs whose SHA-256
    is persisted; the row, not the signature, decides whether a refresh token
    is still usable.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        hasher: PasswordHasher,
        jwt_service: JWTService,
        verification: EmailVerificationService,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.settings = settings
        self.hasher = hasher
        self.jwt = jwt_service
        self.verification = verification
        self.clock = clock

    # ------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------
    def register(
        self,
        db: Session,
        *,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
    ) -> Result[User]:
        try:
            validate_password(password)
        except PasswordPolicyError:
            return Result.failure(ErrorCode.WEAK_PASSWORD, "Password too weak", PASSWORD_POLICY_MESSAGE)

        exists = Result.failure(ErrorCode.EMAIL_EXISTS, "User Already Exist")
        try:
            if not user_repo.is_email_available(db, email):
                return exists
            with transaction(db):
                user = user_repo.create_user(
                    db,
                    email=email,
                    password_hash=self.hasher.hash(password),
                    first_name=first_name,
                    last_name=last_name,
                )
            db.refresh(user)
        except IntegrityError:
            # lost the race against a concurrent registration
            return exists
        except SQLAlchemyError:
            log.exception("Registration failed on the store")
            return internal_error()

        log.info("User %s registered", user.id)
        issued = self.verification.issue(db, user.id)
        if not issued.ok:
            # the account exists; the user can ask for a new code
            log.error("No verification token for new user %s: %s", user.id, issued.error.code.value)
        return Result.success(user)

    # ------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------
    def _issue_refresh_token(self, db: Session, user_id: str, now: datetime) -> str:
        lifetime = timedelta(days=self.settings.REFRESH_TOKEN_EXPIRE_DAYS)
        token = self.jwt.create_refresh_token(user_id, lifetime)
        refresh_token_repo.create_token(db, user_id, hash_token(token), now + lifetime)
        return token

    def _issue_access_token(self, user: User) -> str:
        return self.jwt.create_access_token(
            user.id,
            user.email,
            timedelta(minutes=self.settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        )

    def login(self, db: Session, email: str, password: str) -> Result[TokenPair]:
        invalid = Result.failure(ErrorCode.INVALID_CREDENTIALS, "Wrong Email or Password")
        try:
            user = user_repo.get_by_email(db, email)
        except SQLAlchemyError:
            log.exception("User lookup failed")
            return internal_error()

        if user is None:
            # same hashing work as a real check
            self.hasher.dummy_verify(password)
            return invalid
        if not self.hasher.verify(password, user.password_hash):
            return invalid
        if not user.is_email_verified:
            return Result.failure(ErrorCode.EMAIL_NOT_VERIFIED, "Email must be verified")

        now = self.clock()
        cutoff = now - timedelta(days=self.settings.REFRESH_TOKEN_RETENTION_DAYS)
        try:
            with transaction(db):
                dropped = refresh_token_repo.delete_expired_older_than(db, user.id, cutoff)
                refresh_token = self._issue_refresh_token(db, user.id, now)
        except SQLAlchemyError:
            log.exception("Could not store refresh token for user %s", user.id)
            return internal_error()

        if dropped:
            log.info("Dropped %d stale refresh token(s) for user %s", dropped, user.id)
        log.info("User %s logged in", user.id)
        return Result.success(
            TokenPair(access_token=self._issue_access_token(user), refresh_token=refresh_token)
        )

    def refresh(self, db: Session, token: str) -> Result[TokenPair]:
        not_found = Result.failure(
            ErrorCode.TOKEN_NOT_FOUND,
            "Invalid refresh token",
            "Refresh token is invalid or expired",
        )
        try:
            with transaction(db):
                row = refresh_token_repo.find_token(db, hash_token(token)) if token else None
                if row is None:
                    return not_found

                now = self.clock()
                if is_past(row.expires_at, now):
                    if not refresh_token_repo.delete_token(db, row):
                        return not_found
                    log.info("Expired refresh token removed for user %s", row.user_id)
                    return Result.failure(
                        ErrorCode.TOKEN_EXPIRED, "Refresh token expired", "Refresh token is expired"
                    )

                user = user_repo.get_by_id(db, row.user_id)
                if user is None:
                    return Result.failure(ErrorCode.USER_NOT_FOUND, "User not found")

                if self.settings.REFRESH_TOKEN_ROTATION:
                    # zero rows: the same token was redeemed concurrently
                    if not refresh_token_repo.delete_token(db, row):
                        return not_found
                new_refresh = self._issue_refresh_token(db, user.id, now)
        except SQLAlchemyError:
            log.exception("Token refresh failed on the store")
            return internal_error()

        return Result.success(
            TokenPair(access_token=self._issue_access_token(user), refresh_token=new_refresh)
        )

    def logout(self, db: Session, token: str) -> Result[Message]:
        """Revokes every refresh token of the owner. Unknown tokens are a no-op."""
        try:
            with transaction(db):
                row = refresh_token_repo.find_token(db, hash_token(token)) if token else None
                if row is not None:
                    revoked = refresh_token_repo.delete_tokens_for_user(db, row.user_id)
                    log.info("User %s logged out, %d refresh token(s) revoked", row.user_id, revoked)
        except SQLAlchemyError:
            log.exception("Logout failed on the store")
            return internal_error()
        return Result.success(LOGOUT_MESSAGE)

    # ------------------------------------------------------------
    # Profile
    # ------------------------------------------------------------
    def get_profile(self, db: Session, user_id: str) -> Result[User]:
        try:
            user = user_repo.get_by_id(db, user_id)
        except SQLAlchemyError:
            log.exception("User lookup failed")
            return internal_error()
        if user is None:
            return Result.failure(ErrorCode.USER_NOT_FOUND, "User not found")
        return Result.success(user)
