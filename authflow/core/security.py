# authflow/core/security.py

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
import hashlib
import secrets
import string
import uuid

import jwt

# Passwords: Argon2id for new hashes, legacy bcrypt_sha256 hashes stay valid
from passlib.hash import bcrypt_sha256, argon2

# =============================
# 🔐 Password hashing
# =============================

# bcrypt has a 72-byte limit; bcrypt_sha256 pre-hashes, we still cap at 64 chars.
MAX_PWD_LEN_BCRYPT_SAFE = 64

# Cost parameters are fixed at build time (OWASP baseline for Argon2id).
ARGON2_TIME_COST = 2
ARGON2_MEMORY_COST = 19_456  # KiB
ARGON2_PARALLELISM = 1


def _scheme_of(hash_str: str) -> str:
    if not hash_str:
        return "unknown"
    h = hash_str.lower()
    if h.startswith("$argon2"):
        return "argon2"
    if h.startswith("$bcrypt-sha256$"):
        return "bcrypt"
    return "unknown"


class PasswordHasher:
    """One-way salted password hashing with a timing-equalized verify.

    ``verify`` never raises for a wrong or malformed hash, it returns False.
    ``dummy_verify`` burns the same work as a real check and is used when the
    account does not exist, so response time does not reveal registration.
    """

    def __init__(self) -> None:
        self._argon2 = argon2.using(
            type="ID",
            time_cost=ARGON2_TIME_COST,
            memory_cost=ARGON2_MEMORY_COST,
            parallelism=ARGON2_PARALLELISM,
        )
        self._dummy_hash = self._argon2.hash(secrets.token_urlsafe(16))

    def hash(self, password: str) -> str:
        return self._argon2.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        scheme = _scheme_of(password_hash)
        try:
            if scheme == "argon2":
                return self._argon2.verify(password, password_hash)
            if scheme == "bcrypt":
                return bcrypt_sha256.verify(password[:MAX_PWD_LEN_BCRYPT_SAFE], password_hash)
            return False
        except (ValueError, TypeError):
            # malformed hash: no details leaked
            return False

    def dummy_verify(self, password: str) -> bool:
        self._argon2.verify(password, self._dummy_hash)
        return False


# =============================
# 🔑 Single-use codes
# =============================

RESET_TOKEN_ALPHABET = string.digits + string.ascii_uppercase
RESET_TOKEN_LENGTH = 6


def generate_verification_code() -> str:
    """4-digit numeric code, uniform over 1000-9999."""
    return str(1000 + secrets.randbelow(9000))


def generate_reset_token() -> str:
    """6-character uppercase base-36 code."""
    return "".join(secrets.choice(RESET_TOKEN_ALPHABET) for _ in range(RESET_TOKEN_LENGTH))


def hash_token(token: str) -> str:
    """Single-use and refresh tokens are stored hashed only (no plaintext)."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


# =============================
# 🪙 JWT service (access / refresh)
# =============================

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


class JWTService:
    def __init__(
        self,
        secret: str,
        algorithm: str = ALGORITHM,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.secret = secret
        self.algorithm = algorithm
        self.clock = clock

    def create_token(
        self,
        subject: str | int,
        expires_delta: timedelta,
        claims: Optional[dict[str, Any]] = None,
    ) -> str:
        """Build a signed JWT with subject, expiry and optional claims."""
        now = self.clock()
        payload: dict[str, Any] = {
            "sub": str(subject),
            "iat": int(now.timestamp()),
            "exp": int((now + expires_delta).timestamp()),
        }
        if claims:
            payload.update(claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_token(self, token: str) -> dict[str, Any]:
        """Decode and validate a JWT. Raises jwt.InvalidTokenError subclasses."""
        return jwt.decode(
            token,
            self.secret,
            algorithms=[self.algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )

    def create_access_token(self, user_id: str, email: str, expires_delta: timedelta) -> str:
        return self.create_token(
            subject=user_id,
            expires_delta=expires_delta,
            claims={"email": email, "type": ACCESS_TOKEN_TYPE},
        )

    def create_refresh_token(self, user_id: str, expires_delta: timedelta) -> str:
        # jti keeps two tokens minted in the same second distinct
        return self.create_token(
            subject=user_id,
            expires_delta=expires_delta,
            claims={"type": REFRESH_TOKEN_TYPE, "jti": uuid.uuid4().hex},
        )

    def decode_access_token(self, token: str) -> dict[str, Any]:
        payload = self.decode_token(token)
        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise jwt.InvalidTokenError("not an access token")
        return payload
