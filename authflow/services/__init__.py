"""Flow services and their wiring.

``build_services`` is the single place where collaborators are constructed;
the FastAPI app keeps the result on ``app.state.services``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from authflow.core.config import Settings
from authflow.core.security import JWTService, PasswordHasher
from authflow.services.auth_service import AuthService
from authflow.services.email_verification_service import EmailVerificationService
from authflow.services.mail_service import Mailer
from authflow.services.password_reset_service import PasswordResetService
from authflow.utils.timeutils import utcnow


@dataclass
class Services:
    settings: Settings
    hasher: PasswordHasher
    jwt: JWTService
    mailer: Mailer
    verification: EmailVerificationService
    auth: AuthService
    password_reset: PasswordResetService


def build_services(
    settings: Settings,
    *,
    mailer: Optional[Mailer] = None,
    hasher: Optional[PasswordHasher] = None,
    clock: Callable[[], datetime] = utcnow,
) -> Services:
    hasher = hasher or PasswordHasher()
    jwt_service = JWTService(settings.SECRET_KEY, clock=clock)
    mailer = mailer or Mailer(settings)
    verification = EmailVerificationService(settings=settings, mailer=mailer, clock=clock)
    return Services(
        settings=settings,
        hasher=hasher,
        jwt=jwt_service,
        mailer=mailer,
        verification=verification,
        auth=AuthService(
            settings=settings,
            hasher=hasher,
            jwt_service=jwt_service,
            verification=verification,
            clock=clock,
        ),
        password_reset=PasswordResetService(settings=settings, hasher=hasher, mailer=mailer, clock=clock),
    )


__all__ = ["Services", "build_services"]
