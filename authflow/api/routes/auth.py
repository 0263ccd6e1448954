# authflow/api/routes/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from authflow.api.deps import get_db, get_services
from authflow.core.errors import unwrap
from authflow.schemas.auth import (
    ForgotPasswordIn,
    LoginIn,
    LoginOut,
    LogoutIn,
    MessageOut,
    RefreshOut,
    RefreshTokenIn,
    RegisterIn,
    ResendVerificationIn,
    ResetPasswordIn,
    UserOut,
    VerifyEmailIn,
)
from authflow.services import Services
from authflow.services.types import Message

router = APIRouter(tags=["Authentication"])


def _message(msg: Message) -> MessageOut:
    return MessageOut(message=msg.message, description=msg.description)


# ============================================================
# Registration / Verification
# ============================================================

@router.post(
    "/register",
    response_model=UserOut,
    status_code=status.HTTP_201_CREATED,
    openapi_extra={"security": []},
)
def api_register(
    body: RegisterIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    user = unwrap(
        services.auth.register(
            db,
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
        )
    )
    return UserOut.model_validate(user)


@router.post("/verify-email", response_model=MessageOut, openapi_extra={"security": []})
def api_verify_email(
    body: VerifyEmailIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return _message(unwrap(services.verification.consume(db, body.token, body.email)))


@router.post("/resend-verification-email", response_model=MessageOut, openapi_extra={"security": []})
def api_resend_verification(
    body: ResendVerificationIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return _message(unwrap(services.verification.resend(db, body.email)))


# ============================================================
# Sessions
# ============================================================

@router.post("/login", response_model=LoginOut, openapi_extra={"security": []})
def api_login(
    body: LoginIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    pair = unwrap(services.auth.login(db, body.email, body.password))
    return LoginOut(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/refresh-token", response_model=RefreshOut, openapi_extra={"security": []})
def api_refresh_token(
    body: RefreshTokenIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    pair = unwrap(services.auth.refresh(db, body.token))
    return RefreshOut(access_token=pair.access_token, refresh_token=pair.refresh_token)


@router.post("/logout", response_model=MessageOut, openapi_extra={"security": []})
def api_logout(
    body: LogoutIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return _message(unwrap(services.auth.logout(db, body.token)))


# ============================================================
# Password reset
# ============================================================

@router.post("/forgot-password", response_model=MessageOut, openapi_extra={"security": []})
def api_forgot_password(
    body: ForgotPasswordIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return _message(unwrap(services.password_reset.forgot_password(db, body.email)))


@router.post("/reset-password", response_model=MessageOut, openapi_extra={"security": []})
def api_reset_password(
    body: ResetPasswordIn,
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    return _message(unwrap(services.password_reset.reset_password(db, body.token, body.password)))
