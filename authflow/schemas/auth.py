# authflow/schemas/auth.py
from __future__ import annotations
from datetime import datetime
from typing import Optional, Annotated
from pydantic import BaseModel, EmailStr, Field
from pydantic import StringConstraints

# ---------- Shared types ----------
PasswordStr = Annotated[str, StringConstraints(min_length=1, max_length=128)]

NameStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=2, max_length=120),
]

TokenStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=2048)]


# ---------- Register ----------
class RegisterIn(BaseModel):
    email: EmailStr
    password: PasswordStr = Field(
        description="At least 8 characters with lower and upper case letters, a number and one of @$!%*?&#"
    )
    first_name: Optional[NameStr] = None
    last_name: Optional[NameStr] = None


# ---------- Verification ----------
class VerifyEmailIn(BaseModel):
    email: EmailStr
    token: TokenStr = Field(description="4-digit code from the verification mail")


class ResendVerificationIn(BaseModel):
    email: EmailStr


# ---------- Login / Session ----------
class LoginIn(BaseModel):
    email: EmailStr
    password: PasswordStr


class RefreshTokenIn(BaseModel):
    token: TokenStr


class LogoutIn(BaseModel):
    token: TokenStr


# ---------- Password reset ----------
class ForgotPasswordIn(BaseModel):
    email: EmailStr


class ResetPasswordIn(BaseModel):
    token: TokenStr
    password: PasswordStr


# ---------- Responses ----------
class MessageOut(BaseModel):
    message: str
    description: Optional[str] = None


class LoginOut(BaseModel):
    message: str = "User logged in successfully"
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshOut(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class UserOut(BaseModel):
    id: str
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    is_email_verified: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ProfileV2Out(BaseModel):
    id: str
    email: EmailStr
    full_name: str
