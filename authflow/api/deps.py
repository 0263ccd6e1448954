# authflow/api/deps.py
from __future__ import annotations
from dataclasses import dataclass
from typing import Generator, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from jwt import ExpiredSignatureError, InvalidTokenError

from authflow.core.errors import unauthorized
from authflow.repositories.user_repo import get_by_id
from authflow.services import Services
from authflow.utils.timeutils import as_aware_utc

# ----------------------------------------------------------
# Security
# ----------------------------------------------------------
security = HTTPBearer(auto_error=False)


@dataclass
class CurrentUser:
    id: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None


# ----------------------------------------------------------
# App-scoped collaborators
# ----------------------------------------------------------
def get_services(request: Request) -> Services:
    return request.app.state.services


def get_db(request: Request) -> Generator[Session, None, None]:
    yield from request.app.state.database.session()


# ----------------------------------------------------------
# Bearer access token
# ----------------------------------------------------------
def _decode_or_401(token: str, db: Session, services: Services) -> CurrentUser:
    try:
        payload = services.jwt.decode_access_token(token)
    except ExpiredSignatureError:
        unauthorized("Token expired")
    except InvalidTokenError:
        unauthorized("Invalid token")

    user = get_by_id(db, str(payload.get("sub") or ""))
    if not user:
        unauthorized("User not found")

    # tokens minted before the last password change are void (second resolution)
    changed_at = as_aware_utc(user.password_changed_at)
    if changed_at is not None and int(payload["iat"]) < int(changed_at.timestamp()):
        unauthorized("Token revoked")

    return CurrentUser(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
) -> CurrentUser:
    if not credentials or credentials.scheme.lower() != "bearer":
        unauthorized("Not authenticated")
    return _decode_or_401(credentials.credentials, db, services)
