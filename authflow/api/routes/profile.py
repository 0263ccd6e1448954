# authflow/api/routes/profile.py
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from authflow.api.deps import CurrentUser, get_current_user, get_db, get_services
from authflow.core.errors import unwrap
from authflow.schemas.auth import ProfileV2Out, UserOut
from authflow.services import Services

# mounted under /api/v1/auth and /api/v2/auth
v1_router = APIRouter(tags=["Profile"])
v2_router = APIRouter(tags=["Profile"])


@v1_router.get("/profile", response_model=UserOut)
def get_profile_v1(
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    user = unwrap(services.auth.get_profile(db, current.id))
    return UserOut.model_validate(user)


@v2_router.get("/profile", response_model=ProfileV2Out)
def get_profile_v2(
    current: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    services: Services = Depends(get_services),
):
    user = unwrap(services.auth.get_profile(db, current.id))
    return ProfileV2Out(id=user.id, email=user.email, full_name=user.full_name)
