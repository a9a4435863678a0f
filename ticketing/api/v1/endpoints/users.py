# ticketing/api/v1/endpoints/users.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.core.config import settings
from ticketing.core.exceptions import UnauthorizedError
from ticketing.core.security import verify_password
from ticketing.crud import crud_registration, crud_user
from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.common import Message, Pagination
from ticketing.schemas.registration import (
    PaginatedRegistrations,
    RegistrationStatus,
    UserDashboard,
)
from ticketing.schemas.user import PasswordChange, User as UserSchema, UserProfileUpdate

router = APIRouter(tags=["Users"])


def list_registrations_for(
    db: Session,
    *,
    user: User,
    status: Optional[RegistrationStatus],
    page: int,
    limit: int,
) -> dict:
    """Shared by /users/registrations and /registrations/my-registrations."""
    registrations, total = crud_registration.registration.get_multi_by_attendee(
        db,
        attendee_id=user.id,
        status=status.value if status else None,
        skip=(page - 1) * limit,
        limit=limit,
    )
    return {
        "registrations": registrations,
        "pagination": Pagination.build(page=page, limit=limit, total=total),
    }


@router.put("/users/profile", response_model=UserSchema)
def update_profile(
    profile_in: UserProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Updates the caller's name, phone or profile picture."""
    update_data = {
        field: value
        for field, value in profile_in.model_dump(exclude_unset=True).items()
        if value is not None or field != "name"
    }
    return crud_user.user.update(db, db_obj=current_user, obj_in=update_data)


@router.put("/users/change-password", response_model=Message)
def change_password(
    password_in: PasswordChange,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    if not verify_password(
        plain_password=password_in.current_password,
        hashed_password=current_user.hashed_password,
    ):
        raise UnauthorizedError("Current password is incorrect")
    crud_user.user.set_password(
        db, db_obj=current_user, password=password_in.new_password
    )
    return {"message": "Password changed successfully"}


@router.get("/users/registrations", response_model=PaginatedRegistrations)
def list_my_registrations(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
    status: Optional[RegistrationStatus] = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Items per page",
    ),
):
    return list_registrations_for(
        db, user=current_user, status=status, page=page, limit=limit
    )


@router.get("/users/dashboard", response_model=UserDashboard)
def get_dashboard(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    """Dashboard summary for the calling attendee."""
    return crud_registration.registration.get_dashboard(db, attendee_id=current_user.id)
