# ticketing/api/v1/endpoints/registrations.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.api.v1.endpoints.users import list_registrations_for
from ticketing.core.config import settings
from ticketing.core.exceptions import ForbiddenError, NotFoundError
from ticketing.crud import crud_registration
from ticketing.db.session import get_db
from ticketing.models.user import User
from ticketing.schemas.registration import (
    PaginatedRegistrations,
    Registration as RegistrationSchema,
    RegistrationCreate,
    RegistrationStatus,
    RegistrationUpdate,
    RegistrationWithEvent,
)
from ticketing.services.reservation_service import ReservationService

router = APIRouter(tags=["Registrations"])


def get_reservation_service(db: Session = Depends(get_db)) -> ReservationService:
    return ReservationService(db)


@router.post(
    "/registrations",
    response_model=RegistrationSchema,
    status_code=status.HTTP_201_CREATED,
)
def create_registration(
    registration_in: RegistrationCreate,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_user),
):
    """
    Registers the caller for an event. The ticket price is taken from the
    event, never from the request.
    """
    return service.reserve(
        attendee_id=current_user.id,
        event_id=registration_in.event_id,
        ticket_name=registration_in.ticket_type.name,
        quantity=registration_in.ticket_type.quantity,
        payment_method=registration_in.payment_method.value,
        special_requests=registration_in.special_requests,
    )


@router.get("/registrations/my-registrations", response_model=PaginatedRegistrations)
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


@router.get("/registrations/{registrationId}", response_model=RegistrationWithEvent)
def get_registration(
    registrationId: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_user),
):
    registration = crud_registration.registration.get_with_event(db, id=registrationId)
    if not registration:
        raise NotFoundError("Registration", registrationId)
    if registration.attendee_id != current_user.id:
        raise ForbiddenError("You can only view your own registrations")
    return registration


@router.put("/registrations/{registrationId}", response_model=RegistrationSchema)
def update_registration(
    registrationId: str,
    registration_in: RegistrationUpdate,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_user),
):
    """Pending registrations only; special requests are the one editable field."""
    return service.update(
        registration_id=registrationId,
        acting_user_id=current_user.id,
        obj_in=registration_in,
    )


@router.put("/registrations/{registrationId}/cancel", response_model=RegistrationSchema)
def cancel_registration(
    registrationId: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_user),
):
    return service.release(
        registration_id=registrationId, acting_user_id=current_user.id, mode="cancel"
    )


@router.delete("/registrations/{registrationId}", status_code=status.HTTP_204_NO_CONTENT)
def delete_registration(
    registrationId: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_user),
):
    service.release(
        registration_id=registrationId, acting_user_id=current_user.id, mode="delete"
    )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Organizer transitions ---


@router.post("/registrations/{registrationId}/confirm", response_model=RegistrationSchema)
def confirm_registration(
    registrationId: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_organizer),
):
    return service.confirm(registration_id=registrationId, organizer_id=current_user.id)


@router.post("/registrations/{registrationId}/refund", response_model=RegistrationSchema)
def refund_registration(
    registrationId: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_organizer),
):
    return service.refund(registration_id=registrationId, organizer_id=current_user.id)


@router.post(
    "/registrations/{registrationId}/check-in", response_model=RegistrationSchema
)
def check_in_registration(
    registrationId: str,
    service: ReservationService = Depends(get_reservation_service),
    current_user: User = Depends(deps.get_current_organizer),
):
    return service.check_in(
        registration_id=registrationId, organizer_id=current_user.id
    )
