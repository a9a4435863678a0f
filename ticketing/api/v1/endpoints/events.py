# ticketing/api/v1/endpoints/events.py
from datetime import datetime
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from ticketing.api import deps
from ticketing.core.config import settings
from ticketing.core.exceptions import ForbiddenError, NotFoundError
from ticketing.crud import crud_event, crud_ticket_type
from ticketing.db.session import get_db
from ticketing.models.event import Event
from ticketing.models.user import User
from ticketing.schemas.common import Pagination
from ticketing.schemas.event import (
    Event as EventSchema,
    EventCategory,
    EventCreate,
    EventFilter,
    EventList,
    EventStats,
    EventUpdate,
    PaginatedEvents,
    TicketType as TicketTypeSchema,
    TicketTypeUpdate,
)

router = APIRouter(tags=["Events"])


def get_owned_event(db: Session, *, event_id: str, organizer: User) -> Event:
    event = crud_event.event.get(db, id=event_id)
    if not event:
        raise NotFoundError("Event", event_id)
    if event.organizer_id != organizer.id:
        raise ForbiddenError("You can only manage your own events")
    return event


@router.get("/events", response_model=PaginatedEvents)
def list_events(
    db: Session = Depends(get_db),
    category: Optional[EventCategory] = Query(None),
    search: Optional[str] = Query(None, max_length=100),
    start_from: Optional[datetime] = Query(None, alias="startFrom"),
    min_price: Optional[Decimal] = Query(None, ge=0, alias="minPrice"),
    max_price: Optional[Decimal] = Query(None, ge=0, alias="maxPrice"),
    page: int = Query(1, ge=1, description="Page number"),
    limit: int = Query(
        settings.DEFAULT_PAGE_SIZE,
        ge=1,
        le=settings.MAX_PAGE_SIZE,
        description="Items per page",
    ),
):
    """Public listing of published events, newest first."""
    filters = EventFilter(
        category=category,
        search=search or None,
        start_from=start_from,
        min_price=min_price,
        max_price=max_price,
    )
    events, total = crud_event.event.get_multi_published(
        db, filters=filters, skip=(page - 1) * limit, limit=limit
    )
    return {
        "events": events,
        "pagination": Pagination.build(page=page, limit=limit, total=total),
    }


@router.get("/events/featured", response_model=EventList)
def list_featured_events(
    db: Session = Depends(get_db),
    limit: int = Query(6, ge=1, le=settings.MAX_PAGE_SIZE),
):
    return {"events": crud_event.event.get_featured(db, limit=limit)}


@router.get("/events/mine", response_model=EventList)
def list_my_events(
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_organizer),
):
    """Every event the calling organizer owns, in any status."""
    return {
        "events": crud_event.event.get_multi_by_organizer(
            db, organizer_id=current_user.id
        )
    }


@router.get("/events/{eventId}", response_model=EventSchema)
def get_event(eventId: str, db: Session = Depends(get_db)):
    """Public event detail. Unpublished events are reported as missing."""
    event = crud_event.event.get_published(db, id=eventId)
    if not event:
        raise NotFoundError("Event", eventId)
    return event


@router.post("/events", response_model=EventSchema, status_code=status.HTTP_201_CREATED)
def create_event(
    event_in: EventCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_organizer),
):
    return crud_event.event.create_with_organizer(
        db, obj_in=event_in, organizer_id=current_user.id
    )


@router.put("/events/{eventId}", response_model=EventSchema)
def update_event(
    eventId: str,
    event_in: EventUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_organizer),
):
    event = get_owned_event(db, event_id=eventId, organizer=current_user)
    return crud_event.event.update(db, db_obj=event, obj_in=event_in)


@router.patch(
    "/events/{eventId}/ticket-types/{ticketTypeId}", response_model=TicketTypeSchema
)
def update_ticket_type(
    eventId: str,
    ticketTypeId: str,
    ticket_in: TicketTypeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_organizer),
):
    """Edits a ticket type's name, description, price or capacity."""
    get_owned_event(db, event_id=eventId, organizer=current_user)
    ticket_type = crud_ticket_type.ticket_type.get_for_event(
        db, event_id=eventId, ticket_type_id=ticketTypeId
    )
    if not ticket_type:
        raise NotFoundError("TicketType", ticketTypeId)
    return crud_ticket_type.ticket_type.update(db, db_obj=ticket_type, obj_in=ticket_in)


@router.delete("/events/{eventId}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    eventId: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_organizer),
):
    """Hard-deletes an event that nobody has registered for."""
    event = get_owned_event(db, event_id=eventId, organizer=current_user)
    crud_event.event.remove_if_unreferenced(db, db_obj=event)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/events/{eventId}/stats", response_model=EventStats)
def get_event_stats(
    eventId: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_organizer),
):
    event = get_owned_event(db, event_id=eventId, organizer=current_user)
    return crud_event.event.get_stats(db, db_obj=event)
