from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ticketing.crud import crud_event
from ticketing.models.event import Event
from ticketing.schemas.event import EventCreate

GENERAL = {"name": "General", "price": "50.00", "quantity": 2}


def event_payload(
    title: str = "Test Event",
    status: str = "published",
    ticket_types: Optional[list] = None,
    days_ahead: int = 10,
    **overrides,
) -> dict:
    """
    Request body for POST /events, in the camelCase the API speaks.
    """
    start = datetime.now(timezone.utc) + timedelta(days=days_ahead)
    end = start + timedelta(hours=6)
    payload = {
        "title": title,
        "description": "An event created by the test-suite.",
        "category": "Technology",
        "venue": {
            "name": "Main Hall",
            "address": {"city": "Lagos", "country": "NG", "zipCode": "100001"},
        },
        "dateTime": {"start": start.isoformat(), "end": end.isoformat()},
        "ticketTypes": ticket_types if ticket_types is not None else [dict(GENERAL)],
        "tags": ["python", "testing"],
        "status": status,
    }
    payload.update(overrides)
    return payload


def create_random_event(
    db: Session,
    organizer_id: str,
    status: str = "published",
    ticket_types: Optional[list] = None,
    **overrides,
) -> Event:
    """
    Creates a dummy event for testing purposes.
    """
    event_in = EventCreate.model_validate(
        event_payload(status=status, ticket_types=ticket_types, **overrides)
    )
    return crud_event.event.create_with_organizer(
        db, obj_in=event_in, organizer_id=organizer_id
    )
