# tests/services/test_reservation_concurrency.py

import threading
import uuid
from concurrent.futures import ThreadPoolExecutor

from ticketing.core.exceptions import ConflictError
from ticketing.crud import crud_ticket_type
from ticketing.models.registration import Registration
from ticketing.models.user import User
from ticketing.services.reservation_service import ReservationService
from tests.utils.event import create_random_event
from tests.utils.user import create_random_organizer

CAPACITY = 5
ATTENDEES = 12


def make_attendees(db, count: int) -> list[str]:
    # Password hashing is irrelevant here; insert accounts directly.
    users = [
        User(
            name=f"Attendee {i}",
            email=f"load_{uuid.uuid4().hex[:8]}@example.com",
            hashed_password="not-a-real-hash",
            role="user",
        )
        for i in range(count)
    ]
    db.add_all(users)
    db.commit()
    return [user.id for user in users]


def test_no_oversell_under_concurrent_reservations(db, session_factory):
    organizer = create_random_organizer(db)
    event = create_random_event(
        db,
        organizer_id=organizer.id,
        ticket_types=[{"name": "General", "price": 25, "quantity": CAPACITY}],
    )
    event_id = event.id
    attendee_ids = make_attendees(db, ATTENDEES)
    start = threading.Barrier(ATTENDEES)

    def attempt(attendee_id: str) -> str:
        session = session_factory()
        try:
            # Every lost race means some other reservation committed, so
            # CAPACITY + 1 attempts always reach a definite answer.
            service = ReservationService(session, max_attempts=CAPACITY + 2)
            start.wait()
            service.reserve(
                attendee_id=attendee_id,
                event_id=event_id,
                ticket_name="General",
                quantity=1,
                payment_method="cash",
            )
            return "ok"
        except ConflictError as e:
            return e.error_code
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=ATTENDEES) as pool:
        results = list(pool.map(attempt, attendee_ids))

    assert results.count("ok") == CAPACITY
    assert results.count("INSUFFICIENT_INVENTORY") == ATTENDEES - CAPACITY

    db.expire_all()
    ticket = crud_ticket_type.ticket_type.get_by_name(db, event_id=event_id, name="General")
    assert ticket.sold == CAPACITY
    assert db.query(Registration).filter_by(event_id=event_id).count() == CAPACITY


def test_concurrent_duplicate_requests_register_once(db, session_factory):
    organizer = create_random_organizer(db)
    event = create_random_event(
        db,
        organizer_id=organizer.id,
        ticket_types=[{"name": "General", "price": 25, "quantity": 50}],
    )
    event_id = event.id
    (attendee_id,) = make_attendees(db, 1)
    requests = 6
    start = threading.Barrier(requests)

    def attempt(_) -> str:
        session = session_factory()
        try:
            service = ReservationService(session, max_attempts=requests + 1)
            start.wait()
            service.reserve(
                attendee_id=attendee_id,
                event_id=event_id,
                ticket_name="General",
                quantity=2,
                payment_method="cash",
            )
            return "ok"
        except ConflictError as e:
            return e.error_code
        finally:
            session.close()

    with ThreadPoolExecutor(max_workers=requests) as pool:
        results = list(pool.map(attempt, range(requests)))

    assert results.count("ok") == 1
    assert results.count("ALREADY_REGISTERED") == requests - 1

    db.expire_all()
    ticket = crud_ticket_type.ticket_type.get_by_name(db, event_id=event_id, name="General")
    assert ticket.sold == 2
