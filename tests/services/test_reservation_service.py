# tests/services/test_reservation_service.py

import logging
from decimal import Decimal

import pytest
from sqlalchemy import delete
from sqlalchemy.orm.exc import StaleDataError

from ticketing.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from ticketing.crud import crud_ticket_type
from ticketing.models.event import Event
from ticketing.models.registration import Registration, TicketSnapshot
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.event import TicketTypeUpdate
from ticketing.schemas.registration import RegistrationUpdate
from ticketing.services.reservation_service import ReservationService
from tests.utils.event import create_random_event
from tests.utils.user import create_random_organizer, create_random_user


@pytest.fixture
def organizer(db):
    return create_random_organizer(db)


@pytest.fixture
def attendee(db):
    return create_random_user(db)


@pytest.fixture
def other_attendee(db):
    return create_random_user(db)


@pytest.fixture
def event(db, organizer):
    """Published event with a single 'General' ticket type: price 50, quantity 2."""
    return create_random_event(db, organizer_id=organizer.id)


@pytest.fixture
def service(db):
    return ReservationService(db)


def general(db, event) -> TicketType:
    db.expire_all()
    return crud_ticket_type.ticket_type.get_by_name(db, event_id=event.id, name="General")


def reserve(service, attendee, event, quantity=1, name="General"):
    return service.reserve(
        attendee_id=attendee.id,
        event_id=event.id,
        ticket_name=name,
        quantity=quantity,
        payment_method="credit_card",
    )


def test_concrete_scenario(db, service, event, attendee, other_attendee):
    registration_a = reserve(service, attendee, event, quantity=2)
    assert general(db, event).sold == 2
    assert registration_a.total_amount == Decimal("100")
    assert registration_a.status == "pending"

    with pytest.raises(ConflictError) as exc_info:
        reserve(service, other_attendee, event, quantity=1)
    assert exc_info.value.error_code == "INSUFFICIENT_INVENTORY"
    assert general(db, event).sold == 2

    service.release(registration_id=registration_a.id, acting_user_id=attendee.id)
    assert general(db, event).sold == 0

    reserve(service, other_attendee, event, quantity=1)
    assert general(db, event).sold == 1


def test_validation_order(db, service, organizer, attendee):
    draft = create_random_event(db, organizer_id=organizer.id, status="draft")

    with pytest.raises(NotFoundError):
        service.reserve(
            attendee_id=attendee.id,
            event_id="evt_missing",
            ticket_name="General",
            quantity=1,
            payment_method="cash",
        )

    # Unpublished is reported before the unknown ticket type
    with pytest.raises(InvalidStateError):
        reserve(service, attendee, draft, name="Nope")


def test_unknown_ticket_type(service, event, attendee):
    with pytest.raises(InvalidInputError) as exc_info:
        reserve(service, attendee, event, name="general")

    assert exc_info.value.details["field"] == "ticketType.name"
    assert exc_info.value.status_code == 400


def test_already_registered_checked_before_inventory(db, service, event, attendee):
    reserve(service, attendee, event, quantity=2)

    with pytest.raises(ConflictError) as exc_info:
        reserve(service, attendee, event, quantity=1)

    assert exc_info.value.error_code == "ALREADY_REGISTERED"


def test_reregister_after_cancel(db, service, event, attendee):
    first = reserve(service, attendee, event)
    service.release(registration_id=first.id, acting_user_id=attendee.id)

    second = reserve(service, attendee, event)

    assert second.id != first.id
    assert general(db, event).sold == 1
    assert db.query(Registration).filter_by(attendee_id=attendee.id).count() == 2


def test_failed_reserve_leaves_no_partial_state(db, service, event, attendee):
    with pytest.raises(ConflictError):
        reserve(service, attendee, event, quantity=3)

    assert general(db, event).sold == 0
    assert db.query(Registration).count() == 0


def test_snapshot_is_immutable_after_catalog_edit(db, service, event, attendee):
    registration = reserve(service, attendee, event, quantity=2)
    ticket = general(db, event)

    crud_ticket_type.ticket_type.update(
        db,
        db_obj=ticket,
        obj_in=TicketTypeUpdate(name="Standard", price=Decimal("80"), quantity=5),
    )

    db.expire_all()
    stored = db.get(Registration, registration.id)
    assert stored.ticket_type == TicketSnapshot(
        name="General", price=Decimal("50"), quantity=2
    )
    assert stored.total_amount == Decimal("100")

    # The renamed ticket type is still found through the stored id
    service.release(registration_id=stored.id, acting_user_id=attendee.id)
    db.expire_all()
    assert db.get(TicketType, ticket.id).sold == 0


def test_release_reversibility(db, service, event, attendee):
    registration = reserve(service, attendee, event, quantity=2)

    service.release(
        registration_id=registration.id, acting_user_id=attendee.id, mode="delete"
    )

    assert general(db, event).sold == 0
    assert db.get(Registration, registration.id) is None


def test_release_requires_owner(service, event, attendee, other_attendee):
    registration = reserve(service, attendee, event)

    with pytest.raises(ForbiddenError):
        service.release(registration_id=registration.id, acting_user_id=other_attendee.id)


def test_release_missing_registration(service, attendee):
    with pytest.raises(NotFoundError):
        service.release(registration_id="reg_missing", acting_user_id=attendee.id)


def test_release_rejects_unknown_mode(service, attendee):
    with pytest.raises(ValueError):
        service.release(registration_id="reg_x", acting_user_id=attendee.id, mode="void")


def test_lifecycle_gating(db, service, event, organizer, attendee):
    registration = reserve(service, attendee, event)
    service.confirm(registration_id=registration.id, organizer_id=organizer.id)

    with pytest.raises(InvalidStateError):
        service.update(
            registration_id=registration.id,
            acting_user_id=attendee.id,
            obj_in=RegistrationUpdate(special_requests="late change"),
        )
    with pytest.raises(InvalidStateError):
        service.release(
            registration_id=registration.id, acting_user_id=attendee.id, mode="delete"
        )

    # Cancelling a confirmed registration is allowed, and only once
    service.release(registration_id=registration.id, acting_user_id=attendee.id)
    with pytest.raises(InvalidStateError):
        service.release(registration_id=registration.id, acting_user_id=attendee.id)
    assert general(db, event).sold == 0


def test_update_pending_registration(service, event, attendee):
    registration = reserve(service, attendee, event)

    updated = service.update(
        registration_id=registration.id,
        acting_user_id=attendee.id,
        obj_in=RegistrationUpdate(special_requests="Vegetarian meal"),
    )

    assert updated.special_requests == "Vegetarian meal"
    assert updated.ticket_quantity == 1


def test_refund_returns_inventory(db, service, event, organizer, attendee):
    registration = reserve(service, attendee, event, quantity=2)

    with pytest.raises(InvalidStateError):
        service.refund(registration_id=registration.id, organizer_id=organizer.id)

    service.confirm(registration_id=registration.id, organizer_id=organizer.id)
    refunded = service.refund(registration_id=registration.id, organizer_id=organizer.id)

    assert refunded.status == "refunded"
    assert refunded.payment_status == "refunded"
    assert general(db, event).sold == 0


def test_organizer_transitions_require_event_owner(db, service, event, attendee):
    stranger = create_random_organizer(db)
    registration = reserve(service, attendee, event)

    with pytest.raises(ForbiddenError):
        service.confirm(registration_id=registration.id, organizer_id=stranger.id)
    with pytest.raises(ForbiddenError):
        service.check_in(registration_id=registration.id, organizer_id=stranger.id)


def test_check_in(service, event, organizer, attendee):
    registration = reserve(service, attendee, event)

    with pytest.raises(InvalidStateError):
        service.check_in(registration_id=registration.id, organizer_id=organizer.id)

    service.confirm(registration_id=registration.id, organizer_id=organizer.id)
    checked_in = service.check_in(
        registration_id=registration.id, organizer_id=organizer.id
    )
    assert checked_in.check_in_status == "checked_in"
    assert checked_in.checked_in_at is not None

    with pytest.raises(ConflictError):
        service.check_in(registration_id=registration.id, organizer_id=organizer.id)


def test_release_with_missing_ticket_type_logs_anomaly(
    db, service, event, attendee, caplog
):
    registration = reserve(service, attendee, event)
    # Simulate drift: the ticket type disappears underneath the registration
    db.query(TicketType).filter(TicketType.event_id == event.id).delete()
    db.commit()

    with caplog.at_level(logging.WARNING, logger="ticketing.services.reservation_service"):
        cancelled = service.release(
            registration_id=registration.id, acting_user_id=attendee.id
        )

    assert cancelled.status == "cancelled"
    assert "Data-integrity anomaly" in caplog.text


def test_release_floors_sold_at_zero(db, service, event, attendee):
    registration = reserve(service, attendee, event, quantity=2)
    # The counter has drifted below what this registration holds
    db.query(TicketType).filter(TicketType.event_id == event.id).update({"sold": 1})
    db.commit()

    service.release(registration_id=registration.id, acting_user_id=attendee.id)

    assert general(db, event).sold == 0


def test_release_with_missing_event_still_cancels(
    db, service, event, attendee, caplog
):
    event_id = event.id
    registration = reserve(service, attendee, event)
    # SQLite does not enforce the foreign keys, so the rows can vanish
    db.execute(delete(TicketType).where(TicketType.event_id == event_id))
    db.execute(delete(Event).where(Event.id == event_id))
    db.commit()

    with caplog.at_level(logging.WARNING, logger="ticketing.services.reservation_service"):
        cancelled = service.release(
            registration_id=registration.id, acting_user_id=attendee.id
        )

    assert cancelled.status == "cancelled"
    assert "Data-integrity anomaly" in caplog.text
    assert f"event {event_id}" in caplog.text


def test_lost_race_is_retried_with_fresh_state(
    db, session_factory, service, event, attendee, monkeypatch
):
    """
    A rival transaction commits between our read of the ticket type and our
    write. The version check rejects the stale write and the retry sees the
    rival's increment.
    """
    real_get_for_update = crud_ticket_type.ticket_type.get_for_update
    calls = {"count": 0}

    def racing_get_for_update(db_, *, id):
        ticket = real_get_for_update(db_, id=id)
        calls["count"] += 1
        if calls["count"] == 1:
            rival = session_factory()
            try:
                rival_ticket = rival.get(TicketType, id)
                rival_ticket.sold += 1
                rival.commit()
            finally:
                rival.close()
        return ticket

    monkeypatch.setattr(
        crud_ticket_type.ticket_type, "get_for_update", racing_get_for_update
    )

    reserve(service, attendee, event, quantity=1)

    assert calls["count"] == 2
    assert general(db, event).sold == 2


def test_retry_budget_exhausted_raises_conflict(db, event, attendee, monkeypatch):
    service = ReservationService(db, max_attempts=3)
    attempts = {"count": 0}

    def always_stale(**kwargs):
        attempts["count"] += 1
        raise StaleDataError("simulated lost race")

    monkeypatch.setattr(service, "_reserve_once", always_stale)

    with pytest.raises(ConflictError) as exc_info:
        reserve(service, attendee, event)

    assert exc_info.value.error_code == "CONCURRENT_UPDATE"
    assert attempts["count"] == 3
    assert general(db, event).sold == 0
