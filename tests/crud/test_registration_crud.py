from decimal import Decimal
from unittest.mock import MagicMock

from ticketing.crud.crud_registration import CRUDRegistration
from ticketing.models.registration import Registration, TicketSnapshot

registration_crud = CRUDRegistration(Registration)


def test_add_pending_stages_without_commit():
    """
    The reservation engine owns the transaction, so staging a registration
    must not commit.
    """
    db_session = MagicMock()
    snapshot = TicketSnapshot(name="General", price=Decimal("50.00"), quantity=2)

    registration = registration_crud.add_pending(
        db_session,
        attendee_id="usr_1",
        event_id="evt_1",
        ticket_type_id="tt_1",
        snapshot=snapshot,
        payment_method="paypal",
        special_requests="Front row",
    )

    db_session.add.assert_called_once_with(registration)
    db_session.commit.assert_not_called()
    assert registration.status == "pending"
    assert registration.payment_status == "pending"
    assert registration.ticket_type == snapshot
    assert registration.ticket_name == "General"
    assert registration.total_amount == Decimal("100.00")


def test_get_multi_by_attendee_applies_status_filter():
    db_session = MagicMock()
    query = db_session.query.return_value.filter.return_value
    filtered = query.filter.return_value
    filtered.count.return_value = 1
    ordered = filtered.options.return_value.order_by.return_value
    ordered.offset.return_value.limit.return_value.all.return_value = ["reg_1"]

    registrations, total = registration_crud.get_multi_by_attendee(
        db_session, attendee_id="usr_1", status="cancelled", skip=0, limit=10
    )

    assert registrations == ["reg_1"]
    assert total == 1
    query.filter.assert_called_once()


def test_snapshot_total():
    assert TicketSnapshot("VIP", Decimal("120.50"), 3).total == Decimal("361.50")


def test_count_by_event_can_restrict_to_active_registrations():
    db_session = MagicMock()
    query = db_session.query.return_value.filter.return_value
    query.count.return_value = 4
    query.filter.return_value.count.return_value = 1

    assert registration_crud.count_by_event(db_session, event_id="evt_1") == 4
    assert (
        registration_crud.count_by_event(db_session, event_id="evt_1", active_only=True)
        == 1
    )
    query.filter.assert_called_once()
