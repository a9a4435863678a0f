# ticketing/crud/crud_registration.py
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from .base import CRUDBase
from ticketing.db.types import utcnow
from ticketing.models.event import Event
from ticketing.models.registration import (
    ACTIVE_STATUSES,
    Registration,
    TicketSnapshot,
)
from ticketing.schemas.registration import RegistrationCreate, RegistrationUpdate


class CRUDRegistration(CRUDBase[Registration, RegistrationCreate, RegistrationUpdate]):
    """
    Ledger access. Inventory is never touched here; the reservation engine
    pairs these primitives with the ticket-type counter inside one transaction.
    """

    def get_with_event(self, db: Session, *, id: str) -> Optional[Registration]:
        return (
            db.query(self.model)
            .options(joinedload(self.model.event))
            .filter(self.model.id == id)
            .first()
        )

    def get_active_for_attendee(
        self, db: Session, *, attendee_id: str, event_id: str
    ) -> Optional[Registration]:
        """The attendee's pending or confirmed registration for the event, if any."""
        return (
            db.query(self.model)
            .filter(
                self.model.attendee_id == attendee_id,
                self.model.event_id == event_id,
                self.model.status.in_(ACTIVE_STATUSES),
            )
            .first()
        )

    def get_multi_by_attendee(
        self,
        db: Session,
        *,
        attendee_id: str,
        status: Optional[str] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Registration], int]:
        query = db.query(self.model).filter(self.model.attendee_id == attendee_id)
        if status:
            query = query.filter(self.model.status == status)

        total = query.count()
        registrations = (
            query.options(joinedload(self.model.event))
            .order_by(self.model.registered_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return registrations, total

    def count_by_event(
        self, db: Session, *, event_id: str, active_only: bool = False
    ) -> int:
        query = db.query(self.model).filter(self.model.event_id == event_id)
        if active_only:
            query = query.filter(self.model.status.in_(ACTIVE_STATUSES))
        return query.count()

    def get_dashboard(
        self, db: Session, *, attendee_id: str, recent_limit: int = 5
    ) -> dict:
        """Figures for the attendee's dashboard. Upcoming events are soonest first."""
        base = db.query(self.model).filter(self.model.attendee_id == attendee_id)

        upcoming_events = (
            db.query(Event)
            .join(self.model, self.model.event_id == Event.id)
            .filter(
                self.model.attendee_id == attendee_id,
                self.model.status.in_(ACTIVE_STATUSES),
                Event.status == "published",
                Event.start_at > utcnow(),
            )
            .order_by(Event.start_at.asc())
            .all()
        )
        recent_activity = (
            base.options(joinedload(self.model.event))
            .order_by(self.model.registered_at.desc(), self.model.id.desc())
            .limit(recent_limit)
            .all()
        )

        return {
            "total_registrations": base.count(),
            "confirmed_registrations": base.filter(
                self.model.status == "confirmed"
            ).count(),
            "upcoming_events": upcoming_events,
            "recent_activity": recent_activity,
        }

    def add_pending(
        self,
        db: Session,
        *,
        attendee_id: str,
        event_id: str,
        ticket_type_id: str,
        snapshot: TicketSnapshot,
        payment_method: str,
        special_requests: Optional[str] = None,
    ) -> Registration:
        """
        Stages a pending registration in the caller's transaction.
        The caller commits.
        """
        db_obj = self.model(
            attendee_id=attendee_id,
            event_id=event_id,
            ticket_type_id=ticket_type_id,
            ticket_type=snapshot,
            total_amount=snapshot.total,
            payment_method=payment_method,
            status="pending",
            payment_status="pending",
            check_in_status="not_checked_in",
            special_requests=special_requests,
        )
        db.add(db_obj)
        return db_obj


registration = CRUDRegistration(Registration)
