# ticketing/crud/crud_event.py
import logging
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy import String, and_, cast, or_
from sqlalchemy.orm import Session

from . import crud_registration
from .base import CRUDBase
from ticketing.core.exceptions import ConflictError
from ticketing.models.event import Event
from ticketing.models.registration import Registration
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.event import EventCreate, EventFilter, EventUpdate

logger = logging.getLogger(__name__)

# Columns that may be cleared by sending an explicit null
NULLABLE_FIELDS = {"max_attendees"}


def escape_like(value: str) -> str:
    """Make user text match literally inside a LIKE pattern."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class CRUDEvent(CRUDBase[Event, EventCreate, EventUpdate]):
    def create_with_organizer(
        self, db: Session, *, obj_in: EventCreate, organizer_id: str
    ) -> Event:
        """
        Creates an event together with its ordered ticket types.
        Inventory always starts empty.
        """
        db_obj = self.model(
            organizer_id=organizer_id,
            title=obj_in.title,
            description=obj_in.description,
            category=obj_in.category.value,
            venue_name=obj_in.venue.name,
            venue_address=(
                obj_in.venue.address.model_dump() if obj_in.venue.address else None
            ),
            start_at=obj_in.date_time.start,
            end_at=obj_in.date_time.end,
            tags=list(obj_in.tags),
            max_attendees=obj_in.max_attendees,
            is_featured=False,
            status=obj_in.status.value,
        )
        for position, ticket_in in enumerate(obj_in.ticket_types):
            db_obj.ticket_types.append(
                TicketType(
                    name=ticket_in.name,
                    description=ticket_in.description,
                    price=ticket_in.price,
                    quantity=ticket_in.quantity,
                    sold=0,
                    sort_order=position,
                )
            )
        db.add(db_obj)
        db.commit()
        db.refresh(db_obj)
        logger.info(
            f"Event {db_obj.id} created by organizer {organizer_id} "
            f"with {len(db_obj.ticket_types)} ticket types"
        )
        return db_obj

    def get_published(self, db: Session, *, id: str) -> Optional[Event]:
        """Public lookup: drafts and cancelled events are invisible."""
        return (
            db.query(self.model)
            .filter(self.model.id == id, self.model.status == "published")
            .first()
        )

    def get_multi_published(
        self,
        db: Session,
        *,
        filters: Optional[EventFilter] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Event], int]:
        """
        Published events matching the filters, newest first.
        Returns the page of events and the total number of matches.
        """
        query = db.query(self.model).filter(self.model.status == "published")

        if filters:
            if filters.category:
                query = query.filter(self.model.category == filters.category.value)

            if filters.search:
                pattern = f"%{escape_like(filters.search.strip())}%"
                query = query.filter(
                    or_(
                        self.model.title.ilike(pattern, escape="\\"),
                        self.model.description.ilike(pattern, escape="\\"),
                        cast(self.model.tags, String).ilike(pattern, escape="\\"),
                    )
                )

            if filters.start_from:
                query = query.filter(self.model.start_at >= filters.start_from)

            # Price range matches when any single ticket type falls inside it
            price_conditions = []
            if filters.min_price is not None:
                price_conditions.append(TicketType.price >= filters.min_price)
            if filters.max_price is not None:
                price_conditions.append(TicketType.price <= filters.max_price)
            if price_conditions:
                query = query.filter(self.model.ticket_types.any(and_(*price_conditions)))

        total = query.count()
        events = (
            query.order_by(self.model.created_at.desc(), self.model.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return events, total

    def get_featured(self, db: Session, *, limit: int = 6) -> List[Event]:
        return (
            db.query(self.model)
            .filter(self.model.status == "published", self.model.is_featured.is_(True))
            .order_by(self.model.created_at.desc())
            .limit(limit)
            .all()
        )

    def get_multi_by_organizer(self, db: Session, *, organizer_id: str) -> List[Event]:
        """All of an organizer's events, any status, newest first."""
        return (
            db.query(self.model)
            .filter(self.model.organizer_id == organizer_id)
            .order_by(self.model.created_at.desc())
            .all()
        )

    def update(self, db: Session, *, db_obj: Event, obj_in: EventUpdate) -> Event:
        update_data = {}
        for field, value in obj_in.model_dump(
            exclude_unset=True, exclude={"venue", "date_time"}
        ).items():
            if value is None and field not in NULLABLE_FIELDS:
                continue
            update_data[field] = getattr(value, "value", value)

        if obj_in.venue is not None:
            update_data["venue_name"] = obj_in.venue.name
            update_data["venue_address"] = (
                obj_in.venue.address.model_dump() if obj_in.venue.address else None
            )
        if obj_in.date_time is not None:
            update_data["start_at"] = obj_in.date_time.start
            update_data["end_at"] = obj_in.date_time.end

        updated_event = super().update(db, db_obj=db_obj, obj_in=update_data)
        logger.info(
            f"Event {db_obj.id} updated",
            extra={"event_id": db_obj.id, "fields": sorted(update_data)},
        )
        return updated_event

    def remove_if_unreferenced(self, db: Session, *, db_obj: Event) -> Event:
        """
        Deletes an event and its ticket types.
        Refused while any registration, in any status, points at the event.
        """
        registrations = crud_registration.registration.count_by_event(
            db, event_id=db_obj.id
        )
        if registrations:
            raise ConflictError(
                "Cannot delete an event that has registrations",
                details={"registrations": registrations},
            )
        db.delete(db_obj)
        db.commit()
        logger.info(f"Event {db_obj.id} deleted")
        return db_obj

    def get_stats(self, db: Session, *, db_obj: Event) -> dict:
        """
        Read-only dashboard figures for one event.
        Per-type `sold` counts active registrations; `available` comes from
        the inventory counter.
        """
        registrations = (
            db.query(Registration).filter(Registration.event_id == db_obj.id).all()
        )

        breakdown = {
            tt.name: {"sold": 0, "available": tt.available, "revenue": Decimal("0")}
            for tt in db_obj.ticket_types
        }
        names_by_id = {tt.id: tt.name for tt in db_obj.ticket_types}

        total_revenue = Decimal("0")
        confirmed = 0
        for reg in registrations:
            if reg.status == "confirmed":
                confirmed += 1
            if not reg.is_active:
                continue
            total_revenue += reg.total_amount
            name = names_by_id.get(reg.ticket_type_id, reg.ticket_name)
            entry = breakdown.get(name)
            if entry is None:
                continue
            entry["sold"] += reg.ticket_quantity
            entry["revenue"] += reg.total_amount

        return {
            "total_registrations": len(registrations),
            "confirmed_registrations": confirmed,
            "total_revenue": total_revenue,
            "ticket_type_breakdown": breakdown,
        }


event = CRUDEvent(Event)
