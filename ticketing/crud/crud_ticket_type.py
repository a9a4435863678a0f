# ticketing/crud/crud_ticket_type.py
import logging
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from .base import CRUDBase
from ticketing.core.exceptions import ConflictError
from ticketing.models.ticket_type import TicketType
from ticketing.schemas.event import TicketTypeCreate, TicketTypeUpdate

logger = logging.getLogger(__name__)


class CRUDTicketType(CRUDBase[TicketType, TicketTypeCreate, TicketTypeUpdate]):
    """Catalog-side access to ticket types. Never writes `sold`."""

    def get_for_event(
        self, db: Session, *, event_id: str, ticket_type_id: str
    ) -> Optional[TicketType]:
        return (
            db.query(self.model)
            .filter(self.model.id == ticket_type_id, self.model.event_id == event_id)
            .first()
        )

    def get_by_name(
        self, db: Session, *, event_id: str, name: str
    ) -> Optional[TicketType]:
        return (
            db.query(self.model)
            .filter(self.model.event_id == event_id, self.model.name == name)
            .first()
        )

    def get_for_update(self, db: Session, *, id: str) -> Optional[TicketType]:
        """
        Re-reads the row with a write lock where the database supports it.
        `populate_existing` discards any stale copy held in the session.
        """
        return (
            db.query(self.model)
            .filter(self.model.id == id)
            .populate_existing()
            .with_for_update()
            .first()
        )

    def update(
        self, db: Session, *, db_obj: TicketType, obj_in: TicketTypeUpdate
    ) -> TicketType:
        """
        Organizer edit of a ticket type. Capacity may not drop below what
        has already been sold, and the name must stay unique within the event.
        Price changes never touch existing registrations, which keep their
        own snapshot.
        """
        update_data = {
            field: value
            for field, value in obj_in.model_dump(exclude_unset=True).items()
            if value is not None or field == "description"
        }

        if "name" in update_data:
            update_data["name"] = update_data["name"].strip()
            clash = self.get_by_name(
                db, event_id=db_obj.event_id, name=update_data["name"]
            )
            if clash is not None and clash.id != db_obj.id:
                raise ConflictError(
                    f"Ticket type '{update_data['name']}' already exists for this event"
                )

        if "quantity" in update_data and update_data["quantity"] < db_obj.sold:
            raise ConflictError(
                "Quantity cannot be lower than tickets already sold",
                details={"sold": db_obj.sold, "requested": update_data["quantity"]},
            )

        try:
            return super().update(db, db_obj=db_obj, obj_in=update_data)
        except StaleDataError:
            db.rollback()
            logger.warning(
                f"Ticket type {db_obj.id} changed during edit",
                extra={"ticket_type_id": db_obj.id},
            )
            raise ConflictError(
                "Ticket type was modified concurrently, please retry",
                error_code="CONCURRENT_UPDATE",
            )


ticket_type = CRUDTicketType(TicketType)
