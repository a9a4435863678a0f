# ticketing/models/ticket_type.py
import uuid
from decimal import Decimal

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from ticketing.db.base_class import Base
from ticketing.db.types import UTCDateTime, utcnow


class TicketType(Base):
    __tablename__ = "ticket_types"
    __table_args__ = (
        UniqueConstraint("event_id", "name", name="uq_ticket_types_event_name"),
        CheckConstraint("price >= 0", name="ck_ticket_types_price_non_negative"),
        CheckConstraint("quantity >= 1", name="ck_ticket_types_quantity_positive"),
        CheckConstraint("sold >= 0", name="ck_ticket_types_sold_non_negative"),
        CheckConstraint("sold <= quantity", name="ck_ticket_types_sold_within_quantity"),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"tt_{uuid.uuid4().hex[:12]}"
    )
    event_id = Column(
        String, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2), nullable=False)
    quantity = Column(Integer, nullable=False)
    # Written only by the reservation engine
    sold = Column(Integer, nullable=False, default=0)
    sort_order = Column(Integer, nullable=False, default=0)
    # Optimistic lock: every UPDATE is conditional on the version that was read
    version = Column(Integer, nullable=False)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    event = relationship("Event", back_populates="ticket_types")

    __mapper_args__ = {"version_id_col": version}

    @property
    def available(self) -> int:
        """Remaining capacity for this ticket type."""
        return max(0, (self.quantity or 0) - (self.sold or 0))

    @property
    def revenue(self) -> Decimal:
        return Decimal(self.price or 0) * (self.sold or 0)

    def __repr__(self) -> str:
        return f"<TicketType {self.name} {self.sold}/{self.quantity}>"
