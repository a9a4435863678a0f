# ticketing/models/event.py
import uuid
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import relationship

from ticketing.db.base_class import Base
from ticketing.db.types import UTCDateTime, utcnow


class Event(Base):
    __tablename__ = "events"

    id = Column(
        String, primary_key=True, default=lambda: f"evt_{uuid.uuid4().hex[:12]}"
    )
    organizer_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(100), nullable=False)
    description = Column(String(1000), nullable=False)
    category = Column(String(32), nullable=False, index=True)
    venue_name = Column(String(255), nullable=False)
    # {street, city, state, zip_code, country}; all keys optional
    venue_address = Column(JSON, nullable=True)
    start_at = Column(UTCDateTime, nullable=False, index=True)
    end_at = Column(UTCDateTime, nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    max_attendees = Column(Integer, nullable=True)
    is_featured = Column(Boolean, nullable=False, server_default=text("false"))
    status = Column(String(16), nullable=False, default="draft", index=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # Listed events are returned with their organizer's name and email
    organizer = relationship("User", lazy="joined", innerjoin=True)
    ticket_types = relationship(
        "TicketType",
        back_populates="event",
        order_by="TicketType.sort_order",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    registrations = relationship("Registration", back_populates="event")

    @property
    def venue(self) -> dict:
        return {"name": self.venue_name, "address": self.venue_address}

    @property
    def date_time(self) -> dict:
        return {"start": self.start_at, "end": self.end_at}

    @property
    def total_tickets_sold(self) -> int:
        return sum(tt.sold or 0 for tt in self.ticket_types)

    @property
    def total_revenue(self) -> Decimal:
        return sum((tt.revenue for tt in self.ticket_types), Decimal("0"))

    @property
    def available_tickets(self) -> int:
        return sum(tt.available for tt in self.ticket_types)

    def find_ticket_type(self, name: str):
        """Return the ticket type with this exact name, or None."""
        return next((tt for tt in self.ticket_types if tt.name == name), None)

    def __repr__(self) -> str:
        return f"<Event {self.id} {self.title!r} ({self.status})>"
