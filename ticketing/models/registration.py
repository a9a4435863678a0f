# ticketing/models/registration.py
import uuid
from dataclasses import dataclass
from decimal import Decimal

from sqlalchemy import (
    Column,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    text,
)
from sqlalchemy.orm import composite, relationship

from ticketing.db.base_class import Base
from ticketing.db.types import UTCDateTime, utcnow

ACTIVE_STATUSES = ("pending", "confirmed")
TERMINAL_STATUSES = ("cancelled", "refunded")


@dataclass(frozen=True)
class TicketSnapshot:
    """
    The ticket type as it was when the registration was made.

    Later edits to the event's ticket types never reach this value.
    """

    name: str
    price: Decimal
    quantity: int

    @property
    def total(self) -> Decimal:
        return Decimal(self.price) * self.quantity


class Registration(Base):
    __tablename__ = "registrations"
    __table_args__ = (
        # One active registration per attendee and event; cancelled and
        # refunded rows free the pair.
        Index(
            "uq_registrations_active_attendee_event",
            "attendee_id",
            "event_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'confirmed')"),
            sqlite_where=text("status IN ('pending', 'confirmed')"),
        ),
    )

    id = Column(
        String, primary_key=True, default=lambda: f"reg_{uuid.uuid4().hex[:12]}"
    )
    attendee_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    event_id = Column(String, ForeignKey("events.id"), nullable=False, index=True)
    ticket_type_id = Column(
        String, ForeignKey("ticket_types.id", ondelete="SET NULL"), nullable=True
    )

    ticket_name = Column(String(100), nullable=False)
    ticket_price = Column(Numeric(10, 2), nullable=False)
    ticket_quantity = Column(Integer, nullable=False)
    ticket_type = composite(TicketSnapshot, ticket_name, ticket_price, ticket_quantity)

    total_amount = Column(Numeric(12, 2), nullable=False)
    payment_method = Column(
        Enum(
            "credit_card",
            "debit_card",
            "paypal",
            "bank_transfer",
            "cash",
            name="payment_method_enum",
        ),
        nullable=False,
    )
    status = Column(
        Enum(
            "pending",
            "confirmed",
            "cancelled",
            "refunded",
            name="registration_status_enum",
        ),
        nullable=False,
        default="pending",
        index=True,
    )
    payment_status = Column(
        Enum(
            "pending",
            "completed",
            "failed",
            "refunded",
            name="payment_status_enum",
        ),
        nullable=False,
        default="pending",
    )
    transaction_id = Column(String, nullable=True, unique=True)
    check_in_status = Column(
        Enum(
            "not_checked_in",
            "checked_in",
            "no_show",
            name="check_in_status_enum",
        ),
        nullable=False,
        default="not_checked_in",
    )
    checked_in_at = Column(UTCDateTime, nullable=True)
    special_requests = Column(Text, nullable=True)
    registered_at = Column(UTCDateTime, nullable=False, default=utcnow, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    attendee = relationship("User")
    event = relationship("Event", back_populates="registrations")

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    def __repr__(self) -> str:
        return f"<Registration {self.id} {self.status} {self.ticket_name}x{self.ticket_quantity}>"
