# ticketing/schemas/registration.py
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import ConfigDict, Field, field_validator

from ticketing.schemas.common import CamelModel, Pagination
from ticketing.schemas.event import EventDateTime, EventStatus, Venue


class PaymentMethod(str, Enum):
    credit_card = "credit_card"
    debit_card = "debit_card"
    paypal = "paypal"
    bank_transfer = "bank_transfer"
    cash = "cash"


class RegistrationStatus(str, Enum):
    pending = "pending"
    confirmed = "confirmed"
    cancelled = "cancelled"
    refunded = "refunded"


class PaymentStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"
    refunded = "refunded"


class CheckInStatus(str, Enum):
    not_checked_in = "not_checked_in"
    checked_in = "checked_in"
    no_show = "no_show"


class TicketSelection(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, json_schema_extra={"example": "General"})
    # Accepted for compatibility with older clients; the catalog price is always used.
    price: Optional[Decimal] = Field(None, ge=0)
    quantity: int = Field(..., ge=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return v.strip()


class RegistrationCreate(CamelModel):
    event_id: str = Field(..., json_schema_extra={"example": "evt_c5a6d8e0f9b1"})
    ticket_type: TicketSelection
    payment_method: PaymentMethod
    special_requests: Optional[str] = Field(None, max_length=500)


class RegistrationUpdate(CamelModel):
    """Only special requests may change after registering."""

    model_config = ConfigDict(extra="forbid")

    special_requests: Optional[str] = Field(None, max_length=500)


class TicketSnapshot(CamelModel):
    name: str
    price: float
    quantity: int


class EventSummary(CamelModel):
    id: str
    title: str
    category: str
    venue: Venue
    date_time: EventDateTime
    status: EventStatus


class Registration(CamelModel):
    id: str = Field(..., json_schema_extra={"example": "reg_9f8e7d6c5b4a"})
    attendee_id: str
    event_id: str
    ticket_type_id: Optional[str] = None
    ticket_type: TicketSnapshot
    total_amount: float
    payment_method: PaymentMethod
    status: RegistrationStatus
    payment_status: PaymentStatus
    transaction_id: Optional[str] = None
    check_in_status: CheckInStatus
    checked_in_at: Optional[datetime] = None
    special_requests: Optional[str] = None
    registered_at: datetime
    created_at: datetime
    updated_at: datetime


class RegistrationWithEvent(Registration):
    event: Optional[EventSummary] = None


class PaginatedRegistrations(CamelModel):
    registrations: List[RegistrationWithEvent]
    pagination: Pagination


class UserDashboard(CamelModel):
    total_registrations: int
    confirmed_registrations: int
    upcoming_events: List[EventSummary]
    recent_activity: List[RegistrationWithEvent]
