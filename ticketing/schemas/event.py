# ticketing/schemas/event.py
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from ticketing.schemas.common import CamelModel, Pagination


class EventCategory(str, Enum):
    music = "Music"
    sports = "Sports"
    technology = "Technology"
    business = "Business"
    education = "Education"
    entertainment = "Entertainment"
    other = "Other"


class EventStatus(str, Enum):
    draft = "draft"
    published = "published"
    cancelled = "cancelled"
    completed = "completed"


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: Optional[str] = None


class Venue(CamelModel):
    name: str = Field(..., min_length=1, max_length=255, json_schema_extra={"example": "Main Hall"})
    address: Optional[Address] = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Venue name is required")
        return v


class EventDateTime(CamelModel):
    start: datetime
    end: datetime

    @field_validator("start", "end")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return _as_utc(v)

    @model_validator(mode="after")
    def check_ordering(self):
        if self.end <= self.start:
            raise ValueError("Event end date must be after start date")
        return self


# ========================================
# Ticket Types
# ========================================


class TicketTypeCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100, json_schema_extra={"example": "General"})
    description: Optional[str] = Field(None, max_length=500)
    price: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
    quantity: int = Field(..., ge=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Ticket type name is required")
        return v


class TicketTypeUpdate(CamelModel):
    """Organizer edits. `sold` is owned by the reservation engine and is not accepted."""

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=10, decimal_places=2)
    quantity: Optional[int] = Field(None, ge=1)


class TicketType(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    quantity: int
    sold: int
    available: int


# ========================================
# Events
# ========================================


class EventCreate(CamelModel):
    title: str = Field(..., min_length=2, max_length=100, json_schema_extra={"example": "PyData Summit"})
    description: str = Field(..., min_length=1, max_length=1000)
    category: EventCategory
    venue: Venue
    date_time: EventDateTime
    ticket_types: List[TicketTypeCreate] = Field(..., min_length=1)
    tags: List[str] = Field(default_factory=list)
    max_attendees: Optional[int] = Field(None, ge=1)
    status: EventStatus = EventStatus.draft

    @field_validator("title", "description")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Field cannot be blank")
        return v

    @field_validator("status")
    @classmethod
    def check_initial_status(cls, v: EventStatus) -> EventStatus:
        if v not in (EventStatus.draft, EventStatus.published):
            raise ValueError("New events must be draft or published")
        return v

    @model_validator(mode="after")
    def check_event(self):
        if self.date_time.start <= datetime.now(timezone.utc):
            raise ValueError("Event start date must be in the future")
        names = [tt.name for tt in self.ticket_types]
        if len(names) != len(set(names)):
            raise ValueError("Ticket type names must be unique within an event")
        return self


class EventUpdate(CamelModel):
    """Partial update. Ticket types are edited through their own endpoint."""

    model_config = ConfigDict(extra="forbid")

    title: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=1000)
    category: Optional[EventCategory] = None
    venue: Optional[Venue] = None
    date_time: Optional[EventDateTime] = None
    tags: Optional[List[str]] = None
    max_attendees: Optional[int] = Field(None, ge=1)
    status: Optional[EventStatus] = None
    is_featured: Optional[bool] = None


class OrganizerSummary(CamelModel):
    id: str
    name: str
    email: str


class Event(CamelModel):
    id: str = Field(..., json_schema_extra={"example": "evt_c5a6d8e0f9b1"})
    organizer_id: str
    organizer: Optional[OrganizerSummary] = None
    title: str
    description: str
    category: EventCategory
    venue: Venue
    date_time: EventDateTime
    ticket_types: List[TicketType]
    tags: List[str] = []
    max_attendees: Optional[int] = None
    is_featured: bool = False
    status: EventStatus
    total_tickets_sold: int
    total_revenue: float
    available_tickets: int
    created_at: datetime
    updated_at: datetime


class EventFilter(CamelModel):
    category: Optional[EventCategory] = None
    search: Optional[str] = None
    start_from: Optional[datetime] = None
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None


class PaginatedEvents(CamelModel):
    events: List[Event]
    pagination: Pagination


class EventList(CamelModel):
    events: List[Event]


# ========================================
# Statistics
# ========================================


class TicketTypeBreakdown(CamelModel):
    sold: int
    available: int
    revenue: float


class EventStats(CamelModel):
    total_registrations: int
    confirmed_registrations: int
    total_revenue: float
    ticket_type_breakdown: Dict[str, TicketTypeBreakdown]
