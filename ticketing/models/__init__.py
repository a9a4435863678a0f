# ticketing/models/__init__.py
# Import every model so that Base.metadata knows about all tables.

from .user import User
from .event import Event
from .ticket_type import TicketType
from .registration import Registration, TicketSnapshot
