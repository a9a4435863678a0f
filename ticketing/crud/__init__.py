# ticketing/crud/__init__.py

from .crud_event import event
from .crud_registration import registration
from .crud_ticket_type import ticket_type
from .crud_user import user
