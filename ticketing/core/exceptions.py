# ticketing/core/exceptions.py
"""
Domain exception hierarchy for the ticketing service.

Every error raised by the catalog, the ledger or the reservation engine
inherits from TicketingError so the API layer can map it to a stable
response shape without leaking storage details.
"""

from typing import Optional


class TicketingError(Exception):
    """Base exception for all ticketing domain errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: str = "TICKETING_ERROR",
        details: Optional[dict] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ===========================================
# Input Errors
# ===========================================


class ValidationError(TicketingError):
    """Malformed or out-of-range input."""

    status_code = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[dict] = None,
    ):
        details = dict(details or {})
        if field:
            details["field"] = field
        super().__init__(message, error_code="VALIDATION_ERROR", details=details)


class InvalidInputError(ValidationError):
    """Input is well-formed but does not match anything the event offers."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, field=field)
        self.error_code = "INVALID_INPUT"


# ===========================================
# Lookup & Access Errors
# ===========================================


class NotFoundError(TicketingError):
    """Referenced entity does not exist."""

    status_code = 404

    def __init__(self, entity: str, entity_id: Optional[str] = None):
        self.entity = entity
        details = {"entity": entity}
        if entity_id:
            details["id"] = entity_id
        super().__init__(
            message=f"{entity} not found",
            error_code=f"{entity.upper()}_NOT_FOUND",
            details=details,
        )


class UnauthorizedError(TicketingError):
    """Missing, malformed or expired credentials."""

    status_code = 401

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, error_code="UNAUTHORIZED")


class ForbiddenError(TicketingError):
    """Authenticated, but not the owner or not in the required role."""

    status_code = 403

    def __init__(self, message: str = "Access denied"):
        super().__init__(message, error_code="FORBIDDEN")


# ===========================================
# State Errors
# ===========================================


class ConflictError(TicketingError):
    """Duplicate registration, exhausted inventory or a lost write race."""

    status_code = 409

    def __init__(
        self,
        message: str,
        error_code: str = "CONFLICT",
        details: Optional[dict] = None,
    ):
        super().__init__(message, error_code=error_code, details=details)


class InvalidStateError(TicketingError):
    """Operation not permitted in the entity's current lifecycle state."""

    status_code = 409

    def __init__(self, message: str, current_state: Optional[str] = None):
        details = {"current_state": current_state} if current_state else {}
        super().__init__(message, error_code="INVALID_STATE", details=details)
