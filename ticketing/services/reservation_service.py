# ticketing/services/reservation_service.py
import logging
import uuid
from decimal import Decimal
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ticketing.core.config import settings
from ticketing.core.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidInputError,
    InvalidStateError,
    NotFoundError,
)
from ticketing.crud import crud_event, crud_registration, crud_ticket_type
from ticketing.db.types import utcnow
from ticketing.models.registration import (
    TERMINAL_STATUSES,
    Registration,
    TicketSnapshot,
)
from ticketing.schemas.registration import RegistrationUpdate

logger = logging.getLogger(__name__)

T = TypeVar("T")

RELEASE_MODES = ("cancel", "delete")


class ReservationService:
    """
    Keeps ticket inventory and the registration ledger consistent.

    This is the only writer of `TicketType.sold`. Every operation that moves
    inventory runs as one transaction: the ticket type row is re-read under a
    write lock and carries a version counter, so an UPDATE based on a stale
    read fails with `StaleDataError`. The transaction is then rolled back and
    the whole operation is re-driven from its first check, up to
    `max_attempts` times.
    """

    def __init__(self, db: Session, max_attempts: Optional[int] = None):
        self.db = db
        self.max_attempts = max_attempts or settings.RESERVATION_MAX_ATTEMPTS

    # ------------------------------------------------------------------
    # Reserve
    # ------------------------------------------------------------------

    def reserve(
        self,
        *,
        attendee_id: str,
        event_id: str,
        ticket_name: str,
        quantity: int,
        payment_method: str,
        special_requests: Optional[str] = None,
    ) -> Registration:
        """
        Take `quantity` tickets of the named type and record a pending
        registration for them.

        Args:
            attendee_id: User registering
            event_id: Event to register for
            ticket_name: Ticket type name, matched exactly
            quantity: Number of tickets, at least 1
            payment_method: One of the supported payment methods
            special_requests: Free text passed through to the organizer

        Returns: The new pending registration

        Raises:
            NotFoundError: The event does not exist
            InvalidStateError: The event is not published
            ConflictError: Already registered, not enough tickets left, or
                the retry budget ran out
            InvalidInputError: The event has no ticket type with that name
        """
        if quantity < 1:
            raise InvalidInputError(
                "Quantity must be at least 1", field="ticketType.quantity"
            )

        try:
            registration = self._run_in_transaction(
                "reserve",
                lambda: self._reserve_once(
                    attendee_id=attendee_id,
                    event_id=event_id,
                    ticket_name=ticket_name,
                    quantity=quantity,
                    payment_method=payment_method,
                    special_requests=special_requests,
                ),
            )
        except IntegrityError:
            # A concurrent request for the same pair got past the pre-check
            # and the partial unique index rejected this insert.
            if crud_registration.registration.get_active_for_attendee(
                self.db, attendee_id=attendee_id, event_id=event_id
            ):
                raise ConflictError(
                    "already registered", error_code="ALREADY_REGISTERED"
                )
            raise

        self.db.refresh(registration)
        logger.info(
            f"Reserved {quantity} x '{ticket_name}' on event {event_id} "
            f"for attendee {attendee_id} (registration {registration.id})",
            extra={
                "registration_id": registration.id,
                "event_id": event_id,
                "quantity": quantity,
            },
        )
        return registration

    def _reserve_once(
        self,
        *,
        attendee_id: str,
        event_id: str,
        ticket_name: str,
        quantity: int,
        payment_method: str,
        special_requests: Optional[str],
    ) -> Registration:
        event = crud_event.event.get(self.db, id=event_id)
        if event is None:
            raise NotFoundError("Event", event_id)

        if event.status != "published":
            raise InvalidStateError(
                "Event is not open for registration", current_state=event.status
            )

        if crud_registration.registration.get_active_for_attendee(
            self.db, attendee_id=attendee_id, event_id=event_id
        ):
            raise ConflictError("already registered", error_code="ALREADY_REGISTERED")

        listed = event.find_ticket_type(ticket_name)
        if listed is None:
            raise InvalidInputError("unknown ticket type", field="ticketType.name")

        ticket = crud_ticket_type.ticket_type.get_for_update(self.db, id=listed.id)
        if ticket is None:
            raise InvalidInputError("unknown ticket type", field="ticketType.name")

        if ticket.sold + quantity > ticket.quantity:
            raise ConflictError(
                "insufficient inventory",
                error_code="INSUFFICIENT_INVENTORY",
                details={"available": ticket.available, "requested": quantity},
            )

        ticket.sold = ticket.sold + quantity
        snapshot = TicketSnapshot(
            name=ticket.name, price=Decimal(ticket.price), quantity=quantity
        )
        registration = crud_registration.registration.add_pending(
            self.db,
            attendee_id=attendee_id,
            event_id=event.id,
            ticket_type_id=ticket.id,
            snapshot=snapshot,
            payment_method=payment_method,
            special_requests=special_requests,
        )
        # The version check on the ticket type runs here
        self.db.flush()
        return registration

    # ------------------------------------------------------------------
    # Release (cancel / delete)
    # ------------------------------------------------------------------

    def release(
        self, *, registration_id: str, acting_user_id: str, mode: str = "cancel"
    ) -> Registration:
        """
        Give a registration's tickets back to the event.

        `cancel` keeps the row with status `cancelled`; `delete` removes a
        pending registration outright.
        """
        if mode not in RELEASE_MODES:
            raise ValueError(f"Unknown release mode: {mode}")

        registration = self._run_in_transaction(
            mode,
            lambda: self._release_once(
                registration_id=registration_id,
                acting_user_id=acting_user_id,
                mode=mode,
            ),
        )
        if mode == "cancel":
            self.db.refresh(registration)
        logger.info(
            f"Registration {registration_id} released ({mode}) by {acting_user_id}",
            extra={"registration_id": registration_id, "mode": mode},
        )
        return registration

    def _release_once(
        self, *, registration_id: str, acting_user_id: str, mode: str
    ) -> Registration:
        registration = self._get_owned(registration_id, acting_user_id)

        if mode == "cancel" and registration.status in TERMINAL_STATUSES:
            raise InvalidStateError(
                f"Registration is already {registration.status}",
                current_state=registration.status,
            )
        if mode == "delete" and registration.status != "pending":
            raise InvalidStateError(
                "Only pending registrations can be deleted",
                current_state=registration.status,
            )

        self._return_inventory(registration)

        if mode == "cancel":
            registration.status = "cancelled"
            self.db.add(registration)
        else:
            self.db.delete(registration)
        self.db.flush()
        return registration

    # ------------------------------------------------------------------
    # Attendee edits
    # ------------------------------------------------------------------

    def update(
        self, *, registration_id: str, acting_user_id: str, obj_in: RegistrationUpdate
    ) -> Registration:
        """Edit a pending registration. Only special requests can change."""

        def apply() -> Registration:
            registration = self._get_owned(registration_id, acting_user_id)
            if registration.status != "pending":
                raise InvalidStateError(
                    "Only pending registrations can be updated",
                    current_state=registration.status,
                )
            for field, value in obj_in.model_dump(exclude_unset=True).items():
                setattr(registration, field, value)
            self.db.add(registration)
            self.db.flush()
            return registration

        registration = self._run_in_transaction("update", apply)
        self.db.refresh(registration)
        return registration

    # ------------------------------------------------------------------
    # Organizer transitions
    # ------------------------------------------------------------------

    def confirm(self, *, registration_id: str, organizer_id: str) -> Registration:
        """Mark a pending registration as paid. Inventory is unchanged."""

        def apply() -> Registration:
            registration = self._get_for_organizer(registration_id, organizer_id)
            if registration.status != "pending":
                raise InvalidStateError(
                    "Only pending registrations can be confirmed",
                    current_state=registration.status,
                )
            registration.status = "confirmed"
            registration.payment_status = "completed"
            registration.transaction_id = f"txn_{uuid.uuid4().hex}"
            self.db.add(registration)
            self.db.flush()
            return registration

        registration = self._run_in_transaction("confirm", apply)
        self.db.refresh(registration)
        logger.info(
            f"Registration {registration_id} confirmed by organizer {organizer_id}",
            extra={"registration_id": registration_id},
        )
        return registration

    def refund(self, *, registration_id: str, organizer_id: str) -> Registration:
        """Refund a confirmed registration and put its tickets back on sale."""

        def apply() -> Registration:
            registration = self._get_for_organizer(registration_id, organizer_id)
            if registration.status != "confirmed":
                raise InvalidStateError(
                    "Only confirmed registrations can be refunded",
                    current_state=registration.status,
                )
            self._return_inventory(registration)
            registration.status = "refunded"
            registration.payment_status = "refunded"
            self.db.add(registration)
            self.db.flush()
            return registration

        registration = self._run_in_transaction("refund", apply)
        self.db.refresh(registration)
        logger.info(
            f"Registration {registration_id} refunded by organizer {organizer_id}",
            extra={"registration_id": registration_id},
        )
        return registration

    def check_in(self, *, registration_id: str, organizer_id: str) -> Registration:
        def apply() -> Registration:
            registration = self._get_for_organizer(registration_id, organizer_id)
            if registration.status != "confirmed":
                raise InvalidStateError(
                    "Only confirmed registrations can be checked in",
                    current_state=registration.status,
                )
            if registration.check_in_status == "checked_in":
                raise ConflictError(
                    "Attendee is already checked in", error_code="ALREADY_CHECKED_IN"
                )
            registration.check_in_status = "checked_in"
            registration.checked_in_at = utcnow()
            self.db.add(registration)
            self.db.flush()
            return registration

        registration = self._run_in_transaction("check_in", apply)
        self.db.refresh(registration)
        logger.info(f"Registration {registration_id} checked in")
        return registration

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _run_in_transaction(self, action: str, operation: Callable[[], T]) -> T:
        """
        Run `operation` and commit. A lost optimistic-lock race is rolled
        back and retried; anything else is rolled back and re-raised.
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                result = operation()
                self.db.commit()
                return result
            except StaleDataError:
                self.db.rollback()
                logger.warning(
                    f"{action}: ticket inventory changed concurrently, "
                    f"retrying (attempt {attempt}/{self.max_attempts})",
                    extra={"action": action, "attempt": attempt},
                )
            except Exception:
                self.db.rollback()
                raise

        logger.warning(
            f"{action}: gave up after {self.max_attempts} attempts",
            extra={"action": action},
        )
        raise ConflictError(
            "concurrent update, please retry", error_code="CONCURRENT_UPDATE"
        )

    def _get_owned(self, registration_id: str, acting_user_id: str) -> Registration:
        registration = crud_registration.registration.get(self.db, id=registration_id)
        if registration is None:
            raise NotFoundError("Registration", registration_id)
        if registration.attendee_id != acting_user_id:
            raise ForbiddenError("You can only manage your own registrations")
        return registration

    def _get_for_organizer(
        self, registration_id: str, organizer_id: str
    ) -> Registration:
        registration = crud_registration.registration.get(self.db, id=registration_id)
        if registration is None:
            raise NotFoundError("Registration", registration_id)
        event = crud_event.event.get(self.db, id=registration.event_id)
        if event is None or event.organizer_id != organizer_id:
            raise ForbiddenError("Only the event organizer can manage this registration")
        return registration

    def _return_inventory(self, registration: Registration) -> None:
        """
        Give the snapshot quantity back to the ticket type it came from,
        floored at zero. The ticket type is found by id, then by the
        snapshot name. If neither the event nor the ticket type can be
        found the registration is still released.
        """
        snapshot = registration.ticket_type
        ticket = None
        if registration.ticket_type_id:
            ticket = crud_ticket_type.ticket_type.get_for_update(
                self.db, id=registration.ticket_type_id
            )

        if ticket is None:
            event = crud_event.event.get(self.db, id=registration.event_id)
            if event is None:
                logger.warning(
                    f"Data-integrity anomaly: event {registration.event_id} for "
                    f"registration {registration.id} is missing; inventory not restored",
                    extra={"registration_id": registration.id},
                )
                return
            listed = event.find_ticket_type(snapshot.name)
            if listed is not None:
                ticket = crud_ticket_type.ticket_type.get_for_update(
                    self.db, id=listed.id
                )

        if ticket is None:
            logger.warning(
                f"Data-integrity anomaly: ticket type '{snapshot.name}' for "
                f"registration {registration.id} is missing; inventory not restored",
                extra={"registration_id": registration.id},
            )
            return

        ticket.sold = max(0, ticket.sold - snapshot.quantity)
        self.db.add(ticket)
