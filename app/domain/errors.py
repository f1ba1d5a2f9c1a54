"""Domain exceptions for the booking and payment reconciliation engine."""


class DomainError(Exception):
    """Base class for every domain error."""

    def __init__(self, message: str, code: str | None = None):
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(self.message)


# === Validation ===


class ValidationError(DomainError):
    """Malformed or contradictory input. Never partially applied."""

    def __init__(self, field: str, message: str):
        super().__init__(
            message=f"Validation failed on '{field}': {message}",
            code="VALIDATION_ERROR",
        )
        self.field = field


# === Bookings ===


class BookingNotFoundError(DomainError):
    """The booking does not exist."""

    def __init__(self, booking_id: str):
        super().__init__(
            message=f"Booking not found: {booking_id}",
            code="BOOKING_NOT_FOUND",
        )
        self.booking_id = booking_id


class BookingNotModifiableError(DomainError):
    """The booking is outside the window in which it can be changed or cancelled."""

    def __init__(self, booking_id: str, reason: str):
        super().__init__(
            message=f"Booking {booking_id} can no longer be modified: {reason}",
            code="BOOKING_NOT_MODIFIABLE",
        )
        self.booking_id = booking_id
        self.reason = reason


class InvalidBookingTransitionError(DomainError):
    """The booking state machine does not allow the requested transition."""

    def __init__(self, booking_id: str, current_status: str, target_status: str):
        super().__init__(
            message=f"Booking {booking_id} cannot move from '{current_status}' to '{target_status}'",
            code="INVALID_BOOKING_TRANSITION",
        )
        self.booking_id = booking_id
        self.current_status = current_status
        self.target_status = target_status


class BookingNotPayableError(DomainError):
    """A checkout session was requested for a booking that is not awaiting payment."""

    def __init__(self, booking_id: str, status: str, payment_status: str):
        super().__init__(
            message=(
                f"Booking {booking_id} is not awaiting payment "
                f"(status={status}, payment_status={payment_status})"
            ),
            code="BOOKING_NOT_PAYABLE",
        )
        self.booking_id = booking_id


class ForbiddenError(DomainError):
    """The caller does not own the resource."""

    def __init__(self, message: str = "You do not have access to this booking"):
        super().__init__(message=message, code="FORBIDDEN")


# === Slots ===


class SlotNotFoundError(DomainError):
    """The logistic slot does not exist."""

    def __init__(self, slot_id: str, field: str = "slot_id"):
        super().__init__(
            message=f"Logistic slot not found: {slot_id}",
            code="SLOT_NOT_FOUND",
        )
        self.slot_id = slot_id
        self.field = field


# === Webhooks ===


class WebhookSignatureError(DomainError):
    """Missing or invalid provider signature. Rejected before any side effect."""

    def __init__(self, message: str = "Invalid webhook signature"):
        super().__init__(message=message, code="INVALID_SIGNATURE")


class WebhookPayloadError(DomainError):
    """The signed payload could not be interpreted as a provider event."""

    def __init__(self, message: str = "Malformed webhook payload"):
        super().__init__(message=message, code="INVALID_PAYLOAD")


# === Concurrency and access ===


class ConcurrentModificationError(DomainError):
    """The record changed between read and write. The unit of work can be retried."""

    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} {entity_id} was modified concurrently",
            code="CONCURRENT_MODIFICATION",
        )
        self.entity = entity
        self.entity_id = entity_id


class AuthenticationRequiredError(DomainError):
    """The operation needs a signed-in user."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message=message, code="UNAUTHENTICATED")
