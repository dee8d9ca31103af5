"""Custom exception classes for the application."""


class AppError(Exception):
    """Base application error class."""

    kind = "app_error"

    def __init__(self, message, status_code=400):
        """Initialize the error."""
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class ValidationError(AppError):
    """Raised when user input fails validation."""

    kind = "validation_error"

    def __init__(self, message="Validation failed.", errors=None):
        super().__init__(message, 400)
        self.errors = errors or {}


class AuthenticationError(AppError):
    """Raised when a request has no resolvable actor."""

    kind = "unauthenticated"

    def __init__(self, message="You are not logged in."):
        super().__init__(message, 401)


class ForbiddenError(AppError):
    """Raised when the actor lacks the capability for an operation."""

    kind = "forbidden"

    def __init__(self, message="You do not have permission to do that."):
        super().__init__(message, 403)


class NotFoundError(AppError):
    """Raised when a resource is not found."""

    kind = "not_found"

    def __init__(self, message="Resource not found."):
        super().__init__(message, 404)


class DuplicateResourceError(AppError):
    """Raised when trying to create a resource that already exists."""

    kind = "duplicate"

    def __init__(self, message="Resource already exists."):
        super().__init__(message, 409)


class RegistrationClosedError(AppError):
    """Raised when the meetup status does not accept registrations."""

    kind = "registration_closed"

    def __init__(self, message="This meetup is not available for registration."):
        super().__init__(message, 400)


class MeetupInPastError(AppError):
    """Raised when registering for a meetup that has already started."""

    kind = "meetup_in_past"

    def __init__(self, message="Cannot register for past meetups."):
        super().__init__(message, 400)


class AlreadyRegisteredError(DuplicateResourceError):
    """Raised when the actor is already confirmed or waitlisted."""

    kind = "already_registered"

    def __init__(self, message="You are already registered for this meetup."):
        super().__init__(message)


class GuestAlreadyRegisteredError(DuplicateResourceError):
    """Raised when the guest is already on the meetup's guest list."""

    kind = "guest_already_registered"

    def __init__(self, message="Guest is already registered for this meetup."):
        super().__init__(message)


class ConcurrencyConflictError(AppError):
    """Raised when a transaction keeps losing to concurrent writers."""

    kind = "concurrency_conflict"

    def __init__(self, message="The meetup changed while saving. Please retry."):
        super().__init__(message, 409)


class UnavailableError(AppError):
    """Raised when the backing store cannot be reached."""

    kind = "unavailable"

    def __init__(self, message="The service is temporarily unavailable."):
        super().__init__(message, 503)


class InvariantViolationError(AppError):
    """Raised when a meetup write would break its participation invariants."""

    kind = "invariant_violation"

    def __init__(self, message):
        super().__init__(message, 500)
