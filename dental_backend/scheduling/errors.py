"""Error kinds raised by the scheduling engine.

Routes translate each kind into an HTTP status; the reminder batch is the
only caller that recovers from one internally.
"""


class SchedulingError(Exception):
    """Base class for every scheduling failure."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed or past-dated input, rejected before any availability check."""


class ConflictError(SchedulingError):
    """The requested time is not (or no longer) bookable."""


class IllegalTransitionError(SchedulingError):
    """The status change is not allowed for this state, actor or timing."""


class NotificationDeliveryError(SchedulingError):
    """A notification could not be delivered."""


class DependencyMissingError(SchedulingError):
    """A referenced patient, dentist or service cannot be resolved."""


class RecordNotFoundError(DependencyMissingError):
    """A referenced appointment, working-hour rule or blocked date does not exist."""
