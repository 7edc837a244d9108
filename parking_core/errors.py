# parking_core/errors.py
"""
Typed outcomes raised by the parking core.
The HTTP layer (parking_core/main.py) maps each kind to a status code;
the core itself never builds user-facing responses.
"""


class ParkingError(Exception):
    """Base class. `reason` is a short machine-readable tag."""

    reason = "error"

    def __init__(self, message: str = "", reason: str = None):
        super().__init__(message or self.reason)
        self.message = message or self.reason
        if reason:
            self.reason = reason

    def __repr__(self):
        return f"<{type(self).__name__} reason={self.reason} message={self.message!r}>"


class ValidationError(ParkingError):
    """Malformed or out-of-range input."""
    reason = "invalid"


class NotFound(ParkingError):
    reason = "not_found"


class Conflict(ParkingError):
    """State-transition violation (already exited, already paid, token not pending, expired)."""
    reason = "conflict"


class Forbidden(ParkingError):
    reason = "forbidden"


class DuplicateTokenCode(Exception):
    """Raised by the store when a token code hits the unique index. Internal only."""
