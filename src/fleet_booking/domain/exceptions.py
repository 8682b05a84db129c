"""Domain exceptions for slot allocation and booking commits."""

from datetime import date
from typing import Optional


class SchedulingError(Exception):
    """Base exception for all scheduling errors."""
    pass


class InvalidInputError(SchedulingError, ValueError):
    """Raised when a request is malformed before any allocation is attempted."""
    pass


class InfeasibleAllocationError(SchedulingError):
    """Raised when no eligible slots within the search window can hold the request."""

    def __init__(self, message: str, requested: int = 0, allocated: int = 0):
        super().__init__(message)
        self.requested = requested
        self.allocated = allocated


class StaleCapacityError(SchedulingError):
    """Raised when a slot no longer has room for the requested vehicles."""

    def __init__(
        self,
        message: str,
        service: Optional[str] = None,
        slot_date: Optional[date] = None,
        slot_time: Optional[str] = None,
        requested: int = 0,
        available: int = 0
    ):
        super().__init__(message)
        self.service = service
        self.slot_date = slot_date
        self.slot_time = slot_time
        self.requested = requested
        self.available = available


class ConstraintViolationError(SchedulingError):
    """Raised when a selected slot is not after a derived ordering constraint."""
    pass
