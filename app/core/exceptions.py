from typing import Optional, Any

class VidhyaDhamError(Exception):
    """
    Base exception for the seat booking application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class NotFoundError(VidhyaDhamError):
    """
    Raised when a requested user or seat does not exist.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class ValidationError(VidhyaDhamError):
    """
    Raised when input validation fails (missing field, unknown slot, bad seat number).
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class SeatConflict(VidhyaDhamError):
    """
    Raised when a seat is already occupied by another user in the requested slot.
    """
    def __init__(self, seat_number: int, slot: str, occupant_id: Optional[str] = None):
        self.seat_number = seat_number
        self.slot = slot
        self.occupant_id = occupant_id
        super().__init__(
            f"Seat {seat_number} is already occupied in the {slot} slot",
            code="SEAT_CONFLICT",
            status_code=409,
            details={"seat_number": seat_number, "slot": slot, "occupant_id": occupant_id}
        )

class InvalidFeeTransition(VidhyaDhamError):
    """
    Raised when a fee status change is not allowed for the acting party.
    """
    def __init__(self, from_status: str, to_status: str):
        super().__init__(
            f"Invalid fee status transition: {from_status} -> {to_status}",
            code="INVALID_TRANSITION",
            status_code=409,
            details={"from": from_status, "to": to_status}
        )

class UpstreamFailure(VidhyaDhamError):
    """
    Raised when an external service (Telegram, SMTP, file storage) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="UPSTREAM_FAILURE", status_code=502, details=details)

class PersistenceError(VidhyaDhamError):
    """
    Raised when the write-through to the database fails.
    """
    def __init__(self, message: str = "Could not persist change", details: Optional[Any] = None):
        super().__init__(message, code="PERSISTENCE_ERROR", status_code=503, details=details)
