class AppError(Exception):
    """Base class for all application exceptions."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

class TimetableError(AppError):
    """Raised when a timetable engine operation cannot be carried out."""
    def __init__(self, message: str, status_code: int = 400, details: dict = None):
        super().__init__(message, status_code=status_code, details=details)

class InvalidTimeFormat(TimetableError, ValueError):
    """Raised for a malformed HH:MM value or an interval whose start does not precede its end.

    Also a ValueError so pydantic validators report it as a field error.
    """
    def __init__(self, value: object, reason: str = "Time must be in HH:MM 24-hour format"):
        self.value = value
        super().__init__(f"{reason}: {value!r}", status_code=422, details={"value": str(value)})

class SlotNotFound(TimetableError):
    """Raised when a resolution action references a slot that is not where it should be."""
    def __init__(self, slot_id: str, expected_in: str):
        super().__init__(
            f"Slot {slot_id} is not {expected_in}",
            status_code=404,
            details={"slot_id": slot_id, "expected_in": expected_in},
        )

class NotAConflict(TimetableError):
    """Raised when replace() is given a pair of slots that do not clash."""
    def __init__(self, slot_id: str, conflicting_slot_id: str):
        super().__init__(
            f"Slot {conflicting_slot_id} does not clash with slot {slot_id}",
            status_code=409,
            details={"slot_id": slot_id, "conflicting_slot_id": conflicting_slot_id},
        )

class ResourceNotFoundError(AppError):
    """Raised when a requested resource is not found."""
    def __init__(self, resource_type: str, resource_id: str):
        super().__init__(f"{resource_type} with id {resource_id} not found", status_code=404)

class ConfigurationError(AppError):
    """Raised when system configuration is invalid."""
    def __init__(self, message: str):
        super().__init__(message, status_code=500)
