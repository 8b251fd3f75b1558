"""
Error taxonomy for the event store access layer.

Client-caused problems derive from `ValidationError` and are reported as
400s at the HTTP boundary. Everything raised by the Azure SDK is translated
in `store.py` into `ConflictError` or `StoreError`; SDK exception types never
escape that module.
"""


class EventStoreError(Exception):
    """Base class for every error raised by this backend."""


class ValidationError(EventStoreError):
    """Malformed or missing input. Detected before any store call."""


class MissingDataError(ValidationError):
    pass


class InvalidJsonError(ValidationError):
    pass


class InvalidTimestampError(ValidationError):
    pass


class MissingDeviceIdError(ValidationError):
    pass


class InvalidRangeError(ValidationError):
    """An explicitly supplied range boundary could not be parsed."""


class UnsafeFieldNameError(ValidationError):
    """A projection field name is not a plain identifier."""


class PartitionKeyMissingError(EventStoreError):
    """The entity handed to the store has no partition key value.

    Validation should make this impossible, so it is treated as an
    internal defect rather than a client error.
    """


class ConflictError(EventStoreError):
    """An item with the same id already exists in the partition."""


class StoreError(EventStoreError):
    """Any other backend failure. Keeps the backend status code."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is None:
            return self.message
        return f"[{self.status_code}] {self.message}"
