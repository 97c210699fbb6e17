"""Domain errors raised by the services and mapped to HTTP by ``main``."""

from dataclasses import asdict, dataclass


@dataclass(frozen=True)
class FieldError:
    field: str
    constraint: str
    message: str

    def to_dict(self) -> dict:
        return asdict(self)


class RecordsError(Exception):
    """Base class for all service errors."""


class InvalidInput(RecordsError):
    """A create/update payload failed validation. Carries every violation."""

    def __init__(self, errors: list[FieldError]) -> None:
        super().__init__(f"{len(errors)} validation error(s)")
        self.errors = errors


class NotFound(RecordsError):
    def __init__(self, resource: str, record_id: str) -> None:
        super().__init__(f"{resource} {record_id} not found")
        self.resource = resource
        self.record_id = record_id


class StoreUnavailable(RecordsError):
    """The persistence backend is missing or failed."""
