# barberflow/errors.py


class SchedulingError(Exception):
    """Base class for errors raised by the scheduling core and booking path."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    """Malformed input detected before any storage access."""

    status_code = 422


class NotFoundError(SchedulingError):
    status_code = 404


class StorageUnavailableError(SchedulingError):
    """The schedule store could not be read; availability is unknown."""

    status_code = 503


class ConflictError(SchedulingError):
    """A booking was rejected because its window is already taken."""

    status_code = 409
