"""Exceptions raised by pantry boxes, registries and uploads."""


class PantryException(Exception):
    """Base exception for pantry operations."""

    pass


class ConfigurationException(PantryException):
    """Missing credentials, unknown box names and invalid box definitions."""

    pass


class NotFoundException(PantryException):
    """Raised when reading a location that does not exist."""

    def __init__(self, location: str):
        self.location = location
        super().__init__(f"File not found: {location}")


class BackendException(PantryException):
    """Failure reported by the filesystem or object store client."""

    pass


class StreamConsumedException(PantryException):
    """Raised when a one-shot upload stream is read a second time."""

    pass
