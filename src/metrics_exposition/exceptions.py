from __future__ import annotations


class ExpositionError(Exception):
    """Base class for errors surfaced by metrics_exposition."""


class SerializationError(ExpositionError):
    """Raised when a value cannot be represented in the requested encoding."""

    def __init__(self, message: str, *, format: str):
        super().__init__(message)
        self.format = format


class DeserializationError(ExpositionError):
    """Raised when encoded bytes do not decode to a known snapshot shape."""

    def __init__(self, message: str, *, format: str):
        super().__init__(message)
        self.format = format
