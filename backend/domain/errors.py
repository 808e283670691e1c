"""
Error taxonomy for the resolution pipeline.

Every failure surfaced to a caller maps onto exactly one ErrorKind.
"""
from enum import Enum


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    PROVIDER = "provider"
    PERSISTENCE = "persistence"
    INTERNAL = "internal"


class ResolutionFailure(Exception):
    """Base class for failures that carry an ErrorKind."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationFailure(ResolutionFailure):
    kind = ErrorKind.VALIDATION


class ProviderError(ResolutionFailure):
    """An OCR or place provider call failed or returned a non-success status."""

    kind = ErrorKind.PROVIDER


class PersistenceFailure(ResolutionFailure):
    kind = ErrorKind.PERSISTENCE
