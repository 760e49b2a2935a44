"""Custom exception hierarchy for RoomTally."""

from typing import Dict, Optional


class RoomTallyError(Exception):
    """Base exception for all RoomTally-specific errors."""

    def __init__(self, message: str, details: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class UnitConversionError(RoomTallyError):
    """Raised when a single value cannot be converted between units."""
    pass


class ConversionAbort(RoomTallyError):
    """Raised when a collection-wide unit conversion is rolled back."""
    pass


class TransportError(RoomTallyError):
    """Raised when the transport collaborator is misconfigured."""
    pass


class SubmissionNotReadyError(RoomTallyError):
    """Raised when submitting a room collection that is not ready."""
    pass
