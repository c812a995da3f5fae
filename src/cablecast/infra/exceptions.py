"""
Custom exceptions for CableCast operations.

This module provides the exception classes for the errors that can
surface from channel management and schedule maintenance.
"""


class CableCastError(Exception):
    """Base exception for all CableCast errors."""

    pass


class ChannelNotFoundError(CableCastError):
    """Raised when a channel id is unknown."""

    def __init__(self, channel_id: str):
        super().__init__(f"Channel with ID {channel_id} not found")
        self.channel_id = channel_id


class ValidationError(CableCastError):
    """Raised when channel or filter input is malformed."""

    pass


class CollaboratorUnavailableError(CableCastError):
    """Raised when the library or persistence collaborator fails."""

    pass


class ContractViolationError(CableCastError):
    """Raised when a block batch breaks the timeline invariants."""

    def __init__(self, message: str, violations: list[str] | None = None):
        super().__init__(message)
        self.message = message
        self.violations = violations or []

    def __str__(self) -> str:
        if self.violations:
            violations_text = "\n  - ".join(self.violations)
            return f"{self.message}\nViolations:\n  - {violations_text}"
        return self.message
