"""
Exceptions raised by the audit core.
"""


class AuditError(Exception):
    """Base class for audit core errors."""


class InputMalformedError(AuditError):
    """Raised when an extracted bill cannot be audited as given."""

    def __init__(self, message: str, field: str = "line_items"):
        super().__init__(message)
        self.field = field


class StorageUnavailableError(AuditError):
    """Raised when the reference price store cannot read or write its document."""
