"""
Custom exception classes for the application.

Provides standardized HTTP exceptions for common error cases.
"""

from fastapi import HTTPException, status


class BadRequestException(HTTPException):
    """Exception raised for invalid request data."""

    def __init__(self, detail: str = "Bad request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
        )


class MalformedBillException(HTTPException):
    """Exception raised when an extracted bill cannot be audited."""

    def __init__(self, detail: str = "Could not analyze this bill", field: str = "line_items"):
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"error": "Could not analyze this bill", "field": field, "details": detail},
        )


class ExtractionFailedException(HTTPException):
    """Exception raised when the vision model could not read the bill."""

    def __init__(self, detail: str = "Failed to analyze bill"):
        super().__init__(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Could not analyze this bill", "details": detail},
        )


class ServiceNotConfiguredException(HTTPException):
    """Exception raised when a required external API key is missing."""

    def __init__(self, detail: str = "Service not configured"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail,
        )


class PayloadTooLargeException(HTTPException):
    """Exception raised when an upload exceeds the size limit."""

    def __init__(self, detail: str = "File too large"):
        super().__init__(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=detail,
        )
