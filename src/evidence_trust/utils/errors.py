"""Error types raised by the evidence trust engine.

Only configuration problems, missing calibration data and extraction
collaborator failures are raised. Validation outcomes are returned as
structured results instead.
"""
from __future__ import annotations


class EvidenceTrustError(Exception):
    """Base class for engine errors with user-friendly messaging."""

    def __init__(self, error_type: str, message: str, details: str = "", is_retryable: bool = False):
        self.error_type = error_type
        self.message = message
        self.details = details
        self.is_retryable = is_retryable
        super().__init__(self.message)

    def get_user_message(self) -> str:
        """Return a user-friendly error message."""
        msg = f"\n{self.message}"
        if self.details:
            msg += f"\n   Details: {self.details}"
        if self.is_retryable:
            msg += "\n   Tip: This is a temporary issue. Please retry."
        return msg


class ConfigurationError(EvidenceTrustError):
    """Invalid component configuration (weights, bounds, unknown keys)."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(
            error_type="INVALID_CONFIG",
            message=message,
            details=details,
            is_retryable=False,
        )


class CalibrationError(EvidenceTrustError):
    """Calibration analysis requested without any recorded data."""

    def __init__(self, message: str = "No calibration data available"):
        super().__init__(
            error_type="NO_CALIBRATION_DATA",
            message=message,
            details="Record human judgments with add_calibration_point() first",
            is_retryable=False,
        )


class ExtractionError(EvidenceTrustError):
    """The extraction collaborator failed or returned an unsuccessful response."""

    def __init__(self, message: str, details: str = ""):
        super().__init__(
            error_type="EXTRACTION_FAILED",
            message=message,
            details=details,
            is_retryable=True,
        )
