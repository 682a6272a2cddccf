"""Exception hierarchy for the AIRM risk engine.

Only structural failures are raised: out-of-domain scoring input, malformed
import files, and failed writes. Row-level validation problems are returned
as data (see importer.schemas.ImportRowError) and never raised.

Exceptions:
- RiskEngineError    — base class, carries an error code and details
- InvalidInputError  — out-of-domain numeric input or bad caller arguments
- FormatError        — malformed upload (no header, no data, unreadable file)
- PersistenceError   — a row or chunk write failed in the backing store
"""

from typing import Any


class RiskEngineError(Exception):
    """Base exception for all risk engine errors.

    Args:
        message: Human-readable error message.
        error_code: Stable machine-readable code. Defaults to the upper-cased class name.
        details: Optional structured context for the caller.
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__.upper()
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a JSON-serializable dictionary.

        Returns:
            Dict with error_code, message, and details keys.
        """
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return self.message


class InvalidInputError(RiskEngineError):
    """Raised for out-of-domain arguments (likelihood, impact, effectiveness, ...)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, error_code="INVALID_INPUT", details=details)


class FormatError(RiskEngineError):
    """Raised when an uploaded file cannot be parsed into header + data rows.

    Aborts the whole import attempt before any row-level validation runs.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, error_code="FORMAT_ERROR", details=details)


class PersistenceError(RiskEngineError):
    """Raised by store adapters when a validated row (or a whole chunk) fails to persist."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message, error_code="PERSISTENCE_ERROR", details=details)
