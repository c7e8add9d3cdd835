"""ElementQuote error handling.

Custom exceptions and error codes for the quotation pricing backend.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors (1xxx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_FIELD = "MISSING_FIELD"
    INVALID_FIELD = "INVALID_FIELD"

    # Quotation Workflow Errors (2xxx)
    QUOTATION_FROZEN = "QUOTATION_FROZEN"
    INVALID_STATUS_TRANSITION = "INVALID_STATUS_TRANSITION"
    VERSION_NOT_FOUND = "VERSION_NOT_FOUND"

    # Firestore Errors (5xxx)
    FIRESTORE_ERROR = "FIRESTORE_ERROR"
    QUOTATION_NOT_FOUND = "QUOTATION_NOT_FOUND"
    COST_ENTRY_NOT_FOUND = "COST_ENTRY_NOT_FOUND"
    TEMPLATE_NOT_FOUND = "TEMPLATE_NOT_FOUND"
    FIRESTORE_WRITE_FAILED = "FIRESTORE_WRITE_FAILED"

    # LLM Errors (6xxx)
    LLM_ERROR = "LLM_ERROR"
    LLM_RATE_LIMIT = "LLM_RATE_LIMIT"
    LLM_CONTEXT_TOO_LONG = "LLM_CONTEXT_TOO_LONG"
    LLM_INVALID_JSON = "LLM_INVALID_JSON"

    # Unexpected Errors (9xxx)
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ElementQuoteError(Exception):
    """Base exception for ElementQuote errors.

    Provides structured error information for API responses.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize ElementQuoteError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"ElementQuoteError(code={self.code!r}, message={self.message!r})"


class ValidationError(ElementQuoteError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )


class InvalidInputError(ElementQuoteError):
    """Raised for negative or otherwise malformed pricing input."""

    def __init__(self, message: str, errors: Optional[list] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.INVALID_INPUT,
            message=message,
            details={**(details or {}), "errors": errors or []}
        )
        self.errors = errors or []


class QuotationFrozenError(ElementQuoteError):
    """Pricing edit attempted on a signed (accepted) quotation."""

    def __init__(self, quotation_id: Optional[str], operation: str):
        super().__init__(
            code=ErrorCode.QUOTATION_FROZEN,
            message=f"Quotation is accepted, '{operation}' is not allowed",
            details={"quotation_id": quotation_id, "operation": operation}
        )
        self.quotation_id = quotation_id
        self.operation = operation


class InvalidStatusTransitionError(ElementQuoteError):
    """Quotation status change not allowed by the workflow."""

    def __init__(self, quotation_id: Optional[str], from_status: str, to_status: str):
        super().__init__(
            code=ErrorCode.INVALID_STATUS_TRANSITION,
            message=f"Cannot move quotation from '{from_status}' to '{to_status}'",
            details={
                "quotation_id": quotation_id,
                "from_status": from_status,
                "to_status": to_status
            }
        )
        self.from_status = from_status
        self.to_status = to_status
