"""Typed failures raised by the marketplace core."""

from typing import Optional, Dict, Any
from marketplace.models.util_types import ErrorResponse


class MarketplaceError(Exception):
    """Base exception class for marketplace core errors."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize MarketplaceError.

        Args:
            message: Error message
            code: Optional error code
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.code = code or "MARKETPLACE_ERROR"
        self.details = details or {}

    def to_response(self) -> ErrorResponse:
        """Build the error payload request handlers translate into HTTP errors."""
        return ErrorResponse(code=self.code, message=self.message, details=self.details or None)


class ValidationError(MarketplaceError):
    """Raised when an argument passed to the core is invalid."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        """Initialize ValidationError.

        Args:
            message: Error message
            field: Optional field that failed validation
            details: Optional additional error details
        """
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(message, code="VALIDATION_ERROR", details=details)


class NotFoundError(MarketplaceError):
    """Raised when a referenced document does not exist."""

    def __init__(self, resource_type: str, resource_id: str):
        """Initialize NotFoundError.

        Args:
            resource_type: Type of resource not found, e.g. "Product"
            resource_id: ID of resource not found
        """
        message = f"{resource_type} not found"
        details = {
            "resource_type": resource_type,
            "resource_id": resource_id
        }
        super().__init__(message, code="NOT_FOUND", details=details)


class InvariantViolationError(MarketplaceError):
    """Raised when a write would break a business rule."""

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code=code or "INVARIANT_VIOLATION", details=details)


class InsufficientStockError(InvariantViolationError):
    """Raised when a stock adjustment would drive stock below zero."""

    def __init__(self, product_id: str, current: int, delta: int):
        """Initialize InsufficientStockError.

        Args:
            product_id: Product whose stock was adjusted
            current: Stock read inside the transaction
            delta: Requested adjustment
        """
        details = {
            "product_id": product_id,
            "current": current,
            "delta": delta
        }
        super().__init__("Insufficient stock", code="INSUFFICIENT_STOCK", details=details)


class BidTooLowError(InvariantViolationError):
    """Raised when a bid does not exceed the auction's current threshold."""

    def __init__(self, auction_id: str, amount: float, threshold: float):
        """Initialize BidTooLowError.

        Args:
            auction_id: Auction the bid was placed on
            amount: Rejected bid amount
            threshold: Current bid (or starting bid) the amount had to exceed
        """
        details = {
            "auction_id": auction_id,
            "amount": amount,
            "threshold": threshold
        }
        super().__init__(
            "Bid amount must be higher than current bid",
            code="BID_TOO_LOW",
            details=details,
        )


class StoreError(MarketplaceError):
    """Raised by store adapters that need to wrap a document store failure."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        """Initialize StoreError.

        Args:
            operation: Store operation that failed
            cause: Optional underlying exception
        """
        message = f"Document store failure during {operation}"
        if cause is not None:
            message = f"{message}: {cause}"
        details = {
            "operation": operation,
            "cause": type(cause).__name__ if cause is not None else None
        }
        super().__init__(message, code="STORE_ERROR", details=details)
