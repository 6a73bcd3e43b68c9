"""Exceptions package initialization."""

from .CustomError import (
    MarketplaceError,
    ValidationError,
    NotFoundError,
    InvariantViolationError,
    InsufficientStockError,
    BidTooLowError,
    StoreError,
)

__all__ = [
    "MarketplaceError",
    "ValidationError",
    "NotFoundError",
    "InvariantViolationError",
    "InsufficientStockError",
    "BidTooLowError",
    "StoreError",
]
