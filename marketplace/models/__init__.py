"""Models package initialization."""

from .firestore_types import BidDoc, CartItemDoc, OrderItemDoc, RefundDoc
from .util_types import RefundStatus, ReturnStatus, ErrorResponse

__all__ = [
    # Firestore types
    "BidDoc",
    "CartItemDoc",
    "OrderItemDoc",
    "RefundDoc",
    # Utility types
    "RefundStatus",
    "ReturnStatus",
    "ErrorResponse",
]
