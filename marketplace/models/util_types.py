"""Utility type definitions."""

from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel


class RefundStatus(str, Enum):
    """Refund status enumeration."""
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ReturnStatus(str, Enum):
    """Return request status enumeration."""
    REQUESTED = "requested"
    APPROVED = "approved"
    REFUND_PROCESSING = "refund_processing"
    REFUNDED = "refunded"


class ErrorResponse(BaseModel):
    """Standard error response structure."""
    error: bool = True
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
