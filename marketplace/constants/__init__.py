"""Constants package."""

from . import collections
from .collections import BATCH_FETCH_LIMIT

__all__ = ["collections", "BATCH_FETCH_LIMIT"]
