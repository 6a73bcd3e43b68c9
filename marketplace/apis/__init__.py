"""Store adapters."""

from .Db import Db

__all__ = ["Db"]
