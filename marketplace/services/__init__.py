"""Batched reads and atomic writes in front of the document store."""

from .batch_fetch import BatchLoader, MISSING, chunk_array, map_to_ordered_array
from .transactions import (
    TransactionCoordinator,
    increment,
    decrement,
    array_union,
    array_remove,
    server_timestamp,
    delete_field,
)

__all__ = [
    "BatchLoader",
    "MISSING",
    "chunk_array",
    "map_to_ordered_array",
    "TransactionCoordinator",
    "increment",
    "decrement",
    "array_union",
    "array_remove",
    "server_timestamp",
    "delete_field",
]
