"""Batched document fetching.

Resolving a list of foreign keys one document at a time costs one round trip
per key. ``BatchLoader`` deduplicates the ids, splits them into groups the
store accepts in a single "document id in [...]" read and merges the results
into an id -> document map.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Dict, List, Optional, Sequence, TypeVar

from marketplace.apis.Db import Db
from marketplace.config.loader import AppConfig, get_batch_chunk_size, get_batch_max_workers
from marketplace.constants import collections
from marketplace.constants.collections import BATCH_FETCH_LIMIT
from marketplace.exceptions import ValidationError
from marketplace.util.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)

# on_batch_error(collection, batch_number, ids, exception)
BatchErrorCallback = Callable[[str, int, List[str], Exception], None]


class _Missing:
    """Placeholder for ids that were requested but not found."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self):
        return False

    def __repr__(self):
        return "MISSING"


MISSING = _Missing()


def chunk_array(values: Sequence[T], size: int) -> List[List[T]]:
    """Split values into consecutive groups of at most size elements.

    Args:
        values: Items to split; order is preserved
        size: Group size, at least 1

    Returns:
        ceil(len(values) / size) groups; only the last one may be shorter

    Raises:
        ValueError: If size is smaller than 1
    """
    if size < 1:
        raise ValueError(f"Chunk size must be at least 1, got {size}")
    return [list(values[i:i + size]) for i in range(0, len(values), size)]


def map_to_ordered_array(documents: Dict[str, T], ordered_ids: Sequence[str]) -> List[Any]:
    """Project a batch result back onto a caller-supplied id order.

    Positions whose id is absent from documents hold MISSING, so callers can
    keep the requested ordering (e.g. cart order) and still detect gaps.
    """
    return [documents.get(doc_id, MISSING) for doc_id in ordered_ids]


class BatchLoader:
    """Fetch many documents of one collection with as few reads as possible.

    ``fetch`` never raises for store failures: a group whose read fails is
    logged, reported to ``on_batch_error`` when one is given, and simply
    contributes nothing to the result. A complete outage therefore returns an
    empty map, the same as "nothing found".
    """

    def __init__(
        self,
        db: Db,
        chunk_size: int = BATCH_FETCH_LIMIT,
        max_workers: int = 4,
        on_batch_error: Optional[BatchErrorCallback] = None,
    ):
        """Initialize BatchLoader.

        Args:
            db: Store adapter
            chunk_size: Ids per read, between 1 and BATCH_FETCH_LIMIT
            max_workers: Group reads run concurrently per fetch; 1 runs them in order
            on_batch_error: Optional callback invoked for every failed group
        """
        if not 1 <= chunk_size <= BATCH_FETCH_LIMIT:
            raise ValidationError(
                f"chunk_size must be between 1 and {BATCH_FETCH_LIMIT}", field="chunk_size")
        if max_workers < 1:
            raise ValidationError("max_workers must be at least 1", field="max_workers")

        self.db = db
        self.chunk_size = chunk_size
        self.max_workers = max_workers
        self.on_batch_error = on_batch_error

    @classmethod
    def from_config(cls, db: Db, config: AppConfig,
                    on_batch_error: Optional[BatchErrorCallback] = None) -> "BatchLoader":
        return cls(
            db,
            chunk_size=get_batch_chunk_size(config),
            max_workers=get_batch_max_workers(config),
            on_batch_error=on_batch_error,
        )

    def fetch(self, collection: str, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        """Fetch documents by id.

        Args:
            collection: Collection name
            ids: Requested ids; may be empty, contain duplicates or exceed the fan-in limit

        Returns:
            Map of id -> document (with ``id`` set to the key) for every id found

        Raises:
            ValidationError: If the collection name is invalid
        """
        if not isinstance(collection, str) or not collection.strip():
            raise ValidationError("Collection name must be a non-empty string", field="collection")

        unique_ids = list(dict.fromkeys(ids))
        if not unique_ids:
            return {}

        batches = chunk_array(unique_ids, self.chunk_size)
        results: Dict[str, Dict[str, Any]] = {}
        failed = 0

        if self.max_workers == 1 or len(batches) == 1:
            for number, batch in enumerate(batches, start=1):
                documents = self._fetch_batch(collection, number, batch)
                if documents is None:
                    failed += 1
                else:
                    results.update(documents)
        else:
            workers = min(self.max_workers, len(batches))
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [
                    executor.submit(self._fetch_batch, collection, number, batch)
                    for number, batch in enumerate(batches, start=1)
                ]
                for future in as_completed(futures):
                    documents = future.result()
                    if documents is None:
                        failed += 1
                    else:
                        results.update(documents)

        if failed:
            logger.warning(
                f"Batch fetch from {collection} returned partial results: "
                f"{failed}/{len(batches)} batches failed, {len(results)} documents found"
            )

        return results

    def _fetch_batch(self, collection: str, number: int, ids: List[str]) -> Optional[Dict[str, Dict[str, Any]]]:
        """Read one group; None means the read failed."""
        requested = set(ids)
        try:
            documents = {}
            for snapshot in self.db.query_ids_in(collection, ids):
                if snapshot.id in requested:
                    documents[snapshot.id] = Db.materialize(snapshot)
        except Exception as e:
            logger.error(f"Error fetching batch {number} from {collection}: {e}")
            if self.on_batch_error is not None:
                try:
                    self.on_batch_error(collection, number, ids, e)
                except Exception as callback_error:
                    logger.error(f"on_batch_error callback failed for batch {number}: {callback_error}")
            return None

        return documents

    # Collection-specific fetchers
    def get_products(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.PRODUCTS, ids)

    def get_shops(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.SHOPS, ids)

    def get_categories(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.CATEGORIES, ids)

    def get_users(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.USERS, ids)

    def get_orders(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.ORDERS, ids)

    def get_auctions(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.AUCTIONS, ids)

    def get_coupons(self, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collections.COUPONS, ids)

    def get_by_collection(self, collection: str, ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        return self.fetch(collection, ids)
