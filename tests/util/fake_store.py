"""In-memory document store implementing the Db adapter contract.

Transactions are optimistic like Firestore's: reads record the version they
saw, writes are buffered, a read after a write is rejected, and commit
re-executes the body when anything read has changed in the meantime. Hooks
let tests inject a concurrent writer or a commit failure.
"""

import copy
import itertools
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from google.api_core.exceptions import Aborted, NotFound, ServiceUnavailable
from google.cloud import firestore
from google.cloud.firestore_v1.transforms import ArrayRemove, ArrayUnion, Increment

from marketplace.apis.Db import Db
from marketplace.constants.collections import BATCH_FETCH_LIMIT
from marketplace.exceptions import ValidationError

Key = Tuple[str, str]


class ReadAfterWriteError(Exception):
    """Raised when a transaction body reads after it has written."""


class FakeRef:
    def __init__(self, collection: str, id: str):
        self.collection = collection
        self.id = id

    @property
    def key(self) -> Key:
        return (self.collection, self.id)

    @property
    def path(self) -> str:
        return f"{self.collection}/{self.id}"

    def __eq__(self, other):
        return isinstance(other, FakeRef) and self.key == other.key

    def __hash__(self):
        return hash(self.key)

    def __repr__(self):
        return f"FakeRef({self.path})"


class FakeSnapshot:
    def __init__(self, ref: FakeRef, data: Optional[Dict[str, Any]]):
        self.reference = ref
        self.id = ref.id
        self.exists = data is not None
        self._data = copy.deepcopy(data)

    def to_dict(self):
        return copy.deepcopy(self._data) if self.exists else None


class FakeQuery:
    def __init__(self, collection: str, filters: Dict[str, Any]):
        self.collection = collection
        self.filters = dict(filters)

    def matches(self, data: Dict[str, Any]) -> bool:
        return all(field in data and data[field] == value for field, value in self.filters.items())


class _Writes:
    """Buffered set/update/delete operations shared by transactions and batches."""

    def __init__(self):
        self.writes: List[Tuple[str, FakeRef, Optional[Dict[str, Any]], bool]] = []

    def set(self, ref: FakeRef, data: Dict[str, Any], merge: bool = False):
        self.writes.append(("set", ref, copy.copy(dict(data)), merge))

    def update(self, ref: FakeRef, data: Dict[str, Any]):
        self.writes.append(("update", ref, copy.copy(dict(data)), False))

    def delete(self, ref: FakeRef):
        self.writes.append(("delete", ref, None, False))


class FakeTransaction(_Writes):
    def __init__(self):
        super().__init__()
        self.read_versions: Dict[Any, int] = {}

    def record_read(self, key: Any, version: int):
        if self.writes:
            raise ReadAfterWriteError("Firestore transactions require all reads to be executed before all writes.")
        self.read_versions.setdefault(key, version)


class FakeBatch(_Writes):
    def __init__(self, store: "FakeDb"):
        super().__init__()
        self._store = store

    def commit(self):
        with self._store._lock:
            self._store._apply(self.writes)


class FakeDb(Db):
    """Db backed by dictionaries instead of a Firestore client."""

    def __init__(self, max_attempts: int = 5):
        super().__init__(client=None, max_attempts=max_attempts)
        self.data: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.doc_versions: Dict[Key, int] = {}
        self.collection_versions: Dict[str, int] = {}
        self.batch_reads: List[List[str]] = []
        self.failing_ids: Set[str] = set()
        self.fail_all_reads = False
        self.before_commit: List[Callable[["FakeDb"], None]] = []
        self.commit_error: Optional[Exception] = None
        self.transaction_attempts = 0
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    # References
    def collection(self, name: str):
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Collection name must be a non-empty string", field="collection")
        return name

    def document(self, collection: str, doc_id: Optional[str] = None):
        name = self.collection(collection)
        if doc_id is None:
            doc_id = f"{name}_{next(self._ids)}"
        return FakeRef(name, doc_id)

    def query(self, collection: str, filters: Dict[str, Any]):
        return FakeQuery(self.collection(collection), filters)

    # Reads
    def get_snapshot(self, ref: FakeRef, transaction: Optional[FakeTransaction] = None):
        with self._lock:
            if transaction is not None:
                transaction.record_read(ref.key, self.doc_versions.get(ref.key, 0))
            return FakeSnapshot(ref, self.data.get(ref.collection, {}).get(ref.id))

    def stream(self, query: FakeQuery, transaction: Optional[FakeTransaction] = None):
        with self._lock:
            if transaction is not None:
                transaction.record_read(("query", query.collection),
                                        self.collection_versions.get(query.collection, 0))
            return [
                FakeSnapshot(FakeRef(query.collection, doc_id), data)
                for doc_id, data in self.data.get(query.collection, {}).items()
                if query.matches(data)
            ]

    def query_ids_in(self, collection: str, ids: List[str]):
        name = self.collection(collection)
        if len(ids) > BATCH_FETCH_LIMIT:
            raise ValidationError(
                f"At most {BATCH_FETCH_LIMIT} ids can be read in one query, got {len(ids)}", field="ids")
        with self._lock:
            self.batch_reads.append(list(ids))
            if self.fail_all_reads or self.failing_ids.intersection(ids):
                raise ServiceUnavailable("Firestore unavailable")
            stored = self.data.get(name, {})
            return [FakeSnapshot(FakeRef(name, doc_id), stored[doc_id]) for doc_id in ids if doc_id in stored]

    def get(self, collection: str, doc_id: str):
        snapshot = self.get_snapshot(self.document(collection, doc_id))
        return self.materialize(snapshot) if snapshot.exists else None

    def docs(self, collection: str) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return copy.deepcopy(self.data.get(collection, {}))

    # Writes
    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False):
        with self._lock:
            self._apply([("set", self.document(collection, doc_id), dict(data), merge)])

    def delete(self, collection: str, doc_id: str):
        with self._lock:
            self._apply([("delete", self.document(collection, doc_id), None, False)])

    def create_batch(self):
        return FakeBatch(self)

    def run_transaction(self, body, max_attempts: Optional[int] = None):
        attempts = max_attempts or self.max_attempts
        for _ in range(attempts):
            transaction = FakeTransaction()
            with self._lock:
                self.transaction_attempts += 1
            result = body(transaction)

            hooks, self.before_commit = self.before_commit, []
            for hook in hooks:
                hook(self)

            if self.commit_error is not None:
                error, self.commit_error = self.commit_error, None
                raise error

            with self._lock:
                if self._is_stale(transaction):
                    continue
                self._apply(transaction.writes)
                return result

        raise Aborted(f"Failed to commit transaction in {attempts} attempts.")

    def _is_stale(self, transaction: FakeTransaction) -> bool:
        for key, version in transaction.read_versions.items():
            if isinstance(key, tuple) and key[0] == "query":
                current = self.collection_versions.get(key[1], 0)
            else:
                current = self.doc_versions.get(key, 0)
            if current != version:
                return True
        return False

    def _apply(self, writes):
        """Apply writes all together; nothing changes if any write is invalid."""
        staged: Dict[Key, Optional[Dict[str, Any]]] = {}

        def current(ref: FakeRef):
            if ref.key in staged:
                return staged[ref.key]
            return copy.deepcopy(self.data.get(ref.collection, {}).get(ref.id))

        for kind, ref, data, merge in writes:
            existing = current(ref)
            if kind == "delete":
                staged[ref.key] = None
            elif kind == "update":
                if existing is None:
                    raise NotFound(f"No document to update: {ref.path}")
                staged[ref.key] = self._resolve(existing, data)
            else:
                base = existing if (merge and existing is not None) else {}
                staged[ref.key] = self._resolve(base, data)

        for (collection, doc_id), data in staged.items():
            docs = self.data.setdefault(collection, {})
            if data is None:
                docs.pop(doc_id, None)
            else:
                docs[doc_id] = data
            self.doc_versions[(collection, doc_id)] = self.doc_versions.get((collection, doc_id), 0) + 1
            self.collection_versions[collection] = self.collection_versions.get(collection, 0) + 1

    @staticmethod
    def _resolve(existing: Dict[str, Any], changes: Dict[str, Any]) -> Dict[str, Any]:
        result = dict(existing)
        for field, value in changes.items():
            if value is firestore.SERVER_TIMESTAMP:
                result[field] = datetime.now(timezone.utc)
            elif value is firestore.DELETE_FIELD:
                result.pop(field, None)
            elif isinstance(value, Increment):
                result[field] = (result.get(field) or 0) + value.value
            elif isinstance(value, ArrayUnion):
                merged = list(result.get(field) or [])
                merged.extend(v for v in value.values if v not in merged)
                result[field] = merged
            elif isinstance(value, ArrayRemove):
                result[field] = [v for v in (result.get(field) or []) if v not in value.values]
            else:
                result[field] = copy.deepcopy(value)
        return result
