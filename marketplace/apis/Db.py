"""Document store adapter wrapping the Firestore client."""

from typing import Any, Callable, Dict, List, Optional, TypeVar

import firebase_admin
from firebase_admin import credentials
from firebase_admin import firestore as admin_firestore
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter
from google.cloud.firestore_v1.field_path import FieldPath

from marketplace.config.env_loader import load_environment, get_store_settings
from marketplace.config.loader import AppConfig, load_app_config, get_transaction_max_attempts
from marketplace.constants.collections import BATCH_FETCH_LIMIT
from marketplace.exceptions import ValidationError
from marketplace.util.logger import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class Db:
    """Database operations for the marketplace core.

    Wraps one long-lived Firestore client. Instances are built once by the
    composition root (see ``from_environment``) and passed explicitly to the
    services; the client is safe for concurrent use.

    Transaction bodies receive the native Firestore ``Transaction`` handle and
    must do every read (``get_snapshot``/``stream`` with ``transaction=``)
    before the first ``set``/``update``/``delete`` on it.
    """
    server_timestamp = firestore.SERVER_TIMESTAMP

    def __init__(self, client: Any, max_attempts: int = 5):
        """
        :param client: google.cloud.firestore.Client (or compatible)
        :param max_attempts: attempts the client makes per transaction before giving up
        """
        self.firestore = client
        self.max_attempts = max_attempts

    @classmethod
    def from_environment(cls, config: Optional[AppConfig] = None) -> "Db":
        """Build a Db from environment variables and settings.yaml."""
        load_environment()
        settings = get_store_settings()
        config = config if config is not None else load_app_config()

        if settings["emulator_host"]:
            # The client picks up FIRESTORE_EMULATOR_HOST and uses anonymous credentials
            client = firestore.Client(project=settings["project_id"])
            logger.info(f"Firestore client connected to emulator at {settings['emulator_host']}")
        else:
            if not firebase_admin._apps:
                options = {"projectId": settings["project_id"]}
                if settings["credentials_path"]:
                    firebase_admin.initialize_app(
                        credentials.Certificate(settings["credentials_path"]), options)
                else:
                    firebase_admin.initialize_app(options=options)
            client = admin_firestore.client()
            logger.info(f"Firestore initialized for project {settings['project_id']}")

        return cls(client, max_attempts=get_transaction_max_attempts(config))

    # References
    def collection(self, name: str):
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Collection name must be a non-empty string", field="collection")
        return self.firestore.collection(name)

    def document(self, collection: str, doc_id: Optional[str] = None):
        """Document reference; a server-generated id is used when doc_id is omitted."""
        if doc_id is None:
            return self.collection(collection).document()
        return self.collection(collection).document(doc_id)

    def query(self, collection: str, filters: Dict[str, Any]):
        """Equality query over every field in filters."""
        query = self.collection(collection)
        for field, value in filters.items():
            query = query.where(filter=FieldFilter(field, "==", value))
        return query

    # Reads
    def get_snapshot(self, ref, transaction=None):
        return ref.get(transaction=transaction)

    def stream(self, query, transaction=None) -> List[Any]:
        return list(query.stream(transaction=transaction))

    def query_ids_in(self, collection: str, ids: List[str]) -> List[Any]:
        """Read every document whose id is one of ids.

        Firestore caps "in" filters at BATCH_FETCH_LIMIT values.
        """
        if len(ids) > BATCH_FETCH_LIMIT:
            raise ValidationError(
                f"At most {BATCH_FETCH_LIMIT} ids can be read in one query, got {len(ids)}",
                field="ids",
            )
        collection_ref = self.collection(collection)
        refs = [collection_ref.document(doc_id) for doc_id in ids]
        query = collection_ref.where(filter=FieldFilter(FieldPath.document_id(), "in", refs))
        return list(query.stream())

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snapshot = self.document(collection, doc_id).get()
        if not snapshot.exists:
            return None
        return self.materialize(snapshot)

    # Writes
    def set(self, collection: str, doc_id: str, data: Dict[str, Any], merge: bool = False):
        self.document(collection, doc_id).set(data, merge=merge)

    def delete(self, collection: str, doc_id: str):
        self.document(collection, doc_id).delete()

    def create_batch(self):
        """New WriteBatch; each call returns a fresh instance."""
        return self.firestore.batch()

    def run_transaction(self, body: Callable[[Any], T], max_attempts: Optional[int] = None) -> T:
        """Run body inside a Firestore optimistic transaction.

        The client re-executes body when a document it read changed before
        commit, commits buffered writes when body returns and discards them
        when it raises. Exceptions from body propagate unchanged.
        """
        transaction = self.firestore.transaction(max_attempts=max_attempts or self.max_attempts)

        @firestore.transactional
        def _run(transaction):
            return body(transaction)

        return _run(transaction)

    # Utility functions
    @staticmethod
    def materialize(snapshot) -> Dict[str, Any]:
        """Snapshot data with the id field forced to the document's key."""
        return {**(snapshot.to_dict() or {}), "id": snapshot.id}

