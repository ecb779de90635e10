"""
Firebase integration for the reservation backend
Firestore client, collection names and an in-memory client for development
"""
import copy
import itertools
import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

import firebase_admin
from firebase_admin import credentials, firestore
from google.api_core import exceptions as gcp_exceptions

from app.core.config import settings
from app.core.errors import NotConfiguredError

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime"""
    return datetime.now(tz=timezone.utc)


# ==================== In-memory Firestore ====================

class MockFirestoreClient:
    """
    In-memory Firestore client for development without Firebase credentials.

    Supports the subset of the SDK the app uses: documents, collection
    queries with order_by/limit, atomic batched writes and on_snapshot
    listeners. `simulate_outage()` makes every read and write raise
    ServiceUnavailable, like a dropped backend connection.
    """

    def __init__(self):
        self._data: Dict[str, Dict[str, dict]] = {}
        self._sequence: Dict[Tuple[str, str], int] = {}
        self._counter = itertools.count()
        self._listeners: List["_MockListener"] = []
        self._lock = threading.RLock()
        self.unavailable = False
        logger.info("🔧 Using Mock Firestore Client for development")

    def collection(self, name: str) -> "MockQuery":
        return MockQuery(self, name)

    def document(self, path: str) -> "MockDocumentReference":
        collection_name, doc_id = path.split('/', 1)
        return MockDocumentReference(self, collection_name, doc_id)

    def batch(self) -> "MockWriteBatch":
        return MockWriteBatch(self)

    def simulate_outage(self, unavailable: bool = True) -> None:
        self.unavailable = unavailable

    # -- internals --

    def _check_available(self) -> None:
        if self.unavailable:
            raise gcp_exceptions.ServiceUnavailable("Firestore backend unavailable")

    def _read(self, collection_name: str, doc_id: str) -> Optional[dict]:
        with self._lock:
            self._check_available()
            data = self._data.get(collection_name, {}).get(doc_id)
            return copy.deepcopy(data)

    def _read_all(self, collection_name: str) -> List[Tuple[str, dict, int]]:
        with self._lock:
            self._check_available()
            docs = self._data.get(collection_name, {})
            return [
                (doc_id, copy.deepcopy(data), self._sequence[(collection_name, doc_id)])
                for doc_id, data in docs.items()
            ]

    @staticmethod
    def _resolve_sentinels(data: dict, now: datetime) -> dict:
        return {
            key: (now if value is firestore.SERVER_TIMESTAMP else value)
            for key, value in data.items()
        }

    def _commit(self, writes: List[Tuple[str, "MockDocumentReference", dict, bool]]) -> None:
        """Apply all writes or none of them"""
        now = utcnow()
        with self._lock:
            self._check_available()
            staged = {name: dict(docs) for name, docs in self._data.items()}
            for op, ref, data, merge in writes:
                docs = staged.setdefault(ref.collection_name, {})
                resolved = self._resolve_sentinels(copy.deepcopy(data), now)
                if op == 'update':
                    if ref.id not in docs:
                        raise gcp_exceptions.NotFound(f"No document to update: {ref.path}")
                    merged = dict(docs[ref.id])
                    merged.update(resolved)
                    docs[ref.id] = merged
                elif merge and ref.id in docs:
                    merged = dict(docs[ref.id])
                    merged.update(resolved)
                    docs[ref.id] = merged
                else:
                    docs[ref.id] = resolved
            self._data = staged
            for _, ref, _, _ in writes:
                self._sequence.setdefault((ref.collection_name, ref.id), next(self._counter))
            touched = {ref.collection_name for _, ref, _, _ in writes}
        self._notify(touched)

    def _add_listener(self, collection_name: str, fire: Callable[[], None]) -> "MockWatch":
        listener = _MockListener(collection_name, fire)
        with self._lock:
            self._listeners.append(listener)
        try:
            listener.fire()
        except gcp_exceptions.GoogleAPICallError:
            self._remove_listener(listener)
            raise
        return MockWatch(self, listener)

    def _remove_listener(self, listener: "_MockListener") -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def _notify(self, touched: Set[str]) -> None:
        with self._lock:
            listeners = [l for l in self._listeners if l.collection_name in touched]
        for listener in listeners:
            listener.fire()


class _MockListener:
    def __init__(self, collection_name: str, fire: Callable[[], None]):
        self.collection_name = collection_name
        self.fire = fire


class MockWatch:
    """Handle returned by on_snapshot, mirrors google.cloud.firestore Watch"""

    def __init__(self, client: MockFirestoreClient, listener: _MockListener):
        self._client = client
        self._listener = listener

    def unsubscribe(self) -> None:
        self._client._remove_listener(self._listener)


class MockQuery:
    """Mock collection reference / query"""

    def __init__(
        self,
        client: MockFirestoreClient,
        name: str,
        order_field: Optional[str] = None,
        descending: bool = False,
        limit_count: Optional[int] = None,
    ):
        self._client = client
        self.name = name
        self._order_field = order_field
        self._descending = descending
        self._limit = limit_count

    def document(self, doc_id: Optional[str] = None) -> "MockDocumentReference":
        return MockDocumentReference(self._client, self.name, doc_id or uuid.uuid4().hex[:20])

    def add(self, data: dict):
        ref = self.document()
        ref.set(data)
        return (utcnow(), ref)

    def order_by(self, field: str, direction: str = firestore.Query.ASCENDING) -> "MockQuery":
        return MockQuery(
            self._client, self.name, field,
            direction == firestore.Query.DESCENDING, self._limit
        )

    def limit(self, count: int) -> "MockQuery":
        return MockQuery(self._client, self.name, self._order_field, self._descending, count)

    def stream(self):
        rows = self._client._read_all(self.name)
        if self._order_field:
            # Firestore drops documents that lack the ordering field
            rows = [row for row in rows if row[1].get(self._order_field) is not None]
            rows.sort(key=lambda row: (row[1][self._order_field], row[2]), reverse=self._descending)
        else:
            rows.sort(key=lambda row: row[2])
        if self._limit is not None:
            rows = rows[:self._limit]
        for doc_id, data, _ in rows:
            yield MockDocumentSnapshot(MockDocumentReference(self._client, self.name, doc_id), data)

    def get(self):
        return list(self.stream())

    def on_snapshot(self, callback: Callable) -> MockWatch:
        return self._client._add_listener(
            self.name, lambda: callback(self.get(), [], utcnow())
        )


class MockDocumentReference:
    """Mock Firestore document reference"""

    def __init__(self, client: MockFirestoreClient, collection_name: str, doc_id: str):
        self._client = client
        self.collection_name = collection_name
        self.id = doc_id
        self.path = f"{collection_name}/{doc_id}"

    def get(self) -> "MockDocumentSnapshot":
        return MockDocumentSnapshot(self, self._client._read(self.collection_name, self.id))

    def set(self, data: dict, merge: bool = False) -> None:
        self._client._commit([('set', self, data, merge)])

    def update(self, data: dict) -> None:
        self._client._commit([('update', self, data, False)])

    def on_snapshot(self, callback: Callable) -> MockWatch:
        return self._client._add_listener(
            self.collection_name, lambda: callback([self.get()], [], utcnow())
        )


class MockDocumentSnapshot:
    """Mock document snapshot"""

    def __init__(self, reference: MockDocumentReference, data: Optional[dict]):
        self.reference = reference
        self.id = reference.id
        self._data = data

    @property
    def exists(self) -> bool:
        return self._data is not None

    def to_dict(self) -> Optional[dict]:
        return copy.deepcopy(self._data)


class MockWriteBatch:
    """Mock batched write, committed atomically"""

    def __init__(self, client: MockFirestoreClient):
        self._client = client
        self._writes: List[Tuple[str, MockDocumentReference, dict, bool]] = []

    def set(self, reference: MockDocumentReference, data: dict, merge: bool = False) -> None:
        self._writes.append(('set', reference, data, merge))

    def update(self, reference: MockDocumentReference, data: dict) -> None:
        self._writes.append(('update', reference, data, False))

    def commit(self) -> None:
        self._client._commit(self._writes)


# ==================== Client bootstrap ====================

class FirebaseClient:
    """Firebase Admin SDK client singleton"""

    _instance = None
    _initialized = False

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(FirebaseClient, cls).__new__(cls)
        return cls._instance

    def __init__(self):
        if not self._initialized:
            self._initialize_firebase()
            self._initialized = True

    def _initialize_firebase(self):
        """
        Initialize Firebase Admin SDK
        Supports three modes:
        1. Mock mode (USE_MOCK_FIREBASE=True) - in-memory database
        2. GOOGLE_APPLICATION_CREDENTIALS pointing to a service account JSON file
        3. FIREBASE_CREDENTIALS_JSON with the inline JSON string

        Without credentials the client stays unconfigured: `db` is None and
        `config_error` explains what is missing. Write paths report it instead
        of crashing the process.
        """
        self._db = None
        self.config_error: Optional[str] = None
        self.mock_mode = False

        if settings.USE_MOCK_FIREBASE:
            logger.warning("🔧 Running in MOCK mode - using in-memory database (no real Firebase)")
            self._db = MockFirestoreClient()
            self.mock_mode = True
            return

        google_creds_path = settings.GOOGLE_APPLICATION_CREDENTIALS or os.getenv('GOOGLE_APPLICATION_CREDENTIALS')
        firebase_creds_json = settings.FIREBASE_CREDENTIALS_JSON

        if not google_creds_path and not firebase_creds_json:
            self.config_error = (
                "Firestore is not configured. Set GOOGLE_APPLICATION_CREDENTIALS or "
                "FIREBASE_CREDENTIALS_JSON (or USE_MOCK_FIREBASE=true for development)."
            )
            logger.error(f"❌ {self.config_error}")
            return

        try:
            if google_creds_path:
                logger.info(f"Loading Firebase credentials from GOOGLE_APPLICATION_CREDENTIALS: {google_creds_path}")
                cred = credentials.Certificate(google_creds_path)
            else:
                logger.info("Loading Firebase credentials from FIREBASE_CREDENTIALS_JSON environment variable")
                cred = credentials.Certificate(json.loads(firebase_creds_json))

            try:
                firebase_admin.get_app()
            except ValueError:
                firebase_admin.initialize_app(cred)

            self._db = firestore.client()
            logger.info("✅ Firebase initialized successfully")

        except (ValueError, OSError) as e:
            self.config_error = f"Firestore credentials could not be loaded: {e}"
            logger.error(f"❌ Failed to initialize Firebase: {e}")

    @property
    def db(self):
        """Get Firestore client instance (None when not configured)"""
        return self._db


firebase_client = FirebaseClient()


def get_db():
    """FastAPI dependency for the Firestore client"""
    return firebase_client.db


def require_db(client):
    """Return the client or raise NotConfiguredError"""
    if client is None:
        raise NotConfiguredError(firebase_client.config_error or "Firestore is not configured.")
    return client


# ==================== Collection References ====================

class Collections:
    """Firestore collection names"""
    BOOKINGS = "bookings"
    SITE_CONTENT = "site_content"
    SITE_CONTENT_VERSIONS = "site_content_versions"


SITE_CONTENT_DOC_ID = "main"
