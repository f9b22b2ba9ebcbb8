"""
MongoDB Connection Utility

MongoDB stores every Career Findr document:
- users, jobs, applications
- courses, course applications and admissions
- announcements and the notifications fanned out from them
- chats and their messages
- calendar events

Live feeds are built on change streams, which need a replica set
(a single-node `rs0` is enough for development).
"""
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from career_findr.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None
_store: "MongoDocumentStore" = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, tz_aware=True)
    return _client


def get_mongo_db() -> Database:
    """Get the career_findr database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.error("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "jobs": "jobs",
    "applications": "applications",
    "announcements": "announcements",
    "notifications": "notifications",
    "chats": "chats",
    "messages": "messages",
    "events": "events",
    "courses": "courses",
    "course_applications": "course_applications",
    "admissions": "admissions",
}


def init_mongo_indexes():
    """
    Create indexes for the queries the services and live feeds run.
    Call this once during app startup.
    """
    db = get_mongo_db()

    db[COLLECTIONS["users"]].create_index("email", unique=True)
    db[COLLECTIONS["users"]].create_index("role")

    # Notification feed: newest first per recipient
    db[COLLECTIONS["notifications"]].create_index([
        ("user_id", ASCENDING),
        ("created_at", DESCENDING)
    ])

    db[COLLECTIONS["announcements"]].create_index([
        ("is_active", ASCENDING),
        ("created_at", DESCENDING)
    ])

    # Chat list and conversation view
    db[COLLECTIONS["chats"]].create_index([
        ("participants", ASCENDING),
        ("last_message_time", DESCENDING)
    ])
    db[COLLECTIONS["messages"]].create_index([
        ("chat_id", ASCENDING),
        ("timestamp", ASCENDING)
    ])

    db[COLLECTIONS["events"]].create_index("participant_ids")
    db[COLLECTIONS["jobs"]].create_index("company_id")
    db[COLLECTIONS["applications"]].create_index([
        ("job_id", ASCENDING),
        ("student_id", ASCENDING)
    ], unique=True)

    db[COLLECTIONS["courses"]].create_index([
        ("status", ASCENDING),
        ("created_at", DESCENDING)
    ])
    db[COLLECTIONS["courses"]].create_index("institute_id")
    db[COLLECTIONS["course_applications"]].create_index([
        ("student_id", ASCENDING),
        ("institute_id", ASCENDING)
    ])
    db[COLLECTIONS["course_applications"]].create_index("course_id")
    db[COLLECTIONS["admissions"]].create_index([
        ("course_id", ASCENDING),
        ("student_id", ASCENDING)
    ], unique=True)

    logger.info("MongoDB indexes created successfully")


# ============================================================
# QUERY SHAPES
# ============================================================

@dataclass(frozen=True)
class LiveQuery:
    """
    A filtered view of one collection.

    Filters are equality matches; when the stored field is an array the
    filter matches documents whose array contains the value.
    """
    collection: str
    filters: Dict[str, Any] = field(default_factory=dict)
    order_by: Tuple[Tuple[str, int], ...] = ()
    limit: Optional[int] = None

    @property
    def is_bound(self) -> bool:
        """False when a filter key (e.g. the current user id) is missing."""
        return all(value is not None for value in self.filters.values())


@dataclass(frozen=True)
class Snapshot:
    """Full result set of a live query at one point in time."""
    sequence: int
    documents: List[dict]


SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[Exception], None]


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: Optional[dict]) -> Optional[dict]:
    """Convert MongoDB document to a plain dict with a string `id`."""
    if doc is None:
        return None
    doc = dict(doc)
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc


def serialize_docs(docs) -> List[dict]:
    return [serialize_doc(doc) for doc in docs]


def _object_id(doc_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(doc_id)
    except (InvalidId, TypeError):
        return None


# ============================================================
# DOCUMENT STORE
# ============================================================

class MongoDocumentStore:
    """
    Collection-scoped document operations used by every service.

    insert / get / update (partial merge) / delete / find, plus `listen`,
    which keeps a live query open through a change stream and delivers
    a fresh full snapshot after every change to the collection.
    """

    def __init__(self, db: Database = None):
        self.db = db if db is not None else get_mongo_db()
        self.poll_interval_ms = settings.realtime_poll_interval_ms

    def insert(self, collection: str, data: dict) -> str:
        result = self.db[collection].insert_one(dict(data))
        return str(result.inserted_id)

    def get(self, collection: str, doc_id: str) -> Optional[dict]:
        oid = _object_id(doc_id)
        if oid is None:
            return None
        return serialize_doc(self.db[collection].find_one({"_id": oid}))

    def update(self, collection: str, doc_id: str, fields: dict) -> bool:
        """Merge `fields` into the document. Returns False if it does not exist."""
        oid = _object_id(doc_id)
        if oid is None:
            return False
        result = self.db[collection].update_one({"_id": oid}, {"$set": fields})
        return result.matched_count > 0

    def delete(self, collection: str, doc_id: str) -> bool:
        oid = _object_id(doc_id)
        if oid is None:
            return False
        result = self.db[collection].delete_one({"_id": oid})
        return result.deleted_count > 0

    def find(
        self,
        collection: str,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[Tuple[Tuple[str, int], ...]] = None,
        limit: Optional[int] = None
    ) -> List[dict]:
        cursor = self.db[collection].find(filters or {})
        if order_by:
            cursor = cursor.sort(list(order_by))
        if limit:
            cursor = cursor.limit(limit)
        return serialize_docs(cursor)

    def run_query(self, query: LiveQuery) -> List[dict]:
        return self.find(query.collection, query.filters, query.order_by, query.limit)

    def listen(
        self,
        query: LiveQuery,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback
    ) -> Callable[[], None]:
        """
        Start a change-stream listener for `query` on a daemon thread.

        The first snapshot is delivered once the stream is open, so no change
        between the initial read and the stream start is lost. Returns a
        cancel function; cancelling stops the thread at its next poll.

        A stream that ends on its own (invalidated by a drop or rename, or
        closed by the server) is reported through `on_error`.
        """
        stop = threading.Event()
        collection = self.db[query.collection]

        def run():
            sequence = 0
            try:
                with collection.watch(max_await_time_ms=self.poll_interval_ms) as stream:
                    sequence += 1
                    on_snapshot(Snapshot(sequence, self.run_query(query)))
                    while not stop.is_set() and stream.alive:
                        change = stream.try_next()
                        if change is None or stop.is_set():
                            continue
                        if change.get("operationType") == "invalidate":
                            break
                        sequence += 1
                        on_snapshot(Snapshot(sequence, self.run_query(query)))
                if not stop.is_set():
                    raise PyMongoError(f"Change stream on {query.collection} closed")
            except PyMongoError as exc:
                if not stop.is_set():
                    on_error(exc)

        thread = threading.Thread(
            target=run, name=f"listen-{query.collection}", daemon=True
        )
        thread.start()
        return stop.set


def get_document_store() -> MongoDocumentStore:
    """Shared store instance (singleton pattern)."""
    global _store
    if _store is None:
        _store = MongoDocumentStore()
    return _store
