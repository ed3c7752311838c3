"""
database.py
-----------
Thin wrapper around the MongoDB database that holds user profiles, violation
logs and contact messages. One ``DocumentStore`` is built at startup and shared
by every request; ``pymongo.MongoClient`` pools connections and is safe to use
from many worker threads.

Every driver failure is re-raised as ``StoreError``.
"""
import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import DESCENDING, MongoClient
from pymongo.errors import ConfigurationError, DuplicateKeyError, PyMongoError

from errors import ProfileExistsError, StoreError, ValidationError

LOGGER = logging.getLogger("portal.database")

Cursor = Tuple[str, str]


def oid(id_str: str) -> ObjectId:
    try:
        return ObjectId(id_str)
    except (InvalidId, TypeError):
        raise ValidationError("Invalid id format")


def serialize_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    if not doc:
        return doc
    d = {**doc}
    if "_id" in d:
        d["id"] = str(d.pop("_id"))
    for k, v in list(d.items()):
        if isinstance(v, datetime):
            d[k] = v.astimezone(timezone.utc).isoformat()
    return d


def encode_cursor(timestamp: str, doc_id: str) -> str:
    raw = f"{timestamp}|{doc_id}".encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(cursor: str) -> Cursor:
    try:
        raw = base64.urlsafe_b64decode(cursor.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        raise ValidationError("Invalid cursor")
    timestamp, sep, doc_id = raw.rpartition("|")
    if not sep or not timestamp or not doc_id:
        raise ValidationError("Invalid cursor")
    return timestamp, doc_id


class DocumentStore:
    """Collection-level operations used by the routes.

    ``db`` is a ``pymongo.database.Database`` or ``None`` when the process
    started without a usable database configuration; every call then fails
    with ``StoreError`` instead of the process refusing to start.
    """

    PROFILES = "users"

    def __init__(self, db=None):
        self._db = db

    @classmethod
    def connect(cls, url: Optional[str], name: str) -> "DocumentStore":
        if not url:
            LOGGER.error("DATABASE_URL is not set; database calls will fail")
            return cls(None)
        try:
            client = MongoClient(url, tz_aware=True)
        except (ConfigurationError, PyMongoError, ValueError) as exc:
            LOGGER.error("MongoDB client init error: %s", exc)
            return cls(None)
        return cls(client[name])

    @property
    def available(self) -> bool:
        return self._db is not None

    def _collection(self, name: str):
        if self._db is None:
            raise StoreError("Database unavailable")
        return self._db[name]

    # ----------------------
    # Profiles
    # ----------------------
    def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        try:
            doc = self._collection(self.PROFILES).find_one({"_id": uid})
        except PyMongoError as exc:
            LOGGER.exception("Error reading profile %s", uid)
            raise StoreError("Failed to read profile") from exc
        return serialize_doc(doc) if doc else None

    def create_profile(self, uid: str, fields: Dict[str, Any]) -> None:
        """Insert a new profile; an existing one for ``uid`` is never overwritten."""
        try:
            self._collection(self.PROFILES).insert_one({**fields, "_id": uid})
        except DuplicateKeyError as exc:
            raise ProfileExistsError() from exc
        except PyMongoError as exc:
            LOGGER.exception("Error creating profile %s", uid)
            raise StoreError("Failed to save profile") from exc

    def save_profile(self, uid: str, fields: Dict[str, Any]) -> None:
        """Upsert a profile keyed by ``uid``, keeping fields not in ``fields``."""
        try:
            self._collection(self.PROFILES).update_one({"_id": uid}, {"$set": fields}, upsert=True)
        except PyMongoError as exc:
            LOGGER.exception("Error saving profile %s", uid)
            raise StoreError("Failed to save profile") from exc

    # ----------------------
    # Append-only logs
    # ----------------------
    def append(self, collection: str, doc: Dict[str, Any]) -> str:
        try:
            res = self._collection(collection).insert_one(dict(doc))
        except PyMongoError as exc:
            LOGGER.exception("Error appending to %s", collection)
            raise StoreError(f"Failed to write to {collection}") from exc
        return str(res.inserted_id)

    def recent(
        self,
        collection: str,
        limit: Optional[int] = None,
        before: Optional[Cursor] = None,
    ) -> List[Dict[str, Any]]:
        """Newest-first records of ``collection``.

        ``limit`` of ``None`` returns everything. ``before`` is the
        ``(timestamp, id)`` of the last record of a previous page.
        """
        query: Dict[str, Any] = {}
        if before is not None:
            ts, last_id = before
            query = {
                "$or": [
                    {"timestamp": {"$lt": ts}},
                    {"timestamp": ts, "_id": {"$lt": oid(last_id)}},
                ]
            }
        try:
            cursor = self._collection(collection).find(query).sort(
                [("timestamp", DESCENDING), ("_id", DESCENDING)]
            )
            if limit is not None:
                cursor = cursor.limit(limit)
            return [serialize_doc(d) for d in cursor]
        except PyMongoError as exc:
            LOGGER.exception("Error reading %s", collection)
            raise StoreError(f"Failed to read {collection}") from exc

    # ----------------------
    # Diagnostics
    # ----------------------
    def collection_names(self) -> List[str]:
        if self._db is None:
            raise StoreError("Database unavailable")
        try:
            return self._db.list_collection_names()
        except PyMongoError as exc:
            raise StoreError(str(exc)[:80]) from exc
