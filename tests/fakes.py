"""In-memory stand-ins for the document store and the identity provider."""
import itertools
from typing import Any, Dict, List, Optional

from database import oid
from errors import AuthenticationError, ProfileExistsError, StoreError
from identity import Identity


class FakeStore:
    """Implements the ``DocumentStore`` calls the routes use, in memory."""

    available = True

    def __init__(self):
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.profiles: Dict[str, Dict[str, Any]] = {}
        self.fail = False
        self._ids = itertools.count(1)

    def _check(self):
        if self.fail:
            raise StoreError("Database unavailable")

    def get_profile(self, uid: str) -> Optional[Dict[str, Any]]:
        self._check()
        profile = self.profiles.get(uid)
        return {**profile, "id": uid} if profile else None

    def create_profile(self, uid: str, fields: Dict[str, Any]) -> None:
        self._check()
        if uid in self.profiles:
            raise ProfileExistsError()
        self.profiles[uid] = dict(fields)

    def save_profile(self, uid: str, fields: Dict[str, Any]) -> None:
        self._check()
        self.profiles.setdefault(uid, {}).update(fields)

    def append(self, collection: str, doc: Dict[str, Any]) -> str:
        self._check()
        doc_id = f"{next(self._ids):024x}"
        self.collections.setdefault(collection, []).append({**doc, "id": doc_id})
        return doc_id

    def recent(self, collection, limit=None, before=None):
        self._check()
        docs = sorted(
            self.collections.get(collection, []),
            key=lambda d: (d["timestamp"], d["id"]),
            reverse=True,
        )
        if before is not None:
            ts, last_id = before
            oid(last_id)
            docs = [d for d in docs if (d["timestamp"], d["id"]) < (ts, last_id)]
        return docs[:limit] if limit is not None else docs

    def collection_names(self):
        return sorted(self.collections)


class FakeIdentityProvider:
    """Maps opaque token strings to identities and records sign-outs."""

    available = True

    def __init__(self):
        self.tokens: Dict[str, Identity] = {}
        self.signed_out: List[str] = []

    def add(self, token: str, **fields) -> Identity:
        identity = Identity(**fields)
        self.tokens[token] = identity
        return identity

    def verify(self, id_token: str) -> Identity:
        try:
            return self.tokens[id_token]
        except KeyError:
            raise AuthenticationError("Invalid token")

    def sign_out(self, uid: str) -> None:
        self.signed_out.append(uid)


