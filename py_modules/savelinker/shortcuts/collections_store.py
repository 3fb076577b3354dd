"""
Steam collections store.

Steam keeps user collections in the client's local storage, a LevelDB
database under ``<steam>/config/htmlcache/Local Storage/leveldb``. A single
key per user holds a JSON array of ``[key, record]`` pairs; collection
records have keys ``user-collections.<id>`` and carry their payload as a JSON
string in ``record["value"]``.

Steam holds an exclusive lock on the database while it runs, so opening it
fails with DependencyUnavailableError unless the client is closed.
"""

import json
import time
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..errors import DecodeError, DependencyUnavailableError

logger = logging.getLogger(__name__)

COLLECTION_PREFIX = "user-collections."
NAMESPACE_KEY = "_https://steamloopback.host\x00\x01U{user_id}-cloud-storage-namespace-1"


def collection_key(collection_id: str) -> str:
    return f"{COLLECTION_PREFIX}{collection_id}"


def decode_local_storage(value: bytes) -> str:
    """Chromium local storage values: 0x01 prefix = latin-1, 0x00 = UTF-16-LE."""
    if not value:
        return ""
    marker, payload = value[:1], value[1:]
    if marker == b"\x00":
        return payload.decode("utf-16-le")
    if marker == b"\x01":
        return payload.decode("latin-1")
    raise ValueError(f"unknown local storage encoding marker {marker!r}")


def encode_local_storage(text: str) -> bytes:
    try:
        return b"\x01" + text.encode("latin-1")
    except UnicodeEncodeError:
        return b"\x00" + text.encode("utf-16-le")


@dataclass
class Collection:
    key: str
    id: str
    name: str = ""
    added: List[int] = field(default_factory=list)
    removed: List[int] = field(default_factory=list)
    is_deleted: bool = False

    @classmethod
    def from_record(cls, key: str, record: Dict[str, Any]) -> "Collection":
        """Raises ValueError for a record that is not a collection."""
        payload: Dict[str, Any] = {}
        if record.get("value"):
            payload = json.loads(record["value"])
        if not isinstance(payload, dict):
            raise ValueError(f"collection {key} value is {type(payload).__name__}, not an object")
        return cls(
            key=key,
            id=payload.get("id", key[len(COLLECTION_PREFIX):]),
            name=payload.get("name", ""),
            added=list(payload.get("added", [])),
            removed=list(payload.get("removed", [])),
            is_deleted=bool(record.get("is_deleted", False)),
        )


class LevelDBHandle:
    """A plyvel database whose errors surface as DependencyUnavailableError"""

    def __init__(self, path: str, db, errors: Tuple[type, ...]):
        self.path = path
        self._db = db
        self._errors = errors

    def _call(self, func, *args):
        try:
            return func(*args)
        except self._errors as e:
            raise DependencyUnavailableError(self.path, f"collections database error: {e}") from e

    def get(self, key: bytes) -> Optional[bytes]:
        return self._call(self._db.get, key)

    def put(self, key: bytes, value: bytes) -> None:
        self._call(self._db.put, key, value)

    def close(self) -> None:
        self._call(self._db.close)


def open_leveldb(path: str) -> LevelDBHandle:
    """Open Steam's local storage database with plyvel."""
    try:
        import plyvel
    except ImportError as e:
        raise DependencyUnavailableError(path, f"plyvel is not installed: {e}") from e

    try:
        db = plyvel.DB(path, create_if_missing=False)
    except plyvel.Error as e:
        raise DependencyUnavailableError(path, f"cannot open collections database (is Steam running?): {e}") from e
    return LevelDBHandle(path, db, (plyvel.Error, OSError))


class CollectionStore:
    """Read / modify / write Steam collections for one user."""

    def __init__(self, leveldb_path: str, user_id: str, db_factory: Optional[Callable[[str], Any]] = None):
        self.path = leveldb_path
        self.user_id = str(user_id)
        self.key = NAMESPACE_KEY.format(user_id=self.user_id).encode("latin-1")
        self._db_factory = db_factory or open_leveldb
        self._db = None
        self._entries: List[Tuple[str, Dict[str, Any]]] = []

    def open(self) -> None:
        try:
            self._db = self._db_factory(self.path)
        except DependencyUnavailableError:
            raise
        except OSError as e:
            raise DependencyUnavailableError(self.path, f"cannot open collections database: {e}") from e

    def read(self) -> Dict[str, Collection]:
        """Load the namespace and return collections keyed by their store key."""
        try:
            raw = self._db.get(self.key)
        except OSError as e:
            raise DependencyUnavailableError(self.path, f"cannot read collections database: {e}") from e
        if raw is None:
            logger.info(f"[Collections] No cloud storage namespace for user {self.user_id}, starting empty")
            self._entries = []
            return {}

        try:
            entries = json.loads(decode_local_storage(raw))
            if not isinstance(entries, list):
                raise ValueError(f"namespace is {type(entries).__name__}, not a list")
            parsed = []
            for pair in entries:
                if not isinstance(pair, list) or len(pair) != 2 or not isinstance(pair[1], dict):
                    raise ValueError(f"malformed entry {pair!r:.80}")
                parsed.append((str(pair[0]), pair[1]))
            self._entries = parsed
            return self.collections()
        except (ValueError, TypeError, UnicodeDecodeError) as e:
            self._entries = []
            raise DecodeError(self.path, f"cannot parse collections namespace: {e}") from e

    def collections(self) -> Dict[str, Collection]:
        return {
            key: Collection.from_record(key, record)
            for key, record in self._entries
            if key.startswith(COLLECTION_PREFIX)
        }

    def remove(self, key: str) -> None:
        self._entries = [(k, r) for k, r in self._entries if k != key]

    def add(self, collection_id: str, name: str, added: Optional[List[int]] = None) -> Collection:
        """Create (or replace) a collection and return it."""
        key = collection_key(collection_id)
        self.remove(key)
        collection = Collection(key=key, id=collection_id, name=name, added=list(added or []))
        self._entries.append((key, self._to_record(collection)))
        return collection

    def _to_record(self, collection: Collection) -> Dict[str, Any]:
        value = {
            "id": collection.id,
            "name": collection.name,
            "added": collection.added,
            "removed": collection.removed,
        }
        return {
            "key": collection.key,
            "timestamp": int(time.time()),
            "value": json.dumps(value, separators=(",", ":")),
            "conflictResolutionMethod": "custom",
            "strMethodId": "union-collections",
        }

    def save(self) -> None:
        text = json.dumps([[k, r] for k, r in self._entries], separators=(",", ":"))
        try:
            self._db.put(self.key, encode_local_storage(text))
        except OSError as e:
            raise DependencyUnavailableError(self.path, f"cannot write collections database: {e}") from e
        logger.info(f"[Collections] Saved {len(self.collections())} collections for user {self.user_id}")

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
