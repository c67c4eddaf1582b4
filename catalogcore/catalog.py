"""Read-modify-write helpers for the JSON collection indexes.

Each collection (patterns, playlists) lives in a single JSON array stored at
a fixed key, most recent entry first. ``CatalogStore`` only knows how to
fetch, decode, encode and overwrite those arrays; merging lives in
``merge_entry`` so it can be exercised without a store.
"""
from __future__ import annotations

import enum
import json
import logging
from typing import Any, Dict, Iterable, List

from .storage import (
    CollectionNotFound,
    DecodeError,
    ObjectStore,
    StoreError,
    StoreWriteError,
)

logger = logging.getLogger(__name__)

ID_FIELD = "uuid"
USERS_KEY = "users.json"


class CollectionKind(str, enum.Enum):
    PATTERNS = "patterns"
    PLAYLISTS = "playlists"

    @property
    def key(self) -> str:
        return f"{self.value}.json"


def pattern_data_key(entry_id: str) -> str:
    return f"patterns/{entry_id}"


def pattern_thumbnail_key(entry_id: str) -> str:
    return f"patterns/thumbs/{entry_id}.png"


def _decode_array(raw: bytes, label: str) -> List[Dict[str, Any]]:
    try:
        data = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"{label} is not valid JSON") from exc
    if not isinstance(data, list):
        raise DecodeError(f"{label} must hold a JSON array")
    if not all(isinstance(item, dict) for item in data):
        raise DecodeError(f"{label} contains non-object entries")
    return data


def merge_entry(
    entries: Iterable[Dict[str, Any]],
    new_entry: Dict[str, Any],
    key: str = ID_FIELD,
) -> List[Dict[str, Any]]:
    """Prepend ``new_entry`` and drop older entries sharing its identifier.

    The new entry always wins and sits at the front. Remaining identifiers
    keep the slot of their first occurrence; should the stored index already
    hold duplicates, the later one's fields are kept.
    """

    new_id = new_entry.get(key)
    merged: Dict[Any, Dict[str, Any]] = {new_id: new_entry}
    for item in entries:
        ident = item.get(key)
        if ident == new_id:
            continue
        merged[ident] = item
    return list(merged.values())


class CatalogStore:
    """Whole-object persistence for the collection indexes."""

    def __init__(self, store: ObjectStore) -> None:
        self.store = store

    def load(self, kind: CollectionKind) -> List[Dict[str, Any]]:
        raw = self.store.get(kind.key)
        if raw is None:
            raise CollectionNotFound(f"{kind.key} not found")
        entries = _decode_array(raw, kind.key)
        logger.debug("Loaded %d entries from %s", len(entries), kind.key)
        return entries

    def save(self, kind: CollectionKind, entries: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        snapshot = [dict(item) for item in entries]
        payload = json.dumps(snapshot, separators=(",", ":")).encode("utf-8")
        try:
            self.store.put(kind.key, payload)
        except Exception as exc:
            raise StoreWriteError(f"Could not write {kind.key}: {exc}") from exc
        return snapshot

    def provision(self, kind: CollectionKind) -> bool:
        """Create an empty index for ``kind`` unless one already exists."""

        if self.store.get(kind.key) is not None:
            return False
        self.save(kind, [])
        logger.info("Provisioned empty collection %s", kind.key)
        return True


def load_users(store: ObjectStore) -> List[Dict[str, Any]]:
    raw = store.get(USERS_KEY)
    if raw is None:
        raise CollectionNotFound(f"{USERS_KEY} not found")
    return _decode_array(raw, USERS_KEY)


__all__ = [
    "CatalogStore",
    "CollectionKind",
    "ID_FIELD",
    "StoreError",
    "USERS_KEY",
    "load_users",
    "merge_entry",
    "pattern_data_key",
    "pattern_thumbnail_key",
]
