"""Domain operations for the pattern and playlist collections."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from catalogcore.catalog import (
    ID_FIELD,
    CatalogStore,
    CollectionKind,
    merge_entry,
    pattern_data_key,
    pattern_thumbnail_key,
)
from catalogcore.storage import (
    DataWriteError,
    EntryNotFound,
    ObjectStore,
    ThumbnailWriteError,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssetCatalogService:
    """High-level operations over the collection indexes and pattern payloads.

    Writes are load/merge/save cycles without any locking. Two concurrent
    ``create_entry`` calls for the same kind can both load the same index and
    the later ``save`` wins, dropping the other entry from the index while
    its payloads stay in the store.
    """

    store: ObjectStore
    _catalog: CatalogStore = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._catalog = CatalogStore(self.store)

    @property
    def catalog(self) -> CatalogStore:
        return self._catalog

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    def create_entry(
        self,
        kind: CollectionKind,
        entry: Dict[str, Any],
        data: Optional[bytes] = None,
        thumbnail: Optional[bytes] = None,
    ) -> str:
        entry_id = entry.get(ID_FIELD)
        if not isinstance(entry_id, str) or not entry_id:
            raise ValueError(f"Entry requires a non-empty {ID_FIELD!r}")
        record = dict(entry)

        if kind is CollectionKind.PATTERNS:
            self._write_payloads(entry_id, data, thumbnail)

        entries = self._catalog.load(kind)
        merged = merge_entry(entries, record)
        try:
            self._catalog.save(kind, merged)
        except Exception:
            if kind is CollectionKind.PATTERNS:
                logger.warning("Index write failed; payloads for %s left orphaned", entry_id)
            raise
        logger.info("Stored %s entry %s (%d total)", kind.value, entry_id, len(merged))
        return entry_id

    def _write_payloads(self, entry_id: str, data: Optional[bytes], thumbnail: Optional[bytes]) -> None:
        try:
            self.store.put(pattern_data_key(entry_id), data if data is not None else b"")
        except Exception as exc:
            logger.warning("Pattern data write for %s failed: %s", entry_id, exc)
            raise DataWriteError(f"Couldn't store pattern {entry_id}") from exc
        try:
            self.store.put(pattern_thumbnail_key(entry_id), thumbnail if thumbnail is not None else b"")
        except Exception as exc:
            logger.warning(
                "Thumbnail write for %s failed; pattern data left orphaned: %s", entry_id, exc
            )
            raise ThumbnailWriteError(f"Couldn't store pattern thumbnail {entry_id}") from exc

    def create_pattern(self, entry: Dict[str, Any], data: bytes, thumbnail: bytes) -> str:
        return self.create_entry(CollectionKind.PATTERNS, entry, data, thumbnail)

    def create_playlist(self, entry: Dict[str, Any]) -> str:
        return self.create_entry(CollectionKind.PLAYLISTS, entry)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def list_entries(self, kind: CollectionKind) -> list[dict]:
        return self._catalog.load(kind)

    def get_entry(self, kind: CollectionKind, entry_id: str) -> dict:
        target = str(entry_id)
        for item in self._catalog.load(kind):
            if item.get(ID_FIELD) == target:
                return item
        raise EntryNotFound(f"{kind.value} entry {target} not found")

    def get_payload(self, entry_id: str) -> bytes:
        blob = self.store.get(pattern_data_key(entry_id))
        if blob is None:
            raise EntryNotFound(f"Pattern data {entry_id} not found")
        return blob

    def get_thumbnail(self, entry_id: str) -> bytes:
        blob = self.store.get(pattern_thumbnail_key(entry_id))
        if blob is None:
            raise EntryNotFound(f"Pattern thumbnail {entry_id} not found")
        return blob
