"""Object-store helpers shared by the catalog services.

The catalog only ever talks to its backing store through two calls:
``get(key)`` and ``put(key, data)``. There is no listing, no range query and
no conditional write, so anything built on top of these helpers must treat
every ``put`` as an unconditional whole-object overwrite.
"""
from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict
from urllib.parse import quote

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when a persistence operation fails."""


class CollectionNotFound(StoreError):
    """The index object for a collection has never been provisioned."""


class DecodeError(StoreError):
    """Stored bytes could not be decoded into the expected shape."""


class StoreWriteError(StoreError):
    """The underlying store rejected a write."""


class DataWriteError(StoreWriteError):
    """Writing a pattern data blob failed."""


class ThumbnailWriteError(StoreWriteError):
    """Writing a pattern thumbnail failed."""


class EntryNotFound(LookupError):
    """An identifier is absent from an existing collection or payload store."""


class ObjectStore:
    """Minimal get/put-by-key interface."""

    def get(self, key: str) -> bytes | None:
        raise NotImplementedError

    def put(self, key: str, data: bytes) -> None:
        raise NotImplementedError


class MemoryObjectStore(ObjectStore):
    """Dict-backed store for tests and local development."""

    def __init__(self, objects: Dict[str, bytes] | None = None) -> None:
        self._objects: Dict[str, bytes] = dict(objects or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._objects.get(key)

    def put(self, key: str, data: bytes) -> None:
        if not isinstance(data, (bytes, bytearray)):
            raise StoreError(f"Object {key!r} must be bytes")
        with self._lock:
            self._objects[key] = bytes(data)

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._objects)


class FileObjectStore(ObjectStore):
    """Directory-backed store; each key maps to one flat file in ``root``.

    Keys are percent-encoded into a single filename, so ``patterns/thumbs``
    and ``patterns/thumbs/p1.png`` never collide. Writes go to a unique temp
    file under ``STAGING_DIR`` and are swapped in with ``os.replace``; a
    failed put never leaves a truncated object behind and concurrent puts
    to one key resolve as last writer wins.
    """

    # "@" is always escaped by quote(safe=""), so no key can map here.
    STAGING_DIR = "@staging"

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)
        self.staging = self.root / self.STAGING_DIR
        self.staging.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Key mapping
    # ------------------------------------------------------------------
    def _path_for(self, key: str) -> Path:
        if not key:
            raise StoreError("Object key is required")
        if any(part in ("", ".", "..") for part in key.split("/")):
            raise StoreError(f"Invalid object key {key!r}")
        return self.root / quote(key, safe="")

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def get(self, key: str) -> bytes | None:
        path = self._path_for(key)
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:  # pragma: no cover - surfaced to callers
            raise StoreError(str(exc)) from exc

    def put(self, key: str, data: bytes) -> None:
        path = self._path_for(key)
        tmp_path: Path | None = None
        try:
            fd, tmp_name = tempfile.mkstemp(dir=self.staging, suffix=".partial")
            tmp_path = Path(tmp_name)
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            logger.warning("Write to %s failed: %s", key, exc)
            raise StoreError(str(exc)) from exc
        finally:
            if tmp_path is not None:
                tmp_path.unlink(missing_ok=True)
