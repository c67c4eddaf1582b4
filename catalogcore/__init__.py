"""Storage, configuration and token helpers shared by the catalog service."""

from .storage import (  # noqa: F401
    CollectionNotFound,
    DataWriteError,
    DecodeError,
    EntryNotFound,
    FileObjectStore,
    MemoryObjectStore,
    ObjectStore,
    StoreError,
    StoreWriteError,
    ThumbnailWriteError,
)
from .catalog import (  # noqa: F401
    CatalogStore,
    CollectionKind,
    load_users,
    merge_entry,
    pattern_data_key,
    pattern_thumbnail_key,
)

__all__ = [
    "CatalogStore",
    "CollectionKind",
    "CollectionNotFound",
    "DataWriteError",
    "DecodeError",
    "EntryNotFound",
    "FileObjectStore",
    "MemoryObjectStore",
    "ObjectStore",
    "StoreError",
    "StoreWriteError",
    "ThumbnailWriteError",
    "load_users",
    "merge_entry",
    "pattern_data_key",
    "pattern_thumbnail_key",
]
