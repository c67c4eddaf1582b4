"""Per-application state shared by the catalog routes."""
from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from catalogcore.config import ServiceConfig
from catalogcore.storage import ObjectStore
from catalogcore.tokens import TokenSigner

from .services import AssetCatalogService

EXTENSION_KEY = "catalog"


@dataclass(slots=True)
class CatalogState:
    """Store handle, service and token signer bound to one Flask app."""

    config: ServiceConfig
    store: ObjectStore
    service: AssetCatalogService
    signer: TokenSigner

    @classmethod
    def build(cls, config: ServiceConfig, store: ObjectStore) -> "CatalogState":
        return cls(
            config=config,
            store=store,
            service=AssetCatalogService(store),
            signer=TokenSigner(config.secret_key, max_age=config.token_max_age),
        )


def get_state() -> CatalogState:
    return current_app.extensions[EXTENSION_KEY]
