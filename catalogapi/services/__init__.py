from .asset_catalog import AssetCatalogService

__all__ = ["AssetCatalogService"]
