"""Storage package: compiled-block cache and toolbox save/load."""

from .block_cache import BlockCache, CacheEntry
from .toolbox_store import StoredToolbox, ToolboxStore

__all__ = ["BlockCache", "CacheEntry", "StoredToolbox", "ToolboxStore"]
