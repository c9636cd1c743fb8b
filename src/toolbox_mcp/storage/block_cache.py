"""In-memory cache of compiled blocks keyed by block id."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from ..synthesis.descriptors import BlockDefinition, ToolboxBlock


@dataclass
class CacheEntry:
    """A compiled block and the content hash it was compiled from."""
    content_hash: str
    symbol: str                     # Qualified name of the owning symbol
    definition: "BlockDefinition"
    templates: list["ToolboxBlock"] = field(default_factory=list)
    # Recoverable problems found while compiling, replayed on every reuse
    warnings: list[tuple] = field(default_factory=list)


class BlockCache:
    """Compiled-block cache that lives as long as the engine owning it.

    Entries are overwritten when a block's content hash changes and purged
    when their block disappears from the catalog.
    """

    def __init__(self):
        self._entries: dict[str, CacheEntry] = {}

    def get(self, block_id: str, content_hash: Optional[str] = None) -> Optional[CacheEntry]:
        """Return the entry for `block_id`; with a hash, only if it still matches."""
        entry = self._entries.get(block_id)
        if entry is None:
            return None
        if content_hash is not None and entry.content_hash != content_hash:
            return None
        return entry

    def put(self, block_id: str, entry: CacheEntry):
        self._entries[block_id] = entry

    def block_symbol(self, block_id: str) -> Optional[str]:
        entry = self._entries.get(block_id)
        return entry.symbol if entry else None

    def purge(self, keep_ids: Iterable[str]) -> list[str]:
        """Drop every entry whose block id is not in `keep_ids`; return the dropped ids."""
        keep = set(keep_ids)
        stale = [block_id for block_id in self._entries if block_id not in keep]
        for block_id in stale:
            del self._entries[block_id]
        return stale

    def snapshot(self) -> dict[str, str]:
        """block id -> content hash, for inspection."""
        return {block_id: e.content_hash for block_id, e in self._entries.items()}

    def __contains__(self, block_id: str) -> bool:
        return block_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)
