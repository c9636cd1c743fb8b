"""Per-generation state shared by the synthesizer, tree assembly and indexing."""

from types import MappingProxyType
from typing import Any, Mapping, Optional, Union

from .diagnostics import BlockCollisionError, DiagnosticKind, DiagnosticLog


class RebuildContext:
    """Mutable bookkeeping for one rebuild generation.

    Collaborators write through the methods below and read through the
    read-only mapping properties; a new context is created for every
    generation so nothing leaks between rebuilds.
    """

    def __init__(self, generation: int):
        self.generation = generation
        self.diagnostics = DiagnosticLog(generation)
        self._registered: dict[str, str] = {}
        self._search_elements: dict[str, Any] = {}
        self._search_index: dict[str, Union[str, bool]] = {}

    # ----- block registration -----

    def register_block(self, block_id: str, owner: str):
        """Claim a block id for this generation; a second claim is rejected."""
        if block_id in self._registered:
            raise BlockCollisionError(block_id, existing=self._registered[block_id])
        self._registered[block_id] = owner

    def is_registered(self, block_id: str) -> bool:
        return block_id in self._registered

    @property
    def registered_blocks(self) -> Mapping[str, str]:
        return MappingProxyType(self._registered)

    # ----- search -----

    def cache_search_element(self, block_id: str, element: Any):
        self._search_elements[block_id] = element

    @property
    def search_elements(self) -> Mapping[str, Any]:
        return MappingProxyType(self._search_elements)

    def record_search_entry(self, block_id: str, label: Union[str, bool]):
        self._search_index[block_id] = label

    @property
    def search_index(self) -> Mapping[str, Union[str, bool]]:
        return MappingProxyType(self._search_index)

    # ----- diagnostics -----

    def report(
        self,
        kind: DiagnosticKind,
        message: str,
        block_id: Optional[str] = None,
        symbol: Optional[str] = None,
    ):
        return self.diagnostics.report(kind, message, block_id=block_id, symbol=symbol)
