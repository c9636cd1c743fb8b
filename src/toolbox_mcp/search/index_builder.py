"""Reverse search index: block id -> category label of every reachable block."""

import logging
from typing import Callable, Optional, Union

from ..context import RebuildContext
from ..filters import FilterSpec, should_use_in_search
from ..tree import ToolboxTree


lib_logger = logging.getLogger("toolbox_mcp")


class SearchIndexBuilder:
    """Builds the search index of a rebuild from the final tree.

    Blocks that were pruned only because their category is collapsed
    (advanced built-ins, advanced namespaces in basic mode) are recorded on
    the context beforehand and stay searchable.
    """

    def __init__(self, filters: Optional[FilterSpec] = None, localize: Optional[Callable[[str], str]] = None):
        self.filters = filters
        self.localize = localize or (lambda text: text)

    def record_collapsed_category(self, tree: ToolboxTree, handle: int, ctx: RebuildContext):
        """Remember the blocks of a category that is about to be collapsed away."""
        cat = tree.node(handle)
        label = self.localize(cat.name)
        for leaf_handle in tree.leaves(handle):
            leaf = tree.node(leaf_handle)
            if should_use_in_search(self.filters, leaf.block_id, cat.id):
                ctx.record_search_entry(leaf.block_id, label)
                ctx.cache_search_element(leaf.block_id, leaf.descriptor)

    def record_block(self, block_id: str, category_id: str, category_name: str, ctx: RebuildContext,
                     descriptor=None):
        """Remember one block that is searchable but not placed in the tree."""
        if should_use_in_search(self.filters, block_id, category_id):
            ctx.record_search_entry(block_id, self.localize(category_name))
            if descriptor is not None:
                ctx.cache_search_element(block_id, descriptor)

    def build(self, tree: ToolboxTree, ctx: RebuildContext) -> dict[str, Union[str, bool]]:
        """Scan the filtered tree and return the generation's search index."""
        for leaf_handle in tree.leaves():
            leaf = tree.node(leaf_handle)
            parent = tree.parent(leaf_handle)
            parent_node = tree.node(parent) if parent is not None else None

            if parent_node is not None and parent_node.kind == "category":
                category_id = parent_node.id
                label: Union[str, bool] = parent_node.name
            else:
                category_id = None
                label = True

            if should_use_in_search(self.filters, leaf.block_id, category_id):
                ctx.record_search_entry(leaf.block_id, label)
                if leaf.descriptor is not None:
                    ctx.cache_search_element(leaf.block_id, leaf.descriptor)

        index = dict(ctx.search_index)
        lib_logger.debug(f"toolbox: search index holds {len(index)} blocks")
        return index
