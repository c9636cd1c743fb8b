"""Three-state visibility filtering of a toolbox tree."""

import logging
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional

from ..builtins import DYNAMIC_CATEGORY_BLOCKS
from ..config import CategoryMode
from ..tree import ToolboxTree


lib_logger = logging.getLogger("toolbox_mcp")

# Categories that take their state from the enclosing category
INHERITING_CATEGORIES = ("more", "advanced")
# Action categories that have no blocks of their own
ACTION_CATEGORIES = ("extensions",)


class FilterState(IntEnum):
    HIDDEN = 0
    VISIBLE = 1
    DISABLED = 2


@dataclass
class FilterSpec:
    """Per-namespace and per-block overrides plus a global default."""
    namespaces: dict[str, FilterState] = field(default_factory=dict)
    blocks: dict[str, FilterState] = field(default_factory=dict)
    default_state: Optional[FilterState] = None

    @classmethod
    def from_dict(cls, d: Optional[dict]) -> Optional["FilterSpec"]:
        """Parse {"namespaces": {...}, "blocks": {...}, "defaultState": n}; None stays None."""
        if d is None:
            return None
        default = d.get("default_state", d.get("defaultState"))
        return cls(
            namespaces={k.lower(): _state(v) for k, v in (d.get("namespaces") or {}).items()},
            blocks={k: _state(v) for k, v in (d.get("blocks") or {}).items()},
            default_state=_state(default) if default is not None else None,
        )

    def to_dict(self) -> dict:
        return {
            "namespaces": {k: int(v) for k, v in self.namespaces.items()},
            "blocks": {k: int(v) for k, v in self.blocks.items()},
            "default_state": int(self.default_state) if self.default_state is not None else None,
        }

    def namespace_state(self, namespace_id: Optional[str]) -> Optional[FilterState]:
        if not namespace_id:
            return None
        return self.namespaces.get(namespace_id.lower())

    def block_state(self, block_id: str, enclosing: Optional[FilterState] = None) -> FilterState:
        """Per-block override, else the enclosing namespace state, else the default."""
        if block_id in self.blocks:
            return self.blocks[block_id]
        if enclosing is not None:
            return enclosing
        if self.default_state is not None:
            return self.default_state
        return FilterState.VISIBLE

    def should_use_in_search(self, block_id: str, namespace_id: Optional[str]) -> bool:
        """False when the block or its namespace is explicitly hidden or disabled."""
        blocked = (FilterState.HIDDEN, FilterState.DISABLED)
        if self.namespace_state(namespace_id) in blocked:
            return False
        return self.blocks.get(block_id) not in blocked


def _state(value) -> FilterState:
    if isinstance(value, str) and not value.isdigit():
        return FilterState[value.upper()]
    return FilterState(int(value))


def should_use_in_search(filters: Optional[FilterSpec], block_id: str, namespace_id: Optional[str]) -> bool:
    if filters is None:
        return True
    return filters.should_use_in_search(block_id, namespace_id)


class FilterEngine:
    """Prunes and disables tree nodes according to a FilterSpec.

    Leaves resolve their state from the per-block override, then the nearest
    enclosing namespace override, then the global default. Categories are
    decided from their own state and whether anything visible remains below.
    """

    def __init__(self, filters: FilterSpec):
        self.filters = filters
        self.removed_blocks: list[str] = []
        self.removed_categories: list[str] = []

    def apply(self, tree: ToolboxTree, category_mode: CategoryMode = CategoryMode.BASIC,
              collapsed_advanced: bool = False):
        """Filter `tree` in place.

        `collapsed_advanced` tells whether searchable blocks sit behind a
        collapsed "Advanced" category, which then stays even when empty.
        """
        if category_mode == CategoryMode.NONE:
            for leaf in tree.leaves():
                self._filter_leaf(tree, leaf, None)
        else:
            for child in tree.children(ToolboxTree.ROOT):
                kind = tree.node(child).kind
                if kind == "category":
                    self._filter_category(tree, child, None)
                elif kind == "leaf":
                    self._filter_leaf(tree, child, None)
            self._remove_empty_advanced(tree, collapsed_advanced)

        lib_logger.debug(
            f"toolbox: filtered out {len(self.removed_blocks)} blocks "
            f"and {len(self.removed_categories)} categories"
        )

    def _filter_leaf(self, tree: ToolboxTree, handle: int, enclosing: Optional[FilterState]) -> bool:
        leaf = tree.node(handle)
        state = self.filters.block_state(leaf.block_id, enclosing)
        if state == FilterState.HIDDEN:
            tree.remove(handle)
            self.removed_blocks.append(leaf.block_id)
            return False
        if state == FilterState.DISABLED:
            leaf.disabled = True
            return False
        return True

    def _filter_category(self, tree: ToolboxTree, handle: int, inherited: Optional[FilterState]) -> bool:
        """Filter one category subtree; returns whether anything visible remains in it."""
        cat = tree.node(handle)
        if cat.id in INHERITING_CATEGORIES:
            explicit = inherited
        else:
            override = self.filters.namespace_state(cat.id)
            explicit = override if override is not None else inherited

        has_visible = False
        for child in tree.children(handle):
            kind = tree.node(child).kind
            if kind == "leaf":
                has_visible = self._filter_leaf(tree, child, explicit) or has_visible
            elif kind == "category":
                has_visible = self._filter_category(tree, child, explicit) or has_visible

        if cat.id in DYNAMIC_CATEGORY_BLOCKS:
            has_visible = has_visible or any(
                self.filters.block_state(block_id, explicit) == FilterState.VISIBLE
                for block_id in DYNAMIC_CATEGORY_BLOCKS[cat.id]
            )

        if cat.id in ACTION_CATEGORIES:
            if explicit in (FilterState.HIDDEN, FilterState.DISABLED):
                self._remove_category(tree, handle)
                return False
            return True

        if cat.id in INHERITING_CATEGORIES:
            if cat.id == "more" and not self._has_content(tree, handle):
                self._remove_category(tree, handle)
            return has_visible

        state = explicit if explicit is not None else self.filters.default_state
        if has_visible:
            return True

        if state == FilterState.DISABLED:
            cat.disabled = True
            for sub in tree.categories(handle):
                tree.node(sub).disabled = True
            return False

        if state == FilterState.HIDDEN:
            self._remove_category(tree, handle)
            return False

        forced_visible = self.filters.namespace_state(cat.id) == FilterState.VISIBLE
        if not forced_visible and not self._has_content(tree, handle):
            self._remove_category(tree, handle)
        return False

    def _has_content(self, tree: ToolboxTree, handle: int) -> bool:
        return any(tree.node(h).kind in ("leaf", "button") for h in tree.descendants(handle))

    def _remove_category(self, tree: ToolboxTree, handle: int):
        self.removed_categories.append(tree.node(handle).id)
        tree.remove(handle)

    def _remove_empty_advanced(self, tree: ToolboxTree, collapsed_advanced: bool):
        advanced = tree.find_category(ToolboxTree.ROOT, "advanced")
        if advanced is None or tree.children(advanced) or collapsed_advanced:
            return
        if any(tree.node(h).advanced for h in tree.child_categories(ToolboxTree.ROOT)):
            return
        self._remove_category(tree, advanced)
        for child in tree.children(ToolboxTree.ROOT):
            if tree.node(child).kind == "sep":
                tree.remove(child)
                break
