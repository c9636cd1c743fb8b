"""Category tree assembly: weighted category insertion, leaves and groups."""

import logging
from typing import Callable, Iterable, Optional

from .nodes import ButtonNode, CategoryNode, LabelNode, LeafNode, ToolboxTree


lib_logger = logging.getLogger("toolbox_mcp")

# Weight band reserved for subcategories with a declared order
PINNED_SUBCATEGORY_WEIGHT = 1000
# Weight of the trailing "More" bucket
MORE_WEIGHT = 1
# Renumbering start for alphabetically placed subcategories
NAMED_SUBCATEGORY_WEIGHT = 200
# Leaves heavier than this float to the top of built-in categories
PIN_THRESHOLD = 50

OTHER_GROUP = "other"
HEADING_CLASS = "blocklyFlyoutHeading"


def _name_key(name: str) -> tuple:
    return (name.casefold(), name)


class CategoryTreeBuilder:
    """Inserts categories and leaves into a ToolboxTree under ordering rules."""

    def __init__(
        self,
        tree: ToolboxTree,
        reorderable_categories: Iterable[str] = (),
        localize: Optional[Callable[[str], str]] = None,
    ):
        self.tree = tree
        self.reorderable_categories = frozenset(c.lower() for c in reorderable_categories)
        self.localize = localize or (lambda text: text)

    # ----- categories -----

    def create_category(
        self,
        name: str,
        nameid: str,
        weight: float,
        color: Optional[str] = None,
        icon_class: Optional[str] = None,
    ) -> int:
        """Create a detached category node and return its handle."""
        return self.tree.add(CategoryNode(
            id=nameid.lower(),
            name=name,
            weight=weight,
            color=color,
            icon_class=icon_class,
        ))

    def category(self, nameid: str) -> Optional[int]:
        """Top-level category by id."""
        return self.tree.find_category(ToolboxTree.ROOT, nameid)

    def insert_top_category(self, handle: int, weight: float, advanced: bool) -> int:
        """Insert a top-level node by weight; advanced categories always sort last."""
        tree = self.tree
        node = tree.node(handle)
        if advanced and node.kind == "category":
            node.advanced = True

        for cat_handle in tree.child_categories(ToolboxTree.ROOT):
            cat = tree.node(cat_handle)
            if advanced:
                if not cat.advanced:
                    continue
            elif cat.advanced:
                return tree.insert_before(ToolboxTree.ROOT, handle, cat_handle)

            if cat.weight < weight:
                return tree.insert_before(ToolboxTree.ROOT, handle, cat_handle)

        return tree.append_child(ToolboxTree.ROOT, handle)

    def get_or_create_subcategory(
        self,
        parent: int,
        name: str,
        weight: Optional[float] = None,
        nameid: Optional[str] = None,
        color: Optional[str] = None,
        icon_class: Optional[str] = None,
    ) -> int:
        """Find a subcategory by id, or create it ordered by weight (if given) or name."""
        nameid = nameid or name
        if weight is not None:
            return self.get_or_create_subcategory_by_weight(parent, name, nameid, weight, color, icon_class)
        return self.get_or_create_subcategory_by_name(parent, name, nameid, color, icon_class)

    def get_or_create_subcategory_by_weight(
        self,
        parent: int,
        name: str,
        nameid: str,
        weight: float,
        color: Optional[str] = None,
        icon_class: Optional[str] = None,
    ) -> int:
        existing = self.tree.find_category(parent, nameid)
        if existing is not None:
            return existing

        handle = self.create_category(name, nameid, weight, color, icon_class)
        for sibling in self.tree.child_categories(parent):
            if self.tree.node(sibling).weight < weight:
                return self.tree.insert_before(parent, handle, sibling)
        return self.tree.append_child(parent, handle)

    def get_or_create_subcategory_by_name(
        self,
        parent: int,
        name: str,
        nameid: str,
        color: Optional[str] = None,
        icon_class: Optional[str] = None,
    ) -> int:
        """Place a subcategory alphabetically below the pinned band and above "More".

        The unpinned range is renumbered afterwards (200, 199, ...) so later
        weighted insertions see the alphabetical order. Equal names keep
        insertion order.
        """
        tree = self.tree
        existing = tree.find_category(parent, nameid)
        if existing is not None:
            return existing

        handle = self.create_category(name, nameid, 100, color, icon_class)
        key = _name_key(name)

        renumbered: list[int] = []
        inserted = False
        last: Optional[int] = None
        for sibling in tree.child_categories(parent):
            sibling_weight = tree.node(sibling).weight
            if sibling_weight >= PINNED_SUBCATEGORY_WEIGHT:
                continue
            if sibling_weight == MORE_WEIGHT:
                last = sibling
                break

            if not inserted and _name_key(tree.node(sibling).name) > key:
                tree.insert_before(parent, handle, sibling)
                renumbered.append(handle)
                inserted = True
            renumbered.append(sibling)

        if not inserted:
            renumbered.append(handle)
            if last is not None:
                tree.insert_before(parent, handle, last)
            else:
                tree.append_child(parent, handle)

        for i, h in enumerate(renumbered):
            tree.node(h).weight = NAMED_SUBCATEGORY_WEIGHT - i

        return handle

    # ----- leaves -----

    def insert_leaf(self, category: int, leaf: LeafNode, weight: Optional[float] = None,
                    group: Optional[str] = None) -> int:
        """Insert a leaf; heavy leaves are pinned above ordinary ones in built-in categories."""
        tree = self.tree
        if weight is not None:
            leaf.weight = weight
        if group:
            leaf.group = group
        handle = tree.add(leaf)

        cat = tree.node(category)
        is_builtin = cat.kind == "category" and cat.id in self.reorderable_categories
        if is_builtin and weight is not None and weight > PIN_THRESHOLD:
            leaf.pinned = True
            for sibling in tree.child_leaves(category):
                if not tree.node(sibling).pinned:
                    return tree.insert_before(category, handle, sibling)
        return tree.append_child(category, handle)

    def insert_button(self, category: int, button: ButtonNode) -> int:
        """Insert a button above the first leaf of a category."""
        handle = self.tree.add(button)
        leaves = self.tree.child_leaves(category)
        if leaves:
            return self.tree.insert_before(category, handle, leaves[0])
        return self.tree.append_child(category, handle)

    # ----- headings -----

    def add_flyout_headings(self):
        """Put a heading label first in every top-level category and its subcategories.

        Subcategory headings read "Parent > Sub" and take the parent's color
        and icon. Single-character icons are glyphs; longer ones are image
        paths rendered through a per-category icon class.
        """
        tree = self.tree
        for cat_handle in tree.child_categories(ToolboxTree.ROOT):
            cat = tree.node(cat_handle)
            icon = icon_class = None
            if cat.web_icon and len(cat.web_icon) == 1:
                icon = cat.web_icon
            elif cat.web_icon:
                icon_class = f"blocklyFlyoutIcon{cat.name}"

            self._prepend(cat_handle, LabelNode(
                text=cat.name, web_class=HEADING_CLASS, icon=icon, icon_class=icon_class, icon_color=cat.color,
            ))
            for sub_handle in tree.child_categories(cat_handle):
                sub = tree.node(sub_handle)
                self._prepend(sub_handle, LabelNode(
                    text=f"{cat.name} > {sub.name}", web_class=HEADING_CLASS,
                    icon=icon, icon_class=icon_class, icon_color=cat.color,
                ))

    def _prepend(self, parent: int, node) -> int:
        handle = self.tree.add(node)
        children = self.tree.children(parent)
        if children:
            return self.tree.insert_before(parent, handle, children[0])
        return self.tree.append_child(parent, handle)

    # ----- groups -----

    def arrange_groups(self):
        """Partition each category's leaves by group, adding a label before each group.

        Declared groups come first in declared order; undeclared groups follow
        sorted by name. Leaves without a group form the unlabeled "other" group.
        Categories whose leaves all share one group are left untouched.
        """
        tree = self.tree
        for cat_handle in tree.categories():
            cat = tree.node(cat_handle)
            if cat.id == "advanced":
                continue

            leaves = tree.child_leaves(cat_handle)
            block_groups: dict[str, list[int]] = {}
            for leaf_handle in leaves:
                group = tree.node(leaf_handle).group or OTHER_GROUP
                block_groups.setdefault(group, []).append(leaf_handle)

            if len(block_groups) <= 1:
                continue

            sorted_groups = list(cat.groups)
            for group in sorted(block_groups):
                if group not in sorted_groups:
                    sorted_groups.append(group)

            icons = {}
            for i, group in enumerate(cat.groups):
                icons[group] = cat.group_icons[i] if i < len(cat.group_icons) else None

            arranged: list[int] = []
            for group in sorted_groups:
                members = block_groups.get(group)
                if not members:
                    continue
                if group != OTHER_GROUP:
                    arranged.append(tree.add(LabelNode(
                        text=self.localize(group),
                        icon=icons.get(group),
                        line_width=cat.label_line_width,
                    )))
                arranged.extend(members)

            others = [h for h in tree.children(cat_handle) if tree.node(h).kind != "leaf"]
            tree.set_children(cat_handle, others + arranged)
            lib_logger.debug(f"toolbox: arranged {len(leaves)} blocks of {cat.id} into {len(block_groups)} groups")
