"""Toolbox tree stored as an arena of nodes addressed by integer handles."""

import copy
from dataclasses import dataclass, field
from typing import Any, Iterator, Optional


@dataclass
class RootNode:
    """The toolbox root; holds top-level categories."""
    kind: str = field(default="root", init=False)


@dataclass
class CategoryNode:
    """A named, weighted grouping of blocks."""
    id: str                         # Lower-cased nameid, unique among siblings
    name: str                       # Display name
    weight: float = 50
    color: Optional[str] = None
    icon_class: Optional[str] = None
    web_icon: Optional[str] = None
    advanced: bool = False
    groups: list[str] = field(default_factory=list)       # Declared group order
    group_icons: list[str] = field(default_factory=list)
    label_line_width: Optional[str] = None
    disabled: bool = False
    kind: str = field(default="category", init=False)


@dataclass
class LeafNode:
    """A placeable block in the toolbox."""
    block_id: str
    weight: float = 50
    group: Optional[str] = None
    descriptor: Any = None          # ToolboxBlock payload
    pinned: bool = False            # Forced above ordinary leaves in built-in categories
    disabled: bool = False
    kind: str = field(default="leaf", init=False)


@dataclass
class LabelNode:
    """A group header, or the heading of a category flyout."""
    text: str
    web_class: str = "blocklyFlyoutGroup"   # "blocklyFlyoutHeading" for headings
    icon: Optional[str] = None
    icon_class: Optional[str] = None
    icon_color: Optional[str] = None
    line_width: Optional[str] = None
    kind: str = field(default="label", init=False)


@dataclass
class ButtonNode:
    """An extension button shown at the top of a category."""
    text: str
    callback_key: str
    kind: str = field(default="button", init=False)


@dataclass
class SeparatorNode:
    """A visual separator between top-level categories."""
    kind: str = field(default="sep", init=False)


class ToolboxTree:
    """Arena of toolbox nodes.

    Every node lives in a flat list and is addressed by its index (handle).
    Parent/child structure is kept in explicit index lists so the whole tree
    can be cloned by copying lists instead of walking it.
    """

    ROOT = 0

    def __init__(self):
        self._nodes: list[Any] = [RootNode()]
        self._children: list[list[int]] = [[]]
        self._parent: list[Optional[int]] = [None]

    # ----- arena -----

    def add(self, node: Any) -> int:
        """Store a detached node and return its handle."""
        self._nodes.append(node)
        self._children.append([])
        self._parent.append(None)
        return len(self._nodes) - 1

    def __len__(self) -> int:
        """Number of handles allocated; new nodes get handles from here on."""
        return len(self._nodes)

    def node(self, handle: int) -> Any:
        return self._nodes[handle]

    def children(self, handle: int) -> list[int]:
        """Direct child handles in order (a copy)."""
        return list(self._children[handle])

    def parent(self, handle: int) -> Optional[int]:
        return self._parent[handle]

    def clone(self) -> "ToolboxTree":
        """Copy the tree; nodes are copied shallowly so flags can change independently."""
        other = ToolboxTree.__new__(ToolboxTree)
        other._nodes = [copy.copy(n) for n in self._nodes]
        other._children = [list(c) for c in self._children]
        other._parent = list(self._parent)
        return other

    # ----- structure -----

    def append_child(self, parent: int, handle: int) -> int:
        self._detach(handle)
        self._children[parent].append(handle)
        self._parent[handle] = parent
        return handle

    def insert_before(self, parent: int, handle: int, before: int) -> int:
        """Insert `handle` under `parent` right before sibling `before`."""
        self._detach(handle)
        siblings = self._children[parent]
        siblings.insert(siblings.index(before), handle)
        self._parent[handle] = parent
        return handle

    def remove(self, handle: int):
        """Detach a node (and its subtree) from the tree."""
        self._detach(handle)

    def set_children(self, parent: int, handles: list[int]):
        """Replace the child order of `parent` with `handles`."""
        for h in self._children[parent]:
            self._parent[h] = None
        self._children[parent] = []
        for h in handles:
            self.append_child(parent, h)

    def _detach(self, handle: int):
        parent = self._parent[handle]
        if parent is not None:
            self._children[parent].remove(handle)
            self._parent[handle] = None

    # ----- queries -----

    def child_categories(self, handle: int) -> list[int]:
        return [h for h in self._children[handle] if self._nodes[h].kind == "category"]

    def child_leaves(self, handle: int) -> list[int]:
        return [h for h in self._children[handle] if self._nodes[h].kind == "leaf"]

    def descendants(self, handle: int) -> Iterator[int]:
        """Pre-order walk below `handle` (excluding it)."""
        stack = list(reversed(self._children[handle]))
        while stack:
            h = stack.pop()
            yield h
            stack.extend(reversed(self._children[h]))

    def categories(self, handle: int = ROOT) -> list[int]:
        """All categories below `handle` in document order."""
        return [h for h in self.descendants(handle) if self._nodes[h].kind == "category"]

    def leaves(self, handle: int = ROOT) -> list[int]:
        """All leaves below `handle` in document order."""
        return [h for h in self.descendants(handle) if self._nodes[h].kind == "leaf"]

    def find_category(self, parent: int, nameid: str) -> Optional[int]:
        """Direct child category whose id matches `nameid` case-insensitively."""
        target = nameid.lower()
        for h in self.child_categories(parent):
            if self._nodes[h].id == target:
                return h
        return None

    def find_leaf(self, block_id: str, handle: int = ROOT) -> Optional[int]:
        for h in self.leaves(handle):
            if self._nodes[h].block_id == block_id:
                return h
        return None

    # ----- output -----

    def to_dict(self, handle: int = ROOT) -> dict:
        """Serialize the subtree below `handle` for the renderer."""
        node = self._nodes[handle]
        result = _node_to_dict(node)
        if self._children[handle] or node.kind in ("root", "category"):
            result["children"] = [self.to_dict(h) for h in self._children[handle]]
        return result

    def signature(self, handle: int = ROOT) -> tuple:
        """Structural fingerprint used to compare two trees."""
        node = self._nodes[handle]
        if node.kind == "category":
            key = ("category", node.id, node.weight, node.advanced, node.disabled)
        elif node.kind == "leaf":
            key = ("leaf", node.block_id, node.weight, node.group, node.pinned, node.disabled,
                   node.descriptor.to_dict() if hasattr(node.descriptor, "to_dict") else None)
        elif node.kind == "label":
            key = ("label", node.text, node.web_class)
        elif node.kind == "button":
            key = ("button", node.callback_key)
        else:
            key = (node.kind,)
        return key + (tuple(self.signature(h) for h in self._children[handle]),)


def _node_to_dict(node: Any) -> dict:
    """Convert a node to its output dict (without children)."""
    if node.kind == "category":
        result = {
            "type": "category",
            "id": node.id,
            "name": node.name,
            "weight": node.weight,
        }
        if node.color:
            result["colour"] = node.color
        if node.icon_class:
            result["iconclass"] = node.icon_class
        if node.web_icon:
            result["web_icon"] = node.web_icon
        if node.advanced:
            result["advanced"] = True
        if node.groups:
            result["groups"] = list(node.groups)
        if node.group_icons:
            result["groupicons"] = list(node.group_icons)
        if node.label_line_width:
            result["labellinewidth"] = node.label_line_width
        if node.disabled:
            result["disabled"] = True
        return result
    if node.kind == "leaf":
        result = {"type": "block", "block_id": node.block_id, "weight": node.weight}
        if node.group:
            result["group"] = node.group
        if node.pinned:
            result["pinned"] = True
        if node.disabled:
            result["disabled"] = True
        if node.descriptor is not None and hasattr(node.descriptor, "to_dict"):
            result["descriptor"] = node.descriptor.to_dict()
        return result
    if node.kind == "label":
        result = {"type": "label", "text": node.text, "web_class": node.web_class}
        if node.icon:
            result["web_icon"] = node.icon
        if node.icon_class:
            result["web_icon_class"] = node.icon_class
        if node.icon_color:
            result["web_icon_color"] = node.icon_color
        if node.line_width:
            result["web_line_width"] = node.line_width
        return result
    if node.kind == "button":
        return {"type": "button", "text": node.text, "callbackkey": node.callback_key}
    return {"type": node.kind}
