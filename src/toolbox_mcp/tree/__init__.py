"""Toolbox tree package: node arena and category tree builder."""

from .nodes import (
    ToolboxTree,
    RootNode,
    CategoryNode,
    LeafNode,
    LabelNode,
    ButtonNode,
    SeparatorNode,
)
from .builder import CategoryTreeBuilder, OTHER_GROUP

__all__ = [
    "ToolboxTree",
    "RootNode",
    "CategoryNode",
    "LeafNode",
    "LabelNode",
    "ButtonNode",
    "SeparatorNode",
    "CategoryTreeBuilder",
    "OTHER_GROUP",
]
