"""Built-in block ids and the default skeleton toolbox they live in."""

from dataclasses import dataclass

from .config import ON_START_TYPE, PAUSE_UNTIL_TYPE, ToolboxConfig
from .tree import CategoryNode, LeafNode, ToolboxTree


@dataclass(frozen=True)
class BuiltinCategory:
    name: str
    weight: float
    advanced: bool
    blocks: tuple[str, ...]


BUILTIN_CATEGORIES = (
    BuiltinCategory("Loops", 50, False, (
        "controls_repeat_ext", "device_while", "controls_for", "controls_for_of",
    )),
    BuiltinCategory("Logic", 49, False, (
        "controls_if", "logic_compare", "logic_operation", "logic_negate", "logic_boolean",
    )),
    BuiltinCategory("Variables", 48, False, ()),
    BuiltinCategory("Math", 47, False, (
        "math_arithmetic", "math_number", "math_modulo", "math_op2", "math_op3",
    )),
    BuiltinCategory("Functions", 46, True, ()),
    BuiltinCategory("Arrays", 45, True, (
        "lists_create_with", "lists_length", "lists_index_get", "lists_index_set",
    )),
    BuiltinCategory("Text", 44, True, (
        "text", "text_length", "text_join",
    )),
)

# Categories whose content is generated at render time, with the block ids
# that decide whether they are shown
DYNAMIC_CATEGORY_BLOCKS = {
    "variables": ("variables_set", "variables_get", "variables_change"),
    "functions": ("procedures_defnoreturn", "procedures_callnoreturn"),
}

BUILTIN_BLOCK_IDS = frozenset(
    [b for cat in BUILTIN_CATEGORIES for b in cat.blocks]
    + [b for ids in DYNAMIC_CATEGORY_BLOCKS.values() for b in ids]
    + [ON_START_TYPE, PAUSE_UNTIL_TYPE, "math_number_minmax", "controls_simple_for"]
)


def default_skeleton(config: ToolboxConfig = None) -> ToolboxTree:
    """Build the skeleton toolbox holding the built-in categories."""
    config = config or ToolboxConfig()
    tree = ToolboxTree()
    for cat in BUILTIN_CATEGORIES:
        nameid = cat.name.lower()
        handle = tree.add(CategoryNode(
            id=nameid,
            name=cat.name,
            weight=cat.weight,
            color=config.namespace_color(nameid),
            icon_class=f"blocklyTreeIcon{nameid}",
            web_icon=config.namespace_icon(nameid),
            advanced=cat.advanced,
        ))
        tree.append_child(ToolboxTree.ROOT, handle)
        for block_id in cat.blocks:
            tree.append_child(handle, tree.add(LeafNode(block_id=block_id)))
    return tree
