"""Get the category tree of a stored toolbox."""

from typing import Optional

from ..storage import ToolboxStore


def get_category_tree(
    project: str,
    category: Optional[str] = None,
    include_blocks: bool = True,
    storage_path: Optional[str] = None
) -> dict:
    """Get a toolbox's category tree, optionally rooted at one category.

    Args:
        project: Project name the toolbox was built for
        category: Optional category id to return instead of the whole tree
        include_blocks: When false, only categories are returned
        storage_path: Custom storage path

    Returns:
        Dict with the (sub)tree
    """
    store = ToolboxStore(base_path=storage_path)
    toolbox = store.load(project)

    if not toolbox:
        return {"error": f"Toolbox not built: {project}"}

    root = toolbox.tree
    if category:
        root = toolbox.get_category(category)
        if root is None:
            return {"error": f"Category not found: {category}"}

    return {
        "project": project,
        "generation": toolbox.generation,
        "category": category,
        "tree": _outline(root, include_blocks)
    }


def _outline(node: dict, include_blocks: bool) -> dict:
    """Compact view of a serialized node and its children."""
    kind = node.get("type")
    if kind == "block":
        result = {"type": "block", "block_id": node["block_id"], "weight": node.get("weight")}
        for key in ("group", "pinned", "disabled"):
            if node.get(key):
                result[key] = node[key]
        return result

    result = {k: v for k, v in node.items() if k != "children"}
    children = []
    block_count = 0
    for child in node.get("children", []):
        if child.get("type") == "block":
            block_count += 1
            if not include_blocks:
                continue
        children.append(_outline(child, include_blocks))
    if kind in ("root", "category"):
        result["block_count"] = block_count
        result["children"] = children
    return result
