"""Get a block's toolbox leaf and compiled definition."""

from typing import Optional

from ..storage import ToolboxStore


def get_block(
    project: str,
    block_id: str,
    storage_path: Optional[str] = None
) -> dict:
    """Get the leaf and compiled definition of one block.

    Args:
        project: Project name the toolbox was built for
        block_id: Block id (e.g. "device_show_number")
        storage_path: Custom storage path

    Returns:
        Dict with the leaf, its category label and its definition
    """
    store = ToolboxStore(base_path=storage_path)
    toolbox = store.load(project)

    if not toolbox:
        return {"error": f"Toolbox not built: {project}"}

    leaf = toolbox.get_block(block_id)
    definition = toolbox.definitions.get(block_id)

    if leaf is None and definition is None:
        return {"error": f"Block not found: {block_id}"}

    category = toolbox.search_index.get(block_id)
    return {
        "block_id": block_id,
        "category": category if isinstance(category, str) else None,
        "in_toolbox": leaf is not None,
        "searchable": block_id in toolbox.search_index,
        "leaf": leaf,
        "definition": definition,
        "diagnostics": [d for d in toolbox.diagnostics if d.get("block_id") == block_id],
    }


def get_blocks(
    project: str,
    block_ids: list[str],
    storage_path: Optional[str] = None
) -> dict:
    """Get several blocks in one call.

    Returns:
        Dict with blocks list and any errors
    """
    blocks = []
    errors = []

    for block_id in block_ids:
        result = get_block(project, block_id, storage_path=storage_path)
        if "error" in result:
            errors.append({"block_id": block_id, "error": result["error"]})
            continue
        blocks.append(result)

    return {
        "blocks": blocks,
        "errors": errors
    }
