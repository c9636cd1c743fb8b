"""List stored toolboxes."""

from typing import Optional

from ..storage import ToolboxStore


def list_toolboxes(storage_path: Optional[str] = None) -> dict:
    """List all stored toolboxes.

    Returns:
        Dict with count and list of toolboxes
    """
    store = ToolboxStore(base_path=storage_path)
    toolboxes = store.list_toolboxes()

    return {
        "count": len(toolboxes),
        "toolboxes": toolboxes
    }
