"""Delete a stored toolbox."""

from typing import Optional

from ..storage import ToolboxStore
from .build_toolbox import _ENGINES


def delete_toolbox(project: str, storage_path: Optional[str] = None) -> dict:
    """Delete a project's toolbox and drop its engine (and block cache).

    Returns:
        Dict with deletion status
    """
    store = ToolboxStore(base_path=storage_path)
    deleted = store.delete(project)
    _ENGINES.pop(project, None)

    if not deleted:
        return {"error": f"Toolbox not built: {project}"}

    return {
        "success": True,
        "project": project
    }
