"""Search blocks reachable in a stored toolbox."""

from typing import Optional

import httpx

from ..config import search_url_from_env
from ..search import HttpSearchService, LocalSearchService
from ..storage import ToolboxStore


async def search_blocks(
    project: str,
    query: str,
    category: Optional[str] = None,
    max_results: int = 10,
    storage_path: Optional[str] = None,
    search_url: Optional[str] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> dict:
    """Search for blocks matching a query.

    The search is scoped to the toolbox's search index, so only blocks the
    toolbox can reach are returned.

    Args:
        project: Project name the toolbox was built for
        query: Search query
        category: Optional category label to restrict results to
        max_results: Maximum results to return
        storage_path: Custom storage path
        search_url: External search service URL (defaults to TOOLBOX_SEARCH_URL)
        transport: Optional httpx transport for the external service

    Returns:
        Dict with search results
    """
    store = ToolboxStore(base_path=storage_path)
    toolbox = store.load(project)

    if not toolbox:
        return {"error": f"Toolbox not built: {project}"}

    subset = dict(toolbox.search_index)
    if category:
        subset = {k: v for k, v in subset.items() if isinstance(v, str) and v.lower() == category.lower()}

    search_url = search_url or search_url_from_env()
    if search_url:
        service = HttpSearchService(search_url, transport=transport)
        try:
            block_ids = await service.search(query, subset)
        except httpx.HTTPError as e:
            return {"error": f"Search service failed: {e}"}
    else:
        service = LocalSearchService(_documents(toolbox.definitions))
        block_ids = await service.search(query, subset)

    results = []
    for block_id in block_ids[:max_results]:
        label = subset[block_id]
        results.append({
            "block_id": block_id,
            "category": label if isinstance(label, str) else None,
            "tooltip": toolbox.definitions.get(block_id, {}).get("tooltip", ""),
        })

    return {
        "project": project,
        "query": query,
        "result_count": len(results),
        "results": results
    }


def _documents(definitions: dict[str, dict]) -> dict[str, dict]:
    """Searchable text of each compiled block."""
    docs = {}
    for block_id, definition in definitions.items():
        card = definition.get("code_card") or {}
        docs[block_id] = {
            "name": card.get("shortName") or block_id,
            "description": definition.get("tooltip") or card.get("description") or "",
        }
    return docs
