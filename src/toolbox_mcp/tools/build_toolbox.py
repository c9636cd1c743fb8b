"""Build toolbox tool - load catalog, rebuild, save."""

import json
from pathlib import Path
from typing import Optional

from ..catalog import catalog_from_dict
from ..config import CategoryMode, ExtensionDescriptor, ToolboxConfig
from ..filters import FilterSpec
from ..rebuild import RebuildRequest, ToolboxEngine
from ..storage import ToolboxStore


# One engine per project so compiled blocks are reused across builds
_ENGINES: dict[str, ToolboxEngine] = {}


def get_engine(project: str, config: Optional[ToolboxConfig] = None) -> ToolboxEngine:
    """Engine for a project; a new config replaces the engine (and its cache)."""
    engine = _ENGINES.get(project)
    if engine is None or (config is not None and engine.config != config):
        engine = ToolboxEngine(config=config or ToolboxConfig.from_env())
        _ENGINES[project] = engine
    return engine


def reset_engines():
    _ENGINES.clear()


def build_toolbox(
    catalog_path: str,
    project: Optional[str] = None,
    filters: Optional[dict] = None,
    category_mode: str = "basic",
    extensions: Optional[list[dict]] = None,
    config: Optional[dict] = None,
    storage_path: Optional[str] = None
) -> dict:
    """Build the toolbox of a symbol catalog and save it.

    Args:
        catalog_path: Path to a catalog JSON file ({"symbols": [...]})
        project: Project name to store the toolbox under (defaults to the file stem)
        filters: Optional filter overrides {"namespaces", "blocks", "default_state"}
        category_mode: "none", "basic" or "all"
        extensions: Extension descriptors {name, color, namespace, advanced, label}
        config: Optional ToolboxConfig overrides
        storage_path: Custom storage path

    Returns:
        Dict with build summary
    """
    path = Path(catalog_path).expanduser()
    if not path.is_file():
        return {"error": f"Catalog not found: {catalog_path}"}

    try:
        with open(path, "r", encoding="utf-8") as f:
            payload = json.load(f)
    except (OSError, ValueError) as e:
        return {"error": f"Could not read catalog: {e}"}

    try:
        mode = CategoryMode.parse(category_mode)
    except (KeyError, ValueError):
        return {"error": f"Unknown category mode: {category_mode}"}

    project = project or path.stem
    catalog = catalog_from_dict(payload)
    engine = get_engine(project, ToolboxConfig.from_dict(config) if config else None)

    request = RebuildRequest(
        catalog=catalog,
        filters=FilterSpec.from_dict(filters),
        category_mode=mode,
        extensions=[ExtensionDescriptor.from_dict(e) for e in extensions or []],
    )
    compiled_before = engine.synthesizer.compile_count
    result = engine.request_rebuild(request)

    data = result.to_dict()
    store = ToolboxStore(base_path=storage_path)
    store.save(
        project=project,
        generation=result.generation,
        category_mode=data["category_mode"],
        tree=data["tree"],
        search_index=data["search_index"],
        diagnostics=data["diagnostics"],
        definitions=data["definitions"],
        catalog=payload,
    )

    return {
        "success": True,
        "project": project,
        "generation": result.generation,
        "category_mode": data["category_mode"],
        "symbol_count": len(catalog.symbols),
        "block_count": len(result.tree.leaves()),
        "category_count": len(result.tree.categories()),
        "compiled": engine.synthesizer.compile_count - compiled_before,
        "searchable": len(result.search_index),
        "diagnostics": data["diagnostics"],
    }
