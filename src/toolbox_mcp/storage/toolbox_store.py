"""Toolbox storage: completed rebuilds saved as JSON, one file per project."""

import json
import re
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..config import default_storage_path


_SAFE_NAME_RE = re.compile(r"[^A-Za-z0-9_.-]+")


@dataclass
class StoredToolbox:
    """A built toolbox as persisted for a project."""
    project: str
    built_at: str                       # ISO timestamp
    generation: int
    category_mode: str
    tree: dict                          # Serialized ToolboxTree
    search_index: dict[str, Union[str, bool]]
    diagnostics: list[dict] = field(default_factory=list)
    definitions: dict[str, dict] = field(default_factory=dict)  # block id -> compiled definition

    def get_block(self, block_id: str) -> Optional[dict]:
        """Find a leaf in the stored tree by block id."""
        stack = [self.tree]
        while stack:
            node = stack.pop()
            if node.get("type") == "block" and node.get("block_id") == block_id:
                return node
            stack.extend(reversed(node.get("children", [])))
        return None

    def get_category(self, category_id: str) -> Optional[dict]:
        """Find a category (at any depth) by id."""
        target = category_id.lower()
        stack = [self.tree]
        while stack:
            node = stack.pop()
            if node.get("type") == "category" and node.get("id") == target:
                return node
            stack.extend(reversed(node.get("children", [])))
        return None

    def block_count(self) -> int:
        count = 0
        stack = [self.tree]
        while stack:
            node = stack.pop()
            if node.get("type") == "block":
                count += 1
            stack.extend(node.get("children", []))
        return count


class ToolboxStore:
    """Storage for built toolboxes."""

    def __init__(self, base_path: Optional[str] = None):
        """Initialize store.

        Args:
            base_path: Base directory for storage. Defaults to ~/.toolbox-index/
        """
        if base_path:
            self.base_path = Path(base_path).expanduser()
        else:
            self.base_path = default_storage_path()

        self.base_path.mkdir(parents=True, exist_ok=True)

    def _toolbox_path(self, project: str) -> Path:
        """Path to a project's toolbox JSON file."""
        return self.base_path / f"{_SAFE_NAME_RE.sub('-', project)}.json"

    def _catalog_dir(self, project: str) -> Path:
        """Directory holding the catalog snapshot a toolbox was built from."""
        return self.base_path / _SAFE_NAME_RE.sub("-", project)

    def save(
        self,
        project: str,
        generation: int,
        category_mode: str,
        tree: dict,
        search_index: dict,
        diagnostics: list[dict],
        definitions: Optional[dict[str, dict]] = None,
        catalog: Optional[dict] = None,
    ) -> StoredToolbox:
        """Save a built toolbox.

        Args:
            project: Project name the toolbox belongs to
            generation: Rebuild generation that produced it
            category_mode: "none", "basic" or "all"
            tree: Serialized tree (ToolboxTree.to_dict())
            search_index: Block id -> category label (or True)
            diagnostics: Serialized diagnostics of the rebuild
            definitions: Block id -> compiled block definition
            catalog: Raw catalog payload to keep alongside the toolbox

        Returns:
            StoredToolbox object
        """
        toolbox = StoredToolbox(
            project=project,
            built_at=datetime.now().isoformat(),
            generation=generation,
            category_mode=category_mode,
            tree=tree,
            search_index=dict(search_index),
            diagnostics=diagnostics,
            definitions=definitions or {},
        )

        with open(self._toolbox_path(project), "w", encoding="utf-8") as f:
            json.dump(self._toolbox_to_dict(toolbox), f, indent=2)

        if catalog is not None:
            catalog_dir = self._catalog_dir(project)
            catalog_dir.mkdir(parents=True, exist_ok=True)
            with open(catalog_dir / "catalog.json", "w", encoding="utf-8") as f:
                json.dump(catalog, f, indent=2)

        return toolbox

    def load(self, project: str) -> Optional[StoredToolbox]:
        """Load a project's toolbox from storage."""
        path = self._toolbox_path(project)

        if not path.exists():
            return None

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return StoredToolbox(
            project=data["project"],
            built_at=data["built_at"],
            generation=data["generation"],
            category_mode=data["category_mode"],
            tree=data["tree"],
            search_index=data["search_index"],
            diagnostics=data.get("diagnostics", []),
            definitions=data.get("definitions", {}),
        )

    def load_catalog(self, project: str) -> Optional[dict]:
        """Raw catalog payload saved with the toolbox, if any."""
        path = self._catalog_dir(project) / "catalog.json"
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    def list_toolboxes(self) -> list[dict]:
        """List all stored toolboxes."""
        toolboxes = []

        for toolbox_file in sorted(self.base_path.glob("*.json")):
            try:
                with open(toolbox_file, "r", encoding="utf-8") as f:
                    data = json.load(f)

                toolbox = StoredToolbox(
                    project=data["project"],
                    built_at=data["built_at"],
                    generation=data["generation"],
                    category_mode=data["category_mode"],
                    tree=data["tree"],
                    search_index=data["search_index"],
                )
            except (OSError, ValueError, KeyError):
                continue

            toolboxes.append({
                "project": toolbox.project,
                "built_at": toolbox.built_at,
                "generation": toolbox.generation,
                "category_mode": toolbox.category_mode,
                "block_count": toolbox.block_count(),
                "category_count": len(toolbox.tree.get("children", [])),
                "diagnostic_count": len(data.get("diagnostics", [])),
            })

        return toolboxes

    def delete(self, project: str) -> bool:
        """Delete a toolbox and its catalog snapshot."""
        path = self._toolbox_path(project)
        catalog_dir = self._catalog_dir(project)

        deleted = False

        if path.exists():
            path.unlink()
            deleted = True

        if catalog_dir.exists():
            shutil.rmtree(catalog_dir)
            deleted = True

        return deleted

    def _toolbox_to_dict(self, toolbox: StoredToolbox) -> dict:
        """Convert StoredToolbox to dict."""
        return {
            "project": toolbox.project,
            "built_at": toolbox.built_at,
            "generation": toolbox.generation,
            "category_mode": toolbox.category_mode,
            "tree": toolbox.tree,
            "search_index": toolbox.search_index,
            "diagnostics": toolbox.diagnostics,
            "definitions": toolbox.definitions,
        }
