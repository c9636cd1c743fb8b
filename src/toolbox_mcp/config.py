"""Toolbox configuration: runtime options, extension descriptors and env settings."""

import os
from dataclasses import dataclass, field
from enum import IntEnum
from pathlib import Path
from typing import Callable, Optional


ON_START_TYPE = "pxt-on-start"
PAUSE_UNTIL_TYPE = "pxt-pause-until"

# Default namespace colors for built-in categories
DEFAULT_NAMESPACE_COLORS = {
    "loops": "#107c10",
    "logic": "#006970",
    "math": "#712672",
    "variables": "#A80000",
    "functions": "#005a9e",
    "text": "#996600",
    "arrays": "#A94400",
    "advanced": "#3c3c3c",
}

# Default web icons (single glyphs) for built-in categories
DEFAULT_NAMESPACE_ICONS = {
    "loops": "\uf01e",
    "logic": "\uf074",
    "math": "\uf1ec",
    "variables": "\uf039",
    "functions": "\uf109",
    "text": "\uf035",
    "arrays": "\uf0cb",
    "advanced": "\uf013",
}

DEFAULT_EXTENSION_COLOR = "#7f8c8d"
EXTENSION_CATEGORY_WEIGHT = 55


class CategoryMode(IntEnum):
    NONE = 0        # Flat list, no categories
    BASIC = 1       # Advanced namespaces collapsed behind the "Advanced" category
    ALL = 2         # Everything expanded

    @classmethod
    def parse(cls, value) -> "CategoryMode":
        if isinstance(value, CategoryMode):
            return value
        if isinstance(value, int):
            return cls(value)
        return cls[str(value).upper()]


@dataclass
class ExtraBlock:
    """A block added to an existing category after synthesis (e.g. "on start")."""
    type: str
    namespace: str
    weight: float = 50
    gap: Optional[int] = None
    fields: dict[str, str] = field(default_factory=dict)


@dataclass
class BuiltinBlockOptions:
    """Placement of an optional built-in block."""
    category: str = "loops"
    weight: Optional[float] = None
    group: Optional[str] = None


@dataclass
class ExtensionDescriptor:
    """An add-on package that contributes a category button."""
    name: str
    color: Optional[str] = None
    namespace: Optional[str] = None
    advanced: bool = False
    label: Optional[str] = None

    @classmethod
    def from_dict(cls, d: dict) -> "ExtensionDescriptor":
        return cls(
            name=d["name"],
            color=d.get("color"),
            namespace=d.get("namespace"),
            advanced=d.get("advanced", False),
            label=d.get("label"),
        )


@dataclass
class ToolboxConfig:
    """Runtime options that shape the toolbox independent of the catalog."""
    math_blocks: bool = True
    variables_blocks: bool = True
    logic_blocks: bool = True
    loops_blocks: bool = True
    text_blocks: bool = True
    lists_blocks: bool = True
    function_blocks: bool = True

    extra_blocks: list[ExtraBlock] = field(default_factory=list)
    on_start_namespace: str = "loops"
    on_start_weight: float = 10
    pause_until_block: Optional[BuiltinBlockOptions] = None

    packages_enabled: bool = False      # Offer the "Extensions" category
    default_block_gap: Optional[int] = None
    include_debug_blocks: bool = False
    flyout_headings: bool = True        # Heading label at the top of each category flyout

    namespace_colors: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_NAMESPACE_COLORS))
    namespace_icons: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_NAMESPACE_ICONS))
    # Categories whose heavy blocks are pinned above the built-in ones
    reorderable_categories: frozenset = field(default_factory=lambda: frozenset(DEFAULT_NAMESPACE_COLORS))

    localize: Callable[[str], str] = field(default=lambda text: text, repr=False)

    def namespace_color(self, ns: str) -> Optional[str]:
        return self.namespace_colors.get(ns.lower()) if ns else None

    def namespace_icon(self, ns: str) -> Optional[str]:
        return self.namespace_icons.get(ns.lower()) if ns else None

    def builtin_category_enabled(self) -> dict[str, bool]:
        """Built-in category name -> whether it stays in the toolbox."""
        return {
            "Math": self.math_blocks,
            "Variables": self.variables_blocks,
            "Logic": self.logic_blocks,
            "Loops": self.loops_blocks,
            "Text": self.text_blocks,
            "Arrays": self.lists_blocks,
            "Functions": self.function_blocks,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "ToolboxConfig":
        """Build a config from a JSON-style dict; unknown keys are ignored."""
        config = cls()
        for key in ("math_blocks", "variables_blocks", "logic_blocks", "loops_blocks",
                    "text_blocks", "lists_blocks", "function_blocks", "on_start_namespace",
                    "on_start_weight", "packages_enabled", "default_block_gap",
                    "include_debug_blocks", "flyout_headings"):
            if key in d:
                setattr(config, key, d[key])
        if "extra_blocks" in d:
            config.extra_blocks = [ExtraBlock(**eb) for eb in d["extra_blocks"]]
        if d.get("pause_until_block"):
            config.pause_until_block = BuiltinBlockOptions(**d["pause_until_block"])
        if "namespace_colors" in d:
            config.namespace_colors.update({k.lower(): v for k, v in d["namespace_colors"].items()})
        if "namespace_icons" in d:
            config.namespace_icons.update({k.lower(): v for k, v in d["namespace_icons"].items()})
        return config

    @classmethod
    def from_env(cls) -> "ToolboxConfig":
        config = cls()
        config.include_debug_blocks = os.environ.get("TOOLBOX_DEBUG", "").lower() in ("1", "true", "yes")
        return config


def storage_path_from_env() -> Optional[str]:
    """Toolbox store location (default resolved by the store: ~/.toolbox-index/)."""
    return os.environ.get("TOOLBOX_INDEX_PATH")


def search_url_from_env() -> Optional[str]:
    """Base URL of the external search service, if any."""
    return os.environ.get("TOOLBOX_SEARCH_URL")


def default_storage_path() -> Path:
    return Path.home() / ".toolbox-index"
