"""Toolbox rebuild engine: synthesis, tree assembly, filtering and indexing."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union

from .builtins import default_skeleton
from .catalog import Symbol, SymbolCatalog, capitalize, parse_weight
from .config import (
    CategoryMode,
    DEFAULT_EXTENSION_COLOR,
    EXTENSION_CATEGORY_WEIGHT,
    ExtensionDescriptor,
    ExtraBlock,
    ON_START_TYPE,
    PAUSE_UNTIL_TYPE,
    ToolboxConfig,
)
from .context import RebuildContext
from .diagnostics import Diagnostic, DiagnosticKind
from .filters import FilterEngine, FilterSpec
from .search import LocalSearchService, SearchIndexBuilder
from .storage import BlockCache
from .synthesis import BlockDefinition, BlockDescriptorSynthesizer, SynthesizedBlock, fill_empty_placeholders
from .synthesis.descriptors import FieldValue, InputValue, Placeholder, ToolboxBlock
from .tree import ButtonNode, CategoryNode, CategoryTreeBuilder, LeafNode, SeparatorNode, ToolboxTree
from .tree.builder import MORE_WEIGHT


lib_logger = logging.getLogger("toolbox_mcp")

# Subcategories listed by their namespace are ordered from this weight down
DECLARED_SUBCATEGORY_WEIGHT = 10000

ADVANCED_CATEGORY_WEIGHT = 1
SEPARATOR_WEIGHT = 1.5
EXTENSIONS_CATEGORY_WEIGHT = 1
EXTENSIONS_CATEGORY_COLOR = "#717171"

DEFAULT_CATEGORY_ICON = "\uf12e"


class RebuildState(str, Enum):
    IDLE = "idle"
    BUILDING = "building"
    SYNTHESIZING = "synthesizing"
    FILTERING = "filtering"
    INDEXING = "indexing"
    READY = "ready"


@dataclass
class RebuildRequest:
    """Inputs of one rebuild; a snapshot taken when the pass starts."""
    catalog: SymbolCatalog
    filters: Optional[FilterSpec] = None
    category_mode: CategoryMode = CategoryMode.BASIC
    extensions: list[ExtensionDescriptor] = field(default_factory=list)


@dataclass
class ToolboxResult:
    """Everything one completed rebuild hands to the renderer and search service."""
    generation: int
    category_mode: CategoryMode
    tree: ToolboxTree
    search_index: dict[str, Union[str, bool]]
    diagnostics: list[Diagnostic] = field(default_factory=list)
    definitions: dict[str, BlockDefinition] = field(default_factory=dict)
    search_elements: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "generation": self.generation,
            "category_mode": self.category_mode.name.lower(),
            "tree": self.tree.to_dict(),
            "search_index": dict(self.search_index),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
            "definitions": {block_id: d.to_dict() for block_id, d in self.definitions.items()},
        }


class ToolboxEngine:
    """Owns the block cache and runs rebuilds one at a time.

    A rebuild requested while another pass is running is queued; queued
    requests are coalesced so only the latest one runs, and the result of
    the pass it superseded is discarded.
    """

    def __init__(
        self,
        config: Optional[ToolboxConfig] = None,
        skeleton: Optional[ToolboxTree] = None,
        search_service=None,
    ):
        self.config = config or ToolboxConfig()
        self.cache = BlockCache()
        self.synthesizer = BlockDescriptorSynthesizer(self.cache, self.config)
        self.skeleton = skeleton if skeleton is not None else default_skeleton(self.config)
        self.search_service = search_service or LocalSearchService()

        self.state = RebuildState.IDLE
        self.generation = 0
        self.result: Optional[ToolboxResult] = None
        self.discarded_generations: list[int] = []
        self.state_history: list[RebuildState] = []
        self._pending: Optional[RebuildRequest] = None
        self._last_request: Optional[RebuildRequest] = None

    # ----- state machine -----

    def _set_state(self, state: RebuildState):
        self.state = state
        self.state_history.append(state)
        lib_logger.debug(f"toolbox: [gen {self.generation}] {state.value}")

    def request_rebuild(self, request: RebuildRequest) -> Optional[ToolboxResult]:
        """Rebuild the toolbox for `request`.

        Returns the new result, or None when the request was queued behind
        a running pass (it will be picked up when that pass completes).
        """
        if self.state != RebuildState.IDLE:
            if self._pending is not None:
                lib_logger.debug("toolbox: coalescing queued rebuild request")
            self._pending = request
            return None

        current = request
        try:
            while current is not None:
                self._last_request = current
                result = self._run(current)
                current, self._pending = self._pending, None
                if current is not None:
                    lib_logger.info(f"toolbox: discarding generation {result.generation}, superseded")
                    self.discarded_generations.append(result.generation)
                    continue
                self.result = result
        finally:
            self._pending = None
            self._set_state(RebuildState.IDLE)
        return self.result

    def invalidate(self) -> Optional[ToolboxResult]:
        """Rebuild with the inputs of the last request."""
        if self._last_request is None:
            return None
        return self.request_rebuild(self._last_request)

    # ----- search -----

    async def search(self, term: str) -> Optional[list[dict]]:
        """Resolve a query against the blocks reachable in the current toolbox.

        Returns None when no toolbox is built yet, or when a newer rebuild
        completed while the search service was answering.
        """
        result = self.result
        if result is None:
            return None

        generation = result.generation
        block_ids = await self.search_service.search(term, dict(result.search_index))
        if self.result is None or self.result.generation != generation:
            lib_logger.debug(f"toolbox: dropping search results of superseded generation {generation}")
            return None

        hits = []
        for block_id in block_ids:
            if block_id not in result.search_index:
                continue
            label = result.search_index[block_id]
            element = result.search_elements.get(block_id)
            hits.append({
                "block_id": block_id,
                "category": label if isinstance(label, str) else None,
                "descriptor": element.to_dict() if element is not None else None,
            })
        return hits

    # ----- rebuild pass -----

    def _run(self, request: RebuildRequest) -> ToolboxResult:
        self.generation += 1
        ctx = RebuildContext(self.generation)
        config = self.config
        localize = config.localize
        mode = CategoryMode.parse(request.category_mode)
        catalog = request.catalog

        self._set_state(RebuildState.BUILDING)
        tree = self.skeleton.clone()
        builder = CategoryTreeBuilder(tree, config.reorderable_categories, localize)
        indexer = SearchIndexBuilder(request.filters, localize)
        skeleton_categories = tree.categories()
        skeleton_blocks = {tree.node(h).block_id for h in tree.leaves()}

        self._set_state(RebuildState.SYNTHESIZING)
        definitions: dict[str, BlockDefinition] = {}
        show_advanced = False

        for symbol in self._ordered_blocks(catalog):
            attrs = symbol.attributes
            if attrs.block_id in skeleton_blocks or attrs.block_builtin:
                continue

            synthesized = self.synthesizer.synthesize(symbol, catalog, ctx)
            if synthesized is None:
                continue
            definitions[attrs.block_id] = synthesized.definition

            if attrs.block_hidden or attrs.deprecated:
                continue
            show_advanced = show_advanced or synthesized.placement.advanced
            if attrs.debug and not config.include_debug_blocks:
                continue
            mark = len(tree)
            try:
                self._place(builder, indexer, synthesized, mode, ctx)
            except Exception as e:
                lib_logger.exception(f"toolbox: failed to place {symbol.qualified_name}")
                ctx.report(
                    DiagnosticKind.SYNTHESIS_FAILED,
                    f"{symbol.qualified_name}: {e}",
                    block_id=attrs.block_id,
                    symbol=symbol.qualified_name,
                )
                definitions.pop(attrs.block_id, None)
                for handle in tree.leaves():
                    if handle >= mark:
                        tree.remove(handle)

        stale = self.cache.purge(definitions)
        if stale:
            lib_logger.debug(f"toolbox: purged {len(stale)} stale cache entries")

        self._insert_extra_blocks(builder, mode, ctx)
        self._insert_extensions(builder, request.extensions, mode)

        if mode != CategoryMode.NONE:
            for name, enabled in config.builtin_category_enabled().items():
                show_advanced = self._init_builtin_category(builder, indexer, ctx, name, not enabled, mode) \
                    or show_advanced

            if not config.lists_blocks and config.loops_blocks:
                loops = builder.category("loops")
                for_of = tree.find_leaf("controls_for_of", loops) if loops is not None else None
                if for_of is not None:
                    tree.remove(for_of)

            self._insert_pause_until(builder)

            for handle in skeleton_categories:
                cat = tree.node(handle)
                cat.name = localize(cat.name)
            self._apply_namespace_theme(tree)
            if config.flyout_headings:
                builder.add_flyout_headings()

            if show_advanced:
                advanced = builder.create_category(
                    localize("Advanced"),
                    "Advanced",
                    ADVANCED_CATEGORY_WEIGHT,
                    config.namespace_color("advanced"),
                    "blocklyTreeIconadvancedcollapsed" if mode == CategoryMode.BASIC
                    else "blocklyTreeIconadvancedexpanded",
                )
                builder.insert_top_category(tree.add(SeparatorNode()), SEPARATOR_WEIGHT, False)
                builder.insert_top_category(advanced, ADVANCED_CATEGORY_WEIGHT, False)

            if config.packages_enabled and (not show_advanced or mode == CategoryMode.ALL):
                if not show_advanced:
                    builder.insert_top_category(tree.add(SeparatorNode()), SEPARATOR_WEIGHT, False)
                if builder.category("extensions") is None:
                    ext_category = builder.create_category(
                        localize("Extensions"),
                        "Extensions",
                        EXTENSIONS_CATEGORY_WEIGHT,
                        EXTENSIONS_CATEGORY_COLOR,
                        "blocklyTreeIconaddpackage",
                    )
                    builder.insert_top_category(ext_category, EXTENSIONS_CATEGORY_WEIGHT, False)

        filled = fill_empty_placeholders(tree)
        if filled:
            lib_logger.debug(f"toolbox: filled {filled} empty placeholders from toolbox blocks")

        self._set_state(RebuildState.FILTERING)
        if request.filters is not None:
            FilterEngine(request.filters).apply(tree, mode, collapsed_advanced=bool(ctx.search_index))
        if mode != CategoryMode.NONE:
            builder.arrange_groups()

        self._set_state(RebuildState.INDEXING)
        search_index = indexer.build(tree, ctx)

        self._set_state(RebuildState.READY)
        result = ToolboxResult(
            generation=self.generation,
            category_mode=mode,
            tree=tree,
            search_index=search_index,
            diagnostics=list(ctx.diagnostics),
            definitions=definitions,
            search_elements=ctx.search_elements,
        )
        lib_logger.info(
            f"toolbox: generation {result.generation} built {len(tree.leaves())} blocks "
            f"in {len(tree.categories())} categories ({len(result.diagnostics)} diagnostics)"
        )
        return result

    def _ordered_blocks(self, catalog: SymbolCatalog) -> list[Symbol]:
        """Block symbols by namespace weight, then block weight, heaviest first."""
        def sort_key(symbol: Symbol):
            _, ns_info = catalog.namespace_info(symbol)
            weight, _ = parse_weight(symbol.attributes.weight)
            if ns_info is None:
                return (1, 0, -weight)
            ns_weight, _ = parse_weight(ns_info.attributes.weight)
            return (0, -ns_weight, -weight)

        return sorted(catalog.blocks, key=sort_key)

    # ----- placement -----

    def _place(
        self,
        builder: CategoryTreeBuilder,
        indexer: SearchIndexBuilder,
        synthesized: SynthesizedBlock,
        mode: CategoryMode,
        ctx: RebuildContext,
    ):
        tree = builder.tree
        placement = synthesized.placement

        if mode == CategoryMode.NONE:
            for leaf in synthesized.leaves:
                tree.append_child(ToolboxTree.ROOT, tree.add(LeafNode(
                    block_id=synthesized.block_id,
                    weight=placement.weight,
                    group=placement.group,
                    descriptor=leaf,
                )))
            return

        if mode == CategoryMode.BASIC and placement.advanced:
            # Collapsed behind "Advanced": searchable, not shown
            indexer.record_block(
                synthesized.block_id,
                placement.namespace,
                placement.category_name,
                ctx,
                descriptor=synthesized.leaves[0] if synthesized.leaves else None,
            )
            return

        category = builder.category(placement.namespace)
        if category is None:
            category = self._create_namespace_category(builder, placement, ctx)

        parent_color = tree.node(category).color
        ns_symbol = placement.namespace_symbol
        if placement.more:
            category = builder.get_or_create_subcategory(
                category, self.config.localize("More"), MORE_WEIGHT, "More", parent_color, "blocklyTreeIconmore",
            )
        elif placement.subcategory:
            sub = placement.subcategory
            declared = ns_symbol.attributes.subcategories if ns_symbol else []
            # Declared subcategories keep their declared order; others go alphabetically
            weight = DECLARED_SUBCATEGORY_WEIGHT - declared.index(sub) if sub in declared else None
            category = builder.get_or_create_subcategory(
                category, sub, weight, sub, parent_color, "blocklyTreeIconmore",
            )
            if ns_symbol:
                sub_node = tree.node(category)
                sub_node.groups = list(ns_symbol.attributes.groups)
                sub_node.group_icons = list(ns_symbol.attributes.group_icons)

        for leaf in synthesized.leaves:
            builder.insert_leaf(
                category,
                LeafNode(block_id=synthesized.block_id, descriptor=leaf),
                placement.weight,
                placement.group,
            )

    def _create_namespace_category(self, builder: CategoryTreeBuilder, placement, ctx: RebuildContext) -> int:
        ns_symbol = placement.namespace_symbol
        attrs = ns_symbol.attributes if ns_symbol else None

        weight, ok = parse_weight(attrs.weight if attrs else None)
        if not ok:
            ctx.report(
                DiagnosticKind.MALFORMED_WEIGHT,
                f"namespace {placement.namespace}: malformed weight {attrs.weight!r}, using {weight}",
                symbol=ns_symbol.qualified_name,
            )

        color = (attrs.color if attrs else None) or self.config.namespace_color(placement.namespace)
        if attrs and attrs.icon:
            icon_class = f"blocklyTreeIcon{ns_symbol.name.lower()}".replace(" ", "")
            web_icon = attrs.icon
        else:
            icon_class = "blocklyTreeIconDefault"
            web_icon = DEFAULT_CATEGORY_ICON

        lib_logger.debug(f"toolbox: adding category {placement.namespace}")
        handle = builder.create_category(
            self.config.localize(capitalize(placement.category_name)),
            placement.namespace,
            weight,
            color,
            icon_class,
        )
        cat: CategoryNode = builder.tree.node(handle)
        cat.web_icon = web_icon
        if attrs:
            cat.groups = list(attrs.groups)
            cat.group_icons = list(attrs.group_icons)
            cat.label_line_width = attrs.label_line_width
        return builder.insert_top_category(handle, weight, placement.advanced)

    # ----- configured additions -----

    def _insert_extra_blocks(self, builder: CategoryTreeBuilder, mode: CategoryMode, ctx: RebuildContext):
        extras = list(self.config.extra_blocks)
        if self.config.on_start_namespace:
            extras.append(ExtraBlock(
                type=ON_START_TYPE,
                namespace=self.config.on_start_namespace,
                weight=self.config.on_start_weight,
            ))

        tree = builder.tree
        for eb in extras:
            descriptor = ToolboxBlock(
                block_id=eb.type,
                gap=str(eb.gap) if eb.gap else None,
                fields=[FieldValue(name=k, value=v) for k, v in eb.fields.items()],
            )
            weight = eb.weight or 50
            leaf = LeafNode(block_id=eb.type, descriptor=descriptor)

            if mode == CategoryMode.NONE:
                leaf.weight = weight
                tree.append_child(ToolboxTree.ROOT, tree.add(leaf))
                continue

            category = builder.category(eb.namespace)
            if category is None:
                ctx.report(
                    DiagnosticKind.UNKNOWN_CATEGORY,
                    f"trying to add block {eb.type} to unknown category {eb.namespace}",
                    block_id=eb.type,
                )
                continue
            builder.insert_leaf(category, leaf, weight)

    def _insert_extensions(self, builder: CategoryTreeBuilder, extensions: list[ExtensionDescriptor],
                           mode: CategoryMode):
        tree = builder.tree
        localize = self.config.localize
        for ext in extensions:
            label = localize(ext.label) if ext.label else localize("Editor")
            button = ButtonNode(text=label, callback_key=f"EXT{ext.name}_BUTTON")

            if mode == CategoryMode.NONE:
                tree.append_child(ToolboxTree.ROOT, tree.add(button))
                continue
            if mode == CategoryMode.BASIC and ext.advanced:
                continue

            category = builder.category(ext.namespace or ext.name)
            if category is None:
                category = builder.create_category(
                    localize(ext.name),
                    ext.name,
                    EXTENSION_CATEGORY_WEIGHT,
                    ext.color or DEFAULT_EXTENSION_COLOR,
                    "blocklyTreeIconextensions",
                )
                builder.insert_top_category(category, EXTENSION_CATEGORY_WEIGHT, False)
            builder.insert_button(category, button)

    def _init_builtin_category(
        self,
        builder: CategoryTreeBuilder,
        indexer: SearchIndexBuilder,
        ctx: RebuildContext,
        name: str,
        remove: bool,
        mode: CategoryMode,
    ) -> bool:
        """Apply the enabled flag of a built-in category; returns whether it is advanced."""
        handle = builder.category(name)
        if handle is None:
            return False
        if remove:
            builder.tree.remove(handle)
            return False

        if not builder.tree.node(handle).advanced:
            return False

        # Keep the blocks searchable in case the category gets collapsed
        indexer.record_collapsed_category(builder.tree, handle, ctx)
        if mode == CategoryMode.BASIC:
            builder.tree.remove(handle)
        return True

    def _insert_pause_until(self, builder: CategoryTreeBuilder):
        options = self.config.pause_until_block
        if not options or not options.category:
            return
        category = builder.category(options.category)
        if category is None:
            return

        descriptor = ToolboxBlock(
            block_id=PAUSE_UNTIL_TYPE,
            inputs=[InputValue(
                name="PREDICATE",
                shadow=Placeholder(block_type="logic_boolean", fields=[FieldValue(name="BOOL", value="FALSE")]),
            )],
        )
        weight = options.weight if options.weight is not None else 0
        builder.insert_leaf(category, LeafNode(block_id=PAUSE_UNTIL_TYPE, descriptor=descriptor),
                            weight, options.group)

    def _apply_namespace_theme(self, tree: ToolboxTree):
        """Configured namespace colors and icons override those of top-level categories."""
        for handle in tree.child_categories(ToolboxTree.ROOT):
            cat = tree.node(handle)
            color = self.config.namespace_color(cat.id)
            if color:
                cat.color = color
                for sub in tree.categories(handle):
                    tree.node(sub).color = color
            icon = self.config.namespace_icon(cat.id)
            if icon:
                cat.web_icon = icon
