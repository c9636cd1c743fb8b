"""Per-symbol block synthesis: compiled definitions, toolbox leaves and caching."""

import copy
import hashlib
import json
import logging
from dataclasses import asdict, dataclass, field
from typing import Optional

from ..builtins import BUILTIN_BLOCK_IDS
from ..catalog import Symbol, SymbolCatalog, capitalize, parse_weight
from ..config import ToolboxConfig
from ..context import RebuildContext
from ..diagnostics import BlockCollisionError, DiagnosticKind
from ..storage.block_cache import BlockCache, CacheEntry
from .compile_info import CompileInfo, compile_info
from .descriptors import BlockDefinition, FieldValue, InputValue, Placeholder, ToolboxBlock
from .placeholders import build_toolbox_block, dropdown_source
from .strategies import synthesize_definition


lib_logger = logging.getLogger("toolbox_mcp")

# Identifiers that cannot name the variable of a store-result block
RESERVED_WORDS = frozenset([
    "abstract", "any", "as", "break", "case", "catch", "class", "continue", "const",
    "constructor", "debugger", "declare", "default", "delete", "do", "else", "enum",
    "export", "extends", "false", "finally", "for", "from", "function", "get", "if",
    "implements", "import", "in", "instanceof", "interface", "is", "let", "module",
    "namespace", "new", "null", "package", "private", "protected", "public", "require",
    "global", "return", "set", "static", "super", "switch", "symbol", "this", "throw",
    "true", "try", "type", "typeof", "var", "void", "while", "with", "yield", "async",
    "await", "of",
])

STORE_RESULT_BLOCK = "variables_set"
STORE_RESULT_GAP = 8


@dataclass
class Placement:
    """Where a symbol's leaves go in the tree."""
    namespace: str                  # Effective namespace id (lower-cased)
    category_name: str              # Display name of the namespace category
    weight: float
    group: Optional[str] = None
    subcategory: Optional[str] = None
    advanced: bool = False          # The namespace is advanced
    more: bool = False              # The symbol goes into the "More" bucket
    namespace_symbol: Optional[Symbol] = None


@dataclass
class SynthesizedBlock:
    """Result of synthesizing one symbol."""
    symbol: Symbol
    definition: BlockDefinition
    leaves: list[ToolboxBlock] = field(default_factory=list)
    placement: Optional[Placement] = None
    cached: bool = False

    @property
    def block_id(self) -> str:
        return self.definition.block_id


def is_reserved_word(name: str) -> bool:
    return name in RESERVED_WORDS


def content_hash(symbol: Symbol, catalog: SymbolCatalog) -> str:
    """Hash of the normalized symbol plus the catalog entries its block depends on.

    Dependencies are the namespace symbol, the return type and, for every
    parameter, its type symbol, its shadow block template and the values of
    any dropdown it feeds.
    """
    ns, ns_info = catalog.namespace_info(symbol)
    deps: dict[str, object] = {
        "namespace": asdict(ns_info) if ns_info else ns,
    }
    ret = catalog.lookup(symbol.return_type)
    if ret:
        deps["return_type"] = ret.extends_types

    for param in symbol.parameters:
        type_info = catalog.lookup(param.type)
        if type_info:
            deps["type:" + param.type] = asdict(type_info)
        shadow_info = catalog.by_block_id.get(param.shadow_block_id) if param.shadow_block_id else None
        if shadow_info:
            # Placeholder field names come from the shadow block's template
            deps["shadow:" + param.shadow_block_id] = shadow_info.attributes.block
        source = dropdown_source(catalog, symbol, param)
        if source == "enum":
            values = catalog.enum_values(param.type)
        elif source == "fixed_instance":
            values = catalog.fixed_instance_values(type_info.qualified_name)
        elif source == "constant":
            values = catalog.constant_values(symbol.qualified_name)
        elif source == "combined":
            values = catalog.combined_values(symbol)
        else:
            values = []
        if values:
            deps["values:" + param.definition_name] = [asdict(v) for v in values]

    payload = json.dumps({"symbol": asdict(symbol), "deps": deps}, sort_keys=True, default=str)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class BlockDescriptorSynthesizer:
    """Turns catalog symbols into compiled blocks and toolbox leaves.

    The synthesizer owns no per-rebuild state: block registration and
    diagnostics go through the RebuildContext passed to `synthesize`, and
    compiled blocks are kept in the engine-lifetime BlockCache.
    """

    def __init__(self, cache: Optional[BlockCache] = None, config: Optional[ToolboxConfig] = None):
        self.cache = cache if cache is not None else BlockCache()
        self.config = config or ToolboxConfig()
        self.compile_count = 0

    def synthesize(
        self,
        symbol: Symbol,
        catalog: SymbolCatalog,
        ctx: RebuildContext,
    ) -> Optional[SynthesizedBlock]:
        """Compile (or reuse) the block for `symbol` and register its id.

        Returns None when the symbol is rejected; the reason is reported on
        the context. Collisions are raised internally and reported here so
        one bad symbol never stops the rebuild.
        """
        block_id = symbol.attributes.block_id
        if not block_id:
            return None

        try:
            if block_id in BUILTIN_BLOCK_IDS:
                raise BlockCollisionError(block_id, builtin=True)
            if ctx.is_registered(block_id):
                raise BlockCollisionError(block_id, existing=ctx.registered_blocks[block_id])

            digest = content_hash(symbol, catalog)
            entry = self.cache.get(block_id, digest)
            cached = entry is not None
            if cached:
                for kind, message in entry.warnings:
                    ctx.report(kind, message, block_id=block_id, symbol=symbol.qualified_name)
            else:
                entry = self._compile(symbol, catalog, ctx, digest)
                self.cache.put(block_id, entry)

            ctx.register_block(block_id, symbol.qualified_name)

        except BlockCollisionError as e:
            ctx.report(DiagnosticKind.BLOCK_COLLISION, str(e), block_id=block_id, symbol=symbol.qualified_name)
            return None
        except Exception as e:
            lib_logger.exception(f"toolbox: failed to synthesize {symbol.qualified_name}")
            ctx.report(
                DiagnosticKind.SYNTHESIS_FAILED,
                f"{symbol.qualified_name}: {e}",
                block_id=block_id,
                symbol=symbol.qualified_name,
            )
            return None

        return SynthesizedBlock(
            symbol=symbol,
            definition=entry.definition,
            leaves=entry.templates,
            placement=self.placement(symbol, catalog, ctx),
            cached=cached,
        )

    def _compile(self, symbol: Symbol, catalog: SymbolCatalog, ctx: RebuildContext, digest: str) -> CacheEntry:
        self.compile_count += 1
        before = len(ctx.diagnostics)

        comp = compile_info(symbol)
        definition = synthesize_definition(catalog, symbol, comp, self.config, ctx)
        templates = self.toolbox_leaves(symbol, catalog, comp, ctx)

        warnings = [(d.kind, d.message) for d in list(ctx.diagnostics)[before:]]
        lib_logger.debug(f"toolbox: compiled {symbol.attributes.block_id} ({definition.strategy})")
        return CacheEntry(
            content_hash=digest,
            symbol=symbol.qualified_name,
            definition=definition,
            templates=templates,
            warnings=warnings,
        )

    # ----- leaves -----

    def toolbox_leaves(
        self,
        symbol: Symbol,
        catalog: SymbolCatalog,
        comp: CompileInfo,
        ctx: RebuildContext,
    ) -> list[ToolboxBlock]:
        """The toolbox leaves of one symbol.

        Variant tags yield one leaf per tag; otherwise a variable-arity
        handler yields one leaf per declared arity; otherwise there is a
        single leaf, optionally wrapped into a store-result block.
        """
        attrs = symbol.attributes
        base = build_toolbox_block(catalog, symbol, comp, self.config.default_block_gap)

        if attrs.mutate_defaults:
            leaves = []
            for tag in attrs.mutate_defaults.split(";"):
                leaf = copy.deepcopy(base)
                leaf.variant = tag
                leaf.mutation.update(_variant_mutation(attrs.mutate, tag))
                leaves.append(leaf)
            return leaves

        if attrs.optional_variable_args and attrs.toolbox_variable_args:
            leaves = []
            for arity in _arities(attrs.toolbox_variable_args, len(comp.handler_args)):
                leaf = copy.deepcopy(base)
                leaf.variant = str(arity)
                leaf.mutation["numargs"] = str(arity)
                for i in range(arity):
                    leaf.mutation[f"arg{i}"] = comp.handler_args[i].name
                leaves.append(leaf)
            return leaves

        if attrs.block_set_variable is not None and symbol.return_type and symbol.return_type != "void":
            return [self._store_result(symbol, base, ctx)]

        return [base]

    def _store_result(self, symbol: Symbol, block: ToolboxBlock, ctx: RebuildContext) -> ToolboxBlock:
        attrs = symbol.attributes
        raw = attrs.block_set_variable
        default_name = symbol.return_type.lower()

        if raw is True or raw in ("", "true"):
            var_name = default_name
        elif is_reserved_word(str(raw)):
            ctx.report(
                DiagnosticKind.RESERVED_VARIABLE_NAME,
                f"block {attrs.block_id}: variable name {raw!r} is reserved, using {default_name!r}",
                block_id=attrs.block_id,
                symbol=symbol.qualified_name,
            )
            var_name = default_name
        else:
            var_name = str(raw)

        return ToolboxBlock(
            block_id=STORE_RESULT_BLOCK,
            gap=str(attrs.block_gap or STORE_RESULT_GAP),
            fields=[FieldValue(name="VAR", value=var_name, variable_type="")],
            inputs=[InputValue(
                name="VALUE",
                block=block,
                shadow=Placeholder(block_type="math_number", fields=[FieldValue(name="NUM", value="0")]),
            )],
            variant="store_result",
        )

    # ----- placement -----

    def placement(self, symbol: Symbol, catalog: SymbolCatalog, ctx: RebuildContext) -> Placement:
        """Resolve namespace, category name, weight and grouping of a symbol."""
        attrs = symbol.attributes
        ns, ns_info = catalog.namespace_info(symbol)

        weight, ok = parse_weight(attrs.weight)
        if not ok:
            ctx.report(
                DiagnosticKind.MALFORMED_WEIGHT,
                f"block {attrs.block_id}: malformed weight {attrs.weight!r}, using {weight}",
                block_id=attrs.block_id,
                symbol=symbol.qualified_name,
            )

        if ns_info and ns_info.attributes.block:
            category_name = ns_info.attributes.block
        else:
            category_name = capitalize(ns)

        return Placement(
            namespace=ns.lower(),
            category_name=category_name,
            weight=weight,
            group=attrs.group,
            subcategory=attrs.subcategory,
            advanced=bool(ns_info and ns_info.attributes.advanced),
            more=attrs.advanced,
            namespace_symbol=ns_info,
        )


def _arities(spec: str, handler_count: int) -> list[int]:
    """Declared arities that fit the handler, in declaration order."""
    arities = []
    for raw in spec.split(";"):
        try:
            value = int(raw.strip())
        except ValueError:
            continue
        if 0 <= value <= handler_count:
            arities.append(value)
    return arities


def _variant_mutation(mutate: Optional[str], tag: str) -> dict[str, str]:
    if mutate == "objectdestructuring":
        return {"callbackproperties": tag, "renamemap": "{}"}
    if mutate == "restparameter":
        return {"numargs": tag}
    return {"value": tag}
