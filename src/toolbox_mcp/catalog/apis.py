"""Catalog lookups: qualified-name index, subtype checks and dropdown sources."""

import re
from dataclasses import dataclass, field
from typing import Optional

from .symbols import Symbol, ENUM_MEMBER, VARIABLE


# Matches arrays and tuple types
ARRAY_TYPE_RE = re.compile(r"^(?:Array<.+>)|(?:.+\[\])|(?:\[.+\])$")

# Callback parameter shapes, e.g. "() => void" or "(x: number) => void"
ARROW_FUNCTION_RE = re.compile(r"^\([^)]*\)\s*=>")

HANDLER_TYPE = "() => void"
COMBINED_TYPE = "@combined@"


def is_array_type(type_name: str) -> bool:
    """Check whether a type name denotes an array or tuple."""
    return bool(type_name) and bool(ARRAY_TYPE_RE.match(type_name))


def has_arrow_function(symbol: Symbol) -> bool:
    """Check whether any parameter of the symbol takes a callback."""
    return any(ARROW_FUNCTION_RE.match(p.type or "") for p in symbol.parameters)


@dataclass
class SymbolCatalog:
    """An ordered snapshot of catalog symbols with a qualified-name index."""
    symbols: list[Symbol] = field(default_factory=list)

    def __post_init__(self):
        self.by_qname: dict[str, Symbol] = {}
        self.by_block_id: dict[str, Symbol] = {}
        for sym in self.symbols:
            # First declaration wins, later duplicates stay reachable through `symbols`
            self.by_qname.setdefault(sym.qualified_name, sym)
            if sym.attributes.block_id:
                self.by_block_id.setdefault(sym.attributes.block_id, sym)

    @property
    def blocks(self) -> list[Symbol]:
        """Symbols that declare a block id, in catalog order."""
        return [s for s in self.symbols if s.attributes.block_id]

    def lookup(self, qname: Optional[str]) -> Optional[Symbol]:
        if not qname:
            return None
        return self.by_qname.get(qname)

    def is_subtype(self, specific: str, general: str) -> bool:
        """True when `specific` equals `general` or declares it as a supertype."""
        if specific == general:
            return True
        info = self.by_qname.get(specific)
        if info and info.extends_types:
            return general in info.extends_types
        return False

    def enum_values(self, enum_name: str) -> list[Symbol]:
        """Enum members in declaration order."""
        return [s for s in self.symbols if s.namespace == enum_name and s.kind == ENUM_MEMBER]

    def fixed_instance_values(self, qname: str) -> list[Symbol]:
        """Fixed instances whose type is compatible with `qname`."""
        return [
            s for s in self.symbols
            if s.kind == VARIABLE
            and s.attributes.fixed_instance
            and self.is_subtype(s.return_type, qname)
        ]

    def constant_values(self, qname: str) -> list[Symbol]:
        """Constants tagged with the block identity `qname`."""
        return [s for s in self.symbols if s.attributes.block_identity == qname]

    def combined_values(self, symbol: Symbol) -> list[Symbol]:
        """Values listed explicitly on a combined-property symbol."""
        values = []
        for qname in symbol.combined_properties:
            sym = self.by_qname.get(qname)
            if sym:
                values.append(sym)
        return values

    def namespace_info(self, symbol: Symbol) -> tuple[str, Optional[Symbol]]:
        """Resolve the effective top-level namespace and its declaring symbol."""
        ns = (symbol.attributes.block_namespace or symbol.namespace or "").split(".")[0]
        return ns, self.by_qname.get(ns)
