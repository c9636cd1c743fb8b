"""Catalog package: symbol model, lookups and JSON loading."""

from .symbols import (
    Symbol,
    SymbolAttributes,
    Parameter,
    ParameterRange,
    DEFAULT_WEIGHT,
    parse_weight,
    capitalize,
)
from .apis import SymbolCatalog, is_array_type, has_arrow_function, HANDLER_TYPE, COMBINED_TYPE
from .loader import symbol_from_dict, catalog_from_dict, load_catalog

__all__ = [
    "Symbol",
    "SymbolAttributes",
    "Parameter",
    "ParameterRange",
    "DEFAULT_WEIGHT",
    "parse_weight",
    "capitalize",
    "SymbolCatalog",
    "is_array_type",
    "has_arrow_function",
    "HANDLER_TYPE",
    "COMBINED_TYPE",
    "symbol_from_dict",
    "catalog_from_dict",
    "load_catalog",
]
