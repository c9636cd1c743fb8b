"""Load catalog snapshots from JSON into Symbol dataclasses."""

import json
from dataclasses import fields
from pathlib import Path
from typing import Union

from .apis import SymbolCatalog
from .symbols import Parameter, ParameterRange, Symbol, SymbolAttributes, default_text


_ATTRIBUTE_FIELDS = {f.name for f in fields(SymbolAttributes)}


def _parameter_from_dict(d: dict) -> Parameter:
    rng = d.get("range")
    return Parameter(
        definition_name=d.get("definition_name") or d["actual_name"],
        actual_name=d.get("actual_name") or d["definition_name"],
        type=d.get("type", ""),
        is_optional=d.get("is_optional", False),
        shadow_block_id=d.get("shadow_block_id"),
        default_value=default_text(d.get("default_value")),
        range=ParameterRange(min=rng["min"], max=rng["max"]) if rng else None,
        field_options=d.get("field_options") or {},
        field_editor=d.get("field_editor"),
    )


def _attributes_from_dict(d: dict) -> SymbolAttributes:
    # Unknown keys are dropped so newer catalogs still load
    return SymbolAttributes(**{k: v for k, v in d.items() if k in _ATTRIBUTE_FIELDS})


def symbol_from_dict(d: dict) -> Symbol:
    """Convert a catalog dict into a Symbol."""
    qualified_name = d["qualified_name"]
    namespace = d.get("namespace")
    if namespace is None:
        namespace = qualified_name.rsplit(".", 1)[0] if "." in qualified_name else ""
    return Symbol(
        qualified_name=qualified_name,
        name=d.get("name") or qualified_name.rsplit(".", 1)[-1],
        namespace=namespace,
        kind=d.get("kind", "function"),
        return_type=d.get("return_type") or "void",
        parameters=[_parameter_from_dict(p) for p in d.get("parameters", [])],
        attributes=_attributes_from_dict(d.get("attributes", {})),
        extends_types=d.get("extends_types", []),
        combined_properties=d.get("combined_properties", []),
        package=d.get("package"),
    )


def catalog_from_dict(data: dict) -> SymbolCatalog:
    """Build a catalog from a {"symbols": [...]} payload."""
    return SymbolCatalog(symbols=[symbol_from_dict(s) for s in data.get("symbols", [])])


def load_catalog(path: Union[str, Path]) -> SymbolCatalog:
    """Read a catalog JSON file."""
    with open(Path(path).expanduser(), "r", encoding="utf-8") as f:
        data = json.load(f)
    return catalog_from_dict(data)
