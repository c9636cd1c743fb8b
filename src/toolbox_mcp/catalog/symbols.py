"""Symbol dataclasses describing the catalog handed to the toolbox builder."""

import json
import math
from dataclasses import dataclass, field
from typing import Any, Optional


# Symbol kinds as they appear in catalog files
FUNCTION = "function"
METHOD = "method"
PROPERTY = "property"
VARIABLE = "variable"
ENUM_MEMBER = "enum_member"
ENUM = "enum"
CLASS = "class"
MODULE = "module"

SYMBOL_KINDS = (FUNCTION, METHOD, PROPERTY, VARIABLE, ENUM_MEMBER, ENUM, CLASS, MODULE)

DEFAULT_WEIGHT = 50


@dataclass
class ParameterRange:
    """Numeric bounds that turn a number input into a slider."""
    min: float
    max: float


@dataclass
class Parameter:
    """A parameter of a callable symbol as seen by the block synthesizer."""
    definition_name: str            # Name used in the block template (e.g. "value")
    actual_name: str                # Name in the declaration (e.g. "value")
    type: str                       # "number" | "string" | "boolean" | "() => void" | type qname
    is_optional: bool = False
    shadow_block_id: Optional[str] = None
    default_value: Optional[str] = None
    range: Optional[ParameterRange] = None
    field_options: dict[str, Any] = field(default_factory=dict)  # May carry "step" and "color"
    field_editor: Optional[str] = None


@dataclass
class SymbolAttributes:
    """Declarative block metadata attached to a symbol."""
    weight: Any = None              # Raw value; normalized by parse_weight()
    color: Optional[str] = None
    block_id: Optional[str] = None
    block: Optional[str] = None     # Block template ("set %sprite x to %value") or namespace label
    block_namespace: Optional[str] = None
    subcategory: Optional[str] = None
    subcategories: list[str] = field(default_factory=list)
    advanced: bool = False
    deprecated: bool = False
    block_hidden: bool = False
    block_builtin: bool = False
    debug: bool = False

    # Mutation and variants
    mutate: Optional[str] = None
    mutate_defaults: Optional[str] = None        # Semicolon-separated variant tags
    default_instance: Optional[str] = None
    expanded_def: Optional[str] = None
    expandable_argument_mode: Optional[str] = None  # "enabled" | "disabled" | "toggle"
    optional_variable_args: bool = False
    toolbox_variable_args: Optional[str] = None  # Semicolon-separated arities, e.g. "0;1;2"
    handler_statement: bool = False
    handler_args: list[str] = field(default_factory=list)
    block_set_variable: Optional[str] = None     # Store-result wrapping; "" means derive from type

    # Placement
    block_gap: Optional[str] = None
    group: Optional[str] = None
    groups: list[str] = field(default_factory=list)
    group_icons: list[str] = field(default_factory=list)
    label_line_width: Optional[str] = None
    icon: Optional[str] = None

    # Help
    help: Optional[str] = None
    js_doc: str = ""

    # Dropdown sources
    fixed_instances: bool = False
    fixed_instance: bool = False
    block_identity: Optional[str] = None
    constant_shim: bool = False
    block_combine: bool = False
    icon_url: Optional[str] = None
    block_image: bool = False

    # Per-parameter overrides keyed by actual parameter name
    param_defaults: dict[str, str] = field(default_factory=dict)
    param_field_editor: dict[str, str] = field(default_factory=dict)
    param_field_editor_options: dict[str, dict] = field(default_factory=dict)

    inline_input_mode: Optional[str] = None     # "inline" | "external"
    undeletable: bool = False
    image_literal: int = 0


@dataclass
class Symbol:
    """A callable or value symbol from the catalog."""
    qualified_name: str             # Fully qualified (e.g. "loops.forever")
    name: str                       # Short name (e.g. "forever")
    namespace: str                  # Declaring namespace (e.g. "loops")
    kind: str                       # One of SYMBOL_KINDS
    return_type: str = "void"
    parameters: list[Parameter] = field(default_factory=list)
    attributes: SymbolAttributes = field(default_factory=SymbolAttributes)
    extends_types: list[str] = field(default_factory=list)   # Declared supertypes
    combined_properties: list[str] = field(default_factory=list)
    package: Optional[str] = None

    @property
    def block_id(self) -> Optional[str]:
        return self.attributes.block_id

    @property
    def is_instance(self) -> bool:
        return self.kind in (METHOD, PROPERTY)


def parse_weight(value: Any, default: int = DEFAULT_WEIGHT) -> tuple[float, bool]:
    """Normalize a raw weight attribute.

    Returns (weight, ok). Missing weights are fine and fall back silently;
    values that cannot be read as a number also fall back but report ok=False.
    Zero is treated as missing, matching how catalogs leave weights unset.
    """
    if value is None or value == "":
        return default, True
    if isinstance(value, bool):
        return default, False
    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            return default, False
        return (value or default), True
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return default, False
    if not math.isfinite(parsed):
        return default, False
    if parsed.is_integer():
        parsed = int(parsed)
    return (parsed or default), True


def capitalize(text: str) -> str:
    """Upper-case the first character only."""
    if not text:
        return text
    return text[0].upper() + text[1:]


def default_text(value: Any) -> Optional[str]:
    """Defaults are declaration text; JSON literals keep their source spelling (true, 5)."""
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)
