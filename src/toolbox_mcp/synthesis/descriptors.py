"""Descriptor dataclasses produced by the block synthesizer."""

from dataclasses import dataclass, field, asdict
from typing import Any, Optional, Union


@dataclass
class FieldValue:
    """A named field value inside a toolbox block or placeholder."""
    name: str
    value: str
    variable_type: Optional[str] = None


@dataclass
class Placeholder:
    """A default nested block pre-filled into an input slot."""
    block_type: str                 # "text", "math_number", "math_number_minmax", ...
    fields: list[FieldValue] = field(default_factory=list)
    shadow: bool = True             # False for real blocks such as variables_get
    mutation: dict[str, str] = field(default_factory=dict)
    color: Optional[str] = None
    inputs: list["InputValue"] = field(default_factory=list)   # Copied from a matching toolbox block


@dataclass
class InputValue:
    """A value input of a toolbox block, holding a placeholder and/or a nested block."""
    name: str
    shadow: Optional[Placeholder] = None
    block: Optional["ToolboxBlock"] = None


@dataclass
class ToolboxBlock:
    """The toolbox payload of one leaf: which block, pre-filled with what."""
    block_id: str
    gap: Optional[str] = None
    inputs: list[InputValue] = field(default_factory=list)
    fields: list[FieldValue] = field(default_factory=list)
    mutation: dict[str, str] = field(default_factory=dict)
    variant: Optional[str] = None   # Variant tag or arity this leaf was synthesized for

    def get_input(self, name: str) -> Optional[InputValue]:
        for inp in self.inputs:
            if inp.name == name:
                return inp
        return None

    def get_field(self, name: str) -> Optional[FieldValue]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class DropdownOption:
    label: Union[str, dict]         # Text, or an image spec {src, alt, width, height, value}
    value: str


@dataclass
class FieldSpec:
    """A field on a compiled block definition."""
    kind: str                       # "label" | "dropdown" | "number" | "custom" | "variable" | "checkbox"
    name: Optional[str] = None
    text: Optional[str] = None
    options: list[DropdownOption] = field(default_factory=list)
    editor: Optional[str] = None
    editor_options: dict[str, Any] = field(default_factory=dict)
    style: list[str] = field(default_factory=list)


@dataclass
class InputSpec:
    """An input row on a compiled block definition."""
    kind: str                       # "value" | "dummy" | "statement"
    name: Optional[str] = None
    check: Union[str, list[str], None] = None
    fields: list[FieldSpec] = field(default_factory=list)


@dataclass
class OutputShape:
    """What a block plugs into: typed output, or previous/next chaining."""
    has_output: bool = False
    check: Optional[list[str]] = None   # None with has_output means any type
    previous_statement: bool = False
    next_statement: bool = False
    shape: str = "round"                # "round" | "hexagonal"


@dataclass
class BlockDefinition:
    """The compiled block: inputs, output and look."""
    block_id: str
    strategy: str
    color: Any
    inputs: list[InputSpec] = field(default_factory=list)
    expanded_inputs: list[InputSpec] = field(default_factory=list)
    output: OutputShape = field(default_factory=OutputShape)
    inputs_inline: bool = True
    mutation: dict[str, Any] = field(default_factory=dict)
    tooltip: str = ""
    help_url: Optional[str] = None
    deletable: bool = True
    code_card: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return asdict(self)
