"""Synthesis package: block templates, placeholders, definitions and leaves."""

from .descriptors import (
    BlockDefinition,
    DropdownOption,
    FieldSpec,
    FieldValue,
    InputSpec,
    InputValue,
    OutputShape,
    Placeholder,
    ToolboxBlock,
)
from .compile_info import CompileInfo, HandlerArg, compile_info
from .placeholders import fill_empty_placeholders
from .strategies import SynthesisStrategy, select_strategy, synthesize_definition
from .synthesizer import (
    BlockDescriptorSynthesizer,
    Placement,
    SynthesizedBlock,
    RESERVED_WORDS,
    content_hash,
)

__all__ = [
    "BlockDefinition",
    "DropdownOption",
    "FieldSpec",
    "FieldValue",
    "InputSpec",
    "InputValue",
    "OutputShape",
    "Placeholder",
    "ToolboxBlock",
    "CompileInfo",
    "HandlerArg",
    "compile_info",
    "fill_empty_placeholders",
    "SynthesisStrategy",
    "select_strategy",
    "synthesize_definition",
    "BlockDescriptorSynthesizer",
    "Placement",
    "SynthesizedBlock",
    "RESERVED_WORDS",
    "content_hash",
]
