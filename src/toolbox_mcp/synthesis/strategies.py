"""Block definition synthesis, one routine per synthesis strategy."""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from ..catalog import Symbol, SymbolCatalog, capitalize, has_arrow_function, is_array_type, HANDLER_TYPE
from ..catalog.apis import ARROW_FUNCTION_RE
from ..config import ToolboxConfig
from ..context import RebuildContext
from ..diagnostics import DiagnosticKind
from .compile_info import CompileInfo
from .descriptors import BlockDefinition, FieldSpec, InputSpec, OutputShape
from .placeholders import dropdown_options, dropdown_source
from .templates import parse_block_template, remove_outer_space, split_inputs


# Prefixes keep expanded-input names clear of the generated ones
OPTIONAL_DUMMY_INPUT_PREFIX = "0_optional_dummy"
OPTIONAL_INPUT_WITH_FIELD_PREFIX = "0_optional_field"

DEFAULT_BLOCK_COLOR = 255

PRIMITIVE_CHECKS = {"number": "Number", "string": "String", "boolean": "Boolean"}


class SynthesisStrategy(str, Enum):
    PLAIN = "plain"
    MUTATED = "mutated"
    DEFAULT_INSTANCE = "default_instance"
    EXPANDABLE = "expandable"
    FIXED_HANDLER = "fixed_handler"
    VARIABLE_ARITY_HANDLER = "variable_arity_handler"


def select_strategy(symbol: Symbol, comp: CompileInfo) -> SynthesisStrategy:
    """Pick the synthesis strategy for a symbol; the first matching attribute wins."""
    attrs = symbol.attributes
    if attrs.mutate:
        return SynthesisStrategy.MUTATED
    if attrs.default_instance:
        return SynthesisStrategy.DEFAULT_INSTANCE
    if attrs.expanded_def and attrs.expandable_argument_mode != "disabled":
        return SynthesisStrategy.EXPANDABLE
    if comp.handler_args:
        if attrs.optional_variable_args:
            return SynthesisStrategy.VARIABLE_ARITY_HANDLER
        return SynthesisStrategy.FIXED_HANDLER
    return SynthesisStrategy.PLAIN


@dataclass
class DefinitionInputs:
    """Everything a strategy routine needs to know about the symbol."""
    catalog: SymbolCatalog
    symbol: Symbol
    comp: CompileInfo
    color: object
    ctx: RebuildContext


# ----- template -> inputs -----

def default_template(symbol: Symbol, comp: CompileInfo) -> str:
    """Template for symbols that declare none: name followed by every parameter."""
    parts = []
    if comp.this_parameter:
        parts.append("%this")
    parts.append(symbol.name)
    parts.extend(f"%{p.definition_name}" for p in symbol.parameters if not ARROW_FUNCTION_RE.match(p.type or ""))
    return " ".join(parts)


def build_inputs(src: DefinitionInputs, template: str, expanded: bool = False) -> list[InputSpec]:
    """Turn a block template into input rows with fields and type checks."""
    symbol = src.symbol
    comp = src.comp
    attrs = symbol.attributes

    inputs: list[InputSpec] = []
    anon_index = 0
    first_param = not expanded and comp.this_parameter is not None

    for row in split_inputs(parse_block_template(template)):
        fields: list[FieldSpec] = []
        input_name: Optional[str] = None
        input_check = None
        has_parameter = False

        for part in row:
            if part.kind != "param":
                text = remove_outer_space(part.text)
                if text:
                    fields.append(FieldSpec(kind="label", text=text, style=list(part.style)))
                continue

            pr = comp.this_parameter if first_param else comp.definition_name_to_param.get(part.name)
            first_param = False
            if pr is None:
                src.ctx.report(
                    DiagnosticKind.UNKNOWN_PARAMETER,
                    f"block {attrs.block_id}: unknown parameter {part.name}",
                    block_id=attrs.block_id,
                    symbol=symbol.qualified_name,
                )
                continue

            has_parameter = True
            def_name = pr.definition_name
            custom_field = pr.field_editor or attrs.param_field_editor.get(pr.actual_name)
            editor_options = {
                "colour": src.color,
                "label": capitalize(def_name),
                "type": pr.type,
            }
            editor_options.update(attrs.param_field_editor_options.get(pr.actual_name, {}))

            source = dropdown_source(src.catalog, symbol, pr)
            if source:
                options = dropdown_options(src.catalog, symbol, pr, source)
                if not options:
                    src.ctx.report(
                        DiagnosticKind.EMPTY_DROPDOWN,
                        f"block {attrs.block_id}: no {source} values found for {pr.type}",
                        block_id=attrs.block_id,
                        symbol=symbol.qualified_name,
                    )
                    continue
                if custom_field:
                    editor_options["default"] = attrs.param_defaults.get(pr.actual_name, "")
                    fields.append(FieldSpec(
                        kind="custom", name=def_name, options=options,
                        editor=custom_field, editor_options=editor_options,
                    ))
                else:
                    fields.append(FieldSpec(kind="dropdown", name=def_name, options=options))

            elif custom_field:
                editor_options["default"] = attrs.param_defaults.get(pr.actual_name, "")
                fields.append(FieldSpec(
                    kind="custom", name=def_name, editor=custom_field, editor_options=editor_options,
                ))

            else:
                input_name = def_name
                if pr is comp.this_parameter:
                    input_check = pr.type
                elif pr.type == "number" and pr.shadow_block_id == "value":
                    input_name = None
                    fields.append(FieldSpec(kind="number", name=def_name, text="0"))
                elif pr.type in PRIMITIVE_CHECKS:
                    input_check = PRIMITIVE_CHECKS[pr.type]
                elif pr.type == "T":
                    input_check = None
                elif is_array_type(pr.type):
                    input_check = ["Array", pr.type]
                else:
                    input_check = pr.type

        if input_name:
            inputs.append(InputSpec(kind="value", name=input_name, check=input_check, fields=fields))
        elif expanded:
            prefix = OPTIONAL_INPUT_WITH_FIELD_PREFIX if has_parameter else OPTIONAL_DUMMY_INPUT_PREFIX
            inputs.append(InputSpec(kind="dummy", name=f"{prefix}{anon_index}", check=input_check, fields=fields))
            anon_index += 1
        else:
            inputs.append(InputSpec(kind="dummy", check=input_check, fields=fields))

    return inputs


# ----- strategy routines -----
# Each routine decorates the definition and returns whether the block
# carries handler arguments.

def _plain(src: DefinitionInputs, definition: BlockDefinition) -> bool:
    return False


def _mutated(src: DefinitionInputs, definition: BlockDefinition) -> bool:
    definition.mutation = {"type": src.symbol.attributes.mutate}
    return False


def _default_instance(src: DefinitionInputs, definition: BlockDefinition) -> bool:
    definition.mutation = {
        "type": "defaultInstance",
        "instance": src.symbol.attributes.default_instance,
    }
    return False


def _expandable(src: DefinitionInputs, definition: BlockDefinition) -> bool:
    attrs = src.symbol.attributes
    definition.expanded_inputs = build_inputs(src, attrs.expanded_def, expanded=True)
    definition.mutation = {
        "type": "expandable",
        "toggle": attrs.expandable_argument_mode == "toggle",
    }
    return False


def _fixed_handler(src: DefinitionInputs, definition: BlockDefinition) -> bool:
    definition.inputs.append(InputSpec(kind="dummy", fields=[
        FieldSpec(kind="variable", name="HANDLER_" + arg.name, text=arg.name)
        for arg in src.comp.handler_args
    ]))
    return True


def _variable_arity_handler(src: DefinitionInputs, definition: BlockDefinition) -> bool:
    definition.mutation = {
        "type": "variableArgs",
        "numargs": len(src.comp.handler_args),
        "args": [arg.name for arg in src.comp.handler_args],
    }
    return True


STRATEGY_ROUTINES: dict[SynthesisStrategy, Callable[[DefinitionInputs, BlockDefinition], bool]] = {
    SynthesisStrategy.PLAIN: _plain,
    SynthesisStrategy.MUTATED: _mutated,
    SynthesisStrategy.DEFAULT_INSTANCE: _default_instance,
    SynthesisStrategy.EXPANDABLE: _expandable,
    SynthesisStrategy.FIXED_HANDLER: _fixed_handler,
    SynthesisStrategy.VARIABLE_ARITY_HANDLER: _variable_arity_handler,
}


# ----- output -----

def output_shape(catalog: SymbolCatalog, symbol: Symbol) -> OutputShape:
    """Derive the output check and statement chaining from the return type."""
    rt = symbol.return_type or "void"
    shape = OutputShape(shape="hexagonal" if rt == "boolean" else "round")

    if rt in PRIMITIVE_CHECKS:
        shape.has_output = True
        shape.check = [PRIMITIVE_CHECKS[rt]]
    elif rt == "void":
        pass
    elif rt == "T":
        shape.has_output = True
    else:
        check = ["Array"] if is_array_type(rt) else []
        check.append(rt)
        info = catalog.lookup(rt)
        if info:
            for supertype in info.extends_types:
                if supertype not in check:
                    check.append(supertype)
        shape.has_output = True
        shape.check = check

    chains = rt == "void" and not (has_arrow_function(symbol) and not symbol.attributes.handler_statement)
    shape.previous_statement = chains
    shape.next_statement = chains
    return shape


def block_color(catalog: SymbolCatalog, symbol: Symbol, config: ToolboxConfig):
    ns, ns_info = catalog.namespace_info(symbol)
    return (
        symbol.attributes.color
        or (ns_info.attributes.color if ns_info else None)
        or config.namespace_color(ns)
        or DEFAULT_BLOCK_COLOR
    )


def help_url(symbol: Symbol) -> Optional[str]:
    attrs = symbol.attributes
    if attrs.help:
        return "/reference/" + attrs.help.lstrip("/")
    if symbol.package:
        anchor = symbol.qualified_name.lower().split(".")
        if anchor and anchor[0] == symbol.package:
            anchor.pop(0)
        return f"/pkg/{symbol.package}#{'-'.join(anchor)}"
    return None


def synthesize_definition(
    catalog: SymbolCatalog,
    symbol: Symbol,
    comp: CompileInfo,
    config: ToolboxConfig,
    ctx: RebuildContext,
) -> BlockDefinition:
    """Compile the block definition for one symbol."""
    attrs = symbol.attributes
    strategy = select_strategy(symbol, comp)
    color = block_color(catalog, symbol, config)
    src = DefinitionInputs(catalog=catalog, symbol=symbol, comp=comp, color=color, ctx=ctx)

    definition = BlockDefinition(
        block_id=attrs.block_id,
        strategy=strategy.value,
        color=color,
        tooltip=attrs.js_doc,
        help_url=help_url(symbol),
        deletable=not attrs.undeletable,
        code_card={
            "name": f"{symbol.namespace}.{symbol.name}",
            "shortName": symbol.name,
            "description": attrs.js_doc,
            "url": "reference/" + attrs.help.lstrip("/") if attrs.help else None,
        },
    )
    definition.inputs = build_inputs(src, attrs.block or default_template(symbol, comp))

    has_handler = STRATEGY_ROUTINES[strategy](src, definition)

    if attrs.image_literal:
        for row in range(5):
            definition.inputs.append(InputSpec(kind="dummy", fields=[
                FieldSpec(kind="checkbox", name=f"LED{col}{row}", text="FALSE")
                for col in range(attrs.image_literal * 5)
            ]))

    if attrs.inline_input_mode == "external":
        definition.inputs_inline = False
    elif attrs.inline_input_mode == "inline":
        definition.inputs_inline = True
    else:
        definition.inputs_inline = not symbol.parameters or (
            len(symbol.parameters) < 4 and not attrs.image_literal
        )

    body = any(p.type == HANDLER_TYPE for p in symbol.parameters)
    if body or has_handler:
        definition.inputs.append(InputSpec(kind="statement", name="HANDLER", check="null"))
        definition.inputs_inline = True

    definition.output = output_shape(catalog, symbol)
    return definition
