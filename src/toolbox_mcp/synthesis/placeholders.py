"""Default-value placeholders and dropdown sources for block parameters."""

import copy
import json
from typing import Iterator, Optional, Union

from ..catalog import Parameter, Symbol, SymbolCatalog, capitalize
from ..catalog.apis import COMBINED_TYPE
from ..catalog.symbols import ENUM, default_text
from ..tree import ToolboxTree
from .compile_info import CompileInfo
from .descriptors import DropdownOption, FieldValue, InputValue, Placeholder, ToolboxBlock
from .templates import parse_block_template, template_parameters


# type -> (field name, placeholder block, default value)
TYPE_DEFAULTS = {
    "string": ("TEXT", "text", ""),
    "number": ("NUM", "math_number", "0"),
    "boolean": ("BOOL", "logic_boolean", "false"),
    "Array": ("VAR", "variables_get", "list"),
}

SLIDER_BLOCK = "math_number_minmax"
VARIABLE_BLOCK = "variables_get"
FIELD_VALUE_SHADOW = "value"

DROPDOWN_IMAGE_SIZE = 36


def _decode_default(value) -> Optional[str]:
    value = default_text(value)
    # Quoted defaults come straight from the declaration ("\"hello\"")
    if value and value.startswith('"'):
        try:
            return json.loads(value)
        except ValueError:
            return value
    return value


def create_placeholder(
    catalog: SymbolCatalog,
    param: Parameter,
    shadow_id: Optional[str] = None,
    default: Optional[str] = None,
) -> Union[InputValue, FieldValue]:
    """Build the pre-filled value for one parameter.

    Numbers whose shadow is "value" become a bare numeric field on the block;
    everything else becomes a value input holding a placeholder block.
    """
    default_value = _decode_default(default or param.default_value)
    shadow_id = shadow_id or param.shadow_block_id

    if param.type == "number" and shadow_id == FIELD_VALUE_SHADOW:
        return FieldValue(name=param.definition_name, value="0")

    is_variable = shadow_id == VARIABLE_BLOCK
    type_info = TYPE_DEFAULTS.get(param.type)
    block_type = shadow_id or (type_info[1] if type_info else None) or param.type
    placeholder = Placeholder(block_type=block_type, shadow=not is_variable)

    if type_info and (not shadow_id or type_info[1] == shadow_id or shadow_id == SLIDER_BLOCK):
        if shadow_id == VARIABLE_BLOCK:
            field_name = "VAR"
        elif shadow_id == SLIDER_BLOCK:
            field_name = "SLIDER"
        else:
            field_name = type_info[0]

        value = default_value or type_info[2]
        if param.type == "boolean":
            value = value.upper()
        placeholder.fields.append(FieldValue(name=field_name, value=value))

    elif default_value:
        if is_variable:
            placeholder.fields.append(FieldValue(name="VAR", value=default_value))
        elif shadow_id:
            shadow_info = catalog.by_block_id.get(shadow_id)
            if shadow_info and shadow_info.attributes.block:
                names = template_parameters(parse_block_template(shadow_info.attributes.block))
                if names:
                    placeholder.fields.append(FieldValue(name=names[0], value=default_value))
        else:
            placeholder.fields.append(FieldValue(name=param.definition_name, value=default_value))

    return InputValue(name=param.definition_name, shadow=placeholder)


def _needs_placeholder(param: Parameter) -> bool:
    return not param.is_optional and (
        param.type in ("string", "number", "boolean")
        or bool(param.shadow_block_id)
        or bool(param.default_value)
    )


def build_toolbox_block(
    catalog: SymbolCatalog,
    symbol: Symbol,
    comp: CompileInfo,
    default_gap: Optional[int] = None,
) -> ToolboxBlock:
    """Create the toolbox payload for a symbol: placeholders and handler fields."""
    attrs = symbol.attributes
    gap = attrs.block_gap or (str(default_gap) if default_gap else None)
    block = ToolboxBlock(block_id=attrs.block_id, gap=gap)

    if comp.this_parameter:
        t = comp.this_parameter
        this_value = create_placeholder(
            catalog, t, t.shadow_block_id or VARIABLE_BLOCK, t.default_value or t.definition_name
        )
        _attach(block, this_value)

    for param in comp.parameters:
        if not _needs_placeholder(param):
            continue

        mutation: dict[str, str] = {}
        if param.range:
            value = create_placeholder(catalog, param, SLIDER_BLOCK)
            mutation["min"] = _number_text(param.range.min)
            mutation["max"] = _number_text(param.range.max)
            mutation["label"] = capitalize(param.actual_name)
            if param.field_options.get("step"):
                mutation["step"] = str(param.field_options["step"])
            if param.field_options.get("color"):
                mutation["color"] = str(param.field_options["color"])
        else:
            value = create_placeholder(catalog, param)

        if param.field_options:
            mutation["customfield"] = json.dumps(param.field_options, sort_keys=True)

        if mutation and isinstance(value, InputValue) and value.shadow:
            value.shadow.mutation.update(mutation)
        _attach(block, value)

    for arg in comp.handler_args:
        block.fields.append(FieldValue(name="HANDLER_" + arg.name, value=arg.name))

    return block


def _attach(block: ToolboxBlock, value: Union[InputValue, FieldValue]):
    if isinstance(value, FieldValue):
        block.fields.append(value)
    else:
        block.inputs.append(value)


def _number_text(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def dropdown_source(catalog: SymbolCatalog, symbol: Symbol, param: Parameter) -> Optional[str]:
    """Which dropdown source feeds this parameter, or None for a plain input."""
    type_info = catalog.lookup(param.type)
    if type_info and type_info.kind == ENUM:
        return "enum"
    if type_info and type_info.attributes.fixed_instances and not param.shadow_block_id:
        return "fixed_instance"
    if symbol.attributes.constant_shim:
        return "constant"
    if param.type == COMBINED_TYPE:
        return "combined"
    return None


def dropdown_options(
    catalog: SymbolCatalog,
    symbol: Symbol,
    param: Parameter,
    source: str,
) -> list[DropdownOption]:
    """Resolve the ordered options of a dropdown parameter.

    Options keep catalog order, except that an option matching the
    parameter's default value is moved to the front.
    """
    if source == "enum":
        values = catalog.enum_values(param.type)
    elif source == "fixed_instance":
        values = catalog.fixed_instance_values(catalog.lookup(param.type).qualified_name)
    elif source == "combined":
        values = catalog.combined_values(symbol)
    else:
        values = catalog.constant_values(symbol.qualified_name)

    options = [_option(v) for v in values]

    default = param.default_value or symbol.attributes.param_defaults.get(param.actual_name)
    if default:
        default = _decode_default(default)
        for i, opt in enumerate(options):
            if opt.value == default or opt.value.rsplit(".", 1)[-1] == default:
                options.insert(0, options.pop(i))
                break

    return options


def _option(value: Symbol) -> DropdownOption:
    attrs = value.attributes
    label = attrs.block or attrs.block_id or value.name
    if attrs.block_combine:
        label = label.replace("@set", "")

    qualified = f"{value.namespace}.{value.name}"
    if attrs.icon_url or attrs.block_image:
        src = attrs.icon_url or f"blocks/{value.namespace.lower()}/{value.name.lower()}.png"
        return DropdownOption(
            label={
                "src": src,
                "alt": label,
                "width": DROPDOWN_IMAGE_SIZE,
                "height": DROPDOWN_IMAGE_SIZE,
                "value": value.name,
            },
            value=qualified,
        )
    return DropdownOption(label=label, value=qualified)


def _empty_placeholders(block: ToolboxBlock) -> Iterator[Placeholder]:
    for inp in block.inputs:
        shadow = inp.shadow
        if shadow is not None and shadow.shadow and not (shadow.fields or shadow.mutation or shadow.inputs):
            yield shadow
        if inp.block is not None:
            yield from _empty_placeholders(inp.block)


def fill_empty_placeholders(tree: ToolboxTree) -> int:
    """Give empty placeholders the content of the toolbox leaf of the same block type.

    A `turtle_color` placeholder with no content takes the fields, inputs and
    mutation of the first `turtle_color` leaf in the tree. Descriptors are
    shared with the block cache, so a leaf is copied before any of its
    placeholders is filled. Returns the number of placeholders filled.
    """
    sources: dict[str, ToolboxBlock] = {}
    for handle in tree.leaves():
        leaf = tree.node(handle)
        if isinstance(leaf.descriptor, ToolboxBlock):
            sources.setdefault(leaf.block_id, leaf.descriptor)

    filled = 0
    for handle in tree.leaves():
        leaf = tree.node(handle)
        if not isinstance(leaf.descriptor, ToolboxBlock):
            continue
        if not any(p.block_type in sources for p in _empty_placeholders(leaf.descriptor)):
            continue

        leaf.descriptor = copy.deepcopy(leaf.descriptor)
        for placeholder in list(_empty_placeholders(leaf.descriptor)):
            source = sources.get(placeholder.block_type)
            if source is None:
                continue
            placeholder.fields = copy.deepcopy(source.fields)
            placeholder.inputs = copy.deepcopy(source.inputs)
            placeholder.mutation = dict(source.mutation)
            filled += 1
    return filled
