"""Tests for block synthesis."""

import pytest

from toolbox_mcp.context import RebuildContext
from toolbox_mcp.diagnostics import DiagnosticKind
from toolbox_mcp.storage import BlockCache
from toolbox_mcp.synthesis import (
    BlockDescriptorSynthesizer,
    SynthesisStrategy,
    compile_info,
    select_strategy,
)
from toolbox_mcp.synthesis.strategies import OPTIONAL_DUMMY_INPUT_PREFIX

from factories import block, catalog, namespace, param


def _synthesize(cat, qname, synth=None, ctx=None):
    synth = synth or BlockDescriptorSynthesizer()
    ctx = ctx or RebuildContext(1)
    return synth.synthesize(cat.lookup(qname), cat, ctx), ctx


def _fields(definition, kind):
    return [f for inp in definition.inputs for f in inp.fields if f.kind == kind]


def test_plain_block_definition():
    """Test a plain block gets labels, typed inputs and statement chaining."""
    cat = catalog(
        namespace("device", color="#00ff00"),
        block("device.show", "device_show", template="show number %value",
              params=[param("value", "number")], help="device/show"),
    )

    result, ctx = _synthesize(cat, "device.show")
    definition = result.definition

    assert definition.strategy == SynthesisStrategy.PLAIN.value
    assert definition.color == "#00ff00"
    assert definition.help_url == "/reference/device/show"
    assert definition.inputs[0].kind == "value"
    assert definition.inputs[0].name == "value"
    assert definition.inputs[0].check == "Number"
    assert definition.inputs[0].fields[0].text == "show number"
    assert definition.output.previous_statement is True
    assert definition.output.has_output is False
    assert len(ctx.diagnostics) == 0


def test_slider_placeholder():
    """Test a ranged number parameter gets a slider with bounds."""
    cat = catalog(block(
        "device.set_speed", "device_set_speed", template="set speed %speed",
        params=[param("speed", "number", range={"min": 0, "max": 100})],
    ))

    result, _ = _synthesize(cat, "device.set_speed")
    shadow = result.leaves[0].get_input("speed").shadow

    assert shadow.block_type == "math_number_minmax"
    assert shadow.mutation["min"] == "0"
    assert shadow.mutation["max"] == "100"
    assert shadow.mutation["label"] == "Speed"
    assert shadow.fields[0].name == "SLIDER"
    assert shadow.fields[0].value == "0"


def test_string_and_boolean_placeholders():
    """Test primitive placeholders and decoded defaults."""
    cat = catalog(block(
        "device.say", "device_say", template="say %text loud %loud",
        params=[param("text", "string", default_value='"hello"'), param("loud", "boolean")],
    ))

    result, _ = _synthesize(cat, "device.say")
    leaf = result.leaves[0]

    text = leaf.get_input("text").shadow
    assert text.block_type == "text"
    assert text.fields[0].name == "TEXT"
    assert text.fields[0].value == "hello"

    loud = leaf.get_input("loud").shadow
    assert loud.block_type == "logic_boolean"
    assert loud.fields[0].value == "FALSE"


def test_literal_defaults_fill_placeholders():
    """Test JSON literal defaults end up as placeholder text."""
    cat = catalog(block(
        "device.set", "device_set", template="set %on to %level",
        params=[param("on", "boolean", default_value=True), param("level", "number", default_value=5)],
    ))

    result, ctx = _synthesize(cat, "device.set")
    leaf = result.leaves[0]

    assert leaf.get_input("on").shadow.fields[0].value == "TRUE"
    assert leaf.get_input("level").shadow.fields[0].value == "5"
    assert len(ctx.diagnostics) == 0


def test_enum_default_moves_to_front():
    """Test the option matching the default value is listed first."""
    cat = catalog(
        {"qualified_name": "Direction", "kind": "enum"},
        {"qualified_name": "Direction.Left", "kind": "enum_member"},
        {"qualified_name": "Direction.Right", "kind": "enum_member"},
        {"qualified_name": "Direction.Up", "kind": "enum_member"},
        block("device.turn", "device_turn", template="turn %dir",
              params=[param("dir", "Direction", default_value="Direction.Up")]),
    )

    result, ctx = _synthesize(cat, "device.turn")
    dropdown = _fields(result.definition, "dropdown")[0]

    assert [o.value for o in dropdown.options] == ["Direction.Up", "Direction.Left", "Direction.Right"]
    assert len(ctx.diagnostics) == 0


def test_empty_dropdown_reported():
    """Test an enum without members reports an empty dropdown."""
    cat = catalog(
        {"qualified_name": "Direction", "kind": "enum"},
        block("device.turn", "device_turn", template="turn %dir", params=[param("dir", "Direction")]),
    )

    result, ctx = _synthesize(cat, "device.turn")

    assert result is not None
    assert len(ctx.diagnostics.of_kind(DiagnosticKind.EMPTY_DROPDOWN)) == 1
    assert _fields(result.definition, "dropdown") == []


def test_unknown_parameter_reported():
    """Test template parameters missing from the signature are reported and skipped."""
    cat = catalog(block("device.go", "device_go", template="go %missing"))

    result, ctx = _synthesize(cat, "device.go")

    assert result is not None
    unknown = ctx.diagnostics.of_kind(DiagnosticKind.UNKNOWN_PARAMETER)
    assert len(unknown) == 1
    assert unknown[0].block_id == "device_go"


def test_instance_method_uses_this_input():
    """Test methods get a typed `this` input and a variable placeholder."""
    cat = catalog(
        {"qualified_name": "Sprite", "kind": "class"},
        block("Sprite.say", "sprite_say", kind="method", template="%sprite say %text",
              params=[param("text", "string")]),
    )

    result, _ = _synthesize(cat, "Sprite.say")

    assert result.definition.inputs[0].name == "this"
    assert result.definition.inputs[0].check == "Sprite"
    this_value = result.leaves[0].get_input("this")
    assert this_value.shadow.block_type == "variables_get"
    assert this_value.shadow.shadow is False


def test_output_shapes():
    """Test output checks for primitive, class and array return types."""
    cat = catalog(
        {"qualified_name": "Sprite", "kind": "class", "extends_types": ["Base"]},
        block("game.is_over", "game_is_over", return_type="boolean"),
        block("game.player", "game_player", return_type="Sprite"),
        block("game.scores", "game_scores", return_type="number[]"),
    )

    over, _ = _synthesize(cat, "game.is_over")
    assert over.definition.output.shape == "hexagonal"
    assert over.definition.output.check == ["Boolean"]
    assert over.definition.output.previous_statement is False

    player, _ = _synthesize(cat, "game.player")
    assert player.definition.output.check == ["Sprite", "Base"]

    scores, _ = _synthesize(cat, "game.scores")
    assert scores.definition.output.check == ["Array", "number[]"]


@pytest.mark.parametrize("attrs,expected", [
    ({"mutate": "objectdestructuring", "default_instance": "x"}, SynthesisStrategy.MUTATED),
    ({"default_instance": "mySprite", "expanded_def": "more"}, SynthesisStrategy.DEFAULT_INSTANCE),
    ({"expanded_def": "more"}, SynthesisStrategy.EXPANDABLE),
    ({"expanded_def": "more", "expandable_argument_mode": "disabled"}, SynthesisStrategy.PLAIN),
    ({"handler_args": ["x"]}, SynthesisStrategy.FIXED_HANDLER),
    ({"handler_args": ["x"], "optional_variable_args": True}, SynthesisStrategy.VARIABLE_ARITY_HANDLER),
    ({}, SynthesisStrategy.PLAIN),
])
def test_select_strategy(attrs, expected):
    """Test the first matching attribute decides the strategy."""
    cat = catalog(block("device.go", "device_go", **attrs))
    symbol = cat.lookup("device.go")
    assert select_strategy(symbol, compile_info(symbol)) == expected


def test_expandable_inputs():
    """Test expanded rows get prefixed names and the toggle flag."""
    cat = catalog(block("device.go", "device_go", template="go", expanded_def="|and wait",
                        expandable_argument_mode="toggle"))

    result, _ = _synthesize(cat, "device.go")
    definition = result.definition

    assert definition.mutation == {"type": "expandable", "toggle": True}
    assert definition.expanded_inputs[0].name == f"{OPTIONAL_DUMMY_INPUT_PREFIX}0"


def test_fixed_handler_block():
    """Test callback arguments become handler variables plus a statement input."""
    cat = catalog(block("device.on_press", "device_on_press", template="on press",
                        params=[param("handler", "(x: number, y: number) => void")]))

    result, _ = _synthesize(cat, "device.on_press")
    definition = result.definition

    assert definition.strategy == SynthesisStrategy.FIXED_HANDLER.value
    assert [f.name for f in _fields(definition, "variable")] == ["HANDLER_x", "HANDLER_y"]
    assert definition.inputs[-1].kind == "statement"
    assert definition.inputs[-1].name == "HANDLER"
    assert definition.output.previous_statement is False
    assert [f.name for f in result.leaves[0].fields] == ["HANDLER_x", "HANDLER_y"]


def test_variable_arity_leaves():
    """Test one leaf per declared arity, skipping arities that do not fit."""
    cat = catalog(block(
        "device.on_event", "device_on_event", template="on event",
        params=[param("handler", "(a: number, b: number) => void")],
        optional_variable_args=True, toolbox_variable_args="0;1;2;5;x",
    ))

    result, _ = _synthesize(cat, "device.on_event")

    assert result.definition.strategy == SynthesisStrategy.VARIABLE_ARITY_HANDLER.value
    assert [leaf.variant for leaf in result.leaves] == ["0", "1", "2"]
    assert result.leaves[0].mutation == {"numargs": "0"}
    assert result.leaves[2].mutation == {"numargs": "2", "arg0": "a", "arg1": "b"}


def test_variant_leaves_take_precedence():
    """Test variant tags yield one leaf each, even when arities are declared."""
    cat = catalog(block(
        "device.on_event", "device_on_event", template="on event",
        params=[param("handler", "(a: number) => void")],
        mutate="objectdestructuring", mutate_defaults="a;b",
        optional_variable_args=True, toolbox_variable_args="0;1",
    ))

    result, _ = _synthesize(cat, "device.on_event")

    assert result.definition.mutation == {"type": "objectdestructuring"}
    assert [leaf.variant for leaf in result.leaves] == ["a", "b"]
    assert result.leaves[1].mutation == {"callbackproperties": "b", "renamemap": "{}"}


def test_store_result_wrapping():
    """Test value blocks can be wrapped into a variable assignment."""
    cat = catalog(block("game.create", "game_create", return_type="Sprite", block_set_variable="hero"))

    result, ctx = _synthesize(cat, "game.create")
    leaf = result.leaves[0]

    assert leaf.block_id == "variables_set"
    assert leaf.get_field("VAR").value == "hero"
    assert leaf.get_input("VALUE").block.block_id == "game_create"
    assert leaf.gap == "8"
    assert len(ctx.diagnostics) == 0


def test_store_result_default_name():
    """Test an empty variable name is derived from the return type."""
    cat = catalog(block("game.create", "game_create", return_type="Sprite", block_set_variable=""))

    result, ctx = _synthesize(cat, "game.create")

    assert result.leaves[0].get_field("VAR").value == "sprite"
    assert len(ctx.diagnostics) == 0


def test_store_result_reserved_name():
    """Test reserved variable names fall back to the derived name."""
    cat = catalog(block("game.create", "game_create", return_type="Sprite", block_set_variable="class"))

    result, ctx = _synthesize(cat, "game.create")

    assert result.leaves[0].get_field("VAR").value == "sprite"
    assert len(ctx.diagnostics.of_kind(DiagnosticKind.RESERVED_VARIABLE_NAME)) == 1


def test_duplicate_block_id_collision():
    """Test a second symbol claiming a block id is rejected."""
    cat = catalog(
        block("a.foo", "foo_bar"),
        block("b.foo", "foo_bar"),
    )
    synth = BlockDescriptorSynthesizer()
    ctx = RebuildContext(1)

    first = synth.synthesize(cat.symbols[0], cat, ctx)
    second = synth.synthesize(cat.symbols[1], cat, ctx)

    assert first is not None
    assert second is None
    collisions = ctx.diagnostics.of_kind(DiagnosticKind.BLOCK_COLLISION)
    assert len(collisions) == 1
    assert collisions[0].symbol == "b.foo"
    assert collisions[0].fatal


def test_builtin_block_id_collision():
    """Test symbols may not override built-in blocks."""
    cat = catalog(block("device.slider", "math_number_minmax"))

    result, ctx = _synthesize(cat, "device.slider")

    assert result is None
    collisions = ctx.diagnostics.of_kind(DiagnosticKind.BLOCK_COLLISION)
    assert "builtin" in collisions[0].message


def test_cache_reuses_compiled_block():
    """Test unchanged symbols are compiled once and their warnings replayed."""
    cat = catalog(block("device.go", "device_go", template="go %missing"))
    synth = BlockDescriptorSynthesizer(BlockCache())

    first, ctx1 = _synthesize(cat, "device.go", synth)
    second, ctx2 = _synthesize(cat, "device.go", synth)

    assert synth.compile_count == 1
    assert first.cached is False
    assert second.cached is True
    assert second.definition is first.definition
    assert len(ctx2.diagnostics.of_kind(DiagnosticKind.UNKNOWN_PARAMETER)) == 1


def test_cache_invalidated_by_symbol_change():
    """Test a changed symbol is recompiled."""
    synth = BlockDescriptorSynthesizer()

    _synthesize(catalog(block("device.go", "device_go", template="go")), "device.go", synth)
    result, _ = _synthesize(catalog(block("device.go", "device_go", template="go now")), "device.go", synth)

    assert synth.compile_count == 2
    assert result.definition.inputs[0].fields[0].text == "go now"


def test_cache_invalidated_by_dependency_change():
    """Test new enum members recompile the blocks whose dropdown they feed."""
    turn = block("device.turn", "device_turn", template="turn %dir", params=[param("dir", "Direction")])
    enum = {"qualified_name": "Direction", "kind": "enum"}
    left = {"qualified_name": "Direction.Left", "kind": "enum_member"}
    right = {"qualified_name": "Direction.Right", "kind": "enum_member"}
    synth = BlockDescriptorSynthesizer()

    _synthesize(catalog(enum, left, turn), "device.turn", synth)
    result, _ = _synthesize(catalog(enum, left, right, turn), "device.turn", synth)

    assert synth.compile_count == 2
    assert len(_fields(result.definition, "dropdown")[0].options) == 2


def test_cache_invalidated_by_shadow_template_change():
    """Test warm and cold builds agree when a shadow block template changes."""
    paint = block("turtle.paint", "turtle_paint", template="paint %c",
                  params=[param("c", "Shade", shadow_block_id="turtle_shade", default_value="red")])

    def shade(template):
        return block("turtle.shade", "turtle_shade", template=template, return_type="Shade",
                     params=[param("v", "number"), param("w", "number")])

    def field_names(result):
        return [f.name for f in result.leaves[0].get_input("c").shadow.fields]

    synth = BlockDescriptorSynthesizer()
    first, _ = _synthesize(catalog(shade("shade %v %w"), paint), "turtle.paint", synth)
    warm, _ = _synthesize(catalog(shade("shade %w %v"), paint), "turtle.paint", synth)
    cold, _ = _synthesize(catalog(shade("shade %w %v"), paint), "turtle.paint")

    assert field_names(first) == ["v"]
    assert field_names(warm) == field_names(cold) == ["w"]
    assert synth.compile_count == 2


def test_placement():
    """Test placement reads namespace label, weight, group and the More flag."""
    cat = catalog(
        namespace("device", weight=90, block="My Device", advanced=True),
        block("device.go", "device_go", weight=70, group="Motion", advanced=True, subcategory="Extra"),
    )

    result, _ = _synthesize(cat, "device.go")
    placement = result.placement

    assert placement.namespace == "device"
    assert placement.category_name == "My Device"
    assert placement.weight == 70
    assert placement.group == "Motion"
    assert placement.subcategory == "Extra"
    assert placement.advanced is True
    assert placement.more is True


def test_malformed_weight_reported():
    """Test malformed weights are reported and replaced by the default."""
    cat = catalog(block("device.go", "device_go", weight="heavy"))

    result, ctx = _synthesize(cat, "device.go")

    assert result.placement.weight == 50
    assert len(ctx.diagnostics.of_kind(DiagnosticKind.MALFORMED_WEIGHT)) == 1
