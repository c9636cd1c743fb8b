"""Tests for the category tree builder."""

from toolbox_mcp.tree import CategoryTreeBuilder, LeafNode, ToolboxTree, SeparatorNode, ButtonNode
from toolbox_mcp.tree.builder import HEADING_CLASS, MORE_WEIGHT


def _top_ids(tree):
    return [tree.node(h).id for h in tree.child_categories(ToolboxTree.ROOT)]


def _leaf_ids(tree, category):
    return [tree.node(h).block_id for h in tree.child_leaves(category)]


def test_top_categories_ordered_by_weight():
    """Test heavier top-level categories come first."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)

    for name, weight in (("b", 20), ("a", 90), ("c", 50)):
        builder.insert_top_category(builder.create_category(name, name, weight), weight, False)

    assert _top_ids(tree) == ["a", "c", "b"]


def test_advanced_categories_sort_last():
    """Test advanced categories follow every basic one regardless of weight."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)

    builder.insert_top_category(builder.create_category("Adv", "adv", 500), 500, True)
    builder.insert_top_category(builder.create_category("Low", "low", 1), 1, False)
    builder.insert_top_category(builder.create_category("High", "high", 90), 90, False)
    builder.insert_top_category(builder.create_category("Adv2", "adv2", 10), 10, True)

    assert _top_ids(tree) == ["high", "low", "adv", "adv2"]
    assert tree.node(builder.category("adv")).advanced is True


def test_separator_inserted_by_weight():
    """Test non-category nodes take part in weighted insertion."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    builder.insert_top_category(builder.create_category("A", "a", 50), 50, False)
    builder.insert_top_category(builder.create_category("Z", "z", 1), 1, False)

    sep = builder.insert_top_category(tree.add(SeparatorNode()), 1.5, False)

    assert tree.children(ToolboxTree.ROOT).index(sep) == 1


def test_subcategory_by_weight_reuses_existing():
    """Test the same subcategory id is only created once."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    parent = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)

    first = builder.get_or_create_subcategory_by_weight(parent, "More", "More", 1)
    second = builder.get_or_create_subcategory_by_weight(parent, "More", "more", 1)

    assert first == second
    assert len(tree.child_categories(parent)) == 1


def test_subcategory_by_name_is_alphabetical():
    """Test named subcategories sort by name and stay above "More"."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    parent = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
    builder.get_or_create_subcategory_by_weight(parent, "More", "More", MORE_WEIGHT)

    for name in ("Sprites", "effects", "Animation"):
        builder.get_or_create_subcategory_by_name(parent, name, name)

    names = [tree.node(h).name for h in tree.child_categories(parent)]
    assert names == ["Animation", "effects", "Sprites", "More"]

    weights = [tree.node(h).weight for h in tree.child_categories(parent)]
    assert weights == [200, 199, 198, 1]


def test_subcategory_by_name_stays_below_pinned():
    """Test declared (pinned) subcategories keep their place above named ones."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    parent = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)

    builder.get_or_create_subcategory_by_weight(parent, "Zeta", "Zeta", 10000)
    builder.get_or_create_subcategory_by_name(parent, "Alpha", "Alpha")

    names = [tree.node(h).name for h in tree.child_categories(parent)]
    assert names == ["Zeta", "Alpha"]


def test_subcategory_equal_names_keep_insertion_order():
    """Test subcategories with equal names are not reordered."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    parent = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)

    first = builder.get_or_create_subcategory_by_name(parent, "Tools", "tools1")
    second = builder.get_or_create_subcategory_by_name(parent, "Tools", "tools2")

    assert tree.child_categories(parent) == [first, second]


def test_heavy_leaves_pinned_in_builtin_category():
    """Test heavy leaves go above built-in blocks, light ones below."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree, reorderable_categories=["loops"])
    loops = builder.insert_top_category(builder.create_category("Loops", "loops", 50), 50, False)
    tree.append_child(loops, tree.add(LeafNode(block_id="controls_repeat_ext")))
    tree.append_child(loops, tree.add(LeafNode(block_id="device_while")))

    builder.insert_leaf(loops, LeafNode(block_id="a"), 60)
    builder.insert_leaf(loops, LeafNode(block_id="b"), 40)
    builder.insert_leaf(loops, LeafNode(block_id="c"), 70)

    assert _leaf_ids(tree, loops) == ["a", "c", "controls_repeat_ext", "device_while", "b"]
    assert tree.node(tree.find_leaf("a")).pinned is True
    assert tree.node(tree.find_leaf("b")).pinned is False


def test_heavy_leaves_not_pinned_elsewhere():
    """Test pinning only applies to reorderable categories."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree, reorderable_categories=["loops"])
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)

    builder.insert_leaf(game, LeafNode(block_id="light"), 10)
    builder.insert_leaf(game, LeafNode(block_id="heavy"), 90)

    assert _leaf_ids(tree, game) == ["light", "heavy"]


def test_button_goes_before_leaves():
    """Test extension buttons sit above the first leaf."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
    builder.insert_leaf(game, LeafNode(block_id="a"))

    button = builder.insert_button(game, ButtonNode(text="Editor", callback_key="EXTgame_BUTTON"))

    assert tree.children(game)[0] == button


def test_arrange_groups():
    """Test declared groups first, then the rest by name, each behind a label."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree, localize=lambda text: text.upper())
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
    tree.node(game).groups = ["Motion", "Looks"]

    builder.insert_leaf(game, LeafNode(block_id="say"), group="Looks")
    builder.insert_leaf(game, LeafNode(block_id="plain"))
    builder.insert_leaf(game, LeafNode(block_id="sound"), group="Audio")
    builder.insert_leaf(game, LeafNode(block_id="move"), group="Motion")

    builder.arrange_groups()

    out = []
    for h in tree.children(game):
        node = tree.node(h)
        out.append(node.text if node.kind == "label" else node.block_id)
    assert out == ["MOTION", "move", "LOOKS", "say", "AUDIO", "sound", "plain"]


def test_arrange_groups_single_group_untouched():
    """Test categories with a single group get no labels."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
    builder.insert_leaf(game, LeafNode(block_id="a"), group="Looks")
    builder.insert_leaf(game, LeafNode(block_id="b"), group="Looks")

    builder.arrange_groups()

    assert all(tree.node(h).kind == "leaf" for h in tree.children(game))


def test_flyout_headings():
    """Test headings lead each category and subcategory with the parent's icon and color."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "game", 50, "#ff0000"), 50, False)
    tree.node(game).web_icon = "\uf11b"
    builder.insert_leaf(game, LeafNode(block_id="a"))
    more = builder.get_or_create_subcategory(game, "More", MORE_WEIGHT)
    pics = builder.insert_top_category(builder.create_category("Pics", "pics", 40), 40, False)
    tree.node(pics).web_icon = "icons/pics.png"

    builder.add_flyout_headings()

    heading = tree.node(tree.children(game)[0])
    assert heading.web_class == HEADING_CLASS
    assert (heading.text, heading.icon, heading.icon_color) == ("Game", "\uf11b", "#ff0000")
    sub_heading = tree.node(tree.children(more)[0])
    assert (sub_heading.text, sub_heading.icon) == ("Game > More", "\uf11b")
    pics_heading = tree.node(tree.children(pics)[0])
    assert pics_heading.icon is None
    assert pics_heading.icon_class == "blocklyFlyoutIconPics"
    assert _leaf_ids(tree, game) == ["a"]


def test_arrange_groups_keeps_heading_first():
    """Test group labels go after the flyout heading."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
    builder.insert_leaf(game, LeafNode(block_id="a"), group="Looks")
    builder.insert_leaf(game, LeafNode(block_id="b"))

    builder.add_flyout_headings()
    builder.arrange_groups()

    texts = [tree.node(h).text for h in tree.children(game) if tree.node(h).kind == "label"]
    assert texts == ["Game", "Looks"]


def test_get_or_create_subcategory_dispatches_on_weight():
    """Test a weight orders the subcategory by weight; no weight orders it by name."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)

    more = builder.get_or_create_subcategory(game, "More", MORE_WEIGHT)
    zed = builder.get_or_create_subcategory(game, "Zed")
    alpha = builder.get_or_create_subcategory(game, "Alpha")
    pinned = builder.get_or_create_subcategory(game, "Pinned", 5000)

    assert tree.child_categories(game) == [pinned, alpha, zed, more]
    assert builder.get_or_create_subcategory(game, "zed") == zed


def test_clone_is_independent():
    """Test changes to a clone leave the original untouched."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
    builder.insert_leaf(game, LeafNode(block_id="a"))

    copy = tree.clone()
    copy.node(game).name = "Renamed"
    copy.remove(copy.find_leaf("a"))

    assert tree.node(game).name == "Game"
    assert tree.find_leaf("a") is not None
    assert copy.find_leaf("a") is None


def test_signature_detects_order():
    """Test tree signatures differ when leaf order differs."""
    def make(order):
        tree = ToolboxTree()
        builder = CategoryTreeBuilder(tree)
        game = builder.insert_top_category(builder.create_category("Game", "game", 50), 50, False)
        for block_id in order:
            builder.insert_leaf(game, LeafNode(block_id=block_id))
        return tree

    assert make(["a", "b"]).signature() == make(["a", "b"]).signature()
    assert make(["a", "b"]).signature() != make(["b", "a"]).signature()


def test_to_dict():
    """Test the serialized tree shape."""
    tree = ToolboxTree()
    builder = CategoryTreeBuilder(tree)
    game = builder.insert_top_category(builder.create_category("Game", "Game", 50, "#ff0000"), 50, False)
    builder.insert_leaf(game, LeafNode(block_id="a"), 70, "Looks")

    data = tree.to_dict()

    assert data["type"] == "root"
    cat = data["children"][0]
    assert cat["id"] == "game"
    assert cat["colour"] == "#ff0000"
    assert cat["children"][0] == {"type": "block", "block_id": "a", "weight": 70, "group": "Looks"}
