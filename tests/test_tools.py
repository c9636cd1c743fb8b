"""Tests for tools module."""

import json

import httpx
import pytest

from toolbox_mcp.tools.build_toolbox import build_toolbox, get_engine
from toolbox_mcp.tools.delete_toolbox import delete_toolbox
from toolbox_mcp.tools.get_block import get_block, get_blocks
from toolbox_mcp.tools.get_category_tree import get_category_tree
from toolbox_mcp.tools.list_toolboxes import list_toolboxes
from toolbox_mcp.tools.search_blocks import search_blocks

from factories import block, namespace, param


def _write_catalog(tmp_path):
    path = tmp_path / "game.json"
    path.write_text(json.dumps({"symbols": [
        namespace("game", weight=90, color="#ff8800"),
        block("game.over", "game_over", weight=80, template="game over", js_doc="End the game"),
        block("game.score", "game_score", weight=60, template="change score by %value",
              params=[param("value", "number")], js_doc="Add points to the score"),
        block("game.extra", "game_extra", advanced=True, template="extra"),
        namespace("adv", advanced=True),
        block("adv.go", "adv_go", template="go"),
    ]}))
    return str(path)


def _store(tmp_path):
    return str(tmp_path / "store")


def test_build_toolbox(tmp_path):
    """Test building and saving a toolbox."""
    result = build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    assert result["success"] is True
    assert result["project"] == "game"
    assert result["generation"] == 1
    assert result["symbol_count"] == 6
    assert result["compiled"] == 4
    assert result["diagnostics"] == []


def test_build_toolbox_reuses_engine(tmp_path):
    """Test a second build of the same project compiles nothing new."""
    catalog_path = _write_catalog(tmp_path)
    build_toolbox(catalog_path, storage_path=_store(tmp_path))

    result = build_toolbox(catalog_path, filters={"namespaces": {"game": "disabled"}},
                           storage_path=_store(tmp_path))

    assert result["generation"] == 2
    assert result["compiled"] == 0
    assert get_engine("game").generation == 2


def test_build_toolbox_errors(tmp_path):
    """Test missing catalogs and unknown modes are reported."""
    assert "error" in build_toolbox(str(tmp_path / "missing.json"), storage_path=_store(tmp_path))
    assert "error" in build_toolbox(_write_catalog(tmp_path), category_mode="sideways",
                                    storage_path=_store(tmp_path))

    bad = tmp_path / "bad.json"
    bad.write_text("{nope")
    assert "error" in build_toolbox(str(bad), storage_path=_store(tmp_path))


def test_list_toolboxes(tmp_path):
    """Test built toolboxes are listed."""
    build_toolbox(_write_catalog(tmp_path), project="one", storage_path=_store(tmp_path))

    result = list_toolboxes(storage_path=_store(tmp_path))

    assert result["count"] == 1
    assert result["toolboxes"][0]["project"] == "one"


def test_get_category_tree(tmp_path):
    """Test the stored tree and a single category."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = get_category_tree("game", storage_path=_store(tmp_path))
    top = [c["id"] for c in result["tree"]["children"] if c["type"] == "category"]
    assert top[0] == "game"
    assert "advanced" in top

    game = get_category_tree("game", category="game", storage_path=_store(tmp_path))["tree"]
    assert [c["block_id"] for c in game["children"] if c["type"] == "block"] == ["game_over", "game_score"]
    assert game["block_count"] == 2
    assert game["colour"] == "#ff8800"

    outline = get_category_tree("game", category="game", include_blocks=False, storage_path=_store(tmp_path))
    children = outline["tree"]["children"]
    assert [c["id"] for c in children if c["type"] == "category"] == ["more"]
    assert children[0] == {"type": "label", "text": "Game", "web_class": "blocklyFlyoutHeading",
                           "web_icon": "\uf12e", "web_icon_color": "#ff8800"}


def test_get_category_tree_errors(tmp_path):
    """Test unknown projects and categories."""
    assert "error" in get_category_tree("nothing", storage_path=_store(tmp_path))
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))
    assert "error" in get_category_tree("game", category="nowhere", storage_path=_store(tmp_path))


def test_get_block(tmp_path):
    """Test leaf and definition of one block."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = get_block("game", "game_score", storage_path=_store(tmp_path))

    assert result["in_toolbox"] is True
    assert result["category"] == "Game"
    assert result["definition"]["tooltip"] == "Add points to the score"
    assert result["leaf"]["descriptor"]["inputs"][0]["name"] == "value"


def test_get_block_collapsed(tmp_path):
    """Test blocks behind the collapsed Advanced category are searchable only."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = get_block("game", "adv_go", storage_path=_store(tmp_path))

    assert result["in_toolbox"] is False
    assert result["searchable"] is True
    assert result["definition"]["block_id"] == "adv_go"


def test_get_blocks(tmp_path):
    """Test batch retrieval reports missing blocks."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = get_blocks("game", ["game_over", "missing"], storage_path=_store(tmp_path))

    assert [b["block_id"] for b in result["blocks"]] == ["game_over"]
    assert result["errors"][0]["block_id"] == "missing"


@pytest.mark.asyncio
async def test_search_blocks_local(tmp_path, monkeypatch):
    """Test local search over stored definitions."""
    monkeypatch.delenv("TOOLBOX_SEARCH_URL", raising=False)
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = await search_blocks("game", "score", storage_path=_store(tmp_path))

    assert result["results"][0]["block_id"] == "game_score"
    assert result["results"][0]["tooltip"] == "Add points to the score"


@pytest.mark.asyncio
async def test_search_blocks_category_filter(tmp_path, monkeypatch):
    """Test results can be limited to one category label."""
    monkeypatch.delenv("TOOLBOX_SEARCH_URL", raising=False)
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = await search_blocks("game", "go", category="adv", storage_path=_store(tmp_path))

    assert [r["block_id"] for r in result["results"]] == ["adv_go"]


@pytest.mark.asyncio
async def test_search_blocks_remote(tmp_path):
    """Test the external search service is used when configured."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    def handler(request):
        subset = json.loads(request.content)["subset"]
        assert "game_over" in subset
        return httpx.Response(200, json=["game_over", "not_in_toolbox"])

    result = await search_blocks(
        "game", "over",
        storage_path=_store(tmp_path),
        search_url="http://search.local",
        transport=httpx.MockTransport(handler),
    )

    assert [r["block_id"] for r in result["results"]] == ["game_over"]


@pytest.mark.asyncio
async def test_search_blocks_remote_failure(tmp_path):
    """Test service failures are returned as errors."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    result = await search_blocks(
        "game", "over",
        storage_path=_store(tmp_path),
        search_url="http://search.local",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    assert "error" in result


def test_delete_toolbox(tmp_path):
    """Test deleting a toolbox."""
    build_toolbox(_write_catalog(tmp_path), storage_path=_store(tmp_path))

    assert delete_toolbox("game", storage_path=_store(tmp_path))["success"] is True
    assert "error" in delete_toolbox("game", storage_path=_store(tmp_path))
    assert list_toolboxes(storage_path=_store(tmp_path))["count"] == 0
