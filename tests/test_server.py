"""MCP tool handlers."""

import asyncio
import json
from pathlib import Path

import pytest

from advisor_tree import server


@pytest.fixture(autouse=True)
def output_dir(tmp_path, monkeypatch):
    monkeypatch.setattr(server, "OUTPUT_DIR", tmp_path / "renders")
    return tmp_path / "renders"


def _call(name, arguments):
    result = asyncio.run(server.call_tool(name, arguments))
    assert len(result) == 1
    return result[0].text


def test_tools_are_listed():
    tools = asyncio.run(server.list_tools())
    assert [tool.name for tool in tools] == [
        "render_advisor_tree", "get_lineage", "get_neighborhood", "get_layout",
    ]


def test_render_advisor_tree(small_tree_json, output_dir):
    payload = json.loads(_call("render_advisor_tree", {
        "dataset_json": small_tree_json,
        "select": "C",
        "hover": "A",
        "width": 320,
        "height": 240,
        "scale": 1.0,
        "filename": "carol",
    }))
    assert payload["status"] == "success"
    assert payload["selected"] == "C"
    assert payload["hovered"] == "A"
    assert payload["stabilized"] is True
    path = Path(payload["path"])
    assert path == output_dir / "carol.png"
    assert path.read_bytes()[:4] == b"\x89PNG"


def test_render_from_file(small_tree_json, tmp_path):
    dataset = tmp_path / "tree.json"
    dataset.write_text(small_tree_json, encoding="utf-8")
    payload = json.loads(_call("render_advisor_tree", {"dataset_path": str(dataset), "scale": 1.0}))
    assert payload["nodes"] == 4
    assert Path(payload["path"]).name.startswith("R-")


def test_render_unknown_selection(small_tree_json):
    text = _call("render_advisor_tree", {"dataset_json": small_tree_json, "select": "ghost"})
    assert text == "Unknown node: ghost"


def test_invalid_dataset_is_reported():
    bad = json.dumps({"root": "R", "nodes": [{"id": "R"}], "edges": [{"from": "R", "to": "X"}]})
    text = _call("get_layout", {"dataset_json": bad})
    assert text.startswith("Failed to load dataset:")
    assert "X" in text


def test_missing_dataset_is_reported():
    assert _call("get_lineage", {"node_id": "R"}).startswith("Failed to load dataset")


def test_get_lineage(small_tree_json):
    payload = json.loads(_call("get_lineage", {"dataset_json": small_tree_json, "node_id": "C"}))
    assert payload["path"] == ["C", "A", "R"]
    assert payload["names"] == ["Carol", "Alice", "Root Person"]
    assert payload["cluster"] == "A"


def test_get_neighborhood(small_tree_json):
    payload = json.loads(_call("get_neighborhood", {"dataset_json": small_tree_json, "node_id": "A"}))
    assert payload["preferred_parent"] == "R"
    assert payload["children"] == ["C"]
    assert payload["nodes"] == ["A", "C", "R"]
    assert payload["edges"] == [["A", "C"], ["R", "A"]]


def test_get_neighborhood_unknown_node(small_tree_json):
    text = _call("get_neighborhood", {"dataset_json": small_tree_json, "node_id": "ghost"})
    assert text == "Unknown node: ghost"


def test_get_layout(small_tree_json):
    payload = json.loads(_call("get_layout", {"dataset_json": small_tree_json}))
    assert payload["stabilized"] is True
    positions = {node["id"]: (node["x"], node["y"]) for node in payload["nodes"]}
    assert positions["R"] == (480, 360)
    assert {node["cluster"] for node in payload["nodes"]} == {"R", "A", "B"}


def test_unknown_tool():
    assert _call("nope", {}) == "Unknown tool: nope"


def test_undecodable_dataset_is_reported():
    text = _call("get_layout", {"dataset_json": '{"root": "R",\n\t"nodes": ['})
    assert text.startswith("Failed to load dataset: Invalid JSON")
