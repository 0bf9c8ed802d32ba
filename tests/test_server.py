"""Tests for the MCP server tools (3-tool architecture)."""

import json

from route_graph.server import (
    _sessions,
    graph,
    interact,
    palette_catalog,
    session,
)


def setup_function() -> None:
    """Clear sessions between tests."""
    _sessions.clear()


def _route() -> dict:
    return {
        "id": "root",
        "path": "/",
        "name": "Home",
        "routes": {
            "a": {"id": "a", "path": "/a", "routes": {"a1": {"id": "a1", "path": "/a/1"}}},
            "b": {"id": "b", "path": "/b"},
        },
    }


# ===================================================================
# graph
# ===================================================================

def test_graph_layout() -> None:
    result = json.loads(graph(route=_route()))
    assert result["route_id"] == "root"
    assert result["direction"] == "TB"
    assert len(result["nodes"]) == 4
    assert len(result["edges"]) == 3
    root = result["nodes"][0]
    assert root["type"] == "rootRoute"
    assert root["position"] == {"x": 111, "y": 0}
    assert root["data"]["name"] == "Home"


def test_graph_spacing_params() -> None:
    result = json.loads(graph(route=_route(), direction="lr", rank_separation=0))
    a = next(n for n in result["nodes"] if n["data"]["id"] == "a")
    assert result["direction"] == "LR"
    assert a["position"]["x"] == 172
    assert a["sourcePosition"] == "right"
    assert a["targetPosition"] == "left"


def test_graph_errors() -> None:
    assert graph(route=_route(), direction="UP").startswith("Error:")
    assert graph(route={"id": "x"}).startswith("Error:")
    assert graph(route=_route(), node_width=0).startswith("Error:")
    dup = {"id": "r", "path": "/", "routes": {"a": {"id": "r", "path": "/a"}}}
    assert "Duplicate" in graph(route=dup)


def test_palette_resource() -> None:
    data = json.loads(palette_catalog())
    assert data["root_color"] not in data["palette"]
    assert "rootRoute" in data["themes"]


# ===================================================================
# session
# ===================================================================

def test_session_lifecycle() -> None:
    assert "created" in session(action="create", name="s1", route=_route())
    assert json.loads(session(action="list")) == ["s1"]

    snap = json.loads(session(action="get", name="s1"))
    assert snap["route_id"] == "root"

    assert "deleted" in session(action="delete", name="s1")
    assert json.loads(session(action="list")) == []


def test_session_set_route_memoized() -> None:
    session(action="create", name="s1", route=_route())
    same = json.loads(session(action="set_route", name="s1", route=_route()))
    assert same["rebuilt"] is False

    other = json.loads(session(action="set_route", name="s1", route={"id": "x", "path": "/x"}))
    assert other["rebuilt"] is True
    assert other["graph"]["route_id"] == "x"


def test_session_errors() -> None:
    assert session(action="explode").startswith("Error:")
    assert session(action="get", name="").startswith("Error:")
    assert "not found" in session(action="get", name="missing")
    assert session(action="create", name="s1", route=None).startswith("Error:")
    assert session(action="create", name="s1", route=_route(), direction="up").startswith("Error:")


# ===================================================================
# interact
# ===================================================================

def test_direction_change_refocuses_root() -> None:
    session(action="create", name="s1", route=_route())
    result = json.loads(interact(action="direction", name="s1", direction="LR"))
    assert result["graph"]["direction"] == "LR"
    assert result["camera"] == {"x": 86, "y": 61, "zoom": 0.5, "duration": 1000}


def test_click_navigates() -> None:
    session(action="create", name="s1", route=_route())
    result = json.loads(interact(action="click", name="s1", node_id="2"))
    assert result["selected"] is True
    assert result["graph"]["route_id"] == "a"
    assert len(result["graph"]["nodes"]) == 2

    again = json.loads(interact(action="click", name="s1", node_id="1"))
    assert again["selected"] is False
    assert again["graph"]["route_id"] == "a"


def test_click_active_root_is_noop() -> None:
    session(action="create", name="s1", route=_route())
    result = json.loads(interact(action="click", name="s1", node_id="1"))
    assert result["selected"] is False
    assert result["graph"]["route_id"] == "root"


def test_focus_and_fit() -> None:
    session(action="create", name="s1", route=_route())
    cam = json.loads(interact(action="focus", name="s1"))
    assert (cam["x"], cam["y"], cam["zoom"]) == (197, 18, 0.5)

    fit = json.loads(interact(action="fit", name="s1", viewport_width=1280, viewport_height=720))
    assert (fit["x"], fit["y"]) == (197, 304)
    assert fit["duration"] == 0


def test_interact_errors() -> None:
    session(action="create", name="s1", route=_route())
    assert interact(action="zoom", name="s1").startswith("Error:")
    assert "not found" in interact(action="focus", name="nope")
    assert interact(action="direction", name="s1", direction="XY").startswith("Error:")
    assert interact(action="click", name="s1", node_id="42").startswith("Error:")
    assert interact(action="click", name="s1", node_id="").startswith("Error:")
    assert interact(action="fit", name="s1", viewport_width=-1).startswith("Error:")


def test_repeated_direction_changes_keep_latest_camera() -> None:
    session(action="create", name="s1", route=_route())
    for direction in ["LR", "TB"] * 25:
        interact(action="direction", name="s1", direction=direction)
    assert len(_sessions["s1"].last_focus) == 1
    assert _sessions["s1"].last_focus[0].to_dict() == {"x": 197, "y": 18, "zoom": 0.5, "duration": 1000}


# ===================================================================
# deep trees
# ===================================================================

def _chain(depth: int) -> dict:
    route = {"id": f"n{depth}", "path": f"/{depth}"}
    for level in range(depth - 1, -1, -1):
        route = {"id": f"n{level}", "path": f"/{level}", "routes": {"next": route}}
    return route


def test_too_deep_tree_is_an_error() -> None:
    assert graph(route=_chain(3000)).startswith("Error:")
    assert session(action="create", name="deep", route=_chain(3000)).startswith("Error:")
    assert json.loads(session(action="list")) == []

    session(action="create", name="s1", route=_route())
    assert session(action="set_route", name="s1", route=_chain(3000)).startswith("Error:")
    assert json.loads(session(action="get", name="s1"))["route_id"] == "root"
