"""
Route Graph MCP Server - lay out route trees as positioned graphs via Model Context Protocol.

Exposes 3 tools that let a route source and a rendering surface drive the
layout engine over JSON.

Tools:
  1. graph     - stateless: build + lay out one route tree
  2. session   - lifecycle: create, set_route, get, list, delete
  3. interact  - per session: direction, click, focus, fit
"""

from __future__ import annotations

import json
import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Optional

from mcp.server.fastmcp import FastMCP

from route_graph.controller import DeferredCalls, InteractionController
from route_graph.layout_engine import LayoutConfig, layout_route
from route_graph.models import CameraTransform, Route
from route_graph.styles import NEUTRAL_EDGE_COLOR, PALETTE, ROOT_COLOR, ROOT_THEME, ROUTE_THEME
from route_graph.validation import (
    ValidationError,
    validate_action,
    validate_direction,
    validate_non_empty_string,
    validate_positive_number,
    _INTERACT_ACTIONS,
    _SESSION_ACTIONS,
)

# ---------------------------------------------------------------------------
# Logging - keep routine FastMCP INFO chatter off stderr.
# ---------------------------------------------------------------------------
logging.getLogger("mcp.server").setLevel(logging.WARNING)
logger = logging.getLogger("route-graph")

# ---------------------------------------------------------------------------
# MCP Server
# ---------------------------------------------------------------------------
mcp = FastMCP(
    "route-graph",
    instructions=(
        "MCP server that turns route trees into positioned directed graphs.\n\n"
        "A route is {id, path, name?, routes?: {key: route}}.\n\n"
        "1. graph(route, direction, ...) - one-shot layout, returns nodes/edges.\n"
        "2. session(action, name, route?) - create, set_route, get, list, delete.\n"
        "3. interact(action, name, ...) - direction (re-layout + refocus root),\n"
        "   click (navigate to the clicked route), focus, fit.\n\n"
        "Node ids are per-build sequence numbers; do not keep them across\n"
        "rebuilds. Positions are top-left corners of node boxes.\n"
    ),
)


@dataclass
class _Session:
    controller: InteractionController
    scheduler: DeferredCalls
    # Only the latest refocus is ever reported.
    last_focus: deque[CameraTransform] = field(default_factory=lambda: deque(maxlen=1))


# In-memory session registry: name -> _Session
# Guarded by _sessions_lock for thread-safety.
_sessions: dict[str, _Session] = {}
_sessions_lock = threading.Lock()

# Route trees are parsed and built recursively.
_TOO_DEEP = "Error: route tree is nested too deeply."


# ===================================================================
# RESOURCES
# ===================================================================

@mcp.resource("routegraph://palette")
def palette_catalog() -> str:
    """Return the branch palette and node theme colors."""
    return json.dumps({
        "palette": list(PALETTE),
        "root_color": ROOT_COLOR,
        "neutral_edge_color": NEUTRAL_EDGE_COLOR,
        "themes": {
            "rootRoute": {"fill": ROOT_THEME.fill, "stroke": ROOT_THEME.stroke, "font": ROOT_THEME.font},
            "route": {"fill": ROUTE_THEME.fill, "stroke": ROUTE_THEME.stroke, "font": ROUTE_THEME.font},
        },
    }, indent=2)


# ===================================================================
# TOOL 1: graph - stateless layout
# ===================================================================

@mcp.tool()
def graph(
    route: dict[str, Any],
    direction: str = "TB",
    node_width: float = 172,
    node_height: float = 36,
    node_separation: float = 50,
    rank_separation: float = 250,
    edge_separation: float = 10,
) -> str:
    """Build and lay out a route tree.

    Args:
        route: {id, path, name?, routes?: {key: route}}.
        direction: TB, BT, LR or RL.
        node_width / node_height: Node box size.
        node_separation: Gap between neighbours within a rank.
        rank_separation: Gap between ranks.
        edge_separation: Gap between edge bend points within a rank.

    Returns:
        JSON {route_id, direction, nodes, edges} or an error message.
    """
    try:
        cfg = _layout_config(direction, node_width, node_height,
                             node_separation, rank_separation, edge_separation)
        snapshot = layout_route(Route.from_dict(route), cfg)
    except ValidationError as exc:
        logger.warning("graph rejected: %s", exc.message)
        return f"Error: {exc.message}"
    except RecursionError:
        logger.warning("graph rejected: route tree too deep")
        return _TOO_DEEP
    return json.dumps(snapshot.to_dict())


# ===================================================================
# TOOL 2: session - lifecycle
# ===================================================================

@mcp.tool()
def session(
    action: str,
    name: str = "",
    route: Optional[dict[str, Any]] = None,
    direction: str = "TB",
) -> str:
    """Session lifecycle.

    Actions:
      create     - Start displaying a route tree. Params: name, route, direction.
      set_route  - Replace the displayed tree; unchanged route id is a no-op.
                   Params: name, route.
      get        - Current graph. Params: name.
      list       - Names of all sessions.
      delete     - Drop a session. Params: name.

    Returns:
        JSON results or confirmation message.
    """
    try:
        action = validate_action(action, "session", _SESSION_ACTIONS)
    except ValidationError as exc:
        return f"Error: {exc.message}"

    if action == "list":
        with _sessions_lock:
            return json.dumps(sorted(_sessions))

    try:
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"

    # ----- create -----
    if action == "create":
        try:
            validate_direction(direction)
            parsed = Route.from_dict(route)
            scheduler = DeferredCalls()
            last_focus: deque[CameraTransform] = deque(maxlen=1)

            def navigate(selected: Route) -> None:
                ctrl.set_route(selected)

            ctrl = InteractionController(
                parsed,
                on_node_select=navigate,
                direction=direction,
                scheduler=scheduler,
                on_focus=last_focus.append,
            )
        except ValidationError as exc:
            logger.warning("session create rejected: %s", exc.message)
            return f"Error: {exc.message}"
        except RecursionError:
            logger.warning("session create rejected: route tree too deep")
            return _TOO_DEEP
        with _sessions_lock:
            _sessions[name] = _Session(ctrl, scheduler, last_focus)
        return f"Session '{name}' created for route '{parsed.id}'."

    sess = _sessions.get(name)
    if not sess:
        return f"Error: session '{name}' not found."

    # ----- set_route -----
    if action == "set_route":
        try:
            parsed = Route.from_dict(route)
            rebuilt = sess.controller.set_route(parsed)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        except RecursionError:
            return _TOO_DEEP
        return json.dumps({"rebuilt": rebuilt, "graph": sess.controller.snapshot.to_dict()})

    # ----- get -----
    elif action == "get":
        return json.dumps(sess.controller.snapshot.to_dict())

    # ----- delete -----
    else:
        with _sessions_lock:
            _sessions.pop(name, None)
        return f"Session '{name}' deleted."


# ===================================================================
# TOOL 3: interact - direction, clicks, camera
# ===================================================================

@mcp.tool()
def interact(
    action: str,
    name: str = "",
    direction: str = "TB",
    node_id: str = "",
    viewport_width: float = 1280,
    viewport_height: float = 720,
) -> str:
    """Drive a session like a user would.

    Actions:
      direction  - Re-lay out in a new direction, then focus the root once the
                   new graph has been handed out. Params: direction.
      click      - Click a node. Navigates to its route unless it is already
                   the active one. Params: node_id.
      focus      - Camera transform centering the root.
      fit        - Camera transform fitting every node. Params: viewport_width,
                   viewport_height.

    Returns:
        JSON results or an error message.
    """
    try:
        action = validate_action(action, "interact", _INTERACT_ACTIONS)
        name = validate_non_empty_string(name, "name")
    except ValidationError as exc:
        return f"Error: {exc.message}"
    sess = _sessions.get(name)
    if not sess:
        return f"Error: session '{name}' not found."
    ctrl = sess.controller

    # ----- direction -----
    if action == "direction":
        try:
            snapshot = ctrl.set_direction(direction)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        payload: dict[str, Any] = {"graph": snapshot.to_dict()}
        # The graph is committed once serialized; only now may the refocus run.
        sess.scheduler.run_pending()
        payload["camera"] = sess.last_focus[-1].to_dict() if sess.last_focus else None
        return json.dumps(payload)

    # ----- click -----
    elif action == "click":
        try:
            validate_non_empty_string(node_id, "node_id")
            selected = ctrl.click(node_id)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        return json.dumps({"selected": selected, "graph": ctrl.snapshot.to_dict()})

    # ----- focus -----
    elif action == "focus":
        return json.dumps(ctrl.focus_root().to_dict())

    # ----- fit -----
    else:
        try:
            transform = ctrl.viewport.fit(ctrl.snapshot.nodes, viewport_width, viewport_height)
        except ValidationError as exc:
            return f"Error: {exc.message}"
        return json.dumps(transform.to_dict() if transform else None)


# ===================================================================
# Helpers
# ===================================================================

def _layout_config(
    direction: str,
    node_width: float,
    node_height: float,
    node_separation: float,
    rank_separation: float,
    edge_separation: float,
) -> LayoutConfig:
    validate_positive_number(node_width, "node_width")
    validate_positive_number(node_height, "node_height")
    cfg = LayoutConfig(
        direction=direction,
        node_width=node_width,
        node_height=node_height,
        node_separation=node_separation,
        rank_separation=rank_separation,
        edge_separation=edge_separation,
    )
    cfg.validate()
    return cfg


# ===================================================================
# Entry point
# ===================================================================

def main() -> None:
    """Run the MCP server."""
    mcp.run()


if __name__ == "__main__":
    main()
