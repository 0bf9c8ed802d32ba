"""
Layered layout engine for route graphs.

Sugiyama-style pipeline specialised for graphs coming out of a route tree:

1. Rank assignment (longest path over a topological order)
2. Virtual node insertion for edges spanning several ranks
3. Ordering within ranks (source order, no crossing-minimisation churn)
4. Coordinate assignment (subtrees on disjoint intervals, parents centered)

Every call works on a fresh private working graph; nothing is cached
between invocations, so the same input always yields the same layout.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Optional, Sequence, Union

from route_graph.builder import GraphBuilder
from route_graph.models import (
    AnchorSide,
    Direction,
    GraphEdge,
    GraphNode,
    GraphSnapshot,
    Route,
)
from route_graph.validation import (
    StructuralViolation,
    validate_direction,
    validate_non_negative_number,
    validate_positive_number,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

@dataclass
class LayoutConfig:
    """Configuration for the layered layout engine."""
    direction: Union[str, Direction] = "TB"

    # Dimensions
    node_width: float = 172
    node_height: float = 36

    # Spacing
    node_separation: float = 50    # Between neighbours within a rank
    rank_separation: float = 250   # Between consecutive ranks
    edge_separation: float = 10    # Between virtual (edge) nodes within a rank

    # Margins around the whole drawing
    margin_x: float = 0
    margin_y: float = 0

    def validate(self) -> Direction:
        """Check every setting and return the parsed direction."""
        raw = self.direction.value if isinstance(self.direction, Direction) else self.direction
        direction = Direction(validate_direction(raw))
        validate_positive_number(self.node_width, "node_width")
        validate_positive_number(self.node_height, "node_height")
        validate_non_negative_number(self.node_separation, "node_separation")
        validate_non_negative_number(self.rank_separation, "rank_separation")
        validate_non_negative_number(self.edge_separation, "edge_separation")
        validate_non_negative_number(self.margin_x, "margin_x")
        validate_non_negative_number(self.margin_y, "margin_y")
        return direction


# Where edges attach: (source side, target side)
_ANCHORS: dict[Direction, tuple[AnchorSide, AnchorSide]] = {
    Direction.TB: (AnchorSide.BOTTOM, AnchorSide.TOP),
    Direction.BT: (AnchorSide.TOP, AnchorSide.BOTTOM),
    Direction.LR: (AnchorSide.RIGHT, AnchorSide.LEFT),
    Direction.RL: (AnchorSide.LEFT, AnchorSide.RIGHT),
}


# ---------------------------------------------------------------------------
# Working graph
# ---------------------------------------------------------------------------

@dataclass
class _Node:
    """Internal node representation for one layout pass."""
    id: str
    breadth: float          # Size along the within-rank axis
    separation: float       # Preferred gap to neighbours
    rank: int = 0
    center: float = 0       # Position along the within-rank axis
    is_virtual: bool = False


@dataclass
class _WorkingGraph:
    nodes: dict[str, _Node] = field(default_factory=dict)
    edges: list[tuple[str, str]] = field(default_factory=list)

    def successors(self) -> dict[str, list[str]]:
        adj: dict[str, list[str]] = defaultdict(list)
        for src, tgt in self.edges:
            adj[src].append(tgt)
        return adj


def _build_working_graph(
    nodes: Sequence[GraphNode],
    edges: Sequence[GraphEdge],
    cfg: LayoutConfig,
    direction: Direction,
) -> _WorkingGraph:
    breadth = cfg.node_height if direction.is_horizontal else cfg.node_width
    graph = _WorkingGraph()
    for node in nodes:
        if node.id in graph.nodes:
            raise StructuralViolation(f"Duplicate node id '{node.id}'.")
        graph.nodes[node.id] = _Node(id=node.id, breadth=breadth, separation=cfg.node_separation)
    for edge in edges:
        for end in (edge.source, edge.target):
            if end not in graph.nodes:
                raise StructuralViolation(
                    f"Edge '{edge.id}' references node '{end}' which is not in the graph."
                )
        graph.edges.append((edge.source, edge.target))
    return graph


# ---------------------------------------------------------------------------
# Layout
# ---------------------------------------------------------------------------

def layout(
    nodes: list[GraphNode],
    edges: list[GraphEdge],
    config: Optional[LayoutConfig] = None,
) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Position *nodes* in layers and return the same node and edge objects.

    Writes ``rank``, ``order_in_rank``, ``x``, ``y``, ``width``, ``height``
    and the anchor sides of every node; ids are left untouched.

    Raises:
        UnknownDirection: ``config.direction`` is not TB, BT, LR or RL.
        StructuralViolation: an edge points at a missing node, or the edges
            contain a cycle.
    """
    cfg = config or LayoutConfig()
    direction = cfg.validate()

    graph = _build_working_graph(nodes, edges, cfg, direction)
    if not graph.nodes:
        return nodes, edges

    _assign_ranks_longest_path(graph)
    _insert_virtual_nodes(graph, cfg)
    preorder = _assign_within_rank_positions(graph)
    orders = _order_within_ranks(graph, preorder)
    max_rank = max(n.rank for n in graph.nodes.values())

    rank_size = cfg.node_width if direction.is_horizontal else cfg.node_height
    source_side, target_side = _ANCHORS[direction]

    for node in nodes:
        work = graph.nodes[node.id]
        tier = max_rank - work.rank if direction.is_reversed else work.rank
        primary = tier * (rank_size + cfg.rank_separation) + rank_size / 2
        if direction.is_horizontal:
            cx, cy = primary, work.center
        else:
            cx, cy = work.center, primary

        node.rank = work.rank
        node.order_in_rank = orders[node.id]
        node.width = cfg.node_width
        node.height = cfg.node_height
        node.x = cx - cfg.node_width / 2 + cfg.margin_x
        node.y = cy - cfg.node_height / 2 + cfg.margin_y
        node.source_position = source_side
        node.target_position = target_side

    logger.debug(
        "Laid out %d nodes / %d edges over %d ranks (%s)",
        len(nodes), len(edges), max_rank + 1, direction.value,
    )
    return nodes, edges


def _assign_ranks_longest_path(graph: _WorkingGraph) -> None:
    """Assign ranks using longest path from sources.

    Nodes are released in Kahn order; a node's rank is one more than the
    highest rank among all of its predecessors, so multiple incoming edges
    are handled. Ties are broken by input order, which keeps ranks stable.
    """
    adj = graph.successors()
    in_deg: dict[str, int] = {nid: 0 for nid in graph.nodes}
    for _, tgt in graph.edges:
        in_deg[tgt] += 1

    queue = deque(nid for nid, deg in in_deg.items() if deg == 0)
    ranks: dict[str, int] = {nid: 0 for nid in queue}
    processed = 0

    while queue:
        nid = queue.popleft()
        processed += 1
        for child in adj.get(nid, []):
            ranks[child] = max(ranks.get(child, 0), ranks[nid] + 1)
            in_deg[child] -= 1
            if in_deg[child] == 0:
                queue.append(child)

    if processed != len(graph.nodes):
        stuck = [nid for nid, deg in in_deg.items() if deg > 0]
        raise StructuralViolation(
            f"Edges form a cycle through node(s) {', '.join(stuck)}."
        )

    for nid, rank in ranks.items():
        graph.nodes[nid].rank = rank


def _insert_virtual_nodes(graph: _WorkingGraph, cfg: LayoutConfig) -> None:
    """Split edges spanning more than one rank into chains of virtual nodes."""
    expanded: list[tuple[str, str]] = []
    virtual_count = 0
    for src, tgt in graph.edges:
        src_rank = graph.nodes[src].rank
        tgt_rank = graph.nodes[tgt].rank
        if tgt_rank - src_rank <= 1:
            expanded.append((src, tgt))
            continue
        prev = src
        for r in range(src_rank + 1, tgt_rank):
            vid = f"__virtual_{virtual_count}"
            virtual_count += 1
            graph.nodes[vid] = _Node(
                id=vid, breadth=0, separation=cfg.edge_separation,
                rank=r, is_virtual=True,
            )
            expanded.append((prev, vid))
            prev = vid
        expanded.append((prev, tgt))
    graph.edges = expanded


def _gap(a: _Node, b: _Node) -> float:
    return (a.separation + b.separation) / 2


def _assign_within_rank_positions(graph: _WorkingGraph) -> list[str]:
    """Place subtrees on disjoint intervals of the within-rank axis.

    Each node hangs under its first predecessor (in edge order); children keep
    edge order, which for a built route tree is the order of the ``routes``
    mapping. A subtree's extent is the larger of its own breadth and the span
    of its children, and a parent is centered over its children.

    Returns the placement pre-order of all working nodes.
    """
    children: dict[str, list[str]] = defaultdict(list)
    placed: set[str] = set()
    for src, tgt in graph.edges:
        if tgt not in placed:
            placed.add(tgt)
            children[src].append(tgt)
    roots = [nid for nid in graph.nodes if nid not in placed]

    preorder: list[str] = []
    stack = list(reversed(roots))
    while stack:
        nid = stack.pop()
        preorder.append(nid)
        stack.extend(reversed(children.get(nid, [])))

    nodes = graph.nodes

    def span_of(ids: list[str]) -> float:
        total = sum(extent[i] for i in ids)
        total += sum(_gap(nodes[a], nodes[b]) for a, b in zip(ids, ids[1:]))
        return total

    extent: dict[str, float] = {}
    span: dict[str, float] = {}
    for nid in reversed(preorder):
        span[nid] = span_of(children.get(nid, []))
        extent[nid] = max(nodes[nid].breadth, span[nid])

    start: dict[str, float] = {}
    cursor = 0.0
    for i, nid in enumerate(roots):
        if i:
            cursor += _gap(nodes[roots[i - 1]], nodes[nid])
        start[nid] = cursor
        cursor += extent[nid]

    for nid in preorder:
        nodes[nid].center = start[nid] + extent[nid] / 2
        kids = children.get(nid, [])
        child_cursor = nodes[nid].center - span[nid] / 2
        for i, kid in enumerate(kids):
            if i:
                child_cursor += _gap(nodes[kids[i - 1]], nodes[kid])
            start[kid] = child_cursor
            child_cursor += extent[kid]

    return preorder


def _order_within_ranks(graph: _WorkingGraph, preorder: list[str]) -> dict[str, int]:
    """Index of every real node among the real nodes of its rank."""
    sequence = {nid: i for i, nid in enumerate(preorder)}
    by_rank: dict[int, list[_Node]] = defaultdict(list)
    for node in graph.nodes.values():
        if not node.is_virtual:
            by_rank[node.rank].append(node)

    orders: dict[str, int] = {}
    for rank_nodes in by_rank.values():
        rank_nodes.sort(key=lambda n: (n.center, sequence[n.id]))
        for i, node in enumerate(rank_nodes):
            orders[node.id] = i
    return orders


# ---------------------------------------------------------------------------
# Route -> snapshot
# ---------------------------------------------------------------------------

def layout_route(
    route: Route,
    config: Optional[LayoutConfig] = None,
    builder: Optional[GraphBuilder] = None,
) -> GraphSnapshot:
    """Build and lay out *route* in one pass and freeze the result."""
    cfg = config or LayoutConfig()
    direction = cfg.validate()
    nodes, edges = (builder or GraphBuilder()).build(route)
    layout(nodes, edges, cfg)
    return GraphSnapshot(
        route_id=route.id,
        direction=direction,
        nodes=tuple(nodes),
        edges=tuple(edges),
    )
