"""
Route tree -> flat graph conversion.

Walks a route tree in pre-order and produces the node and edge lists the
layout engine positions. Node ids are sequence numbers scoped to one build.
"""

from __future__ import annotations

import random
from typing import Optional, Sequence

from route_graph.models import GraphEdge, GraphNode, NodeKind, Route
from route_graph.styles import NEUTRAL_EDGE_COLOR, PALETTE, ROOT_COLOR, node_style, pick_color
from route_graph.validation import StructuralViolation, ValidationError, validate_color


class GraphBuilder:
    """Converts a :class:`Route` tree into nodes and parent -> child edges.

    Args:
        palette: Colors handed out to the root's children.
        seed: When given, depth-1 colors are drawn from a generator seeded
            with it instead of cycling through the palette by sibling index.
    """

    def __init__(self, palette: Optional[Sequence[str]] = None, seed: Optional[int] = None) -> None:
        self.palette = tuple(_check_palette(palette)) if palette else PALETTE
        self.seed = seed

    def build(self, route: Route) -> tuple[list[GraphNode], list[GraphEdge]]:
        """Return ``(nodes, edges)`` for *route* in pre-order.

        Edge ids are ``e<source><target>`` with the two ids run together, so
        from 112 nodes on two edges can share an id (``1 -> 112`` and
        ``11 -> 12`` both give ``e1112``). Key edges by ``(source, target)``
        when a tree may be that large.
        """
        _check_unique_ids(route)
        rng = random.Random(self.seed) if self.seed is not None else None
        nodes, edges, _ = self._visit(route, None, 0, 0, 1, rng)
        return nodes, edges

    def _visit(
        self,
        route: Route,
        parent: Optional[GraphNode],
        depth: int,
        sibling_index: int,
        next_id: int,
        rng: Optional[random.Random],
    ) -> tuple[list[GraphNode], list[GraphEdge], int]:
        """Build the subtree rooted at *route*.

        Returns the subtree's nodes and edges plus the next unused id.
        """
        if parent is None:
            kind, color = NodeKind.ROOT, ROOT_COLOR
        elif depth == 1:
            kind, color = NodeKind.INTERNAL, pick_color(sibling_index, self.palette, rng)
        else:
            kind, color = NodeKind.INTERNAL, parent.color

        node = GraphNode(
            id=str(next_id),
            kind=kind,
            route=route,
            depth=depth,
            color=color,
            style=node_style(kind, color),
        )
        nodes = [node]
        edges: list[GraphEdge] = []
        next_id += 1

        edge_color = NEUTRAL_EDGE_COLOR if parent is None else color
        for index, child in enumerate(route.routes.values()):
            child_id = str(next_id)
            edges.append(GraphEdge(
                id=f"e{node.id}{child_id}",
                source=node.id,
                target=child_id,
                color=edge_color,
            ))
            sub_nodes, sub_edges, next_id = self._visit(child, node, depth + 1, index, next_id, rng)
            nodes.extend(sub_nodes)
            edges.extend(sub_edges)

        return nodes, edges, next_id


def build_graph(route: Route) -> tuple[list[GraphNode], list[GraphEdge]]:
    """Build with the default palette."""
    return GraphBuilder().build(route)


def _check_palette(palette: Sequence[str]) -> list[str]:
    checked = []
    for i, color in enumerate(palette):
        color = validate_color(color, f"palette[{i}]")
        if color.lower() == ROOT_COLOR.lower():
            raise ValidationError(f"palette[{i}] must differ from the root color {ROOT_COLOR}.")
        checked.append(color)
    return checked


def _check_unique_ids(route: Route) -> None:
    # Stops at the first repeat, so a cyclic tree cannot loop forever.
    seen: set[str] = set()
    for sub in route.walk():
        if sub.id in seen:
            raise StructuralViolation(f"Duplicate route id '{sub.id}' in route tree.")
        seen.add(sub.id)
