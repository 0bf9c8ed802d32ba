"""
Core data model for route graphs.

Provides the read-only route tree handed over by the route source, and the
node / edge / snapshot types handed on to the rendering surface.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterator, Optional

from route_graph.validation import StructuralViolation, validate_route_dict


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class NodeKind(Enum):
    """Node type names the rendering surface switches on."""
    ROOT = "rootRoute"
    INTERNAL = "route"


class Direction(Enum):
    """Draw direction of the rank axis."""
    TB = "TB"
    BT = "BT"
    LR = "LR"
    RL = "RL"

    @property
    def is_horizontal(self) -> bool:
        return self in (Direction.LR, Direction.RL)

    @property
    def is_reversed(self) -> bool:
        return self in (Direction.BT, Direction.RL)


class AnchorSide(Enum):
    """Side of a node box where edges attach."""
    TOP = "top"
    BOTTOM = "bottom"
    LEFT = "left"
    RIGHT = "right"


# ---------------------------------------------------------------------------
# Input tree
# ---------------------------------------------------------------------------

@dataclass
class Route:
    """One node of the route tree. Treated as read-only by this package."""
    id: str
    path: str
    name: str = ""
    routes: dict[str, Route] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.name:
            self.name = self.path

    @classmethod
    def from_dict(cls, data: Any) -> Route:
        """Parse the JSON route shape (``id``, ``path``, ``name?``, ``routes?``)."""
        validate_route_dict(data)
        return cls._from_valid_dict(data)

    @classmethod
    def _from_valid_dict(cls, data: dict) -> Route:
        children = {
            key: cls._from_valid_dict(child)
            for key, child in (data.get("routes") or {}).items()
        }
        return cls(
            id=data["id"],
            path=data["path"],
            name=data.get("name") or data["path"],
            routes=children,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "path": self.path,
            "name": self.name,
            "routes": {key: child.to_dict() for key, child in self.routes.items()},
        }

    def walk(self) -> Iterator[Route]:
        """Yield this route and all descendants in pre-order."""
        yield self
        for child in self.routes.values():
            yield from child.walk()


# ---------------------------------------------------------------------------
# Geometry
# ---------------------------------------------------------------------------

@dataclass
class Point:
    """A 2-D coordinate."""
    x: float
    y: float


@dataclass
class Bounds:
    """Axis-aligned bounding box."""
    x: float
    y: float
    width: float
    height: float

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def cx(self) -> float:
        return self.x + self.width / 2

    @property
    def cy(self) -> float:
        return self.y + self.height / 2

    def intersects(self, other: Bounds, margin: float = 0) -> bool:
        """Check if two bounding boxes overlap (with optional margin)."""
        return not (
            self.right + margin <= other.x
            or other.right + margin <= self.x
            or self.bottom + margin <= other.y
            or other.bottom + margin <= self.y
        )


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------

@dataclass
class GraphNode:
    """A node of one build pass.

    ``id`` is a sequence number scoped to the build that produced it; it is
    not stable across rebuilds. ``x``/``y`` is the top-left corner of the box.
    """
    id: str
    kind: NodeKind
    route: Route
    depth: int = 0
    color: str = ""
    rank: int = -1
    order_in_rank: int = -1
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0
    source_position: Optional[AnchorSide] = None
    target_position: Optional[AnchorSide] = None
    style: dict[str, str] = field(default_factory=dict)

    @property
    def is_laid_out(self) -> bool:
        return self.rank >= 0

    @property
    def bounds(self) -> Bounds:
        return Bounds(self.x, self.y, self.width, self.height)

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "data": {
                "id": self.route.id,
                "path": self.route.path,
                "name": self.route.name,
            },
            "position": {"x": self.x, "y": self.y},
            "width": self.width,
            "height": self.height,
            "rank": self.rank,
            "order": self.order_in_rank,
            "style": dict(self.style),
        }
        if self.source_position:
            data["sourcePosition"] = self.source_position.value
        # The root never receives edges, so it gets no target handle.
        if self.target_position and self.kind is not NodeKind.ROOT:
            data["targetPosition"] = self.target_position.value
        return data


@dataclass
class GraphEdge:
    """A parent -> child edge."""
    id: str
    source: str
    target: str
    color: str = ""
    type: str = "smoothstep"
    animated: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "type": self.type,
            "animated": self.animated,
            "style": {"stroke": self.color},
        }


@dataclass(frozen=True)
class GraphSnapshot:
    """A fully positioned graph handed to the rendering surface."""
    route_id: str
    direction: Direction
    nodes: tuple[GraphNode, ...]
    edges: tuple[GraphEdge, ...]

    @property
    def root(self) -> GraphNode:
        for node in self.nodes:
            if node.kind is NodeKind.ROOT:
                return node
        raise StructuralViolation("Snapshot has no root node.")

    def node(self, node_id: str) -> GraphNode:
        for node in self.nodes:
            if node.id == node_id:
                return node
        raise StructuralViolation(f"Node '{node_id}' is not part of the current graph.")

    def to_dict(self) -> dict[str, Any]:
        return {
            "route_id": self.route_id,
            "direction": self.direction.value,
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


@dataclass(frozen=True)
class CameraTransform:
    """Where the viewport should center, at which zoom, over how long."""
    x: float
    y: float
    zoom: float
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "x": self.x,
            "y": self.y,
            "zoom": self.zoom,
            "duration": self.duration_ms,
        }
