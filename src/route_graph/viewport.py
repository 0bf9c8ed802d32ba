"""Camera transforms for focusing nodes and fitting the whole graph."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from route_graph.models import CameraTransform, GraphNode
from route_graph.validation import ValidationError, validate_positive_number


@dataclass
class ViewportConfig:
    """Camera settings."""
    zoom: float = 0.5           # Zoom used when focusing a single node
    duration_ms: int = 1000     # Focus animation length
    min_zoom: float = 0.0
    max_zoom: float = 2.0
    fit_padding: float = 0.1    # Fraction of the viewport kept free by fit()


@dataclass
class ViewportController:
    config: ViewportConfig = field(default_factory=ViewportConfig)

    def focus(self, node: GraphNode) -> CameraTransform:
        """Center the camera on *node*'s committed box.

        Only valid once a layout pass has positioned the node.
        """
        if not node.is_laid_out:
            raise ValidationError(f"Node '{node.id}' has not been laid out yet.")
        center = node.center
        return CameraTransform(
            x=center.x,
            y=center.y,
            zoom=self.config.zoom,
            duration_ms=self.config.duration_ms,
        )

    def fit(
        self,
        nodes: Sequence[GraphNode],
        viewport_width: float,
        viewport_height: float,
    ) -> Optional[CameraTransform]:
        """Transform showing every node, or ``None`` for an empty graph."""
        validate_positive_number(viewport_width, "viewport_width")
        validate_positive_number(viewport_height, "viewport_height")
        if not nodes:
            return None

        min_x = min(n.x for n in nodes)
        min_y = min(n.y for n in nodes)
        max_x = max(n.x + n.width for n in nodes)
        max_y = max(n.y + n.height for n in nodes)
        content_w = max(max_x - min_x, 1)
        content_h = max(max_y - min_y, 1)

        usable = 1 - self.config.fit_padding
        zoom = min(viewport_width * usable / content_w, viewport_height * usable / content_h)
        zoom = min(max(zoom, self.config.min_zoom), self.config.max_zoom)
        return CameraTransform(
            x=(min_x + max_x) / 2,
            y=(min_y + max_y) / 2,
            zoom=zoom,
        )
