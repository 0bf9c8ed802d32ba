"""
Branch palette and node themes for route graphs.

Colors convey branch membership: every subtree hanging off the root gets its
own palette color and keeps it all the way down.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing import Optional, Sequence

from route_graph.models import NodeKind


# ---------------------------------------------------------------------------
# Palette
# ---------------------------------------------------------------------------

PALETTE: tuple[str, ...] = (
    "#1abc9c",
    "#2ecc71",
    "#3498db",
    "#9b59b6",
    "#f1c40f",
    "#e67e22",
    "#e74c3c",
)

ROOT_COLOR = "#2563eb"
NEUTRAL_EDGE_COLOR = "#1F2937"


def pick_color(
    index: int,
    palette: Sequence[str] = PALETTE,
    rng: Optional[random.Random] = None,
) -> str:
    """Color for the *index*-th child of the root.

    Cycles through *palette* by sibling index, or draws from *rng* when a
    seeded generator is supplied.
    """
    if rng is not None:
        return rng.choice(list(palette))
    return palette[index % len(palette)]


def lighten_color(hex_color: str, level: int = 1) -> str:
    """Brighten each RGB channel by 5 % per *level*, clamped to 255."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = "".join(ch * 2 for ch in hex_color)
    factor = 1 + (level * 5) / 100
    channels = [
        min(255, int(int(hex_color[i:i + 2], 16) * factor))
        for i in (0, 2, 4)
    ]
    return "#" + "".join(f"{c:02X}" for c in channels)


# ---------------------------------------------------------------------------
# Node themes
# ---------------------------------------------------------------------------

@dataclass
class NodeTheme:
    """Fill / stroke / font colors for one kind of node."""
    fill: str
    stroke: str
    font: str
    hover: str = ""


ROOT_THEME = NodeTheme(fill="#3b82f6", stroke="#2563eb", font="#ffffff", hover="#2563eb")
ROUTE_THEME = NodeTheme(fill="#f9fafb", stroke="#d1d5db", font="#374151", hover="#f3f4f6")


def node_style(kind: NodeKind, color: str) -> dict[str, str]:
    """Style the rendering surface paints for a node of *kind* in branch *color*."""
    if kind is NodeKind.ROOT:
        theme = ROOT_THEME
        return {
            "background": theme.fill,
            "borderColor": theme.stroke,
            "color": theme.font,
            "hoverBackground": theme.hover,
            "fontWeight": "bold",
        }
    theme = ROUTE_THEME
    return {
        "background": theme.fill,
        "borderColor": color or theme.stroke,
        "color": theme.font,
        "hoverBackground": lighten_color(color, level=8) if color else theme.hover,
        "fontWeight": "bold",
    }
