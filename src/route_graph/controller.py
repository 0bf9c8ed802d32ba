"""
Interaction controller for a displayed route graph.

Owns the current snapshot and direction, rebuilds on direction or route
changes, and defers the camera refocus until the rendering surface has
committed the new positions.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import replace
from typing import Any, Callable, Optional, Protocol, Union

from route_graph.builder import GraphBuilder
from route_graph.layout_engine import LayoutConfig, layout_route
from route_graph.models import CameraTransform, Direction, GraphSnapshot, Route
from route_graph.validation import validate_direction
from route_graph.viewport import ViewportController

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Scheduling
# ---------------------------------------------------------------------------

class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Anything with ``call_soon``; an asyncio event loop qualifies."""

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> Handle: ...


class DeferredCall:
    """A queued callback that can be cancelled before it runs."""

    def __init__(self, callback: Callable[..., Any], args: tuple) -> None:
        self._callback = callback
        self._args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def run(self) -> None:
        if not self.cancelled:
            self._callback(*self._args)


class DeferredCalls:
    """FIFO of follow-up tasks, drained by the rendering surface after a commit."""

    def __init__(self) -> None:
        self._pending: deque[DeferredCall] = deque()

    def call_soon(self, callback: Callable[..., Any], *args: Any) -> DeferredCall:
        call = DeferredCall(callback, args)
        self._pending.append(call)
        return call

    def run_pending(self) -> int:
        """Run every call queued so far. Returns how many were run."""
        ran = 0
        for _ in range(len(self._pending)):
            call = self._pending.popleft()
            if not call.cancelled:
                call.run()
                ran += 1
        return ran

    def __len__(self) -> int:
        return sum(1 for call in self._pending if not call.cancelled)


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------

class InteractionController:
    """Keeps a route graph in sync with direction changes and clicks.

    Args:
        route: Route tree initially displayed.
        on_node_select: Called with the clicked route when it is not the
            active one. Expected to eventually call :meth:`set_route`.
        direction: Initial draw direction.
        layout_config: Spacing settings; its direction is overridden.
        scheduler: Where the refocus is queued. Defaults to a
            :class:`DeferredCalls` the caller drains after committing.
        on_render: Receives every new snapshot.
        on_focus: Receives every camera transform produced by a refocus.
    """

    def __init__(
        self,
        route: Route,
        on_node_select: Callable[[Route], None],
        *,
        direction: Union[str, Direction] = "TB",
        layout_config: Optional[LayoutConfig] = None,
        builder: Optional[GraphBuilder] = None,
        viewport: Optional[ViewportController] = None,
        scheduler: Optional[Scheduler] = None,
        on_render: Optional[Callable[[GraphSnapshot], None]] = None,
        on_focus: Optional[Callable[[CameraTransform], None]] = None,
    ) -> None:
        self.on_node_select = on_node_select
        self.on_render = on_render
        self.on_focus = on_focus
        self.builder = builder or GraphBuilder()
        self.viewport = viewport or ViewportController()
        self.scheduler: Scheduler = scheduler if scheduler is not None else DeferredCalls()
        self._base_config = layout_config or LayoutConfig()
        self._pending_focus: Optional[Handle] = None
        self.rebuilds = 0

        self._route = route
        self._direction = _parse_direction(direction)
        self._snapshot = self._rebuild(route, self._direction)

    # -- state --

    @property
    def route(self) -> Route:
        return self._route

    @property
    def direction(self) -> Direction:
        return self._direction

    @property
    def snapshot(self) -> GraphSnapshot:
        return self._snapshot

    # -- transitions --

    def set_direction(self, direction: Union[str, Direction]) -> GraphSnapshot:
        """Re-lay out the current route in *direction* and queue a refocus."""
        parsed = _parse_direction(direction)
        self._snapshot = self._rebuild(self._route, parsed)
        self._direction = parsed
        self._render()
        self._schedule_focus()
        return self._snapshot

    def set_route(self, route: Route) -> bool:
        """Display *route*. A route with the active id is not rebuilt.

        Returns whether a rebuild happened.
        """
        if route.id == self._route.id:
            return False
        self._snapshot = self._rebuild(route, self._direction)
        self._route = route
        self._render()
        return True

    def refresh(self) -> GraphSnapshot:
        """Hand the current snapshot to the surface again without recomputing."""
        self._render()
        return self._snapshot

    def click(self, node_id: str) -> bool:
        """Handle a click on node *node_id*.

        A click on the active route's node does nothing. Returns whether the
        selection callback was invoked.
        """
        node = self._snapshot.node(node_id)
        if node.route.id == self._route.id:
            return False
        logger.debug("Selecting route '%s' from node %s", node.route.id, node_id)
        self.on_node_select(node.route)
        return True

    def focus_root(self) -> CameraTransform:
        """Focus the root of whatever snapshot is current when this runs."""
        self._pending_focus = None
        transform = self.viewport.focus(self._snapshot.root)
        if self.on_focus:
            self.on_focus(transform)
        return transform

    # -- internals --

    def _rebuild(self, route: Route, direction: Direction) -> GraphSnapshot:
        cfg = replace(self._base_config, direction=direction)
        snapshot = layout_route(route, cfg, self.builder)
        self.rebuilds += 1
        logger.debug(
            "Rebuilt route '%s' (%s): %d nodes",
            route.id, direction.value, len(snapshot.nodes),
        )
        return snapshot

    def _render(self) -> None:
        if self.on_render:
            self.on_render(self._snapshot)

    def _schedule_focus(self) -> None:
        if self._pending_focus is not None:
            self._pending_focus.cancel()
        self._pending_focus = self.scheduler.call_soon(self.focus_root)


def _parse_direction(value: Union[str, Direction]) -> Direction:
    if isinstance(value, Direction):
        return value
    return Direction(validate_direction(value))
