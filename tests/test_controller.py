"""Tests for the interaction controller."""

import asyncio

import pytest

from route_graph.controller import DeferredCalls, InteractionController
from route_graph.layout_engine import LayoutConfig
from route_graph.models import CameraTransform, Direction, GraphSnapshot, Route
from route_graph.validation import StructuralViolation, UnknownDirection


def _sample_route() -> Route:
    return Route.from_dict({
        "id": "root",
        "path": "/",
        "routes": {
            "a": {"id": "a", "path": "/a", "routes": {"a1": {"id": "a1", "path": "/a/1"}}},
            "b": {"id": "b", "path": "/b"},
        },
    })


class _Recorder:
    def __init__(self) -> None:
        self.selected: list[Route] = []
        self.rendered: list[GraphSnapshot] = []
        self.focused: list[CameraTransform] = []


def _controller(**kwargs) -> tuple[InteractionController, DeferredCalls, _Recorder]:
    rec = _Recorder()
    scheduler = DeferredCalls()
    ctrl = InteractionController(
        _sample_route(),
        on_node_select=rec.selected.append,
        scheduler=scheduler,
        on_render=rec.rendered.append,
        on_focus=rec.focused.append,
        **kwargs,
    )
    return ctrl, scheduler, rec


class TestDirection:
    def test_initial_state(self) -> None:
        ctrl, scheduler, rec = _controller()
        assert ctrl.direction is Direction.TB
        assert ctrl.snapshot.route_id == "root"
        assert len(ctrl.snapshot.nodes) == 4
        assert len(scheduler) == 0
        assert ctrl.rebuilds == 1

    def test_configured_default(self) -> None:
        ctrl, _, _ = _controller(direction="RL")
        assert ctrl.snapshot.direction is Direction.RL

    def test_set_direction_relayouts_and_renders(self) -> None:
        ctrl, _, rec = _controller()
        snap = ctrl.set_direction("LR")
        assert snap.direction is Direction.LR
        assert ctrl.direction is Direction.LR
        assert rec.rendered == [snap]
        assert ctrl.rebuilds == 2

    def test_refocus_runs_only_after_commit(self) -> None:
        ctrl, scheduler, rec = _controller()
        ctrl.set_direction("LR")
        assert rec.focused == []
        assert scheduler.run_pending() == 1
        assert rec.focused == [CameraTransform(x=86, y=61, zoom=0.5, duration_ms=1000)]

    def test_newer_refocus_cancels_older(self) -> None:
        ctrl, scheduler, rec = _controller()
        ctrl.set_direction("LR")
        ctrl.set_direction("TB")
        assert len(scheduler) == 1
        assert scheduler.run_pending() == 1
        assert rec.focused[-1].x == 197

    def test_stale_refocus_reads_current_graph(self) -> None:
        ctrl, scheduler, rec = _controller()
        ctrl.set_direction("TB")
        ctrl.set_route(Route(id="other", path="/other"))
        scheduler.run_pending()
        assert (rec.focused[-1].x, rec.focused[-1].y) == (86, 18)

    def test_unknown_direction_leaves_state(self) -> None:
        ctrl, scheduler, rec = _controller()
        before = ctrl.snapshot
        with pytest.raises(UnknownDirection):
            ctrl.set_direction("UP")
        assert ctrl.snapshot is before
        assert ctrl.direction is Direction.TB
        assert ctrl.rebuilds == 1
        assert len(scheduler) == 0
        assert rec.rendered == []

    def test_layout_config_spacing_kept(self) -> None:
        ctrl, _, _ = _controller(layout_config=LayoutConfig(direction="BT", node_separation=0))
        assert ctrl.direction is Direction.TB
        b = next(n for n in ctrl.snapshot.nodes if n.route.id == "b")
        assert b.x == 172

    def test_asyncio_loop_as_scheduler(self) -> None:
        loop = asyncio.new_event_loop()
        try:
            focused: list[CameraTransform] = []
            ctrl = InteractionController(
                _sample_route(), on_node_select=lambda r: None,
                scheduler=loop, on_focus=focused.append,
            )
            ctrl.set_direction("LR")
            assert focused == []
            loop.run_until_complete(asyncio.sleep(0))
            assert len(focused) == 1
        finally:
            loop.close()


class TestRoute:
    def test_same_route_id_is_memoized(self) -> None:
        ctrl, _, rec = _controller()
        before = ctrl.snapshot
        assert ctrl.set_route(_sample_route()) is False
        assert ctrl.snapshot is before
        assert ctrl.rebuilds == 1
        assert rec.rendered == []

    def test_new_route_rebuilds(self) -> None:
        ctrl, _, rec = _controller(direction="LR")
        assert ctrl.set_route(Route(id="other", path="/other")) is True
        assert ctrl.snapshot.route_id == "other"
        assert ctrl.snapshot.direction is Direction.LR
        assert len(ctrl.snapshot.nodes) == 1
        assert rec.rendered[-1] is ctrl.snapshot

    def test_refresh_does_not_recompute(self) -> None:
        ctrl, _, rec = _controller()
        snap = ctrl.refresh()
        assert snap is ctrl.snapshot
        assert rec.rendered == [snap]
        assert ctrl.rebuilds == 1


class TestClick:
    def test_click_active_route_is_noop(self) -> None:
        ctrl, _, rec = _controller()
        assert ctrl.click("1") is False
        assert rec.selected == []

    def test_click_other_route_selects_once(self) -> None:
        ctrl, _, rec = _controller()
        assert ctrl.click("2") is True
        assert [r.id for r in rec.selected] == ["a"]

    def test_click_leaf(self) -> None:
        ctrl, _, rec = _controller()
        ctrl.click("3")
        assert rec.selected[0].path == "/a/1"

    def test_click_unknown_node(self) -> None:
        ctrl, _, _ = _controller()
        with pytest.raises(StructuralViolation):
            ctrl.click("99")

    def test_navigation_round_trip(self) -> None:
        """Selecting a node and feeding its route back makes it the active one."""
        ctrl, _, rec = _controller()
        ctrl.click("2")
        ctrl.set_route(rec.selected[0])
        assert ctrl.snapshot.route_id == "a"
        assert ctrl.click("1") is False
        assert len(rec.selected) == 1
