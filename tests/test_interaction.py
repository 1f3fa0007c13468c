"""Tests for the pointer hub, manipulation sessions and the engine dispatch."""
from __future__ import annotations

import pytest

from document import DocumentController
from interaction import (
    EMPTY_CANVAS,
    ArrowCreationSession,
    ControlPointSession,
    HitTarget,
    ItemDragSession,
    ItemResizeSession,
    MainImageDragSession,
    ManipulationEngine,
    PointerHub,
    Target,
)
from models import Arrow, ArrowShape, EntityKind, MIN_ITEM_WIDTH, Mode, Point
from selection import SelectionController


SRC = "data:image/png;base64,AAAA"


@pytest.fixture()
def doc():
    return DocumentController()


@pytest.fixture()
def sel(doc):
    return SelectionController(doc)


@pytest.fixture()
def engine(doc, sel):
    return ManipulationEngine(doc, sel)


def _lock(doc, sel):
    doc.set_main_image(SRC)
    sel.toggle_main_image_lock()


def _gesture(engine, target, *points):
    """Down at the first point, move through the rest, up at the last."""
    session = engine.pointer_down(points[0], target)
    for p in points[1:]:
        engine.pointer_move(p)
    engine.pointer_up(points[-1])
    return session


# ---------------------------------------------------------------------------
# PointerHub
# ---------------------------------------------------------------------------

class TestPointerHub:

    def test_up_releases_listeners(self):
        hub = PointerHub()
        moves, ups = [], []
        hub.subscribe(moves.append, ups.append)
        hub.move(Point(1, 1))
        hub.up(Point(2, 2))
        assert moves == [Point(1, 1)]
        assert ups == [Point(2, 2)]
        assert hub.listener_count == 0

    def test_events_without_listeners_are_ignored(self):
        hub = PointerHub()
        hub.move(Point(1, 1))
        hub.up(Point(1, 1))
        assert hub.listener_count == 0

    def test_raising_move_handler_releases(self):
        hub = PointerHub()

        def boom(_p):
            raise RuntimeError("boom")

        sub = hub.subscribe(boom, lambda _p: None)
        with pytest.raises(RuntimeError):
            hub.move(Point(0, 0))
        assert not sub.active
        assert hub.listener_count == 0

    def test_raising_up_handler_releases(self):
        hub = PointerHub()

        def boom(_p):
            raise RuntimeError("boom")

        hub.subscribe(lambda _p: None, boom)
        with pytest.raises(RuntimeError):
            hub.up(Point(0, 0))
        assert hub.listener_count == 0

    def test_subscription_context_manager(self):
        hub = PointerHub()
        with hub.subscribe(lambda _p: None, lambda _p: None) as sub:
            assert hub.listener_count == 1
        assert not sub.active
        assert hub.listener_count == 0
        sub.release()

    def test_close(self):
        hub = PointerHub()
        hub.subscribe(lambda _p: None, lambda _p: None)
        hub.close()
        assert hub.closed
        assert hub.listener_count == 0
        with pytest.raises(RuntimeError):
            hub.subscribe(lambda _p: None, lambda _p: None)


# ---------------------------------------------------------------------------
# Item sessions
# ---------------------------------------------------------------------------

class TestItemSessions:

    def test_drag_equals_sum_of_deltas(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC, x=50, y=50)
        target = HitTarget(Target.ITEM, item.canvas_id)
        points = [Point(60, 60), Point(60.3, 61.7), Point(75.1, 58.2), Point(74.9, 90.05), Point(100.7, 33.3)]
        session = _gesture(engine, target, *points)
        assert isinstance(session, ItemDragSession)
        moved = doc.active_page.find_item(item.canvas_id)
        assert moved.x == pytest.approx(50 + (100.7 - 60))
        assert moved.y == pytest.approx(50 + (33.3 - 60))
        assert sel.is_selected(item.canvas_id, EntityKind.ITEM)
        assert engine.hub.listener_count == 0

    def test_drag_has_no_clamping(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC, x=10, y=10)
        _gesture(engine, HitTarget(Target.ITEM, item.canvas_id), Point(20, 20), Point(-500, -500))
        moved = doc.active_page.find_item(item.canvas_id)
        assert moved.x == -510
        assert moved.y == -510

    def test_resize_floor(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC, x=50, y=50, width=150)
        sel.select(item.canvas_id, EntityKind.ITEM)
        handle = Point(200, 120)
        session = _gesture(engine, HitTarget(Target.ITEM_RESIZE, item.canvas_id),
                           handle, Point(handle.x - 200, handle.y))
        assert isinstance(session, ItemResizeSession)
        assert doc.active_page.find_item(item.canvas_id).width == MIN_ITEM_WIDTH

    def test_resize_grows(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC, width=150)
        sel.select(item.canvas_id, EntityKind.ITEM)
        _gesture(engine, HitTarget(Target.ITEM_RESIZE, item.canvas_id),
                 Point(200, 100), Point(230, 300), Point(260, 0))
        assert doc.active_page.find_item(item.canvas_id).width == 210

    def test_resize_requires_selection(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC)
        assert engine.pointer_down(Point(0, 0), HitTarget(Target.ITEM_RESIZE, item.canvas_id)) is None

    def test_inert_on_unlocked_page(self, doc, sel, engine):
        item = doc.add_item(SRC, x=50, y=50)
        assert engine.pointer_down(Point(60, 60), HitTarget(Target.ITEM, item.canvas_id)) is None
        engine.pointer_move(Point(200, 200))
        engine.pointer_up(Point(200, 200))
        assert doc.active_page.find_item(item.canvas_id).x == 50
        assert sel.selection is None


# ---------------------------------------------------------------------------
# Arrows
# ---------------------------------------------------------------------------

class TestArrowCreation:

    def test_scenario(self, doc, sel, engine):
        sel.set_mode(Mode.ARROW)
        previews = []
        engine.add_preview_listener(previews.append)
        session = engine.pointer_down(Point(100, 100))
        assert isinstance(session, ArrowCreationSession)
        engine.pointer_move(Point(300, 150))
        assert engine.preview_arrow == (Point(100, 100), Point(300, 150))
        engine.pointer_up(Point(300, 150))

        arrows = doc.active_page.arrows
        assert len(arrows) == 1
        assert arrows[0].start == Point(100, 100)
        assert arrows[0].end == Point(300, 150)
        assert arrows[0].mid is None
        assert arrows[0].shape is ArrowShape.STRAIGHT
        assert sel.mode == Mode.MOVE
        assert engine.preview_arrow is None
        assert previews[-1] is None

    def test_uses_current_style(self, doc, sel, engine):
        sel.set_arrow_style(width=5.0, color="#000000", style="dashed")
        sel.set_mode(Mode.ARROW)
        _gesture(engine, EMPTY_CANVAS, Point(0, 0), Point(10, 0))
        arrow = doc.active_page.arrows[0]
        assert (arrow.width, arrow.color, arrow.style) == (5.0, "#000000", "dashed")

    def test_works_over_unlocked_main_image(self, doc, sel, engine):
        doc.set_main_image(SRC)
        sel.set_mode(Mode.ARROW)
        _gesture(engine, HitTarget(Target.MAIN_IMAGE), Point(0, 0), Point(10, 10))
        assert len(doc.active_page.arrows) == 1
        assert doc.active_page.main_image_pos.x == 0

    def test_arrow_lands_on_the_active_page(self, doc, sel, engine):
        doc.add_page(activate=False)
        sel.set_mode(Mode.ARROW)
        _gesture(engine, EMPTY_CANVAS, Point(100, 100), Point(300, 150))
        assert len(doc.pages[0].arrows) == 1
        assert doc.pages[1].arrows == ()

    def test_up_without_down_is_ignored(self, doc, sel, engine):
        sel.set_mode(Mode.ARROW)
        engine.pointer_move(Point(5, 5))
        engine.pointer_up(Point(5, 5))
        assert doc.active_page.arrows == ()
        assert sel.mode == Mode.ARROW

    def test_page_switch_mid_gesture_commits_nothing(self, doc, sel, engine):
        sel.set_mode(Mode.ARROW)
        engine.pointer_down(Point(100, 100))
        doc.add_page()
        engine.pointer_move(Point(300, 150))
        engine.pointer_up(Point(300, 150))
        assert doc.pages[0].arrows == ()
        assert doc.pages[1].arrows == ()
        assert engine.preview_arrow is None
        assert engine.hub.listener_count == 0


class TestArrowEditing:

    @pytest.fixture()
    def arrow(self, doc, sel):
        _lock(doc, sel)
        a = doc.add_arrow(Arrow(id="a1", start=Point(0, 0), end=Point(100, 0)))
        sel.select(a.id, EntityKind.ARROW)
        return a

    def test_click_on_arrow_selects(self, doc, sel, engine, arrow):
        sel.clear_selection()
        assert engine.pointer_down(Point(50, 0), HitTarget(Target.ARROW, arrow.id)) is None
        assert sel.is_selected(arrow.id, EntityKind.ARROW)

    def test_endpoint_drag(self, doc, engine, arrow):
        _gesture(engine, HitTarget(Target.ARROW_END, arrow.id), Point(100, 0), Point(150, 40), Point(180, 60))
        updated = doc.active_page.find_arrow(arrow.id)
        assert updated.end == Point(180, 60)
        assert updated.start == Point(0, 0)

    def test_handles_need_selection(self, doc, sel, engine, arrow):
        sel.clear_selection()
        assert engine.pointer_down(Point(0, 0), HitTarget(Target.ARROW_START, arrow.id)) is None

    def test_control_point_toggle_twice(self, doc, engine, arrow):
        mid = HitTarget(Target.ARROW_MID, arrow.id)
        session = _gesture(engine, mid, Point(50, 0))
        assert isinstance(session, ControlPointSession)
        curved = doc.active_page.find_arrow(arrow.id)
        assert curved.shape is ArrowShape.CURVED
        assert curved.mid == Point(70, 20)

        _gesture(engine, mid, curved.mid)
        straight = doc.active_page.find_arrow(arrow.id)
        assert straight.shape is ArrowShape.STRAIGHT
        assert straight.mid is None
        assert straight.start == arrow.start
        assert straight.end == arrow.end

    def test_promotion_ignores_the_rest_of_the_gesture(self, doc, engine, arrow):
        _gesture(engine, HitTarget(Target.ARROW_MID, arrow.id), Point(50, 0), Point(90, 90))
        assert doc.active_page.find_arrow(arrow.id).mid == Point(70, 20)

    def test_control_point_drag(self, doc, engine, arrow):
        mid = HitTarget(Target.ARROW_MID, arrow.id)
        _gesture(engine, mid, Point(50, 0))
        _gesture(engine, mid, Point(70, 20), Point(80, 25), Point(90, 60))
        curved = doc.active_page.find_arrow(arrow.id)
        assert curved.shape is ArrowShape.CURVED
        assert curved.mid == Point(90, 60)


# ---------------------------------------------------------------------------
# Main image and engine lifecycle
# ---------------------------------------------------------------------------

class TestMainImage:

    def test_drag_while_unlocked(self, doc, sel, engine):
        doc.set_main_image(SRC)
        session = _gesture(engine, HitTarget(Target.MAIN_IMAGE), Point(10, 10), Point(40, 30), Point(70, 5))
        assert isinstance(session, MainImageDragSession)
        pos = doc.active_page.main_image_pos
        assert (pos.x, pos.y) == (60, -5)

    def test_locked_image_is_inert(self, doc, sel, engine):
        _lock(doc, sel)
        assert engine.pointer_down(Point(0, 0), HitTarget(Target.MAIN_IMAGE)) is None

    def test_no_image_no_drag(self, doc, sel, engine):
        assert engine.pointer_down(Point(0, 0), HitTarget(Target.MAIN_IMAGE)) is None

    def test_empty_canvas_clears_selection(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC)
        sel.select(item.canvas_id, EntityKind.ITEM)
        engine.pointer_down(Point(1000, 1000), EMPTY_CANVAS)
        assert sel.selection is None


class TestEngineLifecycle:

    def test_new_down_releases_previous_session(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC)
        first = engine.pointer_down(Point(0, 0), HitTarget(Target.ITEM, item.canvas_id))
        second = engine.pointer_down(Point(0, 0), HitTarget(Target.ITEM, item.canvas_id))
        assert not first.active
        assert second.active
        assert engine.hub.listener_count == 1

    def test_shutdown_mid_gesture(self, doc, sel, engine):
        sel.set_mode(Mode.ARROW)
        session = engine.pointer_down(Point(0, 0))
        engine.pointer_move(Point(50, 50))
        engine.shutdown()
        assert not session.active
        assert engine.session is None
        assert engine.preview_arrow is None
        assert engine.hub.listener_count == 0
        engine.pointer_up(Point(50, 50))
        assert doc.active_page.arrows == ()
        assert engine.pointer_down(Point(0, 0)) is None

    def test_page_switch_mid_drag_leaves_new_page_alone(self, doc, sel, engine):
        _lock(doc, sel)
        item = doc.add_item(SRC, x=50, y=50)
        engine.pointer_down(Point(60, 60), HitTarget(Target.ITEM, item.canvas_id))
        doc.add_page()
        engine.pointer_move(Point(200, 200))
        engine.pointer_up(Point(200, 200))
        assert doc.pages[0].find_item(item.canvas_id).x == 50
