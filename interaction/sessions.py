"""
interaction/sessions.py

Pointer sessions: one object per drag gesture.

Each session subscribes to the PointerHub when it is created (the *down*),
applies an incremental mutation per *move*, and is released by the hub on
*up*.  Deltas are always taken against the last pointer position so the
final state equals the sum of the applied deltas.
"""

from __future__ import annotations

from typing import Callable, Optional, Tuple

from document import DocumentController
from interaction.hub import PointerHub
from models import (
    Arrow,
    ArrowShape,
    ArrowStyle,
    CONTROL_POINT_OFFSET,
    MIN_ITEM_WIDTH,
    Point,
    new_id,
)
from debug_trace import trace


class PointerSession:
    """Base class: owns the hub subscription and the last pointer position."""

    name = "session"

    def __init__(self, hub: PointerHub, origin: Point):
        self.origin = origin
        self.last = origin
        self._subscription = hub.subscribe(self._handle_move, self._handle_up)
        trace(f"{self.name} begin at ({origin.x:.1f}, {origin.y:.1f})", "SESSION")

    @property
    def active(self) -> bool:
        return self._subscription.active

    def release(self) -> None:
        self._subscription.release()

    def _handle_move(self, point: Point) -> None:
        self.on_move(point)
        self.last = point

    def _handle_up(self, point: Point) -> None:
        self.on_up(point)
        trace(f"{self.name} end", "SESSION")

    def on_move(self, point: Point) -> None:
        pass

    def on_up(self, point: Point) -> None:
        pass


class _PageBoundSession(PointerSession):
    """A session that edits the page that was active when it began."""

    def __init__(self, hub: PointerHub, document: DocumentController, origin: Point):
        self.document = document
        self.page_id = document.active_page.id
        super().__init__(hub, origin)

    def _same_page(self) -> bool:
        return self.document.active_page.id == self.page_id


class ItemDragSession(_PageBoundSession):
    """Moves an item by the pointer delta. No snapping or clamping."""

    name = "item-drag"

    def __init__(self, hub, document, canvas_id: str, origin: Point):
        self.canvas_id = canvas_id
        super().__init__(hub, document, origin)

    def on_move(self, point: Point) -> None:
        if not self._same_page():
            return
        item = self.document.active_page.find_item(self.canvas_id)
        if item is None:
            return
        delta = point - self.last
        self.document.update_item(self.canvas_id, x=item.x + delta.x, y=item.y + delta.y)


class ItemResizeSession(_PageBoundSession):
    """Horizontal resize from the bottom-right handle with a width floor."""

    name = "item-resize"

    def __init__(self, hub, document, canvas_id: str, origin: Point, start_width: float):
        self.canvas_id = canvas_id
        self.start_width = start_width
        super().__init__(hub, document, origin)

    def on_move(self, point: Point) -> None:
        if not self._same_page():
            return
        width = max(MIN_ITEM_WIDTH, self.start_width + (point.x - self.origin.x))
        self.document.update_item(self.canvas_id, width=width)


class MainImageDragSession(_PageBoundSession):
    """Moves the page's background image while it is unlocked."""

    name = "main-image-drag"

    def on_move(self, point: Point) -> None:
        if not self._same_page():
            return
        pos = self.document.active_page.main_image_pos
        delta = point - self.last
        self.document.set_main_image_position(pos.x + delta.x, pos.y + delta.y)


class ArrowCreationSession(_PageBoundSession):
    """Rubber-bands a transient arrow and commits it on release.

    Nothing is committed when the active page changed during the gesture.

    Args:
        hub: Pointer hub.
        document: Document whose active page receives the arrow.
        origin: Document-space start point.
        style: Stroke settings for the committed arrow.
        on_preview: Called with ``(start, end)`` while dragging, ``None`` when done.
        on_commit: Called with the committed Arrow.
    """

    name = "arrow-create"

    def __init__(self, hub, document, origin: Point, style: ArrowStyle,
                 on_preview: Callable[[Optional[Tuple[Point, Point]]], None],
                 on_commit: Callable[[Arrow], None]):
        self.start = origin
        self.end = origin
        self.style = style
        self._on_preview = on_preview
        self._on_commit = on_commit
        super().__init__(hub, document, origin)
        self._on_preview((self.start, self.end))

    @property
    def preview(self) -> Tuple[Point, Point]:
        return (self.start, self.end)

    def on_move(self, point: Point) -> None:
        if not self._same_page():
            return
        self.end = point
        self._on_preview((self.start, self.end))

    def on_up(self, point: Point) -> None:
        self._on_preview(None)
        if not self._same_page():
            trace("arrow-create: page changed, dropping arrow", "SESSION")
            return
        arrow = Arrow(
            id=new_id(),
            start=self.start,
            end=self.end,
            width=self.style.width,
            color=self.style.color,
            style=self.style.style,
        )
        self._on_commit(arrow)


class ArrowEndpointSession(_PageBoundSession):
    """Rewrites the dragged endpoint of an arrow to the pointer position."""

    name = "arrow-endpoint"

    def __init__(self, hub, document, arrow_id: str, which: str, origin: Point):
        self.arrow_id = arrow_id
        self.which = which
        super().__init__(hub, document, origin)

    def on_move(self, point: Point) -> None:
        if not self._same_page():
            return
        arrow = self.document.active_page.find_arrow(self.arrow_id)
        if arrow is None:
            return
        self.document.replace_arrow(arrow.with_endpoint(self.which, point))


class ControlPointSession(_PageBoundSession):
    """Pointer gesture on an arrow's midpoint handle.

    On a straight arrow the press promotes the midpoint to a control point
    and the rest of the gesture is ignored.  On a curved arrow a drag moves
    the control point; a press-release without movement clears it.
    """

    name = "arrow-control"

    def __init__(self, hub, document, arrow_id: str, origin: Point,
                 offset: float = CONTROL_POINT_OFFSET):
        self.arrow_id = arrow_id
        self.moved = False
        super().__init__(hub, document, origin)
        arrow = document.active_page.find_arrow(arrow_id)
        self.promoted = arrow is not None and arrow.shape is ArrowShape.STRAIGHT
        if self.promoted:
            document.replace_arrow(arrow.with_control_point_toggled(offset))

    def on_move(self, point: Point) -> None:
        if self.promoted or not self._same_page():
            return
        arrow = self.document.active_page.find_arrow(self.arrow_id)
        if arrow is None or arrow.mid is None:
            return
        delta = point - self.last
        if delta.x == 0 and delta.y == 0:
            return
        self.moved = True
        self.document.replace_arrow(arrow.with_control_point(arrow.mid + delta))

    def on_up(self, point: Point) -> None:
        if self.promoted or self.moved or not self._same_page():
            return
        arrow = self.document.active_page.find_arrow(self.arrow_id)
        if arrow is not None and arrow.shape is ArrowShape.CURVED:
            self.document.replace_arrow(arrow.with_control_point_toggled())
