"""
interaction/engine.py

Manipulation engine: interprets pointer-down events against the current
mode, selection and lock state, and opens the matching pointer session.

Move and up events are forwarded to the PointerHub, so a move or up
without a preceding down reaches no listener and is silently ignored.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from document import DocumentController
from interaction.hub import PointerHub
from interaction.sessions import (
    ArrowCreationSession,
    ArrowEndpointSession,
    ControlPointSession,
    ItemDragSession,
    ItemResizeSession,
    MainImageDragSession,
    PointerSession,
)
from models import Arrow, EntityKind, Mode, Point
from selection import SelectionController
from debug_trace import trace


class Target:
    """What lies under the pointer at a press."""
    CANVAS = "canvas"
    MAIN_IMAGE = "main_image"
    ITEM = "item"
    ITEM_RESIZE = "item_resize"
    ARROW = "arrow"
    ARROW_START = "arrow_start"
    ARROW_END = "arrow_end"
    ARROW_MID = "arrow_mid"


@dataclass(frozen=True)
class HitTarget:
    """A hit-test result: the target kind and, for entities, their id."""
    kind: str
    entity_id: Optional[str] = None


EMPTY_CANVAS = HitTarget(Target.CANVAS)


class ManipulationEngine:
    """Turns pointer events into document mutations.

    Args:
        document: The document controller.
        selection: The selection/locking controller.
        hub: Pointer hub; a fresh one is created when omitted.
    """

    def __init__(self, document: DocumentController, selection: SelectionController,
                 hub: Optional[PointerHub] = None):
        self.document = document
        self.selection = selection
        self.hub = hub or PointerHub()
        self._session: Optional[PointerSession] = None
        self._preview: Optional[Tuple[Point, Point]] = None
        self._preview_listeners: List[Callable[[Optional[Tuple[Point, Point]]], None]] = []

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def session(self) -> Optional[PointerSession]:
        """The open session, if its gesture has not ended yet."""
        if self._session is not None and not self._session.active:
            self._session = None
        return self._session

    @property
    def preview_arrow(self) -> Optional[Tuple[Point, Point]]:
        """``(start, end)`` of the arrow being drawn, or None."""
        return self._preview

    def add_preview_listener(self, callback: Callable[[Optional[Tuple[Point, Point]]], None]) -> None:
        self._preview_listeners.append(callback)

    def _set_preview(self, preview: Optional[Tuple[Point, Point]]) -> None:
        self._preview = preview
        for cb in list(self._preview_listeners):
            cb(preview)

    def _begin(self, session: PointerSession) -> PointerSession:
        self._session = session
        return session

    def _release_open_session(self) -> None:
        if self._session is not None:
            self._session.release()
            self._session = None
        if self._preview is not None:
            self._set_preview(None)

    # ------------------------------------------------------------------
    # Pointer events
    # ------------------------------------------------------------------

    def pointer_down(self, point: Point, target: HitTarget = EMPTY_CANVAS) -> Optional[PointerSession]:
        """Interpret a press at document point ``point`` over ``target``.

        Returns:
            The opened session, or None when the press only changed the
            selection or was ignored.
        """
        if self.hub.closed:
            return None
        # Only one gesture at a time
        self._release_open_session()
        trace(f"pointer_down {target.kind} id={target.entity_id} mode={self.selection.mode}", "ENGINE")

        if self.selection.mode == Mode.ARROW:
            return self._down_arrow_mode(point, target)
        return self._down_move_mode(point, target)

    def pointer_move(self, point: Point) -> None:
        trace(f"pointer_move ({point.x:.1f}, {point.y:.1f})", "POINTER")
        self.hub.move(point)

    def pointer_up(self, point: Point) -> None:
        self.hub.up(point)
        self._session = None

    def shutdown(self) -> None:
        """Release every listener; called when the interactive surface goes away."""
        self._release_open_session()
        self.hub.close()

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def _down_arrow_mode(self, point: Point, target: HitTarget) -> Optional[PointerSession]:
        # The main image is inert in arrow mode, so it counts as empty canvas
        if target.kind not in (Target.CANVAS, Target.MAIN_IMAGE):
            return None
        return self._begin(ArrowCreationSession(
            self.hub, self.document, point, self.selection.state.arrow_style,
            on_preview=self._set_preview,
            on_commit=self._commit_arrow,
        ))

    def _commit_arrow(self, arrow: Arrow) -> None:
        self.document.add_arrow(arrow)
        self.selection.set_mode(Mode.MOVE)
        trace(f"arrow committed id={arrow.id}", "ENGINE")

    def _down_move_mode(self, point: Point, target: HitTarget) -> Optional[PointerSession]:
        sel = self.selection
        page = self.document.active_page
        kind = target.kind
        eid = target.entity_id

        if kind == Target.CANVAS:
            sel.clear_selection()
            return None

        if kind == Target.MAIN_IMAGE:
            if sel.main_image_interactive and page.main_image is not None:
                return self._begin(MainImageDragSession(self.hub, self.document, point))
            sel.clear_selection()
            return None

        if not sel.can_select() or eid is None:
            return None

        if kind == Target.ITEM:
            if sel.select(eid, EntityKind.ITEM):
                return self._begin(ItemDragSession(self.hub, self.document, eid, point))
            return None

        if kind == Target.ITEM_RESIZE:
            item = page.find_item(eid)
            if item is not None and sel.is_selected(eid, EntityKind.ITEM):
                return self._begin(ItemResizeSession(self.hub, self.document, eid, point, item.width))
            return None

        if kind == Target.ARROW:
            sel.select(eid, EntityKind.ARROW)
            return None

        # Handles exist only on the selected arrow
        if not sel.is_selected(eid, EntityKind.ARROW):
            return None
        if kind == Target.ARROW_START:
            return self._begin(ArrowEndpointSession(self.hub, self.document, eid, "start", point))
        if kind == Target.ARROW_END:
            return self._begin(ArrowEndpointSession(self.hub, self.document, eid, "end", point))
        if kind == Target.ARROW_MID:
            return self._begin(ControlPointSession(self.hub, self.document, eid, point))
        return None
