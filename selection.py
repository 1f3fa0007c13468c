"""
selection.py

Session state and the selection/locking controller.

The controller arbitrates which layer of the active page accepts pointer
input:

- While the page's main image is *unlocked*, only the main image is
  interactive; items and arrows are inert and drawn faded.
- Once locked, the overlay (items + arrows) is interactive and the main
  image ignores the pointer.

Selection holds at most one ``(id, kind)`` pair and only exists in
``Mode.MOVE`` on a locked page.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional

from document import DocumentController, CHANGE_ACTIVE, CHANGE_CONTENT, CHANGE_LOADED
from models import ArrowStyle, EntityKind, Mode, Selection
from utils import clamp_zoom
from debug_trace import trace

# Change notification reasons
STATE_MODE = "mode"
STATE_SELECTION = "selection"
STATE_ZOOM = "zoom"
STATE_ARROW_STYLE = "arrow_style"


@dataclass
class SessionState:
    """Process-wide UI state for one editing session."""
    mode: str = Mode.MOVE
    selection: Optional[Selection] = None
    zoom: float = 0.6
    arrow_style: ArrowStyle = field(default_factory=ArrowStyle)
    export_dpi: int = 150


class SelectionController:
    """Owns the SessionState and enforces the selection/locking rules.

    Args:
        document: The document controller whose active page is arbitrated.
        state: Initial session state.
    """

    def __init__(self, document: DocumentController, state: Optional[SessionState] = None):
        self.document = document
        self.state = state or SessionState()
        self.state.zoom = clamp_zoom(self.state.zoom)
        self._listeners: List[Callable[[str], None]] = []
        document.add_listener(self._on_document_changed)

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[str], None]) -> None:
        self._listeners.append(callback)

    def _notify(self, reason: str) -> None:
        for cb in list(self._listeners):
            cb(reason)

    def _on_document_changed(self, reason: str) -> None:
        if reason in (CHANGE_ACTIVE, CHANGE_LOADED):
            # A selection never survives a page switch
            self.clear_selection()
        elif reason == CHANGE_CONTENT and self.state.selection is not None:
            # Unlocking the page makes the overlay inert again
            if not self.overlay_interactive or not self._exists(self.state.selection):
                self.clear_selection()

    def _exists(self, sel: Selection) -> bool:
        page = self.document.active_page
        if sel.kind == EntityKind.ITEM:
            return page.find_item(sel.id) is not None
        return page.find_arrow(sel.id) is not None

    # ------------------------------------------------------------------
    # Mode / zoom / style
    # ------------------------------------------------------------------

    @property
    def mode(self) -> str:
        return self.state.mode

    @property
    def selection(self) -> Optional[Selection]:
        return self.state.selection

    def set_mode(self, mode: str) -> None:
        if mode not in (Mode.MOVE, Mode.ARROW):
            raise ValueError(f"Unknown mode: {mode!r}")
        # Arrow drawing and entity selection are mutually exclusive
        if mode == Mode.ARROW:
            self.clear_selection()
        if self.state.mode != mode:
            self.state.mode = mode
            trace(f"mode -> {mode}", "SELECT")
            self._notify(STATE_MODE)

    def set_zoom(self, zoom: float) -> float:
        z = clamp_zoom(zoom)
        if z != self.state.zoom:
            self.state.zoom = z
            self._notify(STATE_ZOOM)
        return z

    def set_arrow_style(self, **changes) -> ArrowStyle:
        self.state.arrow_style = replace(self.state.arrow_style, **changes)
        self._notify(STATE_ARROW_STYLE)
        return self.state.arrow_style

    # ------------------------------------------------------------------
    # Layer arbitration
    # ------------------------------------------------------------------

    @property
    def overlay_interactive(self) -> bool:
        """Items and arrows accept input only once the main image is locked."""
        return self.document.active_page.is_main_image_locked

    @property
    def main_image_interactive(self) -> bool:
        return not self.document.active_page.is_main_image_locked and self.state.mode == Mode.MOVE

    def toggle_main_image_lock(self) -> bool:
        page = self.document.toggle_main_image_lock()
        self._notify(STATE_SELECTION)
        return page.is_main_image_locked

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def can_select(self) -> bool:
        return self.state.mode == Mode.MOVE and self.overlay_interactive

    def select(self, entity_id: str, kind: str) -> bool:
        """Select an overlay entity. A no-op outside move mode or on an unlocked page."""
        if kind not in (EntityKind.ITEM, EntityKind.ARROW):
            raise ValueError(f"Unknown entity kind: {kind!r}")
        if not self.can_select():
            return False
        sel = Selection(entity_id, kind)
        if not self._exists(sel):
            return False
        if self.state.selection != sel:
            self.state.selection = sel
            self._notify(STATE_SELECTION)
        return True

    def clear_selection(self) -> None:
        if self.state.selection is not None:
            self.state.selection = None
            self._notify(STATE_SELECTION)

    def is_selected(self, entity_id: str, kind: str) -> bool:
        sel = self.state.selection
        return sel is not None and sel.id == entity_id and sel.kind == kind

    def delete_selected(self) -> bool:
        """Remove the selected entity from the active page and clear the selection."""
        sel = self.state.selection
        if sel is None:
            return False
        if sel.kind == EntityKind.ITEM:
            removed = self.document.remove_item(sel.id)
        else:
            removed = self.document.remove_arrow(sel.id)
        self.clear_selection()
        trace(f"delete_selected {sel.kind} {sel.id} removed={removed}", "SELECT")
        return removed
