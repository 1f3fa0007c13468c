"""
canvas/scene.py

QGraphicsScene projecting the active page of a DocumentController.

The scene is rebuilt incrementally whenever the document, the selection
state or the arrow preview changes; graphics items are matched to
entities by id.  It also answers hit tests in document space for the
view, applying the selection/locking rules to decide which layer the
pointer reaches.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Tuple

from PyQt6.QtCore import Qt, QPointF, QRectF
from PyQt6.QtGui import QBrush, QColor, QFont, QPen
from PyQt6.QtWidgets import QGraphicsRectItem, QGraphicsScene, QGraphicsSimpleTextItem

from canvas.items import (
    ENTITY_ID_KEY,
    HIT_KIND_KEY,
    ArrowGraphicsItem,
    CanvasImageItem,
    HeaderItem,
    MainImageItem,
    PreviewArrowItem,
)
from document import DocumentController
from interaction.engine import EMPTY_CANVAS, HitTarget, ManipulationEngine, Target
from models import DOC_HEIGHT, DOC_WIDTH, EntityKind, HEADER_HEIGHT, Point
from selection import SelectionController
from settings import get_settings
from debug_trace import trace

_OVERLAY_KINDS = (
    Target.ITEM,
    Target.ITEM_RESIZE,
    Target.ARROW,
    Target.ARROW_START,
    Target.ARROW_END,
    Target.ARROW_MID,
)


class PageScene(QGraphicsScene):
    """
    Scene showing one page at document scale (1 scene unit = 1 document unit).

    Args:
        document: Document controller whose active page is shown.
        selection: Selection/locking controller.
        engine: Optional engine whose arrow preview is drawn.
    """

    def __init__(self, document: DocumentController, selection: SelectionController,
                 engine: Optional[ManipulationEngine] = None, parent=None):
        super().__init__(parent)
        self.document = document
        self.selection = selection
        self._exporting = False
        self.setSceneRect(QRectF(0, 0, DOC_WIDTH, DOC_HEIGHT))

        self._paper = QGraphicsRectItem(QRectF(0, 0, DOC_WIDTH, DOC_HEIGHT))
        self._paper.setBrush(QBrush(QColor("#FFFFFF")))
        self._paper.setPen(QPen(Qt.PenStyle.NoPen))
        self._paper.setZValue(-10)
        self._paper.setData(HIT_KIND_KEY, Target.CANVAS)
        self.addItem(self._paper)

        self._placeholder = QGraphicsSimpleTextItem("Upload a main image for this page")
        font = QFont()
        font.setPixelSize(28)
        self._placeholder.setFont(font)
        self._placeholder.setBrush(QBrush(QColor("#D1D5DB")))
        br = self._placeholder.boundingRect()
        self._placeholder.setPos(
            (DOC_WIDTH - br.width()) / 2,
            HEADER_HEIGHT + (DOC_HEIGHT - HEADER_HEIGHT - br.height()) / 2,
        )
        self._placeholder.setZValue(-5)
        self.addItem(self._placeholder)

        self._header = HeaderItem()
        self.addItem(self._header)
        self._main_image = MainImageItem()
        self.addItem(self._main_image)
        self._preview = PreviewArrowItem()
        self.addItem(self._preview)

        self._items: Dict[str, CanvasImageItem] = {}
        self._arrows: Dict[str, ArrowGraphicsItem] = {}

        document.add_listener(self._on_changed)
        selection.add_listener(self._on_changed)
        if engine is not None:
            engine.add_preview_listener(self._on_preview)
        self.sync()

    # ------------------------------------------------------------------
    # Projection
    # ------------------------------------------------------------------

    def _on_changed(self, reason: str) -> None:
        self.sync()

    def _on_preview(self, preview: Optional[Tuple[Point, Point]]) -> None:
        if preview is None or self._exporting:
            self._preview.set_points(None, None)
        else:
            self._preview.set_points(*preview)

    def sync(self) -> None:
        """Bring every graphics item in line with the active page."""
        page = self.document.active_page
        sel = self.selection
        show_selection = not self._exporting
        editable = sel.overlay_interactive

        self._header.set_state(self.document.metadata, page.name)
        self._main_image.set_state(page.main_image, page.main_image_pos)
        self._placeholder.setVisible(not page.main_image and not self._exporting)

        # Unlocked pages show the overlay faded and inert
        opacity = 1.0 if editable else get_settings().settings.canvas.unlocked_overlay_opacity

        seen = set()
        for item in page.items:
            seen.add(item.canvas_id)
            gi = self._items.get(item.canvas_id)
            if gi is None:
                gi = CanvasImageItem(item)
                self._items[item.canvas_id] = gi
                self.addItem(gi)
            gi.set_state(item, show_selection and sel.is_selected(item.canvas_id, EntityKind.ITEM))
            gi.setOpacity(opacity)
        for cid in [k for k in self._items if k not in seen]:
            self.removeItem(self._items.pop(cid))

        seen = set()
        for arrow in page.arrows:
            seen.add(arrow.id)
            ga = self._arrows.get(arrow.id)
            if ga is None:
                ga = ArrowGraphicsItem(arrow)
                self._arrows[arrow.id] = ga
                self.addItem(ga)
            ga.set_state(arrow, show_selection and sel.is_selected(arrow.id, EntityKind.ARROW), editable)
            ga.setOpacity(opacity)
        for aid in [k for k in self._arrows if k not in seen]:
            self.removeItem(self._arrows.pop(aid))

        self.update()

    def item_for(self, entity_id: str):
        """The graphics item showing an entity, or None."""
        return self._items.get(entity_id) or self._arrows.get(entity_id)

    # ------------------------------------------------------------------
    # Hit testing
    # ------------------------------------------------------------------

    def hit_test(self, point: Point) -> HitTarget:
        """Return what the pointer reaches at document point ``point``."""
        pt = QPointF(point.x, point.y)
        overlay = self.selection.overlay_interactive
        for gi in self.items(pt, Qt.ItemSelectionMode.IntersectsItemShape, Qt.SortOrder.DescendingOrder):
            if not gi.isVisible():
                continue
            kind = gi.data(HIT_KIND_KEY)
            if kind is None:
                continue
            if kind in _OVERLAY_KINDS:
                if not overlay:
                    continue
                if hasattr(gi, "hit_kind"):
                    kind = gi.hit_kind(pt)
                return HitTarget(kind, gi.data(ENTITY_ID_KEY))
            if kind == Target.MAIN_IMAGE:
                return HitTarget(Target.MAIN_IMAGE)
            return EMPTY_CANVAS
        return EMPTY_CANVAS

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    @property
    def exporting(self) -> bool:
        return self._exporting

    @contextmanager
    def export_mode(self) -> Iterator["PageScene"]:
        """Hide selection chrome, placeholder and preview while rendering."""
        self._exporting = True
        self._preview.set_points(None, None)
        self.sync()
        trace("scene export mode on", "CANVAS")
        try:
            yield self
        finally:
            self._exporting = False
            self.sync()
            trace("scene export mode off", "CANVAS")
