"""
canvas/items.py

Graphics items that project a page onto a QGraphicsScene: the metadata
header band, the main (background) image, placed image items, and arrows.

Items never change the document themselves.  Each carries its hit-test
kind and entity id in ``data()`` so the scene can report what lies under
the pointer; the ManipulationEngine does the rest.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Dict, Optional

from PyQt6.QtCore import Qt, QPointF, QRectF, QLineF
from PyQt6.QtGui import (
    QBrush,
    QColor,
    QFont,
    QPainter,
    QPainterPath,
    QPainterPathStroker,
    QPen,
    QPixmap,
    QPolygonF,
)
from PyQt6.QtWidgets import QGraphicsItem, QGraphicsLineItem, QGraphicsPixmapItem

from interaction.engine import Target
from models import (
    Arrow,
    ArrowShape,
    CanvasItem,
    DOC_WIDTH,
    HEADER_HEIGHT,
    LINE_DASHED,
    MainImagePos,
    Metadata,
    Point,
)
from settings import get_settings
from utils import data_url_to_bytes, quad_end_tangent
from debug_trace import trace

# QGraphicsItem.data() keys
HIT_KIND_KEY = 0
ENTITY_ID_KEY = 1

# Stacking order; the header band sits above the main image
Z_MAIN_IMAGE = 0
Z_HEADER = 5
Z_ITEMS = 10
Z_ARROWS = 20
Z_PREVIEW = 30

ARROW_HIT_WIDTH = 20.0      # invisible stroke used for picking arrows
ENDPOINT_HANDLE_RADIUS = 4.0
MID_HANDLE_RADIUS = 3.0


# =============================================================================
# Helpers
# =============================================================================

def hex_to_qcolor(hex_color: str, fallback: str = "#000000") -> QColor:
    """Parse ``#RRGGBB`` (or any name QColor accepts), falling back when invalid."""
    color = QColor(hex_color or "")
    return color if color.isValid() else QColor(fallback)


PIXMAP_CACHE_SIZE = 32


@lru_cache(maxsize=PIXMAP_CACHE_SIZE)
def _decode_pixmap(src: str) -> QPixmap:
    pm = QPixmap()
    data = data_url_to_bytes(src)
    if data is None or not pm.loadFromData(data):
        trace(f"pixmap_from_src: undecodable payload ({len(src)} chars)", "CANVAS")
        return QPixmap()
    return pm


def pixmap_from_src(src: Optional[str]) -> QPixmap:
    """Decode a data URL into a QPixmap. Returns a null pixmap when it cannot.

    Only the most recently used payloads stay decoded.
    """
    if not src:
        return QPixmap()
    return _decode_pixmap(src)


def _apply_dash_style(pen: QPen, dash_style: str, pattern_length: float, solid_percent: float):
    """
    Apply dash style to a QPen.

    Args:
        pen: The QPen to modify
        dash_style: One of "solid" or "dashed"
        pattern_length: Total length of one dash+gap cycle in document units
        solid_percent: Percentage of pattern that is solid (0-100)
    """
    if dash_style == LINE_DASHED:
        # Qt dash patterns are specified in units of pen width
        pen_width = pen.widthF() if pen.widthF() > 0 else 1.0
        solid_percent = max(1, min(99, solid_percent))
        solid_len = pattern_length * solid_percent / 100.0
        gap_len = pattern_length - solid_len
        pen.setStyle(Qt.PenStyle.CustomDashLine)
        pen.setDashPattern([solid_len / pen_width, gap_len / pen_width])
    else:
        pen.setStyle(Qt.PenStyle.SolidLine)


def draw_handles(painter: QPainter, handle_positions: Dict[str, QPointF], radius: float,
                 border: QColor, fill: QColor):
    """Draw round handles at the given positions."""
    painter.setPen(QPen(border, 1))
    painter.setBrush(QBrush(fill))
    for pos in handle_positions.values():
        painter.drawEllipse(pos, radius, radius)


def resize_handle_radius() -> float:
    """Radius of the item resize handle, from the handle settings."""
    return get_settings().settings.canvas.handles.size


def _qpt(p: Point) -> QPointF:
    return QPointF(p.x, p.y)


def _arrowhead(tip: QPointF, direction: QPointF, size: float) -> Optional[QPolygonF]:
    length = math.hypot(direction.x(), direction.y())
    if length < 1e-6:
        return None
    ux, uy = direction.x() / length, direction.y() / length
    px, py = -uy, ux
    left = QPointF(tip.x() - ux * size + px * size * 0.5, tip.y() - uy * size + py * size * 0.5)
    right = QPointF(tip.x() - ux * size - px * size * 0.5, tip.y() - uy * size - py * size * 0.5)
    return QPolygonF([tip, left, right])


def _arrowhead_size(width: float) -> float:
    return max(8.0, width * 3.0)


# =============================================================================
# Header band
# =============================================================================

class HeaderItem(QGraphicsItem):
    """The metadata band printed at the top of every page."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.metadata = Metadata()
        self.page_name = ""
        self.setZValue(Z_HEADER)
        self.setData(HIT_KIND_KEY, Target.CANVAS)

    def set_state(self, metadata: Metadata, page_name: str) -> None:
        if metadata == self.metadata and page_name == self.page_name:
            return
        self.metadata = metadata
        self.page_name = page_name
        self.update()

    def boundingRect(self) -> QRectF:
        return QRectF(0, 0, DOC_WIDTH, HEADER_HEIGHT)

    def paint(self, painter: QPainter, option, widget=None):
        rect = self.boundingRect()
        painter.fillRect(rect, QColor("#FFFFFF"))
        painter.setPen(QPen(QColor("#000000"), 2))
        painter.drawLine(QLineF(rect.left(), rect.bottom() - 1, rect.right(), rect.bottom() - 1))

        pad = 32.0
        brand_font = QFont()
        brand_font.setPixelSize(30)
        brand_font.setBold(True)
        brand_font.setCapitalization(QFont.Capitalization.AllUppercase)
        painter.setFont(brand_font)
        painter.setPen(QColor("#000000"))
        brand_rect = QRectF(pad, 0, rect.width() / 2, rect.height())
        painter.drawText(brand_rect, Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter, self.metadata.brand)
        brand_w = painter.fontMetrics().horizontalAdvance(self.metadata.brand.upper())

        product_font = QFont()
        product_font.setPixelSize(24)
        painter.setFont(product_font)
        painter.setPen(QColor("#4B5563"))
        product_x = pad + brand_w + 32
        painter.drawText(
            QRectF(product_x, 0, rect.width() / 2, rect.height()),
            Qt.AlignmentFlag.AlignLeft | Qt.AlignmentFlag.AlignVCenter,
            self.metadata.product,
        )

        right = QRectF(rect.width() / 2, 0, rect.width() / 2 - pad, rect.height())
        title_font = QFont()
        title_font.setPixelSize(16)
        title_font.setBold(True)
        painter.setFont(title_font)
        painter.setPen(QColor("#1F2937"))
        painter.drawText(
            QRectF(right.left(), 14, right.width(), 26),
            Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
            f"QC Checklist / {self.page_name}",
        )
        sub_font = QFont()
        sub_font.setPixelSize(16)
        painter.setFont(sub_font)
        painter.setPen(QColor("#6B7280"))
        painter.drawText(
            QRectF(right.left(), 40, right.width(), 26),
            Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter,
            f"{self.metadata.date} | {self.metadata.version}",
        )


# =============================================================================
# Main image
# =============================================================================

class MainImageItem(QGraphicsPixmapItem):
    """The page's background image, scaled from its top-left corner."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self.src: Optional[str] = None
        self.setZValue(Z_MAIN_IMAGE)
        self.setTransformationMode(Qt.TransformationMode.SmoothTransformation)
        self.setData(HIT_KIND_KEY, Target.MAIN_IMAGE)

    def set_state(self, src: Optional[str], pos: MainImagePos) -> None:
        if src != self.src:
            self.src = src
            self.setPixmap(pixmap_from_src(src))
        self.setVisible(bool(src) and not self.pixmap().isNull())
        self.setPos(pos.x, pos.y)
        self.setScale(pos.scale / 100.0)


# =============================================================================
# Placed image items
# =============================================================================

class CanvasImageItem(QGraphicsItem):
    """A placed image fragment; its height follows the image's aspect ratio."""

    def __init__(self, item: CanvasItem, parent=None):
        super().__init__(parent)
        self.item = item
        self.selected = False
        self._pixmap = pixmap_from_src(item.src)
        self.setZValue(Z_ITEMS)
        self.setData(HIT_KIND_KEY, Target.ITEM)
        self.setData(ENTITY_ID_KEY, item.canvas_id)
        self.setPos(item.x, item.y)

    @property
    def entity_id(self) -> str:
        return self.item.canvas_id

    def set_state(self, item: CanvasItem, selected: bool) -> None:
        geometry_changed = item.width != self.item.width or selected != self.selected
        if item.src != self.item.src:
            self._pixmap = pixmap_from_src(item.src)
            geometry_changed = True
        if geometry_changed:
            self.prepareGeometryChange()
        self.item = item
        self.selected = selected
        self.setPos(item.x, item.y)
        self.update()

    def content_height(self) -> float:
        if self._pixmap.isNull() or self._pixmap.width() == 0:
            return self.item.width
        return self.item.width * self._pixmap.height() / self._pixmap.width()

    def content_rect(self) -> QRectF:
        return QRectF(0, 0, self.item.width, self.content_height())

    def resize_handle_pos(self) -> QPointF:
        r = self.content_rect()
        return QPointF(r.right(), r.bottom())

    def boundingRect(self) -> QRectF:
        m = resize_handle_radius() + 2
        return self.content_rect().adjusted(-m, -m, m, m)

    def shape(self) -> QPainterPath:
        path = QPainterPath()
        path.addRect(self.content_rect())
        if self.selected:
            r = resize_handle_radius()
            path.addEllipse(self.resize_handle_pos(), r, r)
        return path

    def hit_kind(self, scene_pt: QPointF) -> str:
        """ITEM_RESIZE over the handle of a selected item, else ITEM."""
        if self.selected:
            local = self.mapFromScene(scene_pt)
            if QLineF(local, self.resize_handle_pos()).length() <= resize_handle_radius():
                return Target.ITEM_RESIZE
        return Target.ITEM

    def paint(self, painter: QPainter, option, widget=None):
        rect = self.content_rect()
        if self._pixmap.isNull():
            painter.setPen(QPen(QColor("#9CA3AF"), 1, Qt.PenStyle.DashLine))
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(rect)
        else:
            painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
            painter.drawPixmap(rect, self._pixmap, QRectF(self._pixmap.rect()))

        if self.selected:
            handles = get_settings().settings.canvas.handles
            pen = QPen(hex_to_qcolor(handles.border_color), 1, Qt.PenStyle.DashLine)
            pen.setCosmetic(True)
            painter.setPen(pen)
            painter.setBrush(Qt.BrushStyle.NoBrush)
            painter.drawRect(rect)
            color = hex_to_qcolor(handles.border_color)
            draw_handles(painter, {"resize": self.resize_handle_pos()}, resize_handle_radius(), color, color)


# =============================================================================
# Arrows
# =============================================================================

class ArrowGraphicsItem(QGraphicsItem):
    """An arrow drawn in scene coordinates as a segment or quadratic curve.

    When selected on an editable page it shows handles at both endpoints
    and at the midpoint (the control point once the arrow is curved).
    """

    def __init__(self, arrow: Arrow, parent=None):
        super().__init__(parent)
        self.arrow = arrow
        self.selected = False
        self.editable = True
        self.setZValue(Z_ARROWS)
        self.setData(HIT_KIND_KEY, Target.ARROW)
        self.setData(ENTITY_ID_KEY, arrow.id)

    @property
    def entity_id(self) -> str:
        return self.arrow.id

    def set_state(self, arrow: Arrow, selected: bool, editable: bool) -> None:
        self.prepareGeometryChange()
        self.arrow = arrow
        self.selected = selected
        self.editable = editable
        self.update()

    def _show_handles(self) -> bool:
        return self.selected and self.editable

    def path(self) -> QPainterPath:
        a = self.arrow
        path = QPainterPath(_qpt(a.start))
        if a.shape is ArrowShape.CURVED and a.mid is not None:
            path.quadTo(_qpt(a.mid), _qpt(a.end))
        else:
            path.lineTo(_qpt(a.end))
        return path

    def _head_direction(self) -> QPointF:
        a = self.arrow
        if a.shape is ArrowShape.CURVED and a.mid is not None:
            t = quad_end_tangent(a.mid, a.end)
            return QPointF(t.x, t.y)
        return QPointF(a.end.x - a.start.x, a.end.y - a.start.y)

    def handle_positions(self) -> Dict[str, QPointF]:
        a = self.arrow
        return {
            Target.ARROW_START: _qpt(a.start),
            Target.ARROW_END: _qpt(a.end),
            Target.ARROW_MID: _qpt(a.mid_handle),
        }

    def shape(self) -> QPainterPath:
        stroker = QPainterPathStroker()
        stroker.setWidth(max(ARROW_HIT_WIDTH, self.arrow.width))
        result = stroker.createStroke(self.path())
        if self._show_handles():
            for pos in self.handle_positions().values():
                result.addEllipse(pos, ENDPOINT_HANDLE_RADIUS + 3, ENDPOINT_HANDLE_RADIUS + 3)
        return result

    def boundingRect(self) -> QRectF:
        m = max(ARROW_HIT_WIDTH, _arrowhead_size(self.arrow.width)) / 2 + ENDPOINT_HANDLE_RADIUS + 4
        rect = self.path().controlPointRect()
        return rect.adjusted(-m, -m, m, m)

    def hit_kind(self, scene_pt: QPointF) -> str:
        """The handle under ``scene_pt`` on a selected arrow, else ARROW."""
        if self._show_handles():
            hit = get_settings().settings.canvas.handles.hit_distance
            # Endpoints win over the midpoint when they overlap
            for kind in (Target.ARROW_START, Target.ARROW_END, Target.ARROW_MID):
                if QLineF(scene_pt, self.handle_positions()[kind]).length() <= hit:
                    return kind
        return Target.ARROW

    def paint(self, painter: QPainter, option, widget=None):
        a = self.arrow
        color = hex_to_qcolor(a.color, "#dc2626")
        pen = QPen(color, a.width)
        pen.setCapStyle(Qt.PenCapStyle.RoundCap)
        _apply_dash_style(pen, a.style, pattern_length=a.width * 8, solid_percent=60)
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setPen(pen)
        painter.setBrush(Qt.BrushStyle.NoBrush)
        painter.drawPath(self.path())

        head = _arrowhead(_qpt(a.end), self._head_direction(), _arrowhead_size(a.width))
        if head is not None:
            painter.setPen(QPen(color, 1))
            painter.setBrush(QBrush(color))
            painter.drawPolygon(head)

        if self._show_handles():
            handles = self.handle_positions()
            mid = handles.pop(Target.ARROW_MID)
            fill = hex_to_qcolor(get_settings().settings.canvas.handles.fill_color, "#FFFFFF")
            draw_handles(painter, handles, ENDPOINT_HANDLE_RADIUS, color, fill)
            draw_handles(painter, {"mid": mid}, MID_HANDLE_RADIUS, color, color)


class PreviewArrowItem(QGraphicsLineItem):
    """The dashed rubber-band line shown while an arrow is being drawn."""

    def __init__(self, parent=None):
        super().__init__(parent)
        pen = QPen(QColor("#dc2626"), 1.5)
        _apply_dash_style(pen, LINE_DASHED, pattern_length=8.0, solid_percent=50)
        self.setPen(pen)
        self.setZValue(Z_PREVIEW)
        self.setVisible(False)

    def set_points(self, start: Optional[Point], end: Optional[Point]) -> None:
        if start is None or end is None:
            self.setVisible(False)
            return
        self.setLine(QLineF(_qpt(start), _qpt(end)))
        self.setVisible(True)

    def paint(self, painter: QPainter, option, widget=None):
        super().paint(painter, option, widget)
        ln = self.line()
        head = _arrowhead(ln.p2(), QPointF(ln.dx(), ln.dy()), 8.0)
        if head is not None:
            painter.setPen(QPen(self.pen().color(), 1))
            painter.setBrush(QBrush(self.pen().color()))
            painter.drawPolygon(head)

    def boundingRect(self) -> QRectF:
        return super().boundingRect().adjusted(-8, -8, 8, 8)
