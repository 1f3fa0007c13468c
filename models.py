"""
models.py

Data models and constants for the QC Chart application.

All positions are stored in *document space*: a fixed 1587 x 1123 unit
extent (an A3 landscape page at 96 units per inch).  Zoom only affects
display, so every record here is independent of the current view.

Records are immutable; mutations build new records with
``dataclasses.replace`` so a page edit never touches sibling pages.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, Optional, Tuple


# ----------------------------
# Document space constants
# ----------------------------

UNITS_PER_INCH = 96          # reference resolution of document space
DOC_WIDTH = 1587.0           # A3 landscape width at 96 units/inch
DOC_HEIGHT = 1123.0          # A3 landscape height at 96 units/inch
HEADER_HEIGHT = 80.0         # metadata band at the top of every page

ZOOM_MIN = 0.2
ZOOM_MAX = 1.2

MIN_ITEM_WIDTH = 20.0        # resize floor for canvas items
CONTROL_POINT_OFFSET = 20.0  # offset of a new arrow control point from the midpoint

MAIN_IMAGE_SCALE_MIN = 10    # percent
MAIN_IMAGE_SCALE_MAX = 200   # percent

LINE_SOLID = "solid"
LINE_DASHED = "dashed"
LINE_STYLES = (LINE_SOLID, LINE_DASHED)


def new_id() -> str:
    """Return a fresh opaque identity token."""
    return uuid.uuid4().hex


# ----------------------------
# Interaction constants
# ----------------------------

class Mode:
    """Pointer interpretation modes for the canvas."""
    MOVE = "move"
    ARROW = "arrow"


class EntityKind:
    """Kinds of overlay entity that can be selected."""
    ITEM = "item"
    ARROW = "arrow"


class ArrowShape(Enum):
    """Whether an arrow is drawn as a segment or a quadratic curve."""
    STRAIGHT = "straight"
    CURVED = "curved"


@dataclass(frozen=True)
class Selection:
    """The single selected overlay entity."""
    id: str
    kind: str


# ----------------------------
# Geometry records
# ----------------------------

@dataclass(frozen=True)
class Point:
    """A point in document space."""
    x: float
    y: float

    def __add__(self, other: "Point") -> "Point":
        return Point(self.x + other.x, self.y + other.y)

    def __sub__(self, other: "Point") -> "Point":
        return Point(self.x - other.x, self.y - other.y)

    def offset(self, dx: float, dy: float) -> "Point":
        return Point(self.x + dx, self.y + dy)

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Point":
        return cls(float(d.get("x", 0.0)), float(d.get("y", 0.0)))


@dataclass(frozen=True)
class MainImagePos:
    """Offset and percentage scale of a page's background image."""
    x: float = 0.0
    y: float = 0.0
    scale: int = 100  # percent

    def to_dict(self) -> Dict[str, Any]:
        return {"x": self.x, "y": self.y, "scale": self.scale}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "MainImagePos":
        if not isinstance(d, dict):
            return cls()
        return cls(float(d.get("x", 0.0)), float(d.get("y", 0.0)), int(d.get("scale", 100)))


# ----------------------------
# Overlay entities
# ----------------------------

@dataclass(frozen=True)
class CanvasItem:
    """An image fragment placed on a page.

    Only the width is stored; the height follows the image's intrinsic
    aspect ratio when the item is drawn.
    """
    canvas_id: str
    src: str
    x: float
    y: float
    width: float
    name: str = ""

    def __post_init__(self):
        if self.width <= 0:
            raise ValueError(f"CanvasItem width must be positive, got {self.width}")

    @property
    def position(self) -> Point:
        return Point(self.x, self.y)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "canvas_id": self.canvas_id,
            "src": self.src,
            "name": self.name,
            "x": self.x,
            "y": self.y,
            "width": self.width,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "CanvasItem":
        return cls(
            canvas_id=str(d["canvas_id"]),
            src=d.get("src", ""),
            name=d.get("name", ""),
            x=float(d.get("x", 0.0)),
            y=float(d.get("y", 0.0)),
            width=float(d.get("width", 150.0)),
        )


@dataclass(frozen=True)
class ArrowStyle:
    """Stroke settings applied to newly drawn arrows."""
    width: float = 2.0
    color: str = "#dc2626"
    style: str = LINE_SOLID

    def __post_init__(self):
        if self.style not in LINE_STYLES:
            raise ValueError(f"Unknown arrow line style: {self.style!r}")


@dataclass(frozen=True)
class Arrow:
    """A directional annotation from ``start`` to ``end``.

    A ``CURVED`` arrow carries a control point ``mid`` and is drawn as a
    quadratic curve through it; a ``STRAIGHT`` arrow never has one.
    """
    id: str
    start: Point
    end: Point
    width: float = 2.0
    color: str = "#dc2626"
    style: str = LINE_SOLID
    shape: ArrowShape = ArrowShape.STRAIGHT
    mid: Optional[Point] = None

    def __post_init__(self):
        if self.shape is ArrowShape.CURVED and self.mid is None:
            raise ValueError("A curved arrow needs a control point")
        if self.shape is ArrowShape.STRAIGHT and self.mid is not None:
            raise ValueError("A straight arrow cannot have a control point")

    @property
    def points(self) -> Tuple[Point, Point]:
        return (self.start, self.end)

    @property
    def geometric_midpoint(self) -> Point:
        return Point((self.start.x + self.end.x) / 2, (self.start.y + self.end.y) / 2)

    @property
    def mid_handle(self) -> Point:
        """Where the midpoint handle is drawn: the control point, else the midpoint."""
        return self.mid if self.mid is not None else self.geometric_midpoint

    def with_endpoint(self, which: str, point: Point) -> "Arrow":
        if which == "start":
            return replace(self, start=point)
        if which == "end":
            return replace(self, end=point)
        raise ValueError(f"Unknown arrow endpoint: {which!r}")

    def with_control_point_toggled(self, offset: float = CONTROL_POINT_OFFSET) -> "Arrow":
        if self.shape is ArrowShape.STRAIGHT:
            m = self.geometric_midpoint
            return replace(self, shape=ArrowShape.CURVED, mid=m.offset(offset, offset))
        return replace(self, shape=ArrowShape.STRAIGHT, mid=None)

    def with_control_point(self, point: Point) -> "Arrow":
        if self.shape is not ArrowShape.CURVED:
            raise ValueError("Only a curved arrow has a movable control point")
        return replace(self, mid=point)

    def to_dict(self) -> Dict[str, Any]:
        d = {
            "id": self.id,
            "start": self.start.to_dict(),
            "end": self.end.to_dict(),
            "points": [p.to_dict() for p in self.points],
            "width": self.width,
            "color": self.color,
            "style": self.style,
            "shape": self.shape.value,
        }
        if self.mid is not None:
            d["mid"] = self.mid.to_dict()
        return d

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Arrow":
        mid = d.get("mid")
        return cls(
            id=str(d["id"]),
            start=Point.from_dict(d["start"]),
            end=Point.from_dict(d["end"]),
            width=float(d.get("width", 2.0)),
            color=d.get("color", "#dc2626"),
            style=d.get("style", LINE_SOLID),
            shape=ArrowShape.CURVED if mid else ArrowShape.STRAIGHT,
            mid=Point.from_dict(mid) if mid else None,
        )


# ----------------------------
# Pages and documents
# ----------------------------

@dataclass(frozen=True)
class Page:
    """One independently composed canvas; the unit of export."""
    id: str
    name: str
    main_image: Optional[str] = None
    main_image_pos: MainImagePos = field(default_factory=MainImagePos)
    is_main_image_locked: bool = False
    items: Tuple[CanvasItem, ...] = ()
    arrows: Tuple[Arrow, ...] = ()

    def find_item(self, canvas_id: str) -> Optional[CanvasItem]:
        for it in self.items:
            if it.canvas_id == canvas_id:
                return it
        return None

    def find_arrow(self, arrow_id: str) -> Optional[Arrow]:
        for a in self.arrows:
            if a.id == arrow_id:
                return a
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "main_image": self.main_image,
            "main_image_pos": self.main_image_pos.to_dict(),
            "is_main_image_locked": self.is_main_image_locked,
            "items": [it.to_dict() for it in self.items],
            "arrows": [a.to_dict() for a in self.arrows],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Page":
        return cls(
            id=str(d.get("id") or new_id()),
            name=d.get("name", ""),
            main_image=d.get("main_image"),
            main_image_pos=MainImagePos.from_dict(d.get("main_image_pos", {})),
            is_main_image_locked=bool(d.get("is_main_image_locked", False)),
            items=tuple(CanvasItem.from_dict(it) for it in d.get("items", [])),
            arrows=tuple(Arrow.from_dict(a) for a in d.get("arrows", [])),
        )


def make_page(name: str) -> Page:
    """Create an empty, unlocked page."""
    return Page(id=new_id(), name=name)


@dataclass(frozen=True)
class Metadata:
    """Header strings printed on every page. No format validation."""
    brand: str = "BRAND NAME"
    product: str = "Treadmill Model-X"
    date: str = field(default_factory=lambda: date.today().isoformat())
    version: str = "V1.0"

    def to_dict(self) -> Dict[str, str]:
        return {"brand": self.brand, "product": self.product, "date": self.date, "version": self.version}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Metadata":
        if not isinstance(d, dict):
            return cls()
        base = cls()
        return cls(
            brand=d.get("brand", base.brand),
            product=d.get("product", base.product),
            date=d.get("date", base.date),
            version=d.get("version", base.version),
        )


@dataclass(frozen=True)
class Document:
    """Ordered pages plus global metadata. Never empty."""
    pages: Tuple[Page, ...]
    metadata: Metadata = field(default_factory=Metadata)

    def __post_init__(self):
        if not self.pages:
            raise ValueError("A document needs at least one page")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata.to_dict(),
            "pages": [p.to_dict() for p in self.pages],
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Document":
        return cls(
            pages=tuple(Page.from_dict(p) for p in d.get("pages", [])),
            metadata=Metadata.from_dict(d.get("metadata", {})),
        )


def make_document() -> Document:
    """The startup document: one default page."""
    return Document(pages=(make_page("Page 1"),))


# ----------------------------
# Assets
# ----------------------------

@dataclass(frozen=True)
class Asset:
    """An uploaded image available for placement in this session."""
    id: str
    src: str
    name: str
    is_pdf: bool = False

    @property
    def payload_size(self) -> int:
        return len(self.src)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "src": self.src, "name": self.name, "is_pdf": self.is_pdf}


@dataclass(frozen=True)
class LibraryAsset:
    """A persisted, folder-organized reusable asset."""
    id: str
    src: str
    name: str
    folder: str = ""

    @property
    def payload_size(self) -> int:
        return len(self.src)

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "src": self.src, "name": self.name, "folder": self.folder}

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LibraryAsset":
        return cls(
            id=str(d.get("id") or new_id()),
            src=d.get("src", ""),
            name=d.get("name", ""),
            folder=d.get("folder") or "",
        )


# ----------------------------
# Snapshots
# ----------------------------

@dataclass(frozen=True)
class Snapshot:
    """A named, saved copy of the full document state."""
    id: str
    name: str
    document: Document
    saved_at: str

    def to_dict(self) -> Dict[str, Any]:
        d = self.document.to_dict()
        return {
            "id": self.id,
            "name": self.name,
            "metadata": d["metadata"],
            "pages": d["pages"],
            "saved_at": self.saved_at,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Snapshot":
        return cls(
            id=str(d.get("id") or new_id()),
            name=d.get("name", ""),
            document=Document.from_dict(d),
            saved_at=d.get("saved_at", ""),
        )
