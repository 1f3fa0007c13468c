"""
utils.py

Utility functions for the QC Chart application: the viewport/document
transform, arrow geometry, and image payload helpers.
"""

from __future__ import annotations

import base64
import re
from typing import Optional, Tuple

from models import Point, ZOOM_MIN, ZOOM_MAX


# ----------------------------
# Viewport <-> document transform
# ----------------------------

def clamp_zoom(zoom: float) -> float:
    """Clamp a zoom factor to the supported range [0.2, 1.2]."""
    return max(ZOOM_MIN, min(ZOOM_MAX, float(zoom)))


def viewport_to_document(vx: float, vy: float, origin_x: float, origin_y: float, zoom: float) -> Point:
    """
    Convert a pointer position in viewport space to document space.

    Args:
        vx, vy: Pointer position relative to the viewport
        origin_x, origin_y: Viewport position of the document's top-left corner
        zoom: Document-to-viewport scale factor

    Returns:
        The pointer position in document units
    """
    return Point((vx - origin_x) / zoom, (vy - origin_y) / zoom)


def document_to_viewport(p: Point, origin_x: float, origin_y: float, zoom: float) -> Tuple[float, float]:
    """Inverse of :func:`viewport_to_document`."""
    return (p.x * zoom + origin_x, p.y * zoom + origin_y)


# ----------------------------
# Arrow geometry
# ----------------------------

def quad_end_tangent(c: Point, p1: Point) -> Point:
    """Direction of a quadratic curve at its end point (for the arrowhead)."""
    return Point(p1.x - c.x, p1.y - c.y)


# ----------------------------
# Image payloads
# ----------------------------

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.DOTALL)


def bytes_to_data_url(data: bytes, mime: str = "image/png") -> str:
    """Encode raw image bytes as a base64 data URL."""
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"


def data_url_to_bytes(src: str) -> Optional[bytes]:
    """
    Decode a data URL back to raw bytes.

    Returns:
        The payload bytes, or None if ``src`` is not a base64 data URL
    """
    m = _DATA_URL_RE.match(src or "")
    if not m or not m.group("b64"):
        return None
    try:
        return base64.b64decode(m.group("data"), validate=False)
    except ValueError:
        return None


def data_url_mime(src: str) -> Optional[str]:
    """Return the MIME type of a data URL, or None."""
    m = _DATA_URL_RE.match(src or "")
    return m.group("mime") if m else None

