"""
canvas/render.py

Rasterizing a PageScene for export.
"""

from __future__ import annotations

from PyQt6.QtCore import QBuffer, QByteArray, QIODevice, QRectF
from PyQt6.QtGui import QColor, QImage, QPainter

from canvas.scene import PageScene
from models import DOC_HEIGHT, DOC_WIDTH, UNITS_PER_INCH, Page

EXPORT_DPIS = (96, 150, 300)


def render_scene_image(scene: PageScene, dpi: int = 150) -> QImage:
    """
    Render the whole document extent of ``scene`` at ``dpi``.

    Args:
        scene: The scene to render
        dpi: Output resolution; document space is 96 units per inch

    Returns:
        An RGB image of ``DOC_WIDTH * dpi / 96`` by ``DOC_HEIGHT * dpi / 96`` pixels
    """
    scale = dpi / UNITS_PER_INCH
    w = round(DOC_WIDTH * scale)
    h = round(DOC_HEIGHT * scale)
    image = QImage(w, h, QImage.Format.Format_RGB32)
    image.fill(QColor("#FFFFFF"))
    painter = QPainter(image)
    try:
        painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
        painter.setRenderHint(QPainter.RenderHint.TextAntialiasing, True)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        scene.render(painter, QRectF(0, 0, w, h), QRectF(0, 0, DOC_WIDTH, DOC_HEIGHT))
    finally:
        painter.end()
    return image


def encode_jpeg(image: QImage, quality: int = 95) -> bytes:
    """Encode a QImage as JPEG bytes."""
    data = QByteArray()
    buf = QBuffer(data)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    ok = image.save(buf, "JPEG", quality)
    buf.close()
    if not ok:
        raise RuntimeError("JPEG encoding failed")
    return bytes(data)


class SceneRasterizer:
    """
    Renders the scene's current page to JPEG bytes.

    Export drives this once per page after moving the active page, so the
    ``page`` argument only names what is being rendered.
    """

    def __init__(self, scene: PageScene, dpi: int = 150, quality: int = 95):
        if dpi not in EXPORT_DPIS:
            raise ValueError(f"Unsupported export DPI: {dpi}")
        self.scene = scene
        self.dpi = dpi
        self.quality = quality

    def __call__(self, page: Page) -> bytes:
        with self.scene.export_mode():
            image = render_scene_image(self.scene, self.dpi)
        return encode_jpeg(image, self.quality)
