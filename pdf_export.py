"""
pdf_export.py

Assemble page rasters into an A3 landscape PDF with QPdfWriter.
"""

from __future__ import annotations

from typing import Sequence

from PyQt6.QtCore import QMarginsF, QRectF
from PyQt6.QtGui import QImage, QPageLayout, QPageSize, QPainter, QPdfWriter


def assemble_pdf(images: Sequence[bytes], output_path: str, resolution: int = 150) -> None:
    """
    Write one full-bleed page per JPEG raster.

    Args:
        images: Encoded page images, in page order
        output_path: Path of the PDF to write
        resolution: Writer resolution in dots per inch
    """
    if not images:
        raise ValueError("Nothing to export")

    writer = QPdfWriter(output_path)
    writer.setPageSize(QPageSize(QPageSize.PageSizeId.A3))
    writer.setPageOrientation(QPageLayout.Orientation.Landscape)
    writer.setPageMargins(QMarginsF(0, 0, 0, 0), QPageLayout.Unit.Millimeter)
    writer.setResolution(resolution)
    writer.setTitle("QC Chart")

    painter = QPainter()
    if not painter.begin(writer):
        raise OSError(f"Cannot open {output_path} for writing")
    try:
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform, True)
        for i, data in enumerate(images):
            image = QImage.fromData(data)
            if image.isNull():
                raise ValueError(f"Page {i + 1} image could not be decoded")
            if i > 0:
                writer.newPage()
            target = QRectF(painter.viewport())
            painter.drawImage(target, image, QRectF(image.rect()))
    finally:
        painter.end()
