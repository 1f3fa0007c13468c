"""
pptx_export.py

Export page rasters to PowerPoint slides.
"""

from __future__ import annotations

import io
from typing import Sequence

from pptx import Presentation
from pptx.util import Inches


# A3 landscape slide (approx 16.5 x 11.7 inches)
SLIDE_WIDTH = Inches(16.5)
SLIDE_HEIGHT = Inches(11.7)

# Blank layout in the default template
BLANK_LAYOUT_INDEX = 6


def assemble_pptx(images: Sequence[bytes], output_path: str) -> None:
    """
    Write one slide per page raster, each picture filling its slide.

    Args:
        images: Encoded page images (JPEG), in page order
        output_path: Path to save the .pptx file
    """
    if not images:
        raise ValueError("Nothing to export")

    prs = Presentation()
    prs.slide_width = SLIDE_WIDTH
    prs.slide_height = SLIDE_HEIGHT

    blank_layout = prs.slide_layouts[BLANK_LAYOUT_INDEX]
    for data in images:
        slide = prs.slides.add_slide(blank_layout)
        slide.shapes.add_picture(
            io.BytesIO(data),
            0, 0,
            prs.slide_width,
            prs.slide_height,
        )

    prs.save(output_path)
