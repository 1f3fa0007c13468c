"""
export.py

Multi-page export: rasterize every page in order, then assemble the
rasters into one output file.

The rasterizer renders whatever page is active, so export walks the
active-page pointer across the document and always puts it back.  The
assembler writes to a temporary file that is moved over the destination
only when it is complete; a failure anywhere raises ExportError and
leaves no partial output.
"""

from __future__ import annotations

import os
import tempfile
from typing import Callable, List, Sequence

from document import DocumentController
from errors import ExportError
from models import Metadata, Page
from debug_trace import trace, trace_call, trace_exception

# rasterize(page) -> JPEG bytes for the page that is currently active
Rasterizer = Callable[[Page], bytes]
# assemble(jpeg_pages, path) writes the output file
Assembler = Callable[[Sequence[bytes], str], None]


def default_filename(metadata: Metadata, ext: str) -> str:
    """``<brand>_QC.<ext>``, e.g. ``BRAND NAME_QC.pdf``."""
    return f"{metadata.brand}_QC.{ext.lstrip('.')}"


def rasterize_pages(controller: DocumentController, rasterize: Rasterizer) -> List[bytes]:
    """
    Render every page, first to last, restoring the active page afterwards.

    Raises:
        ExportError: when any page fails to render.
    """
    original = controller.active_index
    images: List[bytes] = []
    try:
        for index in range(len(controller.pages)):
            controller.set_active_page(index)
            images.append(rasterize(controller.active_page))
            trace(f"rasterized page {index + 1}/{len(controller.pages)}", "EXPORT")
    except Exception as e:
        trace_exception("rasterize_pages")
        raise ExportError(f"Could not render page {len(images) + 1}: {e}") from e
    finally:
        if controller.active_index != original:
            controller.set_active_page(original)
    return images


def write_atomically(images: Sequence[bytes], output_path: str, assemble: Assembler) -> None:
    """Assemble into a sibling temp file, then move it onto ``output_path``."""
    directory = os.path.dirname(os.path.abspath(output_path))
    suffix = os.path.splitext(output_path)[1]
    try:
        os.makedirs(directory, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".qcchart-export-", suffix=suffix, dir=directory)
        os.close(fd)
    except OSError as e:
        raise ExportError(f"Cannot write to {directory}: {e}") from e

    try:
        assemble(images, tmp)
        os.replace(tmp, output_path)
    except Exception as e:
        trace_exception("write_atomically")
        if os.path.exists(tmp):
            os.unlink(tmp)
        raise ExportError(f"Could not write {os.path.basename(output_path)}: {e}") from e


@trace_call("EXPORT")
def export_document(controller: DocumentController, output_path: str,
                    rasterize: Rasterizer, assemble: Assembler) -> str:
    """
    Export all pages of ``controller``'s document to ``output_path``.

    Args:
        controller: Document controller; its active page is restored
        output_path: Destination file
        rasterize: Per-page renderer
        assemble: Output-format writer

    Returns:
        The output path

    Raises:
        ExportError: on any render or write failure
    """
    images = rasterize_pages(controller, rasterize)
    write_atomically(images, output_path, assemble)
    trace(f"exported {len(images)} page(s) to {output_path}", "EXPORT")
    return output_path
