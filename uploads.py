"""
uploads.py

Turning files chosen by the operator into image payloads.

Images are validated with Pillow and kept as base64 data URLs.  PDFs are
decoded with PyMuPDF: only the first page is rendered, at 2x scale, to a
PNG.  A file that cannot be decoded yields ``None`` and a batch simply
continues with the remaining files.
"""

from __future__ import annotations

import io
import os
from typing import Iterable, List, Optional

import fitz  # pymupdf
from PIL import Image, UnidentifiedImageError

from models import Asset, new_id
from utils import bytes_to_data_url
from debug_trace import trace, trace_exception

PDF_RENDER_SCALE = 2.0

IMAGE_FILTER = "Images (*.png *.jpg *.jpeg *.gif *.bmp *.webp)"
ASSET_FILTER = "Images and PDFs (*.png *.jpg *.jpeg *.gif *.bmp *.webp *.pdf)"


def is_pdf(data: bytes, filename: str = "") -> bool:
    return data[:5] == b"%PDF-" or filename.lower().endswith(".pdf")


def decode_pdf_first_page(data: bytes, scale: float = PDF_RENDER_SCALE) -> Optional[str]:
    """
    Render the first page of a PDF to a PNG data URL.

    Args:
        data: Raw PDF bytes
        scale: Render scale relative to 72 dpi

    Returns:
        A ``data:image/png`` URL, or None if the PDF cannot be rendered
    """
    try:
        with fitz.open(stream=data, filetype="pdf") as doc:
            if doc.page_count < 1:
                return None
            pix = doc[0].get_pixmap(matrix=fitz.Matrix(scale, scale), alpha=False)
            png = pix.tobytes("png")
    except Exception:
        # PyMuPDF raises several unrelated types for damaged input
        trace_exception("decode_pdf_first_page")
        return None
    return bytes_to_data_url(png, "image/png")


def decode_image(data: bytes) -> Optional[str]:
    """
    Validate raster image bytes and wrap them in a data URL.

    Returns:
        A data URL with the detected MIME type, or None if Pillow cannot
        identify the image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            fmt = img.format
            img.verify()
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError):
        trace_exception("decode_image")
        return None
    mime = Image.MIME.get(fmt or "", "")
    if not mime.startswith("image/"):
        return None
    return bytes_to_data_url(data, mime)


def decode_bytes(data: bytes, filename: str = "") -> Optional[str]:
    """Decode a PDF or image payload, whichever ``data`` is."""
    if is_pdf(data, filename):
        return decode_pdf_first_page(data)
    return decode_image(data)


def _read(path: str) -> Optional[bytes]:
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError:
        trace_exception(f"cannot read {path}")
        return None


def load_asset(path: str) -> Optional[Asset]:
    """Load one file as a session asset, or None when it is unsupported."""
    data = _read(path)
    if data is None:
        return None
    pdf = is_pdf(data, path)
    src = decode_pdf_first_page(data) if pdf else decode_image(data)
    if src is None:
        trace(f"skipped {path}: not a decodable image or PDF", "UPLOAD")
        return None
    return Asset(id=new_id(), src=src, name=os.path.basename(path), is_pdf=pdf)


def load_assets(paths: Iterable[str]) -> List[Asset]:
    """Load a multi-file selection, skipping files that fail to decode."""
    assets = []
    for path in paths:
        asset = load_asset(path)
        if asset is not None:
            assets.append(asset)
    trace(f"loaded {len(assets)} asset(s)", "UPLOAD")
    return assets


def load_main_image(path: str) -> Optional[str]:
    """Load a background image for a page (PDFs contribute their first page)."""
    data = _read(path)
    if data is None:
        return None
    return decode_bytes(data, path)
