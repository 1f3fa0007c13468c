"""Tests for upload decoding: Pillow-validated images and first-page PDF rendering."""
from __future__ import annotations

import io

import fitz  # pymupdf
import pytest
from PIL import Image

from uploads import (
    decode_bytes,
    decode_image,
    decode_pdf_first_page,
    is_pdf,
    load_asset,
    load_assets,
    load_main_image,
)
from utils import data_url_mime, data_url_to_bytes


def _png_bytes(size=(40, 20), color=(200, 30, 30)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def _jpeg_bytes(size=(40, 20)):
    buf = io.BytesIO()
    Image.new("RGB", size, (10, 120, 200)).save(buf, format="JPEG")
    return buf.getvalue()


def _pdf_bytes(pages=2, width=200, height=100):
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text((20, 50), f"Page {i + 1}")
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture()
def files(tmp_path):
    png = tmp_path / "bolt.png"
    png.write_bytes(_png_bytes())
    jpg = tmp_path / "nut.jpg"
    jpg.write_bytes(_jpeg_bytes())
    pdf = tmp_path / "manual.pdf"
    pdf.write_bytes(_pdf_bytes())
    bad = tmp_path / "broken.png"
    bad.write_bytes(b"definitely not an image")
    bad_pdf = tmp_path / "broken.pdf"
    bad_pdf.write_bytes(b"%PDF-1.4\n garbage")
    return {"png": png, "jpg": jpg, "pdf": pdf, "bad": bad, "bad_pdf": bad_pdf}


class TestDecode:

    def test_png(self):
        src = decode_image(_png_bytes())
        assert data_url_mime(src) == "image/png"
        assert data_url_to_bytes(src) == _png_bytes()

    def test_jpeg(self):
        assert data_url_mime(decode_image(_jpeg_bytes())) == "image/jpeg"

    def test_garbage_image(self):
        assert decode_image(b"nope") is None

    def test_pdf_first_page_at_double_scale(self):
        src = decode_pdf_first_page(_pdf_bytes(width=200, height=100))
        assert data_url_mime(src) == "image/png"
        with Image.open(io.BytesIO(data_url_to_bytes(src))) as img:
            assert img.size == (400, 200)

    def test_garbage_pdf(self):
        assert decode_pdf_first_page(b"%PDF-1.4\n garbage") is None

    def test_is_pdf(self):
        assert is_pdf(b"%PDF-1.7 ...")
        assert is_pdf(b"", "Manual.PDF")
        assert not is_pdf(_png_bytes(), "bolt.png")

    def test_decode_bytes_dispatch(self):
        assert data_url_mime(decode_bytes(_pdf_bytes())) == "image/png"
        assert data_url_mime(decode_bytes(_jpeg_bytes())) == "image/jpeg"


class TestLoad:

    def test_load_asset(self, files):
        asset = load_asset(str(files["png"]))
        assert asset.name == "bolt.png"
        assert not asset.is_pdf
        assert asset.src.startswith("data:image/png;base64,")

    def test_load_pdf_asset(self, files):
        asset = load_asset(str(files["pdf"]))
        assert asset.is_pdf
        assert asset.name == "manual.pdf"

    def test_missing_file(self, tmp_path):
        assert load_asset(str(tmp_path / "gone.png")) is None

    def test_batch_skips_failures(self, files):
        paths = [str(files[k]) for k in ("png", "bad", "pdf", "bad_pdf", "jpg")]
        assets = load_assets(paths)
        assert [a.name for a in assets] == ["bolt.png", "manual.pdf", "nut.jpg"]
        assert len({a.id for a in assets}) == 3

    def test_main_image(self, files):
        assert data_url_mime(load_main_image(str(files["jpg"]))) == "image/jpeg"
        assert data_url_mime(load_main_image(str(files["pdf"]))) == "image/png"
        assert load_main_image(str(files["bad"])) is None
