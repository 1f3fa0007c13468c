"""Tests for the export pipeline and the PDF / PPTX assemblers."""
from __future__ import annotations

import io
import os

import fitz  # pymupdf
import pytest
from PIL import Image
from pptx import Presentation

from document import DocumentController
from errors import ExportError
from export import default_filename, export_document, rasterize_pages, write_atomically
from models import Metadata
from pdf_export import assemble_pdf
from pptx_export import SLIDE_HEIGHT, SLIDE_WIDTH, assemble_pptx


def _jpeg(color=(255, 255, 255), size=(160, 113)):
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="JPEG")
    return buf.getvalue()


@pytest.fixture()
def doc():
    d = DocumentController()
    d.add_page()
    d.add_page()
    d.set_active_page(1)
    return d


class TestRasterizePages:

    def test_renders_every_page_in_order(self, doc):
        seen = []

        def rasterize(page):
            assert page is doc.active_page
            seen.append(page.id)
            return page.id.encode()

        images = rasterize_pages(doc, rasterize)
        assert seen == [p.id for p in doc.pages]
        assert images == [p.id.encode() for p in doc.pages]
        assert doc.active_index == 1

    def test_failure_restores_active_page(self, doc):
        def rasterize(page):
            if page is doc.pages[2]:
                raise RuntimeError("render failed")
            return b"x"

        with pytest.raises(ExportError) as exc:
            rasterize_pages(doc, rasterize)
        assert "page 3" in str(exc.value)
        assert doc.active_index == 1


class TestWriteAtomically:

    def test_success(self, tmp_path):
        out = tmp_path / "out.bin"

        def assemble(images, path):
            with open(path, "wb") as f:
                f.write(b"".join(images))

        write_atomically([b"ab", b"cd"], str(out), assemble)
        assert out.read_bytes() == b"abcd"
        assert os.listdir(tmp_path) == ["out.bin"]

    def test_failure_leaves_no_file(self, tmp_path):
        out = tmp_path / "out.pdf"

        def assemble(images, path):
            with open(path, "wb") as f:
                f.write(b"partial")
            raise ValueError("disk on fire")

        with pytest.raises(ExportError):
            write_atomically([b"x"], str(out), assemble)
        assert os.listdir(tmp_path) == []

    def test_failure_keeps_previous_export(self, tmp_path):
        out = tmp_path / "out.pdf"
        out.write_bytes(b"previous")

        def assemble(images, path):
            raise ValueError("nope")

        with pytest.raises(ExportError):
            write_atomically([b"x"], str(out), assemble)
        assert out.read_bytes() == b"previous"


class TestExportDocument:

    def test_rasterize_failure_writes_nothing(self, doc, tmp_path):
        out = tmp_path / "BRAND_QC.pptx"
        calls = []

        def rasterize(page):
            raise RuntimeError("boom")

        with pytest.raises(ExportError):
            export_document(doc, str(out), rasterize, lambda images, path: calls.append(path))
        assert calls == []
        assert not out.exists()
        assert doc.active_index == 1

    def test_pptx_end_to_end(self, doc, tmp_path):
        out = tmp_path / "deck.pptx"
        export_document(doc, str(out), lambda page: _jpeg(), assemble_pptx)
        prs = Presentation(str(out))
        assert len(prs.slides) == 3
        assert doc.active_index == 1


class TestDefaultFilename:

    def test_brand_based(self):
        assert default_filename(Metadata(brand="ACME"), "pdf") == "ACME_QC.pdf"
        assert default_filename(Metadata(brand="ACME"), ".pptx") == "ACME_QC.pptx"


class TestAssemblers:

    def test_pptx_slides_fill_a3(self, tmp_path):
        out = tmp_path / "deck.pptx"
        assemble_pptx([_jpeg(), _jpeg((0, 0, 0))], str(out))
        prs = Presentation(str(out))
        assert len(prs.slides) == 2
        assert prs.slide_width == SLIDE_WIDTH
        for slide in prs.slides:
            pics = list(slide.shapes)
            assert len(pics) == 1
            assert (pics[0].left, pics[0].top) == (0, 0)
            assert (pics[0].width, pics[0].height) == (SLIDE_WIDTH, SLIDE_HEIGHT)

    def test_pptx_empty(self, tmp_path):
        with pytest.raises(ValueError):
            assemble_pptx([], str(tmp_path / "x.pptx"))

    def test_pdf_pages_are_a3_landscape(self, qapp, tmp_path):
        out = tmp_path / "chart.pdf"
        assemble_pdf([_jpeg(), _jpeg((0, 0, 0)), _jpeg()], str(out), resolution=96)
        with fitz.open(str(out)) as pdf:
            assert pdf.page_count == 3
            rect = pdf[0].rect
            # 420 x 297 mm in points
            assert rect.width == pytest.approx(1190.55, abs=1.0)
            assert rect.height == pytest.approx(841.89, abs=1.0)

    def test_pdf_empty(self, qapp, tmp_path):
        with pytest.raises(ValueError):
            assemble_pdf([], str(tmp_path / "x.pdf"))

    def test_pdf_undecodable_page(self, qapp, tmp_path):
        with pytest.raises(ValueError):
            assemble_pdf([b"not a jpeg"], str(tmp_path / "x.pdf"))
