"""Tests for the page properties panel (offscreen Qt)."""
from __future__ import annotations

import pytest

from document import DocumentController
from models import EntityKind
from selection import SelectionController

SRC = "data:image/png;base64,AAAA"


@pytest.fixture()
def panel(qapp, settings_dir):
    from properties import PropertyPanel
    doc = DocumentController()
    sel = SelectionController(doc)
    return PropertyPanel(doc, sel, lambda: None), doc, sel


class TestLockControl:

    def test_lock_available_without_main_image(self, panel):
        p, doc, sel = panel
        assert doc.active_page.main_image is None
        assert p.lock_btn.isEnabled()
        assert not p.scale_slider.isEnabled()

    def test_locking_imageless_page_makes_items_selectable(self, panel):
        p, doc, sel = panel
        item = doc.add_item(SRC)
        assert not sel.select(item.canvas_id, EntityKind.ITEM)
        p.lock_btn.click()
        assert doc.active_page.is_main_image_locked
        assert p.lock_btn.isChecked()
        assert sel.select(item.canvas_id, EntityKind.ITEM)

    def test_unlock_from_panel(self, panel):
        p, doc, sel = panel
        p.lock_btn.click()
        p.lock_btn.click()
        assert not doc.active_page.is_main_image_locked
        assert p.lock_btn.text() == "Lock page"

    def test_scale_slider_follows_image_and_lock(self, panel):
        p, doc, sel = panel
        doc.set_main_image(SRC)
        assert p.scale_slider.isEnabled()
        p.lock_btn.click()
        assert not p.scale_slider.isEnabled()
