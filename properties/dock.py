"""
properties/dock.py

Page properties panel: document metadata, the active page's main image
(upload, lock, scale), and the style of newly drawn arrows.
"""

from __future__ import annotations

from typing import Callable

from PyQt6.QtCore import Qt
from PyQt6.QtGui import QColor
from PyQt6.QtWidgets import (
    QColorDialog,
    QComboBox,
    QDoubleSpinBox,
    QFormLayout,
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QPushButton,
    QSlider,
    QVBoxLayout,
    QWidget,
)

from document import CHANGE_ACTIVE, CHANGE_CONTENT, CHANGE_LOADED, CHANGE_METADATA, DocumentController
from models import LINE_DASHED, LINE_SOLID, MAIN_IMAGE_SCALE_MAX, MAIN_IMAGE_SCALE_MIN
from selection import STATE_ARROW_STYLE, SelectionController


class PropertyPanel(QWidget):
    """
    Side panel bound to the document and selection controllers.

    Edits are applied as soon as a field loses focus or a control changes.

    Args:
        document: Document controller.
        selection: Selection/locking controller.
        on_upload_main_image: Called when the operator asks to pick a main image.
    """

    def __init__(self, document: DocumentController, selection: SelectionController,
                 on_upload_main_image: Callable[[], None], parent=None):
        super().__init__(parent)
        self.document = document
        self.selection = selection
        self._on_upload_main_image = on_upload_main_image
        self._updating = False

        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        layout.addWidget(self._build_metadata_group())
        layout.addWidget(self._build_main_image_group())
        layout.addWidget(self._build_arrow_group())
        layout.addStretch(1)

        document.add_listener(self._on_document_changed)
        selection.add_listener(self._on_selection_changed)
        self.refresh()

    # ── Builders ──────────────────────────────────

    def _build_metadata_group(self) -> QGroupBox:
        box = QGroupBox("Header")
        form = QFormLayout(box)
        self.brand_edit = QLineEdit()
        self.product_edit = QLineEdit()
        self.date_edit = QLineEdit()
        self.version_edit = QLineEdit()
        for label, edit, field_name in (
            ("Brand", self.brand_edit, "brand"),
            ("Product", self.product_edit, "product"),
            ("Date", self.date_edit, "date"),
            ("Version", self.version_edit, "version"),
        ):
            edit.editingFinished.connect(lambda e=edit, f=field_name: self._apply_metadata(f, e.text()))
            form.addRow(label, edit)
        return box

    def _build_main_image_group(self) -> QGroupBox:
        box = QGroupBox("Main image")
        v = QVBoxLayout(box)

        row = QHBoxLayout()
        self.upload_btn = QPushButton("Upload...")
        self.upload_btn.clicked.connect(self._on_upload_main_image)
        self.lock_btn = QPushButton()
        self.lock_btn.setCheckable(True)
        self.lock_btn.toggled.connect(self._on_lock_toggled)
        row.addWidget(self.upload_btn)
        row.addWidget(self.lock_btn)
        v.addLayout(row)

        scale_row = QHBoxLayout()
        scale_row.addWidget(QLabel("Scale"))
        self.scale_slider = QSlider(Qt.Orientation.Horizontal)
        self.scale_slider.setRange(MAIN_IMAGE_SCALE_MIN, MAIN_IMAGE_SCALE_MAX)
        self.scale_slider.valueChanged.connect(self._on_scale_changed)
        self.scale_label = QLabel("100%")
        self.scale_label.setMinimumWidth(40)
        self.scale_label.setAlignment(Qt.AlignmentFlag.AlignRight | Qt.AlignmentFlag.AlignVCenter)
        scale_row.addWidget(self.scale_slider, 1)
        scale_row.addWidget(self.scale_label)
        v.addLayout(scale_row)

        self.lock_hint = QLabel()
        self.lock_hint.setWordWrap(True)
        self.lock_hint.setStyleSheet("color: #6B7280;")
        v.addWidget(self.lock_hint)
        return box

    def _build_arrow_group(self) -> QGroupBox:
        box = QGroupBox("New arrows")
        form = QFormLayout(box)
        self.arrow_width_spin = QDoubleSpinBox()
        self.arrow_width_spin.setRange(1.0, 20.0)
        self.arrow_width_spin.setSingleStep(0.5)
        self.arrow_width_spin.valueChanged.connect(
            lambda v: self._apply_arrow_style(width=float(v)))
        form.addRow("Width", self.arrow_width_spin)

        self.arrow_color_btn = QPushButton()
        self.arrow_color_btn.clicked.connect(self._pick_arrow_color)
        form.addRow("Color", self.arrow_color_btn)

        self.arrow_style_combo = QComboBox()
        self.arrow_style_combo.addItem("Solid", LINE_SOLID)
        self.arrow_style_combo.addItem("Dashed", LINE_DASHED)
        self.arrow_style_combo.currentIndexChanged.connect(
            lambda i: self._apply_arrow_style(style=self.arrow_style_combo.itemData(i)))
        form.addRow("Line", self.arrow_style_combo)
        return box

    # ── Model -> widgets ──────────────────────────────────

    def _on_document_changed(self, reason: str) -> None:
        if reason in (CHANGE_ACTIVE, CHANGE_CONTENT, CHANGE_LOADED, CHANGE_METADATA):
            self.refresh()

    def _on_selection_changed(self, reason: str) -> None:
        if reason == STATE_ARROW_STYLE:
            self.refresh()

    def refresh(self) -> None:
        """Reload every field from the controllers."""
        self._updating = True
        try:
            meta = self.document.metadata
            self.brand_edit.setText(meta.brand)
            self.product_edit.setText(meta.product)
            self.date_edit.setText(meta.date)
            self.version_edit.setText(meta.version)

            page = self.document.active_page
            has_image = page.main_image is not None
            self.lock_btn.setChecked(page.is_main_image_locked)
            self.lock_btn.setText("Unlock page" if page.is_main_image_locked else "Lock page")
            self.scale_slider.setEnabled(has_image and not page.is_main_image_locked)
            self.scale_slider.setValue(page.main_image_pos.scale)
            self.scale_label.setText(f"{page.main_image_pos.scale}%")
            if page.is_main_image_locked:
                self.lock_hint.setText("Page locked: items and arrows are editable.")
            elif not has_image:
                self.lock_hint.setText("Upload a background image, or lock the page to annotate.")
            else:
                self.lock_hint.setText("Drag the image into place, then lock it to annotate.")

            style = self.selection.state.arrow_style
            self.arrow_width_spin.setValue(style.width)
            self.arrow_color_btn.setText(style.color)
            self.arrow_color_btn.setStyleSheet(f"background-color: {style.color}; color: white;")
            idx = self.arrow_style_combo.findData(style.style)
            self.arrow_style_combo.setCurrentIndex(max(0, idx))
        finally:
            self._updating = False

    # ── Widgets -> model ──────────────────────────────────

    def _apply_metadata(self, field_name: str, value: str) -> None:
        if self._updating or getattr(self.document.metadata, field_name) == value:
            return
        self.document.update_metadata(**{field_name: value})

    def _on_lock_toggled(self, checked: bool) -> None:
        if self._updating:
            return
        if checked != self.document.active_page.is_main_image_locked:
            self.selection.toggle_main_image_lock()

    def _on_scale_changed(self, value: int) -> None:
        self.scale_label.setText(f"{value}%")
        if self._updating or self.document.active_page.main_image is None:
            return
        self.document.set_main_image_scale(value)

    def _apply_arrow_style(self, **changes) -> None:
        if self._updating:
            return
        self.selection.set_arrow_style(**changes)

    def _pick_arrow_color(self) -> None:
        current = QColor(self.selection.state.arrow_style.color)
        color = QColorDialog.getColor(current, self, "Arrow color")
        if color.isValid():
            self._apply_arrow_style(color=color.name())

