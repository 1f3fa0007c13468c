"""
properties/assets.py

Assets panel with two tabs:
- Upload: images and PDFs uploaded in this session
- Library: persisted assets, organized by folder and searchable

Clicking an asset places it on the active page.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from PyQt6.QtCore import Qt, QSize
from PyQt6.QtGui import QIcon
from PyQt6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QInputDialog,
    QLineEdit,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QTabWidget,
    QVBoxLayout,
    QWidget,
)

from canvas.items import pixmap_from_src
from document import DocumentController
from errors import PreconditionError, StorageError
from library import AssetLibrary, UploadShelf
from models import Asset
from debug_trace import trace

THUMB_SIZE = QSize(96, 96)
ASSET_ID_ROLE = Qt.ItemDataRole.UserRole


def _thumbnail_item(name: str, src: str, asset_id: str, pdf: bool = False) -> QListWidgetItem:
    label = f"{name} (PDF)" if pdf else name
    item = QListWidgetItem(label)
    pm = pixmap_from_src(src)
    if not pm.isNull():
        item.setIcon(QIcon(pm.scaled(THUMB_SIZE, Qt.AspectRatioMode.KeepAspectRatio,
                                     Qt.TransformationMode.SmoothTransformation)))
    item.setData(ASSET_ID_ROLE, asset_id)
    item.setToolTip(name)
    return item


def _icon_list() -> QListWidget:
    lst = QListWidget()
    lst.setViewMode(QListWidget.ViewMode.IconMode)
    lst.setIconSize(THUMB_SIZE)
    lst.setResizeMode(QListWidget.ResizeMode.Adjust)
    lst.setMovement(QListWidget.Movement.Static)
    lst.setSpacing(6)
    lst.setWordWrap(True)
    return lst


class AssetsPanel(QWidget):
    """
    Session uploads and the persistent library.

    Args:
        document: Document controller that receives placed assets.
        shelf: Session upload shelf.
        library: Persistent asset library.
        on_upload: Called when the operator asks to upload files.
    """

    def __init__(self, document: DocumentController, shelf: UploadShelf, library: AssetLibrary,
                 on_upload: Callable[[], None], parent=None):
        super().__init__(parent)
        self.document = document
        self.shelf = shelf
        self.library = library

        layout = QVBoxLayout(self)
        layout.setContentsMargins(6, 6, 6, 6)
        self.tabs = QTabWidget()
        layout.addWidget(self.tabs)

        # Upload tab
        upload_tab = QWidget()
        uv = QVBoxLayout(upload_tab)
        self.upload_btn = QPushButton("Upload images / PDFs...")
        self.upload_btn.clicked.connect(on_upload)
        uv.addWidget(self.upload_btn)
        self.upload_list = _icon_list()
        self.upload_list.itemClicked.connect(self._place_uploaded)
        uv.addWidget(self.upload_list, 1)
        self.save_to_library_btn = QPushButton("Save selected to library")
        self.save_to_library_btn.clicked.connect(self._save_selected_to_library)
        uv.addWidget(self.save_to_library_btn)
        self.tabs.addTab(upload_tab, "Upload")

        # Library tab
        library_tab = QWidget()
        lv = QVBoxLayout(library_tab)
        folder_row = QHBoxLayout()
        self.folder_combo = QComboBox()
        self.folder_combo.currentTextChanged.connect(self._on_folder_changed)
        self.new_folder_btn = QPushButton("New folder...")
        self.new_folder_btn.clicked.connect(self._create_folder)
        folder_row.addWidget(self.folder_combo, 1)
        folder_row.addWidget(self.new_folder_btn)
        lv.addLayout(folder_row)
        self.search_edit = QLineEdit()
        self.search_edit.setPlaceholderText("Search library...")
        self.search_edit.textChanged.connect(lambda _t: self.refresh_library())
        lv.addWidget(self.search_edit)
        self.library_list = _icon_list()
        self.library_list.itemClicked.connect(self._place_library)
        lv.addWidget(self.library_list, 1)
        self.delete_btn = QPushButton("Delete selected from library")
        self.delete_btn.clicked.connect(self._delete_selected_library)
        lv.addWidget(self.delete_btn)
        self.tabs.addTab(library_tab, "Library")

        self.refresh_folders()
        self.refresh_uploads()

    # ── Refresh ──────────────────────────────────

    def refresh_uploads(self) -> None:
        self.upload_list.clear()
        for asset in self.shelf.assets:
            self.upload_list.addItem(_thumbnail_item(asset.name, asset.src, asset.id, asset.is_pdf))

    def refresh_folders(self) -> None:
        self.folder_combo.blockSignals(True)
        try:
            self.folder_combo.clear()
            self.folder_combo.addItems(self.library.folders)
            self.folder_combo.setCurrentText(self.library.active_folder)
        finally:
            self.folder_combo.blockSignals(False)
        self.refresh_library()

    def refresh_library(self) -> None:
        self.library_list.clear()
        for entry in self.library.visible_assets(self.search_edit.text()):
            self.library_list.addItem(_thumbnail_item(entry.name, entry.src, entry.id))

    def add_uploads(self, assets: List[Asset]) -> None:
        self.shelf.add(assets)
        self.refresh_uploads()
        self.tabs.setCurrentIndex(0)

    # ── Actions ──────────────────────────────────

    def _uploaded(self, item: Optional[QListWidgetItem]) -> Optional[Asset]:
        if item is None:
            return None
        asset_id = item.data(ASSET_ID_ROLE)
        for asset in self.shelf.assets:
            if asset.id == asset_id:
                return asset
        return None

    def _place_uploaded(self, item: QListWidgetItem) -> None:
        asset = self._uploaded(item)
        if asset is not None:
            self.document.place_asset(asset)
            trace(f"placed upload {asset.name}", "ASSETS")

    def _place_library(self, item: QListWidgetItem) -> None:
        asset_id = item.data(ASSET_ID_ROLE)
        for entry in self.library.assets:
            if entry.id == asset_id:
                self.document.place_asset(AssetLibrary.as_asset(entry))
                trace(f"placed library asset {entry.name}", "ASSETS")
                return

    def _save_selected_to_library(self) -> None:
        asset = self._uploaded(self.upload_list.currentItem())
        if asset is None:
            QMessageBox.information(self, "Library", "Select an uploaded asset first.")
            return
        try:
            entry = self.library.save_asset(asset)
        except PreconditionError as e:
            QMessageBox.warning(self, "Library", str(e))
            return
        except StorageError as e:
            QMessageBox.critical(self, "Library", f"Could not save to the library.\n\n{e}")
            return
        self.refresh_library()
        QMessageBox.information(self, "Library", f"Added to library ({entry.folder}).")

    def _delete_selected_library(self) -> None:
        item = self.library_list.currentItem()
        if item is None:
            return
        answer = QMessageBox.question(self, "Library", "Delete this asset from the library?")
        if answer != QMessageBox.StandardButton.Yes:
            return
        try:
            self.library.delete_asset(item.data(ASSET_ID_ROLE))
        except StorageError as e:
            QMessageBox.critical(self, "Library", str(e))
            return
        self.refresh_library()

    def _on_folder_changed(self, name: str) -> None:
        if name and name in self.library.folders:
            self.library.set_active_folder(name)
            self.refresh_library()

    def _create_folder(self) -> None:
        name, ok = QInputDialog.getText(self, "New folder", "Folder name:")
        if not ok:
            return
        try:
            created = self.library.create_folder(name)
        except PreconditionError as e:
            QMessageBox.warning(self, "New folder", str(e))
            return
        except StorageError as e:
            QMessageBox.critical(self, "New folder", str(e))
            return
        if created is not None:
            self.refresh_folders()
