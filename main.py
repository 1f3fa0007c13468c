"""
main.py

QC Chart Composer - Main Application

PyQt6 application for composing multi-page product QC charts:
- Per-page background image, positioned then locked
- Placed image fragments and editable arrows on top
- Asset shelf, folder-organized library, and named snapshots
- Export of all pages to PDF or PowerPoint

Usage:
    python main.py

Dependencies:
    pip install PyQt6 pillow pymupdf python-pptx platformdirs tomli-w

Environment:
    QCCHART_DEBUG_TRACE=1 (optional, enables debug tracing)
"""

from __future__ import annotations

import os
import sys
from functools import partial

from PyQt6.QtCore import Qt, QSize
from PyQt6.QtGui import QAction, QActionGroup
from PyQt6.QtWidgets import (
    QApplication,
    QComboBox,
    QDockWidget,
    QFileDialog,
    QHBoxLayout,
    QInputDialog,
    QLabel,
    QMainWindow,
    QMessageBox,
    QSlider,
    QTabBar,
    QToolBar,
    QToolButton,
    QVBoxLayout,
    QWidget,
)

from canvas import PageScene, PageView, SceneRasterizer
from canvas.render import EXPORT_DPIS
from document import CHANGE_ACTIVE, CHANGE_LOADED, CHANGE_PAGES, DocumentController
from errors import ExportError, PreconditionError, StorageError
from export import default_filename, export_document
from interaction import ManipulationEngine
from library import AssetLibrary, UploadShelf
from models import ArrowStyle, LINE_SOLID, LINE_STYLES, Mode, ZOOM_MAX, ZOOM_MIN
from pdf_export import assemble_pdf
from pptx_export import assemble_pptx
from projects import SnapshotStore, default_snapshot_name
from properties import AssetsPanel, PropertyPanel
from selection import STATE_MODE, STATE_ZOOM, SelectionController, SessionState
from settings import SettingsManager, get_settings
from snapshot_dialog import SnapshotDialog
from storage import LocalStore
from uploads import ASSET_FILTER, IMAGE_FILTER, load_assets, load_main_image
from debug_trace import trace, trace_exception, close_log


class MainWindow(QMainWindow):
    """Main application window for the QC Chart Composer.

    Args:
        settings_manager: The SettingsManager instance for application settings.
    """

    def __init__(self, settings_manager: SettingsManager):
        super().__init__()
        self.settings_manager = settings_manager
        s = settings_manager.settings
        self.setWindowTitle("QC Chart Composer")

        # Persistent collections
        self.store = LocalStore(settings_manager.get_data_dir(), s.storage.capacity_bytes)
        self.library = AssetLibrary(self.store, s.library.default_folders)
        self.snapshots = SnapshotStore(self.store)
        self.shelf = UploadShelf()

        # Core controllers
        self.document = DocumentController(item_defaults=s.items)
        arrow_style = ArrowStyle(
            width=s.arrows.width,
            color=s.arrows.color,
            style=s.arrows.style if s.arrows.style in LINE_STYLES else LINE_SOLID,
        )
        dpi = s.export.dpi if s.export.dpi in EXPORT_DPIS else 150
        state = SessionState(zoom=s.canvas.zoom.default, arrow_style=arrow_style, export_dpi=dpi)
        self.selection = SelectionController(self.document, state)
        self.engine = ManipulationEngine(self.document, self.selection)

        # Scene and view
        self.scene = PageScene(self.document, self.selection, self.engine)
        self.view = PageView(self.scene, self.engine, self.selection)

        # Page tabs above the canvas
        self.page_tabs = QTabBar()
        self.page_tabs.setTabsClosable(True)
        self.page_tabs.setExpanding(False)
        self.page_tabs.setDocumentMode(True)
        self.page_tabs.currentChanged.connect(self._on_tab_changed)
        self.page_tabs.tabCloseRequested.connect(self.delete_page)
        self.page_tabs.tabBarDoubleClicked.connect(self.rename_page)
        add_page_btn = QToolButton()
        add_page_btn.setText("+")
        add_page_btn.setToolTip("Add page")
        add_page_btn.clicked.connect(lambda: self.document.add_page())

        tabs_row = QHBoxLayout()
        tabs_row.setContentsMargins(0, 0, 0, 0)
        tabs_row.addWidget(self.page_tabs)
        tabs_row.addWidget(add_page_btn)
        tabs_row.addStretch(1)

        central = QWidget()
        cv = QVBoxLayout(central)
        cv.setContentsMargins(0, 0, 0, 0)
        cv.setSpacing(0)
        cv.addLayout(tabs_row)
        cv.addWidget(self.view, 1)
        self.setCentralWidget(central)

        # Docks (right side)
        self.props = PropertyPanel(self.document, self.selection, self.upload_main_image_dialog)
        props_dock = QDockWidget("Page", self)
        props_dock.setWidget(self.props)
        props_dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetMovable)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, props_dock)

        self.assets = AssetsPanel(self.document, self.shelf, self.library, self.upload_assets_dialog)
        assets_dock = QDockWidget("Assets", self)
        assets_dock.setWidget(self.assets)
        assets_dock.setFeatures(QDockWidget.DockWidgetFeature.DockWidgetMovable)
        self.addDockWidget(Qt.DockWidgetArea.RightDockWidgetArea, assets_dock)

        self._build_toolbar()

        # Connect model listeners
        self.document.add_listener(self._on_document_changed)
        self.selection.add_listener(self._on_selection_changed)

        self._refresh_tabs()
        self.statusBar().showMessage("Upload a main image, position it, then lock it to annotate.")

    def _build_toolbar(self):
        """Build the application toolbar."""
        tb = QToolBar("Tools")
        tb.setIconSize(QSize(18, 18))
        tb.setMovable(False)
        self.addToolBar(tb)

        # Mode actions
        group = QActionGroup(self)
        group.setExclusive(True)

        def add_mode_action(text: str, mode: str, shortcut: str, tooltip: str) -> QAction:
            act = QAction(text, self)
            act.setCheckable(True)
            act.setShortcut(shortcut)
            act.setToolTip(f"{tooltip} ({shortcut})")
            act.setStatusTip(tooltip)
            act.triggered.connect(lambda _checked, m=mode: self.selection.set_mode(m))
            group.addAction(act)
            tb.addAction(act)
            return act

        self.act_move = add_mode_action("Move", Mode.MOVE, "M", "Select, move and resize items and arrows")
        self.act_arrow = add_mode_action("Arrow", Mode.ARROW, "A", "Drag on the page to draw an arrow")
        self.act_move.setChecked(True)

        delete_act = QAction("Delete", self)
        delete_act.setToolTip("Delete the selected item or arrow (Del)")
        delete_act.triggered.connect(self.selection.delete_selected)
        tb.addAction(delete_act)

        tb.addSeparator()

        # Zoom
        tb.addWidget(QLabel(" Zoom "))
        self.zoom_slider = QSlider(Qt.Orientation.Horizontal)
        self.zoom_slider.setRange(int(ZOOM_MIN * 100), int(ZOOM_MAX * 100))
        self.zoom_slider.setSingleStep(int(self.settings_manager.settings.canvas.zoom.step * 100))
        self.zoom_slider.setFixedWidth(140)
        self.zoom_slider.setValue(round(self.selection.state.zoom * 100))
        self.zoom_slider.valueChanged.connect(lambda v: self.selection.set_zoom(v / 100.0))
        tb.addWidget(self.zoom_slider)
        self.zoom_label = QLabel()
        self.zoom_label.setMinimumWidth(44)
        tb.addWidget(self.zoom_label)
        self._update_zoom_label()

        tb.addSeparator()

        # Snapshots
        save_act = QAction("Save Project...", self)
        save_act.setShortcut("Ctrl+S")
        save_act.triggered.connect(self.save_snapshot_dialog)
        tb.addAction(save_act)
        history_act = QAction("Projects...", self)
        history_act.setShortcut("Ctrl+O")
        history_act.triggered.connect(self.open_snapshot_dialog)
        tb.addAction(history_act)

        tb.addSeparator()

        # Export
        tb.addWidget(QLabel(" DPI "))
        self.dpi_combo = QComboBox()
        for value in EXPORT_DPIS:
            self.dpi_combo.addItem(str(value), value)
        self.dpi_combo.setCurrentIndex(max(0, self.dpi_combo.findData(self.selection.state.export_dpi)))
        self.dpi_combo.currentIndexChanged.connect(self._on_dpi_changed)
        tb.addWidget(self.dpi_combo)

        pdf_act = QAction("Export PDF...", self)
        pdf_act.triggered.connect(lambda: self.export_dialog("pdf"))
        tb.addAction(pdf_act)
        pptx_act = QAction("Export PPTX...", self)
        pptx_act.triggered.connect(lambda: self.export_dialog("pptx"))
        tb.addAction(pptx_act)

    # ------------------------------------------------------------------
    # Model listeners
    # ------------------------------------------------------------------

    def _on_document_changed(self, reason: str) -> None:
        if reason in (CHANGE_PAGES, CHANGE_ACTIVE, CHANGE_LOADED):
            self._refresh_tabs()

    def _on_selection_changed(self, reason: str) -> None:
        if reason == STATE_MODE:
            arrow = self.selection.mode == Mode.ARROW
            self.act_arrow.setChecked(arrow)
            self.act_move.setChecked(not arrow)
            if arrow:
                self.statusBar().showMessage("Arrow mode: drag on the page to draw an arrow.")
        elif reason == STATE_ZOOM:
            self.zoom_slider.blockSignals(True)
            self.zoom_slider.setValue(round(self.selection.state.zoom * 100))
            self.zoom_slider.blockSignals(False)
            self._update_zoom_label()

    def _update_zoom_label(self) -> None:
        self.zoom_label.setText(f"{round(self.selection.state.zoom * 100)}%")

    def _on_dpi_changed(self, index: int) -> None:
        self.selection.state.export_dpi = int(self.dpi_combo.itemData(index))

    # ------------------------------------------------------------------
    # Pages
    # ------------------------------------------------------------------

    def _refresh_tabs(self) -> None:
        self.page_tabs.blockSignals(True)
        try:
            while self.page_tabs.count():
                self.page_tabs.removeTab(0)
            for page in self.document.pages:
                self.page_tabs.addTab(page.name)
            self.page_tabs.setCurrentIndex(self.document.active_index)
        finally:
            self.page_tabs.blockSignals(False)

    def _on_tab_changed(self, index: int) -> None:
        if 0 <= index < len(self.document.pages) and index != self.document.active_index:
            self.document.set_active_page(index)

    def delete_page(self, index: int) -> None:
        """Delete a page after confirmation; the last page cannot be deleted."""
        if len(self.document.pages) <= 1:
            QMessageBox.warning(self, "Delete page", "At least one page must remain.")
            return
        name = self.document.pages[index].name
        answer = QMessageBox.question(self, "Delete page", f'Delete "{name}"?')
        if answer != QMessageBox.StandardButton.Yes:
            return
        try:
            self.document.delete_page(index)
        except PreconditionError as e:
            QMessageBox.warning(self, "Delete page", str(e))

    def rename_page(self, index: int) -> None:
        if not 0 <= index < len(self.document.pages):
            return
        current = self.document.pages[index].name
        name, ok = QInputDialog.getText(self, "Rename page", "Page name:", text=current)
        if ok and name.strip():
            self.document.rename_page(index, name.strip())

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def upload_main_image_dialog(self):
        """Pick a background image (or PDF) for the active page."""
        path, _ = QFileDialog.getOpenFileName(
            self, "Upload Main Image", "", f"{IMAGE_FILTER};;PDF (*.pdf)"
        )
        if not path:
            return
        src = load_main_image(path)
        if src is None:
            QMessageBox.warning(self, "Upload failed", f"Could not read {os.path.basename(path)} as an image.")
            return
        self.document.set_main_image(src)
        self.statusBar().showMessage("Drag the image into place, then lock it.")

    def upload_assets_dialog(self):
        """Upload images and PDFs to the session shelf."""
        paths, _ = QFileDialog.getOpenFileNames(self, "Upload Assets", "", ASSET_FILTER)
        if not paths:
            return
        QApplication.setOverrideCursor(Qt.CursorShape.WaitCursor)
        try:
            assets = load_assets(paths)
        finally:
            QApplication.restoreOverrideCursor()
        self.assets.add_uploads(assets)
        skipped = len(paths) - len(assets)
        msg = f"Uploaded {len(assets)} asset(s)"
        if skipped:
            msg += f", skipped {skipped} unreadable file(s)"
        self.statusBar().showMessage(msg)

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def save_snapshot_dialog(self):
        """Save the whole document as a named snapshot."""
        default = default_snapshot_name(self.document.metadata)
        name, ok = QInputDialog.getText(self, "Save Project", "Project name:", text=default)
        if not ok or not name.strip():
            return
        try:
            snap = self.snapshots.save(self.document.document, name)
        except StorageError as e:
            QMessageBox.critical(
                self, "Save failed",
                f"The project could not be saved. Try fewer or smaller images.\n\n{e}",
            )
            return
        self.statusBar().showMessage(f'Saved project "{snap.name}"')

    def open_snapshot_dialog(self):
        """Browse, load or delete saved snapshots."""
        dlg = SnapshotDialog(self.snapshots, self)
        if dlg.exec() and dlg.chosen is not None:
            self.document.load_document(dlg.chosen.document)
            self.statusBar().showMessage(f'Loaded project "{dlg.chosen.name}"')

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def export_dialog(self, kind: str):
        """Export every page to a PDF or PowerPoint file."""
        if kind == "pdf":
            title, file_filter = "Export PDF", "PDF (*.pdf)"
        else:
            title, file_filter = "Export PowerPoint", "PowerPoint (*.pptx)"
        workspace = self.settings_manager.get_workspace_dir()
        initial = str(workspace / default_filename(self.document.metadata, kind))
        path, _ = QFileDialog.getSaveFileName(self, title, initial, file_filter)
        if not path:
            return
        if not path.lower().endswith(f".{kind}"):
            path += f".{kind}"

        dpi = self.selection.state.export_dpi
        rasterize = SceneRasterizer(self.scene, dpi, self.settings_manager.settings.export.jpeg_quality)
        assemble = partial(assemble_pdf, resolution=dpi) if kind == "pdf" else assemble_pptx

        QApplication.setOverrideCursor(Qt.CursorShape.WaitCursor)
        try:
            export_document(self.document, path, rasterize, assemble)
        except ExportError as e:
            QMessageBox.critical(self, "Export failed", f"{e}\n\nPlease try again.")
            return
        finally:
            QApplication.restoreOverrideCursor()
        self.statusBar().showMessage(f"Exported {len(self.document.pages)} page(s) to {path}")

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def _remember_session_settings(self) -> None:
        s = self.settings_manager.settings
        style = self.selection.state.arrow_style
        s.arrows.width = style.width
        s.arrows.color = style.color
        s.arrows.style = style.style
        s.export.dpi = self.selection.state.export_dpi

    def closeEvent(self, event):
        self.view.shutdown()
        self._remember_session_settings()
        super().closeEvent(event)


def main():
    """Application entry point."""
    trace("Application starting", "MAIN")
    app = QApplication(sys.argv)

    # Load settings (use singleton to ensure single instance)
    trace("Loading settings", "MAIN")
    settings_manager = get_settings()

    # Ensure settings file has all sections
    settings_manager.ensure_file_complete()

    # Save settings on application quit
    def save_on_quit():
        trace("Saving settings on quit", "MAIN")
        try:
            settings_manager.save()
        except OSError:
            trace_exception("Saving settings failed")
        close_log()

    app.aboutToQuit.connect(save_on_quit)

    trace("Creating MainWindow", "MAIN")
    w = MainWindow(settings_manager)
    w.resize(1550, 980)
    trace("Showing MainWindow", "MAIN")
    w.show()
    trace("Entering event loop", "MAIN")
    sys.exit(app.exec())


def run():
    """Console-script entry point with crash tracing."""
    # Set up global exception handler to catch crashes
    def excepthook(exc_type, exc_value, exc_tb):
        import traceback
        trace("UNCAUGHT EXCEPTION:", "CRASH")
        trace("".join(traceback.format_exception(exc_type, exc_value, exc_tb)), "CRASH")
        close_log()
        sys.__excepthook__(exc_type, exc_value, exc_tb)

    sys.excepthook = excepthook

    try:
        main()
    except Exception as e:
        trace(f"FATAL: {type(e).__name__}: {e}", "CRASH")
        trace_exception("Fatal exception")
        close_log()
        raise


if __name__ == "__main__":
    run()
