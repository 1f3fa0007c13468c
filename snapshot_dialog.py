"""
snapshot_dialog.py

Dialog listing saved snapshots, with load and delete.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import (
    QDialog,
    QDialogButtonBox,
    QHBoxLayout,
    QListWidget,
    QListWidgetItem,
    QMessageBox,
    QPushButton,
    QVBoxLayout,
)

from errors import StorageError
from models import Snapshot
from projects import SnapshotStore

SNAPSHOT_ID_ROLE = Qt.ItemDataRole.UserRole


def _format_saved_at(saved_at: str) -> str:
    try:
        return datetime.fromisoformat(saved_at).astimezone().strftime("%Y-%m-%d %H:%M")
    except ValueError:
        return saved_at


class SnapshotDialog(QDialog):
    """Saved snapshot browser.

    After ``exec()`` returns Accepted, ``chosen`` holds the snapshot to load.

    Args:
        snapshots: Snapshot store to browse.
        parent: Parent widget.
    """

    def __init__(self, snapshots: SnapshotStore, parent=None):
        super().__init__(parent)
        self.snapshots = snapshots
        self.chosen: Optional[Snapshot] = None
        self.setWindowTitle("Saved Projects")
        self.resize(480, 420)

        layout = QVBoxLayout(self)
        self.list = QListWidget()
        self.list.itemDoubleClicked.connect(lambda _i: self._load())
        layout.addWidget(self.list, 1)

        row = QHBoxLayout()
        self.load_btn = QPushButton("Load")
        self.load_btn.clicked.connect(self._load)
        self.delete_btn = QPushButton("Delete")
        self.delete_btn.clicked.connect(self._delete)
        row.addWidget(self.load_btn)
        row.addWidget(self.delete_btn)
        row.addStretch(1)
        layout.addLayout(row)

        buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Close)
        buttons.rejected.connect(self.reject)
        layout.addWidget(buttons)

        self._populate()

    def _populate(self) -> None:
        self.list.clear()
        # Newest first
        for snap in reversed(self.snapshots.snapshots):
            pages = len(snap.document.pages)
            item = QListWidgetItem(f"{snap.name}\n{_format_saved_at(snap.saved_at)} | {pages} page(s)")
            item.setData(SNAPSHOT_ID_ROLE, snap.id)
            self.list.addItem(item)
        has_items = self.list.count() > 0
        self.load_btn.setEnabled(has_items)
        self.delete_btn.setEnabled(has_items)

    def _current(self) -> Optional[Snapshot]:
        item = self.list.currentItem()
        return self.snapshots.get(item.data(SNAPSHOT_ID_ROLE)) if item is not None else None

    def _load(self) -> None:
        snap = self._current()
        if snap is None:
            return
        answer = QMessageBox.question(
            self, "Load project",
            f'Load "{snap.name}"? The current work will be replaced.',
        )
        if answer == QMessageBox.StandardButton.Yes:
            self.chosen = snap
            self.accept()

    def _delete(self) -> None:
        snap = self._current()
        if snap is None:
            return
        answer = QMessageBox.question(self, "Delete project", f'Delete "{snap.name}"?')
        if answer != QMessageBox.StandardButton.Yes:
            return
        try:
            self.snapshots.delete(snap.id)
        except StorageError as e:
            QMessageBox.critical(self, "Delete project", str(e))
            return
        self._populate()
