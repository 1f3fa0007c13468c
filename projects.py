"""
projects.py

Named snapshots of the whole document kept in the LocalStore.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from models import Document, Metadata, Snapshot, new_id
from storage import KEY_VERSIONS, LocalStore
from debug_trace import trace


def default_snapshot_name(metadata: Metadata) -> str:
    return f"{metadata.brand}_{metadata.product}"


class SnapshotStore:
    """Save, list, load and delete document snapshots.

    Args:
        store: The persistent key-value store.
    """

    def __init__(self, store: LocalStore):
        self.store = store
        self._snapshots: List[Snapshot] = []
        # Entries that cannot be parsed are kept verbatim and written back
        self._unreadable: List[Any] = []
        for d in store.get(KEY_VERSIONS, []) or []:
            try:
                self._snapshots.append(Snapshot.from_dict(d))
            except (AttributeError, KeyError, TypeError, ValueError):
                name = d.get("name") if isinstance(d, dict) else None
                trace(f"keeping unreadable snapshot {name!r}", "PROJECTS")
                self._unreadable.append(d)

    @property
    def snapshots(self) -> List[Snapshot]:
        return list(self._snapshots)

    def _persist(self, snapshots: List[Snapshot]) -> None:
        self.store.set(KEY_VERSIONS, self._unreadable + [s.to_dict() for s in snapshots])
        self._snapshots = snapshots

    def save(self, document: Document, name: Optional[str] = None) -> Snapshot:
        """Store a copy of ``document``.

        Raises:
            StorageError: when the snapshot list cannot be persisted.
        """
        name = (name or "").strip() or default_snapshot_name(document.metadata)
        snap = Snapshot(
            id=new_id(),
            name=name,
            document=document,
            saved_at=datetime.now(timezone.utc).isoformat(),
        )
        self._persist(self._snapshots + [snap])
        trace(f"snapshot saved {name!r} pages={len(document.pages)}", "PROJECTS")
        return snap

    def get(self, snapshot_id: str) -> Optional[Snapshot]:
        for s in self._snapshots:
            if s.id == snapshot_id:
                return s
        return None

    def delete(self, snapshot_id: str) -> bool:
        remaining = [s for s in self._snapshots if s.id != snapshot_id]
        if len(remaining) == len(self._snapshots):
            return False
        self._persist(remaining)
        return True
