"""
library.py

The reusable asset library and the per-session upload shelf.

Library assets and folder names are persisted in the LocalStore; the
upload shelf lives only as long as the window.
"""

from __future__ import annotations

from typing import Any, Iterable, List, Optional

from errors import DuplicateError
from models import Asset, LibraryAsset, new_id
from storage import KEY_ASSET_LIBRARY, KEY_FOLDERS, LocalStore
from debug_trace import trace

DEFAULT_FOLDERS = ("TM", "EP", "BIKE", "STRENGTH")

# Assets saved before folders existed are listed under this folder
LEGACY_FOLDER = "TM"


class UploadShelf:
    """Assets uploaded during this session, in upload order."""

    def __init__(self):
        self._assets: List[Asset] = []

    @property
    def assets(self) -> List[Asset]:
        return list(self._assets)

    def add(self, assets: Iterable[Asset]) -> int:
        added = 0
        for asset in assets:
            self._assets.append(asset)
            added += 1
        return added

    def remove(self, asset_id: str) -> bool:
        before = len(self._assets)
        self._assets = [a for a in self._assets if a.id != asset_id]
        return len(self._assets) != before

    def __len__(self) -> int:
        return len(self._assets)


class AssetLibrary:
    """Folder-organized assets persisted across sessions.

    Args:
        store: The persistent key-value store.
        default_folders: Folders used until the operator creates their own.
    """

    def __init__(self, store: LocalStore, default_folders: Iterable[str] = DEFAULT_FOLDERS):
        self.store = store
        saved = store.get(KEY_FOLDERS)
        self._folders: List[str] = list(saved) if isinstance(saved, list) and saved else list(default_folders)
        self._assets: List[LibraryAsset] = []
        # Entries that cannot be parsed are kept verbatim and written back
        self._unreadable: List[Any] = []
        for d in store.get(KEY_ASSET_LIBRARY, []) or []:
            if isinstance(d, dict) and all(isinstance(d.get(k, ""), str) for k in ("src", "name")):
                self._assets.append(LibraryAsset.from_dict(d))
            else:
                trace("keeping unreadable library entry", "LIBRARY")
                self._unreadable.append(d)
        self.active_folder: str = self._folders[0] if self._folders else LEGACY_FOLDER

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    @property
    def folders(self) -> List[str]:
        return list(self._folders)

    def set_active_folder(self, name: str) -> None:
        if name not in self._folders:
            raise KeyError(f"Unknown folder: {name!r}")
        self.active_folder = name

    def create_folder(self, name: str) -> Optional[str]:
        """Add a folder and make it active.

        Returns:
            The folder name, or None when ``name`` is blank (ignored).

        Raises:
            DuplicateError: when the folder already exists.
            StorageError: when the folder list cannot be persisted.
        """
        name = (name or "").strip()
        if not name:
            return None
        if name in self._folders:
            raise DuplicateError(f"Folder '{name}' already exists.")
        folders = self._folders + [name]
        self.store.set(KEY_FOLDERS, folders)
        self._folders = folders
        self.active_folder = name
        trace(f"library folder created: {name}", "LIBRARY")
        return name

    # ------------------------------------------------------------------
    # Assets
    # ------------------------------------------------------------------

    @property
    def assets(self) -> List[LibraryAsset]:
        return list(self._assets)

    def _persist(self, assets: List[LibraryAsset]) -> None:
        self.store.set(KEY_ASSET_LIBRARY, self._unreadable + [a.to_dict() for a in assets])
        self._assets = assets

    def contains(self, name: str, src: str) -> bool:
        """Duplicate test: same name and same payload size, in any folder."""
        return any(a.name == name and a.payload_size == len(src) for a in self._assets)

    def save_asset(self, asset: Asset, folder: Optional[str] = None) -> LibraryAsset:
        """Copy a session asset into the library under ``folder`` (default: active).

        Raises:
            DuplicateError: when an equal asset is already in the library.
            StorageError: when the library cannot be persisted.
        """
        if self.contains(asset.name, asset.src):
            raise DuplicateError(f"'{asset.name}' is already in the library.")
        entry = LibraryAsset(id=new_id(), src=asset.src, name=asset.name, folder=folder or self.active_folder)
        self._persist(self._assets + [entry])
        trace(f"library saved {entry.name} -> {entry.folder}", "LIBRARY")
        return entry

    def delete_asset(self, asset_id: str) -> bool:
        remaining = [a for a in self._assets if a.id != asset_id]
        if len(remaining) == len(self._assets):
            return False
        self._persist(remaining)
        return True

    def visible_assets(self, search: str = "", folder: Optional[str] = None) -> List[LibraryAsset]:
        """Assets in ``folder`` (default: active) whose name contains ``search``, case-insensitively."""
        folder = folder or self.active_folder
        needle = (search or "").lower()
        return [
            a for a in self._assets
            if (a.folder == folder or (not a.folder and folder == LEGACY_FOLDER))
            and needle in a.name.lower()
        ]

    @staticmethod
    def as_asset(entry: LibraryAsset) -> Asset:
        """A placeable asset for a library entry."""
        return Asset(id=entry.id, src=entry.src, name=entry.name)
