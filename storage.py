"""
storage.py

Local key-value store for QC Chart.

Each key is one JSON file in the store directory (by default the
platformdirs user data directory):

    qc_versions.json       saved snapshots
    qc_asset_library.json  reusable library assets
    qc_folders.json        library folder names

Values are read once when the store opens and rewritten wholesale on every
change.  A write goes to a temporary file that replaces the old one only
when it is complete, so a failed write leaves both the file and the cached
value as they were.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

import platformdirs

from errors import StorageError
from debug_trace import trace, trace_exception

KEY_VERSIONS = "qc_versions"
KEY_ASSET_LIBRARY = "qc_asset_library"
KEY_FOLDERS = "qc_folders"

STORE_KEYS = (KEY_VERSIONS, KEY_ASSET_LIBRARY, KEY_FOLDERS)


class LocalStore:
    """Process-wide JSON store with a total capacity limit.

    Args:
        directory: Store directory; defaults to the user data directory.
        capacity_bytes: Maximum combined size of all serialized values.
            ``0`` disables the check.
    """

    def __init__(self, directory: Optional[Path] = None, capacity_bytes: int = 0):
        self.directory = Path(directory) if directory else Path(platformdirs.user_data_dir("qcchart"))
        self.capacity_bytes = capacity_bytes
        self._values: Dict[str, Any] = {}
        self._sizes: Dict[str, int] = {}
        self._load_all()

    def path_for(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _load_all(self) -> None:
        if not self.directory.is_dir():
            return
        for path in self.directory.glob("*.json"):
            key = path.stem
            try:
                with open(path, "r", encoding="utf-8") as f:
                    text = f.read()
                self._values[key] = json.loads(text)
                self._sizes[key] = len(text.encode("utf-8"))
            except (OSError, ValueError):
                # An unreadable value is treated as absent
                trace_exception(f"LocalStore: cannot read {path}")
        trace(f"store opened at {self.directory} keys={sorted(self._values)}", "STORE")

    @property
    def used_bytes(self) -> int:
        return sum(self._sizes.values())

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Serialize ``value`` and persist it under ``key``.

        Raises:
            StorageError: when the value would exceed the capacity or the
                file cannot be written. Nothing changes in that case.
        """
        text = json.dumps(value, indent=2)
        size = len(text.encode("utf-8"))
        projected = self.used_bytes - self._sizes.get(key, 0) + size
        if self.capacity_bytes and projected > self.capacity_bytes:
            raise StorageError(
                f"Storage is full: saving '{key}' needs {projected} bytes, "
                f"limit is {self.capacity_bytes}."
            )

        path = self.path_for(key)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=f".{key}.", suffix=".tmp", dir=self.directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(text)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except OSError as e:
            raise StorageError(f"Could not save '{key}': {e}") from e

        self._values[key] = value
        self._sizes[key] = size
        trace(f"store set {key} bytes={size} used={self.used_bytes}", "STORE")

    def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            if path.exists():
                path.unlink()
        except OSError as e:
            raise StorageError(f"Could not delete '{key}': {e}") from e
        self._values.pop(key, None)
        self._sizes.pop(key, None)
