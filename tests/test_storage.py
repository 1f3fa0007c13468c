"""Tests for LocalStore, AssetLibrary and SnapshotStore persistence."""
from __future__ import annotations

import json
import os

import pytest

from document import DocumentController
from errors import DuplicateError, StorageError
from library import LEGACY_FOLDER, AssetLibrary, UploadShelf
from models import Arrow, Asset, Point
from projects import SnapshotStore, default_snapshot_name
from storage import KEY_ASSET_LIBRARY, KEY_FOLDERS, KEY_VERSIONS, LocalStore


def _asset(name="bolt.png", payload="AAAA"):
    return Asset(id=f"id-{name}", src=f"data:image/png;base64,{payload}", name=name)


# ---------------------------------------------------------------------------
# LocalStore
# ---------------------------------------------------------------------------

class TestLocalStore:

    def test_set_writes_one_file_per_key(self, tmp_path):
        store = LocalStore(tmp_path)
        store.set(KEY_FOLDERS, ["TM", "EP"])
        with open(store.path_for(KEY_FOLDERS), encoding="utf-8") as f:
            assert json.load(f) == ["TM", "EP"]
        assert store.get(KEY_FOLDERS) == ["TM", "EP"]

    def test_values_survive_reopen(self, tmp_path):
        LocalStore(tmp_path).set(KEY_FOLDERS, ["A"])
        assert LocalStore(tmp_path).get(KEY_FOLDERS) == ["A"]

    def test_missing_directory_is_empty(self, tmp_path):
        store = LocalStore(tmp_path / "nope")
        assert store.get(KEY_VERSIONS, []) == []
        assert store.used_bytes == 0

    def test_corrupt_file_is_ignored(self, tmp_path):
        (tmp_path / f"{KEY_FOLDERS}.json").write_text("{not json", encoding="utf-8")
        LocalStore(tmp_path).set(KEY_VERSIONS, [])
        store = LocalStore(tmp_path)
        assert store.get(KEY_FOLDERS) is None
        assert store.get(KEY_VERSIONS) == []

    def test_capacity_exceeded_keeps_state(self, tmp_path):
        store = LocalStore(tmp_path, capacity_bytes=64)
        store.set(KEY_FOLDERS, ["TM"])
        used = store.used_bytes
        with pytest.raises(StorageError):
            store.set(KEY_ASSET_LIBRARY, ["x" * 200])
        assert store.get(KEY_ASSET_LIBRARY) is None
        assert store.used_bytes == used
        assert not store.path_for(KEY_ASSET_LIBRARY).exists()

    def test_replacing_a_key_counts_once(self, tmp_path):
        store = LocalStore(tmp_path, capacity_bytes=40)
        store.set(KEY_FOLDERS, ["a" * 20])
        store.set(KEY_FOLDERS, ["b" * 20])
        assert store.get(KEY_FOLDERS) == ["b" * 20]

    def test_no_temp_files_left(self, tmp_path):
        store = LocalStore(tmp_path)
        store.set(KEY_FOLDERS, ["TM"])
        assert sorted(os.listdir(tmp_path)) == [f"{KEY_FOLDERS}.json"]

    def test_delete(self, tmp_path):
        store = LocalStore(tmp_path)
        store.set(KEY_FOLDERS, ["TM"])
        store.delete(KEY_FOLDERS)
        assert store.get(KEY_FOLDERS) is None
        assert not store.path_for(KEY_FOLDERS).exists()


# ---------------------------------------------------------------------------
# AssetLibrary
# ---------------------------------------------------------------------------

class TestAssetLibrary:

    def test_default_folders(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        assert lib.folders == ["TM", "EP", "BIKE", "STRENGTH"]
        assert lib.active_folder == "TM"

    def test_create_folder(self, tmp_path):
        store = LocalStore(tmp_path)
        lib = AssetLibrary(store)
        assert lib.create_folder("  ROWER ") == "ROWER"
        assert lib.active_folder == "ROWER"
        assert AssetLibrary(LocalStore(tmp_path)).folders[-1] == "ROWER"

    def test_blank_folder_ignored(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        assert lib.create_folder("   ") is None
        assert len(lib.folders) == 4

    def test_duplicate_folder(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        with pytest.raises(DuplicateError):
            lib.create_folder("EP")
        assert lib.active_folder == "TM"

    def test_unknown_active_folder(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        with pytest.raises(KeyError):
            lib.set_active_folder("NOPE")

    def test_save_into_active_folder(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        lib.set_active_folder("BIKE")
        entry = lib.save_asset(_asset())
        assert entry.folder == "BIKE"
        reopened = AssetLibrary(LocalStore(tmp_path))
        assert [a.name for a in reopened.assets] == ["bolt.png"]

    def test_duplicate_asset_across_folders(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        lib.save_asset(_asset(), folder="EP")
        with pytest.raises(DuplicateError):
            lib.save_asset(_asset(), folder="TM")
        assert len(lib.assets) == 1

    def test_same_name_different_size_is_not_duplicate(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        lib.save_asset(_asset(payload="AAAA"))
        lib.save_asset(_asset(payload="AAAABBBB"))
        assert len(lib.assets) == 2

    def test_storage_failure_keeps_library(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path, capacity_bytes=10))
        with pytest.raises(StorageError):
            lib.save_asset(_asset())
        assert lib.assets == []

    def test_search_and_folder_filter(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        lib.save_asset(_asset("Front Bolt.png"), folder="TM")
        lib.save_asset(_asset("rear bolt.png"), folder="TM")
        lib.save_asset(_asset("Pedal.png"), folder="BIKE")
        assert [a.name for a in lib.visible_assets("BOLT")] == ["Front Bolt.png", "rear bolt.png"]
        assert [a.name for a in lib.visible_assets("", folder="BIKE")] == ["Pedal.png"]
        assert lib.visible_assets("pedal") == []

    def test_folderless_assets_listed_under_legacy_folder(self, tmp_path):
        store = LocalStore(tmp_path)
        store.set(KEY_ASSET_LIBRARY, [{"id": "old", "src": "data:,x", "name": "old.png"}])
        lib = AssetLibrary(store)
        assert [a.id for a in lib.visible_assets(folder=LEGACY_FOLDER)] == ["old"]
        assert lib.visible_assets(folder="EP") == []

    def test_unreadable_entries_survive_rewrite(self, tmp_path):
        store = LocalStore(tmp_path)
        store.set(KEY_ASSET_LIBRARY, ["junk", {"id": "odd", "src": 42, "name": "odd"}])
        lib = AssetLibrary(LocalStore(tmp_path))
        assert lib.assets == []
        entry = lib.save_asset(_asset())
        lib.delete_asset(entry.id)
        lib.save_asset(_asset("nut.png"))
        stored = LocalStore(tmp_path).get(KEY_ASSET_LIBRARY)
        assert stored[:2] == ["junk", {"id": "odd", "src": 42, "name": "odd"}]
        assert [d["name"] for d in stored[2:]] == ["nut.png"]

    def test_delete_asset(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        entry = lib.save_asset(_asset())
        assert lib.delete_asset(entry.id)
        assert not lib.delete_asset(entry.id)
        assert AssetLibrary(LocalStore(tmp_path)).assets == []

    def test_as_asset(self, tmp_path):
        lib = AssetLibrary(LocalStore(tmp_path))
        entry = lib.save_asset(_asset())
        placed = AssetLibrary.as_asset(entry)
        assert (placed.src, placed.name) == (entry.src, entry.name)


class TestUploadShelf:

    def test_add_and_remove(self):
        shelf = UploadShelf()
        assert shelf.add([_asset("a.png"), _asset("b.png")]) == 2
        assert len(shelf) == 2
        assert shelf.remove("id-a.png")
        assert not shelf.remove("id-a.png")
        assert [a.name for a in shelf.assets] == ["b.png"]


# ---------------------------------------------------------------------------
# SnapshotStore
# ---------------------------------------------------------------------------

class TestSnapshots:

    def _document(self):
        doc = DocumentController()
        doc.update_metadata(brand="ACME", product="Runner")
        doc.set_main_image("data:image/png;base64,AAAA")
        doc.set_main_image_position(12.0, -4.0)
        doc.set_main_image_locked(True)
        doc.add_item("data:image/png;base64,BBBB", name="bolt")
        doc.add_arrow(Arrow(id="a", start=Point(1, 2), end=Point(3, 4)).with_control_point_toggled())
        doc.add_page()
        return doc

    def test_round_trip(self, tmp_path):
        doc = self._document()
        snaps = SnapshotStore(LocalStore(tmp_path))
        snap = snaps.save(doc.document, "first")
        saved = doc.document

        doc.add_page()
        doc.update_metadata(brand="Other")
        doc.load_document(snap.document)
        assert doc.document == saved
        assert doc.active_index == 0

    def test_round_trip_through_disk(self, tmp_path):
        doc = self._document()
        SnapshotStore(LocalStore(tmp_path)).save(doc.document, "first")
        reopened = SnapshotStore(LocalStore(tmp_path))
        assert len(reopened.snapshots) == 1
        assert reopened.snapshots[0].document == doc.document

    def test_default_name(self, tmp_path):
        doc = self._document()
        snap = SnapshotStore(LocalStore(tmp_path)).save(doc.document, "  ")
        assert snap.name == default_snapshot_name(doc.metadata) == "ACME_Runner"

    def test_delete(self, tmp_path):
        snaps = SnapshotStore(LocalStore(tmp_path))
        snap = snaps.save(self._document().document, "x")
        assert snaps.get(snap.id) is snap
        assert snaps.delete(snap.id)
        assert snaps.get(snap.id) is None
        assert SnapshotStore(LocalStore(tmp_path)).snapshots == []

    def test_capacity_failure_keeps_list(self, tmp_path):
        snaps = SnapshotStore(LocalStore(tmp_path, capacity_bytes=50))
        with pytest.raises(StorageError):
            snaps.save(self._document().document, "big")
        assert snaps.snapshots == []

    def test_unreadable_entry_skipped(self, tmp_path):
        store = LocalStore(tmp_path)
        store.set(KEY_VERSIONS, [{"id": "bad", "name": "bad", "pages": []}, "junk"])
        assert SnapshotStore(store).snapshots == []

    def test_unreadable_entries_survive_save_and_delete(self, tmp_path):
        bad = {"id": "bad", "name": "future", "pages": []}
        good = SnapshotStore(LocalStore(tmp_path)).save(self._document().document, "good")
        store = LocalStore(tmp_path)
        store.set(KEY_VERSIONS, [bad] + store.get(KEY_VERSIONS))

        snaps = SnapshotStore(LocalStore(tmp_path))
        assert [s.name for s in snaps.snapshots] == ["good"]
        snaps.save(self._document().document, "new")
        snaps.delete(good.id)

        stored = LocalStore(tmp_path).get(KEY_VERSIONS)
        assert [d["name"] for d in stored] == ["future", "new"]
        assert stored[0] == bad
