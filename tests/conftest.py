"""Shared pytest fixtures.

Qt tests run on the offscreen platform so they work without a display.
"""
from __future__ import annotations

import os
import sys

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))


@pytest.fixture(scope="session")
def qapp():
    """Provide a single QApplication for the entire test session."""
    from PyQt6.QtWidgets import QApplication
    app = QApplication.instance() or QApplication(sys.argv)
    yield app


@pytest.fixture()
def settings_dir(tmp_path, monkeypatch):
    """Point the settings singleton at a throwaway directory."""
    import settings
    d = tmp_path / "config"
    monkeypatch.setattr(settings, "_settings_manager", settings.SettingsManager(settings_dir=d))
    return d
