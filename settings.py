"""
settings.py

Persistent settings management for QC Chart.

Handles cross-platform settings storage using TOML format with platformdirs
for proper user config directory detection.

Settings file location:
    - Windows: %APPDATA%/qcchart/settings.toml
    - macOS: ~/Library/Application Support/qcchart/settings.toml
    - Linux: ~/.config/qcchart/settings.toml

Default values are documented in comments throughout this file.
If settings.toml is corrupted, these defaults will be used.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import platformdirs

# TOML reading - use tomllib for Python 3.11+, tomli for earlier versions
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

import tomli_w

APP_NAME = "qcchart"

# Global settings manager instance (singleton)
_settings_manager: Optional["SettingsManager"] = None


def get_settings() -> "SettingsManager":
    """Get the global settings manager instance.

    Returns:
        The singleton SettingsManager instance.
    """
    global _settings_manager
    if _settings_manager is None:
        _settings_manager = SettingsManager()
    return _settings_manager


# =============================================================================
# Canvas Settings
# =============================================================================

@dataclass
class CanvasHandleSettings:
    """Selection handle settings.

    Defaults:
        size: 8.0
        hit_distance: 10.0
        border_color: "#0078D7"
        fill_color: "#FFFFFF"
    """
    size: float = 8.0                 # Default: 8.0 units (resize handle radius)
    hit_distance: float = 10.0        # Default: 10.0 units
    border_color: str = "#0078D7"     # Default: blue
    fill_color: str = "#FFFFFF"       # Default: white


@dataclass
class CanvasZoomSettings:
    """Zoom slider settings.

    Defaults:
        default: 0.6
        step: 0.1
    """
    default: float = 0.6  # Default: 0.6 (A3 fits most screens)
    step: float = 0.1     # Default: 0.1 per zoom in/out


@dataclass
class CanvasSettings:
    """All canvas-related settings.

    Defaults:
        unlocked_overlay_opacity: 0.5
    """
    handles: CanvasHandleSettings = field(default_factory=CanvasHandleSettings)
    zoom: CanvasZoomSettings = field(default_factory=CanvasZoomSettings)
    unlocked_overlay_opacity: float = 0.5  # Default: 0.5 while the main image is being positioned


# =============================================================================
# Entity Defaults
# =============================================================================

@dataclass
class ArrowSettings:
    """Default style of newly drawn arrows.

    Defaults:
        width: 2.0
        color: "#dc2626"
        style: "solid"
    """
    width: float = 2.0          # Default: 2.0 units
    color: str = "#dc2626"      # Default: red
    style: str = "solid"        # Default: "solid" (solid | dashed)


@dataclass
class ItemSettings:
    """Placement of assets dropped onto a page.

    Defaults:
        x: 50.0
        y: 50.0
        width: 150.0
    """
    x: float = 50.0        # Default: 50.0 units
    y: float = 50.0        # Default: 50.0 units
    width: float = 150.0   # Default: 150.0 units


# =============================================================================
# Export Settings
# =============================================================================

@dataclass
class ExportSettings:
    """Raster export settings.

    Defaults:
        dpi: 150
        jpeg_quality: 95
    """
    dpi: int = 150          # Default: 150 (one of 96, 150, 300)
    jpeg_quality: int = 95  # Default: 95


# =============================================================================
# Library / Storage Settings
# =============================================================================

@dataclass
class LibrarySettings:
    """Asset library settings.

    Defaults:
        default_folders: ["TM", "EP", "BIKE", "STRENGTH"]
    """
    default_folders: List[str] = field(default_factory=lambda: ["TM", "EP", "BIKE", "STRENGTH"])


@dataclass
class StorageSettings:
    """Local key-value store settings.

    Defaults:
        data_dir: "" (platform user data directory)
        capacity_bytes: 52428800
    """
    data_dir: str = ""                 # Default: "" (platformdirs user data dir)
    capacity_bytes: int = 50 * 1024 * 1024  # Default: 50 MiB across all collections


# =============================================================================
# Main App Settings
# =============================================================================

@dataclass
class AppSettings:
    """Application settings with default values.

    Attributes:
        workspace_dir: Default directory for exported files.
        canvas: Canvas-related settings.
        arrows: Default arrow style.
        items: Default item placement.
        export: Raster export settings.
        library: Asset library settings.
        storage: Local store settings.
    """
    # Workspace directory for exports (empty = ~/Documents/QCChart)
    workspace_dir: str = ""

    # Nested settings categories
    canvas: CanvasSettings = field(default_factory=CanvasSettings)
    arrows: ArrowSettings = field(default_factory=ArrowSettings)
    items: ItemSettings = field(default_factory=ItemSettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    library: LibrarySettings = field(default_factory=LibrarySettings)
    storage: StorageSettings = field(default_factory=StorageSettings)


# =============================================================================
# Settings Manager
# =============================================================================

class SettingsManager:
    """Manages loading, saving, and accessing application settings.

    Settings are stored in a TOML file at the platform-appropriate location.
    If the settings file doesn't exist, defaults are used and the file is
    created on first save.

    Args:
        app_name: Application name used for the config directory.
        settings_dir: Optional override of the config directory (tests).
    """

    def __init__(self, app_name: str = APP_NAME, settings_dir: Optional[Path] = None):
        self.app_name = app_name
        self.settings_dir = Path(settings_dir) if settings_dir else Path(platformdirs.user_config_dir(app_name))
        self.settings_file = self.settings_dir / "settings.toml"
        self.settings = self.load()
        self._needs_save = not self.settings_file.exists()  # Save if file didn't exist

    def ensure_file_complete(self) -> None:
        """Ensure settings file exists with all sections. Call once at startup."""
        if self._needs_save or not self.settings_file.exists():
            self.save()
            self._needs_save = False

    def load(self) -> AppSettings:
        """Load settings from the TOML file.

        Returns:
            AppSettings instance with values from file or defaults if file
            doesn't exist or is invalid.
        """
        if not self.settings_file.exists():
            return AppSettings()

        try:
            with open(self.settings_file, "rb") as f:
                data = tomllib.load(f)

            return self._parse_toml(data)
        except Exception:
            # If file is corrupted or invalid, return defaults
            return AppSettings()

    def _parse_toml(self, data: Dict[str, Any]) -> AppSettings:
        """Parse TOML data into AppSettings.

        Args:
            data: Parsed TOML dictionary.

        Returns:
            AppSettings instance populated from TOML data.
        """
        settings = AppSettings()

        # General section
        general = data.get("general", {})
        settings.workspace_dir = general.get("workspace_dir", settings.workspace_dir)

        # Canvas section
        canvas = data.get("canvas", {})
        settings.canvas.unlocked_overlay_opacity = canvas.get(
            "unlocked_overlay_opacity", settings.canvas.unlocked_overlay_opacity)
        if "handles" in canvas:
            h = canvas["handles"]
            settings.canvas.handles.size = h.get("size", settings.canvas.handles.size)
            settings.canvas.handles.hit_distance = h.get("hit_distance", settings.canvas.handles.hit_distance)
            settings.canvas.handles.border_color = h.get("border_color", settings.canvas.handles.border_color)
            settings.canvas.handles.fill_color = h.get("fill_color", settings.canvas.handles.fill_color)
        if "zoom" in canvas:
            zm = canvas["zoom"]
            settings.canvas.zoom.default = zm.get("default", settings.canvas.zoom.default)
            settings.canvas.zoom.step = zm.get("step", settings.canvas.zoom.step)

        # Defaults section
        defaults = data.get("defaults", {})
        if "arrow" in defaults:
            a = defaults["arrow"]
            settings.arrows.width = a.get("width", settings.arrows.width)
            settings.arrows.color = a.get("color", settings.arrows.color)
            settings.arrows.style = a.get("style", settings.arrows.style)
        if "item" in defaults:
            it = defaults["item"]
            settings.items.x = it.get("x", settings.items.x)
            settings.items.y = it.get("y", settings.items.y)
            settings.items.width = it.get("width", settings.items.width)

        # Export section
        export = data.get("export", {})
        settings.export.dpi = export.get("dpi", settings.export.dpi)
        settings.export.jpeg_quality = export.get("jpeg_quality", settings.export.jpeg_quality)

        # Library section
        library = data.get("library", {})
        settings.library.default_folders = library.get("default_folders", settings.library.default_folders)

        # Storage section
        storage = data.get("storage", {})
        settings.storage.data_dir = storage.get("data_dir", settings.storage.data_dir)
        settings.storage.capacity_bytes = storage.get("capacity_bytes", settings.storage.capacity_bytes)

        return settings

    def save(self) -> None:
        """Save current settings to the TOML file.

        Creates the settings directory if it doesn't exist.
        """
        # Ensure directory exists
        self.settings_dir.mkdir(parents=True, exist_ok=True)

        # Convert settings to TOML structure
        data = self._to_toml_dict()

        with open(self.settings_file, "wb") as f:
            tomli_w.dump(data, f)

    def _to_toml_dict(self) -> Dict[str, Any]:
        """Convert settings to a TOML-compatible dictionary structure.

        Returns:
            Dictionary organized by TOML sections.
        """
        s = self.settings
        return {
            "general": {
                "workspace_dir": s.workspace_dir,
            },
            "canvas": {
                "unlocked_overlay_opacity": s.canvas.unlocked_overlay_opacity,
                "handles": {
                    "size": s.canvas.handles.size,
                    "hit_distance": s.canvas.handles.hit_distance,
                    "border_color": s.canvas.handles.border_color,
                    "fill_color": s.canvas.handles.fill_color,
                },
                "zoom": {
                    "default": s.canvas.zoom.default,
                    "step": s.canvas.zoom.step,
                },
            },
            "defaults": {
                "arrow": {
                    "width": s.arrows.width,
                    "color": s.arrows.color,
                    "style": s.arrows.style,
                },
                "item": {
                    "x": s.items.x,
                    "y": s.items.y,
                    "width": s.items.width,
                },
            },
            "export": {
                "dpi": s.export.dpi,
                "jpeg_quality": s.export.jpeg_quality,
            },
            "library": {
                "default_folders": list(s.library.default_folders),
            },
            "storage": {
                "data_dir": s.storage.data_dir,
                "capacity_bytes": s.storage.capacity_bytes,
            },
        }

    def to_toml(self) -> str:
        """Convert current settings to a TOML-formatted string.

        Returns:
            TOML representation of the current settings.
        """
        data = self._to_toml_dict()
        return tomli_w.dumps(data)

    def get_workspace_dir(self) -> Path:
        """Get the resolved workspace directory path.

        Returns:
            Path to workspace directory. Falls back to ~/Documents/QCChart
            if workspace_dir setting is empty.
        """
        if self.settings.workspace_dir:
            return Path(self.settings.workspace_dir)
        return Path.home() / "Documents" / "QCChart"

    def get_data_dir(self) -> Path:
        """Get the directory holding the local key-value store.

        Returns:
            The configured storage directory, or the platform user data dir.
        """
        if self.settings.storage.data_dir:
            return Path(self.settings.storage.data_dir)
        return Path(platformdirs.user_data_dir(self.app_name))

    def get_settings_path(self) -> Path:
        """Get the path to the settings file.

        Returns:
            Path object pointing to the settings file location.
        """
        return self.settings_file
