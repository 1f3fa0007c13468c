"""
properties package

Side panels for editing the active page and managing assets.
"""

from properties.dock import PropertyPanel
from properties.assets import AssetsPanel

__all__ = ["PropertyPanel", "AssetsPanel"]
