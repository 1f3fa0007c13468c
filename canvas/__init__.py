"""
canvas package

PyQt6 graphics items, scene, view, and export rendering for QC chart pages.
"""

from canvas.items import (
    ArrowGraphicsItem,
    CanvasImageItem,
    HeaderItem,
    MainImageItem,
    PreviewArrowItem,
)
from canvas.scene import PageScene
from canvas.view import PageView
from canvas.render import SceneRasterizer, encode_jpeg, render_scene_image

__all__ = [
    "ArrowGraphicsItem",
    "CanvasImageItem",
    "HeaderItem",
    "MainImageItem",
    "PreviewArrowItem",
    "PageScene",
    "PageView",
    "SceneRasterizer",
    "encode_jpeg",
    "render_scene_image",
]
