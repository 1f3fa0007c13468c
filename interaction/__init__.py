"""
interaction package

Pointer-driven manipulation: the listener hub, per-gesture sessions, and
the engine that dispatches pointer-down events to them.
"""

from interaction.hub import PointerHub, Subscription
from interaction.sessions import (
    ArrowCreationSession,
    ArrowEndpointSession,
    ControlPointSession,
    ItemDragSession,
    ItemResizeSession,
    MainImageDragSession,
    PointerSession,
)
from interaction.engine import EMPTY_CANVAS, HitTarget, ManipulationEngine, Target

__all__ = [
    "PointerHub",
    "Subscription",
    "PointerSession",
    "ItemDragSession",
    "ItemResizeSession",
    "MainImageDragSession",
    "ArrowCreationSession",
    "ArrowEndpointSession",
    "ControlPointSession",
    "ManipulationEngine",
    "HitTarget",
    "Target",
    "EMPTY_CANVAS",
]
