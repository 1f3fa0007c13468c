"""
interaction/hub.py

Pointer listener registry for manipulation sessions.

A gesture registers move/up listeners on the hub when it starts and the
hub guarantees they are released when it ends: after the matching *up*,
when a handler raises, or when the hub itself is closed because the
interactive surface is being torn down.
"""

from __future__ import annotations

from typing import Callable, List, Optional

from models import Point
from debug_trace import trace

PointerCallback = Callable[[Point], None]


class Subscription:
    """The move/up listener pair of one gesture.

    Usable as a context manager; leaving the ``with`` block releases it.
    """

    def __init__(self, hub: "PointerHub", on_move: PointerCallback, on_up: PointerCallback):
        self._hub: Optional[PointerHub] = hub
        self.on_move = on_move
        self.on_up = on_up

    @property
    def active(self) -> bool:
        return self._hub is not None

    def release(self) -> None:
        """Unregister from the hub. Safe to call more than once."""
        hub, self._hub = self._hub, None
        if hub is not None:
            hub._discard(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class PointerHub:
    """Dispatches pointer move/up events to the listeners of open gestures."""

    def __init__(self):
        self._subs: List[Subscription] = []
        self._closed = False

    @property
    def listener_count(self) -> int:
        return len(self._subs)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, on_move: PointerCallback, on_up: PointerCallback) -> Subscription:
        if self._closed:
            raise RuntimeError("PointerHub is closed")
        sub = Subscription(self, on_move, on_up)
        self._subs.append(sub)
        trace(f"subscribe listeners={len(self._subs)}", "SESSION")
        return sub

    def _discard(self, sub: Subscription) -> None:
        if sub in self._subs:
            self._subs.remove(sub)
            trace(f"release listeners={len(self._subs)}", "SESSION")

    def move(self, point: Point) -> None:
        """Deliver a move to every open gesture. Ignored when none is open."""
        for sub in list(self._subs):
            try:
                sub.on_move(point)
            except Exception:
                sub.release()
                raise

    def up(self, point: Point) -> None:
        """Deliver an up and end every open gesture. Ignored when none is open."""
        for sub in list(self._subs):
            try:
                sub.on_up(point)
            finally:
                sub.release()

    def release_all(self) -> None:
        for sub in list(self._subs):
            sub.release()

    def close(self) -> None:
        """Release every listener and refuse new ones (surface teardown)."""
        self.release_all()
        self._closed = True
