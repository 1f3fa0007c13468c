"""
document.py

Document controller: page lifecycle, the active-page projection, and the
copy-on-write entity store operations scoped to the active page.

Every mutation replaces exactly one page record (or the metadata record)
and leaves every other page object untouched.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Callable, List, Optional

from errors import PreconditionError
from models import (
    Arrow,
    Asset,
    CanvasItem,
    Document,
    MainImagePos,
    Metadata,
    Page,
    MAIN_IMAGE_SCALE_MAX,
    MAIN_IMAGE_SCALE_MIN,
    make_document,
    make_page,
    new_id,
)
from settings import ItemSettings
from debug_trace import trace

# Change notification reasons
CHANGE_PAGES = "pages"        # a page was added, removed or renamed
CHANGE_ACTIVE = "active"      # the active page pointer moved
CHANGE_CONTENT = "content"    # the active page's entities changed
CHANGE_METADATA = "metadata"  # document metadata changed
CHANGE_LOADED = "loaded"      # the whole document was replaced


class DocumentController:
    """Owns the Document and the active page index.

    Args:
        document: Initial document; defaults to one empty page.
        item_defaults: Placement of newly placed assets.
    """

    def __init__(self, document: Optional[Document] = None, item_defaults: Optional[ItemSettings] = None):
        self._document = document if document is not None else make_document()
        self._active_index = 0
        self._item_defaults = item_defaults or ItemSettings()
        self._listeners: List[Callable[[str], None]] = []

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """Register ``callback(reason)`` to run after every change."""
        self._listeners.append(callback)

    def remove_listener(self, callback: Callable[[str], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self, reason: str) -> None:
        for cb in list(self._listeners):
            cb(reason)

    # ------------------------------------------------------------------
    # Projections
    # ------------------------------------------------------------------

    @property
    def document(self) -> Document:
        return self._document

    @property
    def pages(self):
        return self._document.pages

    @property
    def metadata(self) -> Metadata:
        return self._document.metadata

    @property
    def active_index(self) -> int:
        return self._active_index

    @property
    def active_page(self) -> Page:
        return self._document.pages[self._active_index]

    # ------------------------------------------------------------------
    # Page lifecycle
    # ------------------------------------------------------------------

    def add_page(self, activate: bool = True) -> Page:
        """Append an empty page named after its position; optionally make it active."""
        page = make_page(f"Page {len(self.pages) + 1}")
        self._document = replace(self._document, pages=self.pages + (page,))
        trace(f"add_page id={page.id} count={len(self.pages)}", "DOC")
        self._notify(CHANGE_PAGES)
        if activate:
            self.set_active_page(len(self.pages) - 1)
        return page

    def delete_page(self, index: int) -> None:
        """Remove the page at ``index``.

        Raises:
            PreconditionError: when it is the only page left.
            IndexError: when ``index`` is out of range.
        """
        if len(self.pages) <= 1:
            raise PreconditionError("At least one page must remain.")
        if not 0 <= index < len(self.pages):
            raise IndexError(f"Page index out of range: {index}")

        pages = self.pages[:index] + self.pages[index + 1:]
        self._document = replace(self._document, pages=pages)
        # Deleting the active page or one before it shifts the pointer back
        active_moved = index <= self._active_index
        if active_moved:
            self._active_index = max(0, self._active_index - 1)
        trace(f"delete_page index={index} active={self._active_index}", "DOC")
        self._notify(CHANGE_PAGES)
        if active_moved:
            self._notify(CHANGE_ACTIVE)

    def set_active_page(self, index: int) -> None:
        """Move the active page pointer.

        Raises:
            IndexError: when ``index`` is out of range.
        """
        if not 0 <= index < len(self.pages):
            raise IndexError(f"Page index out of range: {index}")
        self._active_index = index
        self._notify(CHANGE_ACTIVE)

    def rename_page(self, index: int, name: str) -> None:
        if not 0 <= index < len(self.pages):
            raise IndexError(f"Page index out of range: {index}")
        self._replace_page(index, replace(self.pages[index], name=name), CHANGE_PAGES)

    def load_document(self, document: Document) -> None:
        """Replace pages and metadata wholesale and return to the first page."""
        self._document = document
        self._active_index = 0
        trace(f"load_document pages={len(document.pages)}", "DOC")
        self._notify(CHANGE_LOADED)

    def update_metadata(self, **changes) -> Metadata:
        meta = replace(self.metadata, **changes)
        self._document = replace(self._document, metadata=meta)
        self._notify(CHANGE_METADATA)
        return meta

    # ------------------------------------------------------------------
    # Entity store (active page)
    # ------------------------------------------------------------------

    def _replace_page(self, index: int, page: Page, reason: str = CHANGE_CONTENT) -> Page:
        pages = self.pages[:index] + (page,) + self.pages[index + 1:]
        self._document = replace(self._document, pages=pages)
        self._notify(reason)
        return page

    def update_page(self, **changes) -> Page:
        """Replace fields of the active page record."""
        return self._replace_page(self._active_index, replace(self.active_page, **changes))

    # Items

    def add_item(self, src: str, name: str = "", x: Optional[float] = None,
                 y: Optional[float] = None, width: Optional[float] = None) -> CanvasItem:
        d = self._item_defaults
        item = CanvasItem(
            canvas_id=new_id(),
            src=src,
            name=name,
            x=d.x if x is None else x,
            y=d.y if y is None else y,
            width=d.width if width is None else width,
        )
        self.update_page(items=self.active_page.items + (item,))
        return item

    def place_asset(self, asset: Asset) -> CanvasItem:
        """Place a session or library asset on the active page at the default spot."""
        return self.add_item(asset.src, name=asset.name)

    def update_item(self, canvas_id: str, **changes) -> Optional[CanvasItem]:
        page = self.active_page
        updated = None
        items = []
        for it in page.items:
            if it.canvas_id == canvas_id:
                it = updated = replace(it, **changes)
            items.append(it)
        if updated is None:
            return None
        self.update_page(items=tuple(items))
        return updated

    def remove_item(self, canvas_id: str) -> bool:
        page = self.active_page
        items = tuple(it for it in page.items if it.canvas_id != canvas_id)
        if len(items) == len(page.items):
            return False
        self.update_page(items=items)
        return True

    # Arrows

    def add_arrow(self, arrow: Arrow) -> Arrow:
        self.update_page(arrows=self.active_page.arrows + (arrow,))
        return arrow

    def replace_arrow(self, arrow: Arrow) -> Optional[Arrow]:
        """Swap in a new record for the arrow with the same id."""
        page = self.active_page
        found = False
        arrows = []
        for a in page.arrows:
            if a.id == arrow.id:
                a = arrow
                found = True
            arrows.append(a)
        if not found:
            return None
        self.update_page(arrows=tuple(arrows))
        return arrow

    def update_arrow(self, arrow_id: str, **changes) -> Optional[Arrow]:
        current = self.active_page.find_arrow(arrow_id)
        if current is None:
            return None
        return self.replace_arrow(replace(current, **changes))

    def remove_arrow(self, arrow_id: str) -> bool:
        page = self.active_page
        arrows = tuple(a for a in page.arrows if a.id != arrow_id)
        if len(arrows) == len(page.arrows):
            return False
        self.update_page(arrows=arrows)
        return True

    # Main image

    def set_main_image(self, src: Optional[str]) -> Page:
        """Install a background image; resets its position and unlocks the page."""
        return self.update_page(main_image=src, main_image_pos=MainImagePos(), is_main_image_locked=False)

    def set_main_image_position(self, x: float, y: float) -> Page:
        pos = replace(self.active_page.main_image_pos, x=x, y=y)
        return self.update_page(main_image_pos=pos)

    def set_main_image_scale(self, scale: int) -> Page:
        scale = max(MAIN_IMAGE_SCALE_MIN, min(MAIN_IMAGE_SCALE_MAX, int(scale)))
        pos = replace(self.active_page.main_image_pos, scale=scale)
        return self.update_page(main_image_pos=pos)

    def set_main_image_locked(self, locked: bool) -> Page:
        return self.update_page(is_main_image_locked=bool(locked))

    def toggle_main_image_lock(self) -> Page:
        return self.set_main_image_locked(not self.active_page.is_main_image_locked)
