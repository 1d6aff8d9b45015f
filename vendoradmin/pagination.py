"""Page state for the console and the numbered page strip."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional

from .models import PageInfo

PageWindow = List[Optional[int]]


def page_window(current: int, total_pages: int) -> PageWindow:
    """Return the page numbers to render, with ``None`` marking an ellipsis.

    Page 1, the last page and the neighbours of ``current`` are always shown.
    Nothing is rendered when there is only one page or none at all.
    """

    if total_pages <= 1:
        return []

    shown = sorted(
        page
        for page in {1, total_pages, current - 1, current, current + 1}
        if 1 <= page <= total_pages
    )
    window: PageWindow = []
    previous = 0
    for page in shown:
        if page - previous > 1:
            window.append(None)
        window.append(page)
        previous = page
    return window


@dataclass
class PageState:
    page: int = 1
    page_size: int = 9
    total: int = 0
    total_pages: int = 0


class PaginationController:
    """Tracks which page the console shows and what the server reported for it."""

    def __init__(self, page_size: int = 9) -> None:
        self._state = PageState(page_size=page_size)

    @property
    def state(self) -> PageState:
        return self._state

    @property
    def page(self) -> int:
        return self._state.page

    @property
    def page_size(self) -> int:
        return self._state.page_size

    @property
    def total(self) -> int:
        return self._state.total

    @property
    def total_pages(self) -> int:
        return self._state.total_pages

    def request_page(self, page: int) -> bool:
        """Move to ``page`` if it exists; the caller fetches it when this returns True."""

        if page < 1 or page > self._state.total_pages:
            return False
        self._state.page = page
        return True

    def apply(self, info: PageInfo) -> None:
        self._state = PageState(
            page=info.page,
            page_size=info.limit,
            total=info.total,
            total_pages=info.pages,
        )

    @property
    def show_controls(self) -> bool:
        return self._state.total_pages > 1

    @property
    def has_previous(self) -> bool:
        return self._state.page > 1

    @property
    def has_next(self) -> bool:
        return self._state.page < self._state.total_pages

    def window(self) -> PageWindow:
        return page_window(self._state.page, self._state.total_pages)

    @property
    def summary(self) -> str:
        state = self._state
        return f"Page {state.page} of {state.total_pages} ({state.total} total)"


__all__ = ["PageState", "PageWindow", "PaginationController", "page_window"]
