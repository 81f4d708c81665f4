from __future__ import annotations

import logging
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import TypeVar

from .models import Page

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class PageState:
    next_start: int | None = 0
    done: bool = False


def advance(state: PageState, page: Page) -> PageState:
    """Decide where to go after the page fetched at ``state.next_start``.

    ``is_last_page`` is authoritative: a last page that still advertises a
    ``next_page_start`` ends the listing. A non-last page without a cursor,
    or with one that does not move forward, ends it too.
    """
    cursor = page.next_page_start
    if page.is_last_page or cursor is None:
        return PageState(next_start=None, done=True)
    if state.next_start is not None and cursor <= state.next_start:
        logger.warning("pagination cursor did not advance (%d -> %d)", state.next_start, cursor)
        return PageState(next_start=None, done=True)
    return PageState(next_start=cursor, done=False)


def fetch_all(
    fetch_page: Callable[[int], Page[T]],
    key: Callable[[T], Hashable] | None = None,
) -> list[T]:
    """Request pages sequentially from start 0 and return every item in order.

    With *key*, an item whose key was already seen on an earlier page is
    dropped (offsets can shift while the listing is being read).

    Errors raised by *fetch_page* propagate; no partial result is returned.
    """
    items: list[T] = []
    seen: set[Hashable] = set()
    state = PageState()
    while not state.done and state.next_start is not None:
        page = fetch_page(state.next_start)
        logger.debug(
            "page start=%d: %d items, last=%s", state.next_start, len(page.values), page.is_last_page
        )
        for item in page.values:
            if key is not None:
                k = key(item)
                if k in seen:
                    continue
                seen.add(k)
            items.append(item)
        state = advance(state, page)
    return items
