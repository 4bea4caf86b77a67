from __future__ import annotations

import logging
import time

from .store import KeyValueStore

log = logging.getLogger(__name__)

BOOKMARKS_KEY = 'bookmarks'


def _now_ms() -> int:
    return int(time.time() * 1000)


class BookmarkStore:
    """Flat, insertion-ordered bookmark list persisted in a KeyValueStore.

    Ids are creation timestamps in milliseconds. Two bookmarks added within
    the same millisecond get the same id and are then removed or renamed
    together.
    """

    def __init__(self, store: KeyValueStore):
        self._store = store
        if not isinstance(self._store.get(BOOKMARKS_KEY), list):
            self._store.set(BOOKMARKS_KEY, [])

    def all(self) -> list[dict]:
        return self._store.get(BOOKMARKS_KEY, [])

    def add(self, url: str, title: str) -> dict:
        bookmark = {'id': _now_ms(), 'url': url, 'title': title}
        self._store.set(BOOKMARKS_KEY, self.all() + [bookmark])
        log.debug("Bookmark added: %s", bookmark)
        return bookmark

    def remove(self, bookmark_id) -> bool:
        bookmarks = self.all()
        remaining = [b for b in bookmarks if b.get('id') != bookmark_id]
        if len(remaining) == len(bookmarks):
            return False
        self._store.set(BOOKMARKS_KEY, remaining)
        return True

    def rename(self, bookmark_id, new_title) -> bool:
        """Retitle a bookmark; empty or unchanged titles are ignored."""
        title = (new_title or '').strip()
        if not title:
            return False
        bookmarks = self.all()
        changed = False
        for bookmark in bookmarks:
            if bookmark.get('id') == bookmark_id and bookmark.get('title') != title:
                bookmark['title'] = title
                changed = True
        if changed:
            self._store.set(BOOKMARKS_KEY, bookmarks)
        return changed
