"""Shell controller: owns the tabs, the active index and bookmark persistence.

The controller talks to the panel only through two channels: it listens for
requests on ``requests`` and pushes state updates on ``events``. Content views
come from ``view_factory`` and are placed by ``host``.

A host provides ``attach_view(view)``, ``detach_view(view)``,
``content_size() -> (width, height)`` and a ``resized`` signal. A view provides
``load_url``, ``current_url``, ``can_go_back``/``go_back``,
``can_go_forward``/``go_forward``, ``setGeometry``, ``release`` and the
``address_changed(str)`` / ``title_changed(str)`` signals.
"""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field

from PyQt6.QtCore import QObject

from .debounce import Debouncer
from .urls import DEFAULT_TAB_LABEL, tab_label

log = logging.getLogger(__name__)

DEFAULT_SIDEBAR_WIDTH = 250
DEFAULT_WINDOW_MS = 100


@dataclass
class Tab:
    id: int
    view: object
    label: str = DEFAULT_TAB_LABEL
    debouncers: list = field(default_factory=list)


class ShellController(QObject):
    def __init__(self, host, requests, events, bookmarks, view_factory, settings_manager=None, parent=None):
        super().__init__(parent)
        self._host = host
        self._requests = requests
        self._events = events
        self._bookmarks = bookmarks
        self._view_factory = view_factory
        self._closed = False

        self._tabs: list[Tab] = []
        self._positions: dict[int, int] = {}
        self._active = 0
        self._ids = itertools.count(1)

        setting = settings_manager.get if settings_manager is not None else (lambda key, default=None: default)
        self.sidebar_width = setting('sidebar_width', DEFAULT_SIDEBAR_WIDTH)
        self.navigation_ms = setting('debounce.navigation_ms', DEFAULT_WINDOW_MS)

        self._bookmarks_changed = Debouncer(setting('debounce.bookmarks_ms', DEFAULT_WINDOW_MS),
                                            self._broadcast_bookmarks, self)
        self._relayout = Debouncer(setting('debounce.resize_ms', DEFAULT_WINDOW_MS), self.layout_views, self)
        self._host.resized.connect(self._on_host_resized)

        handlers = {
            'new-tab': lambda url: self.new_tab(url or None),
            'navigate': self.navigate,
            'switch-tab': self.switch_tab,
            'close-tab': self.close_tab,
            'go-back': lambda _: self.go_back(),
            'go-forward': lambda _: self.go_forward(),
            'add-bookmark': self._on_add_bookmark,
            'get-bookmarks': lambda _: self._broadcast_bookmarks(),
            'remove-bookmark': self._on_remove_bookmark,
            'update-bookmark': self._on_update_bookmark,
        }
        for message, handler in handlers.items():
            self._requests.on(message, handler)

    # --- State ------------------------------------------------------------------------------

    @property
    def tabs(self) -> tuple[Tab, ...]:
        return tuple(self._tabs)

    @property
    def active_index(self) -> int:
        return self._active

    @property
    def active_tab(self) -> Tab | None:
        if 0 <= self._active < len(self._tabs):
            return self._tabs[self._active]
        return None

    def index_of(self, tab_id: int) -> int | None:
        return self._positions.get(tab_id)

    def _reindex(self):
        self._positions = {tab.id: i for i, tab in enumerate(self._tabs)}

    def _resolve(self, ref) -> int | None:
        """Map an index or an ``{index, id}`` reference to a current position.

        When an id is given it wins, so a request that raced with a close
        cannot land on whichever tab slid into the old index.
        """
        if isinstance(ref, dict):
            if ref.get('id') is not None:
                return self._positions.get(ref['id'])
            ref = ref.get('index')
        if isinstance(ref, bool) or not isinstance(ref, int):
            return None
        if 0 <= ref < len(self._tabs):
            return ref
        return None

    # --- Tab lifecycle ----------------------------------------------------------------------

    def start(self, url: str | None = None) -> Tab:
        return self.new_tab(url)

    def new_tab(self, url: str | None = None) -> Tab | None:
        if self._closed:
            return None
        view = self._view_factory()
        tab = Tab(next(self._ids), view)
        self._wire(tab)
        self._tabs.append(tab)
        self._reindex()
        self._active = len(self._tabs) - 1
        self._show_only(tab)
        if url:
            view.load_url(url)
        log.debug("Opened tab %s at %d (%s)", tab.id, self._active, url or "blank")
        self._events.send('tab-opened', {'index': self._active, 'id': tab.id})
        return tab

    def navigate(self, url):
        tab = self.active_tab
        if tab is None or not url:
            return
        tab.view.load_url(url)

    def switch_tab(self, ref):
        index = self._resolve(ref)
        if index is None:
            log.debug("Ignoring switch to %r", ref)
            return
        target = self._tabs[index]
        self._show_only(target)
        self._events.send('url-update', target.view.current_url())
        self._active = index

    def close_tab(self, ref):
        index = self._resolve(ref)
        if index is None:
            log.debug("Ignoring close of %r", ref)
            return
        if len(self._tabs) <= 1:
            return

        tab = self._tabs.pop(index)
        self._reindex()
        self._host.detach_view(tab.view)
        self._dispose(tab)

        if index < self._active:
            self._active -= 1
        elif index == self._active:
            self._active = min(self._active, len(self._tabs) - 1)

        active = self._tabs[self._active]
        self._show_only(active)
        self._events.send('url-update', active.view.current_url())
        self._events.send('tabs-updated', self._active)

    def go_back(self):
        tab = self.active_tab
        if tab is not None and tab.view.can_go_back():
            tab.view.go_back()

    def go_forward(self):
        tab = self.active_tab
        if tab is not None and tab.view.can_go_forward():
            tab.view.go_forward()

    def shutdown(self):
        """Release every view; the controller ignores requests afterwards."""
        if self._closed:
            return
        self._closed = True
        self._bookmarks_changed.cancel()
        self._relayout.cancel()
        try:
            self._host.resized.disconnect(self._on_host_resized)
        except (TypeError, RuntimeError):
            pass
        for tab in self._tabs:
            self._host.detach_view(tab.view)
            self._dispose(tab)
        self._tabs.clear()
        self._reindex()
        self._active = 0

    def _open_window(self):
        tab = self.new_tab()
        return tab.view if tab is not None else None

    def _wire(self, tab: Tab):
        url_update = Debouncer(self.navigation_ms, lambda url, t=tab: self._on_address_changed(t, url), self)
        title_update = Debouncer(self.navigation_ms, lambda title, t=tab: self._on_title_changed(t, title), self)
        tab.debouncers = [url_update, title_update]
        tab.view.address_changed.connect(lambda url: url_update(url))
        tab.view.title_changed.connect(lambda title: title_update(title))
        if hasattr(tab.view, 'window_opener'):
            tab.view.window_opener = self._open_window

    def _dispose(self, tab: Tab):
        for signal in (tab.view.address_changed, tab.view.title_changed):
            try:
                signal.disconnect()
            except (TypeError, RuntimeError):
                pass
        for debouncer in tab.debouncers:
            debouncer.cancel()
            debouncer.deleteLater()
        tab.debouncers = []
        tab.view.release()

    # --- Navigation events ------------------------------------------------------------------

    def _on_address_changed(self, tab: Tab, url: str):
        if self.active_tab is tab:
            self._events.send('url-update', url)

    def _on_title_changed(self, tab: Tab, title: str):
        index = self._positions.get(tab.id)
        if index is None:
            return
        url = tab.view.current_url()
        tab.label = tab_label(url, title)
        self._events.send('title-update', {'index': index, 'title': title, 'url': url})

    # --- Layout -----------------------------------------------------------------------------

    def _show_only(self, target: Tab):
        for tab in self._tabs:
            if tab is not target:
                self._host.detach_view(tab.view)
        self._host.attach_view(target.view)
        self._place(target.view)

    def _place(self, view):
        width, height = self._host.content_size()
        view.setGeometry(self.sidebar_width, 0, max(0, width - self.sidebar_width), height)

    def layout_views(self):
        for tab in self._tabs:
            self._place(tab.view)

    def _on_host_resized(self, *args):
        self._relayout()

    # --- Bookmarks --------------------------------------------------------------------------

    def _broadcast_bookmarks(self):
        self._events.send('bookmarks-updated', self._bookmarks.all())

    def _on_add_bookmark(self, payload):
        if not isinstance(payload, dict):
            return
        tab = self.active_tab
        title = payload.get('title') or (tab.label if tab is not None else '')
        self._bookmarks.add(payload.get('url', ''), title)
        self._bookmarks_changed()

    def _on_remove_bookmark(self, bookmark_id):
        if self._bookmarks.remove(bookmark_id):
            self._bookmarks_changed()

    def _on_update_bookmark(self, payload):
        if not isinstance(payload, dict):
            return
        if self._bookmarks.rename(payload.get('id'), payload.get('new_title')):
            self._bookmarks_changed()
