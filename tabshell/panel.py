"""Sidebar panel: tab strip, address bar and bookmark list.

The panel keeps a display-only mirror of the controller's state, rebuilt from
broadcast events, and changes that state only by sending requests.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QKeySequence, QShortcut
from PyQt6.QtWidgets import QHBoxLayout, QLabel, QLineEdit, QPushButton, QScrollArea, QVBoxLayout, QWidget

from .debounce import Debouncer
from .urls import DEFAULT_TAB_LABEL, normalize, search_url_for, tab_label

log = logging.getLogger(__name__)

DEFAULT_SHORTCUTS = {
    'new_tab': 'Ctrl+T',
    'close_tab': 'Ctrl+W',
    'bookmark': 'Ctrl+D',
    'focus_address': 'Ctrl+L',
}

PANEL_STYLE = """
QPushButton#tab { text-align: left; padding: 6px 8px; border: none; border-radius: 4px; }
QPushButton#tab:checked { background: palette(highlight); color: palette(highlighted-text); }
QLabel#bookmarkTitle { padding: 2px 4px; }
QPushButton#bookmarkRemove { border: none; max-width: 20px; }
"""


def _clear_layout(layout):
    while layout.count():
        item = layout.takeAt(0)
        widget = item.widget()
        if widget is not None:
            widget.setParent(None)
            widget.deleteLater()


class BookmarkTitle(QLabel):
    clicked = pyqtSignal()
    double_clicked = pyqtSignal()

    def mouseReleaseEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self.clicked.emit()
        super().mouseReleaseEvent(event)

    def mouseDoubleClickEvent(self, event):
        self.double_clicked.emit()
        super().mouseDoubleClickEvent(event)


class BookmarkEditor(QLineEdit):
    cancelled = pyqtSignal()
    focus_lost = pyqtSignal()

    def keyPressEvent(self, event):
        if event.key() == Qt.Key.Key_Escape:
            self.cancelled.emit()
            return
        super().keyPressEvent(event)

    def focusOutEvent(self, event):
        super().focusOutEvent(event)
        # A context menu steals focus without ending the edit
        if event.reason() != Qt.FocusReason.PopupFocusReason:
            self.focus_lost.emit()


class BookmarkRow(QWidget):
    """One bookmark entry; the title swaps for an editor while renaming."""

    def __init__(self, bookmark: dict, on_open, on_remove, on_rename, parent=None):
        super().__init__(parent)
        self.bookmark = bookmark
        self._on_open = on_open
        self._on_rename = on_rename
        self.editor = None

        self._layout = QHBoxLayout(self)
        self._layout.setContentsMargins(0, 0, 0, 0)
        self.title_label = BookmarkTitle(bookmark.get('title') or bookmark.get('url', ''))
        self.title_label.setObjectName("bookmarkTitle")
        self.title_label.setToolTip(bookmark.get('url', ''))
        self.title_label.clicked.connect(self._open)
        self.title_label.double_clicked.connect(self.begin_edit)
        self.remove_button = QPushButton("×")
        self.remove_button.setObjectName("bookmarkRemove")
        self.remove_button.clicked.connect(lambda: on_remove(bookmark.get('id')))
        self._layout.addWidget(self.title_label, 1)
        self._layout.addWidget(self.remove_button)

    @property
    def editing(self) -> bool:
        return self.editor is not None

    def _open(self):
        url = self.bookmark.get('url')
        if url and not self.editing:
            self._on_open(url)

    def begin_edit(self):
        if self.editing:
            return
        self.editor = BookmarkEditor(self.title_label.text())
        self.editor.setObjectName("bookmarkEdit")
        self._layout.replaceWidget(self.title_label, self.editor)
        self.title_label.hide()
        self.editor.returnPressed.connect(self.commit_edit)
        self.editor.focus_lost.connect(self.commit_edit)
        self.editor.cancelled.connect(self.cancel_edit)
        self.editor.setFocus()
        self.editor.selectAll()

    def commit_edit(self):
        if not self.editing:
            return
        current = self.bookmark.get('title', '')
        new_title = self.editor.text().strip()
        if new_title and new_title != current:
            self.title_label.setText(new_title)
            self._end_edit()
            self._on_rename(self.bookmark.get('id'), new_title)
        else:
            self.cancel_edit()

    def cancel_edit(self):
        if not self.editing:
            return
        self._end_edit()

    def _end_edit(self):
        editor, self.editor = self.editor, None
        self._layout.replaceWidget(editor, self.title_label)
        self.title_label.show()
        editor.hide()
        editor.deleteLater()


class Panel(QWidget):
    def __init__(self, requests, events, settings_manager=None, parent=None):
        super().__init__(parent)
        self._requests = requests
        self._events = events
        setting = settings_manager.get if settings_manager is not None else (lambda key, default=None: default)

        self.search_url = search_url_for(setting('default_search_engine', 'google'))
        self.setFixedWidth(setting('sidebar_width', 250))
        self.setStyleSheet(PANEL_STYLE)

        self._labels = [DEFAULT_TAB_LABEL]
        self._ids = [None]
        self._active = 0
        self._tab_buttons = []
        self._bookmark_rows = []
        self.schedule_render = Debouncer(setting('debounce.render_ms', 16), self._render_tabs, self)

        self._build_ui()
        self._create_shortcuts(setting('shortcuts', DEFAULT_SHORTCUTS) or DEFAULT_SHORTCUTS)

        handlers = {
            'url-update': self._on_url_update,
            'title-update': self._on_title_update,
            'tabs-updated': self._on_tabs_updated,
            'tab-opened': self._on_tab_opened,
            'bookmarks-updated': self._on_bookmarks_updated,
        }
        for message, handler in handlers.items():
            self._events.on(message, handler)

        self._requests.send('get-bookmarks')
        self.schedule_render()

    def _build_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(8, 8, 8, 8)

        nav = QHBoxLayout()
        self.back_button = QPushButton("←")
        self.back_button.setToolTip("Back")
        self.back_button.clicked.connect(lambda: self._requests.send('go-back'))
        self.forward_button = QPushButton("→")
        self.forward_button.setToolTip("Forward")
        self.forward_button.clicked.connect(lambda: self._requests.send('go-forward'))
        self.new_tab_button = QPushButton("+")
        self.new_tab_button.setToolTip("New Tab")
        self.new_tab_button.clicked.connect(self.new_tab)
        for button in (self.back_button, self.forward_button, self.new_tab_button):
            nav.addWidget(button)
        layout.addLayout(nav)

        self.url_bar = QLineEdit()
        self.url_bar.setPlaceholderText("Enter URL or Search Query")
        self.url_bar.returnPressed.connect(lambda: self.navigate(self.url_bar.text()))
        layout.addWidget(self.url_bar)

        self.tab_strip = QVBoxLayout()
        self.tab_strip.setSpacing(2)
        layout.addLayout(self.tab_strip)

        header = QHBoxLayout()
        header.addWidget(QLabel("Bookmarks"), 1)
        self.bookmark_button = QPushButton("☆")
        self.bookmark_button.setToolTip("Bookmark this page")
        self.bookmark_button.clicked.connect(self.add_bookmark)
        header.addWidget(self.bookmark_button)
        layout.addLayout(header)

        bookmarks_host = QWidget()
        self.bookmark_list = QVBoxLayout(bookmarks_host)
        self.bookmark_list.setContentsMargins(0, 0, 0, 0)
        self.bookmark_list.setAlignment(Qt.AlignmentFlag.AlignTop)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QScrollArea.Shape.NoFrame)
        scroll.setWidget(bookmarks_host)
        layout.addWidget(scroll, 1)

    def _create_shortcuts(self, shortcuts: dict):
        action_map = {
            'new_tab': self.new_tab,
            'close_tab': lambda: self.close_tab(self._active),
            'bookmark': self.add_bookmark,
            'focus_address': self.focus_address_bar,
        }
        self._shortcuts = {}
        for action, method in action_map.items():
            key = shortcuts.get(action)
            if not key:
                continue
            shortcut = QShortcut(QKeySequence(key), self)
            shortcut.setContext(Qt.ShortcutContext.WindowShortcut)
            shortcut.activated.connect(method)
            self._shortcuts[action] = shortcut

    # --- Mirror state -----------------------------------------------------------------------

    @property
    def labels(self) -> list[str]:
        return list(self._labels)

    @property
    def tab_ids(self) -> list:
        return list(self._ids)

    @property
    def active_index(self) -> int:
        return self._active

    @property
    def tab_buttons(self) -> list[QPushButton]:
        return list(self._tab_buttons)

    @property
    def bookmark_rows(self) -> list[BookmarkRow]:
        return list(self._bookmark_rows)

    # --- User actions -----------------------------------------------------------------------

    def navigate(self, text: str):
        url = normalize(text, self.search_url)
        if not url:
            return
        log.debug("Navigating to: %s", url)
        self._requests.send('navigate', url)

    def new_tab(self):
        self._labels.append(DEFAULT_TAB_LABEL)
        self._ids.append(None)
        self._active = len(self._labels) - 1
        self.schedule_render()
        self._requests.send('new-tab')
        self.url_bar.clear()
        self.url_bar.setFocus()

    def switch_tab(self, index: int):
        if not 0 <= index < len(self._labels):
            return
        self._active = index
        self.schedule_render()
        self._requests.send('switch-tab', {'index': index, 'id': self._ids[index]})

    def close_tab(self, index: int):
        if len(self._labels) == 1 or not 0 <= index < len(self._labels):
            return
        self._requests.send('close-tab', {'index': index, 'id': self._ids[index]})
        del self._labels[index]
        del self._ids[index]
        if index < self._active:
            self._active -= 1
        elif index == self._active:
            self._active = min(self._active, len(self._labels) - 1)
        self.schedule_render()

    def add_bookmark(self):
        url = self.url_bar.text().strip()
        if not url:
            return
        self._requests.send('add-bookmark', {'url': url, 'title': self._labels[self._active]})

    def focus_address_bar(self):
        self.url_bar.setFocus()
        self.url_bar.selectAll()

    def _open_bookmark(self, url):
        self._requests.send('navigate', url)

    def _remove_bookmark(self, bookmark_id):
        self._requests.send('remove-bookmark', bookmark_id)

    def _rename_bookmark(self, bookmark_id, new_title):
        self._requests.send('update-bookmark', {'id': bookmark_id, 'new_title': new_title})

    # --- Events from the controller ---------------------------------------------------------

    def _on_url_update(self, url):
        self.url_bar.setText(url or '')
        self.url_bar.setCursorPosition(0)

    def _on_title_update(self, payload):
        index = payload.get('index') if isinstance(payload, dict) else None
        if not isinstance(index, int) or not 0 <= index < len(self._labels):
            return
        url = payload.get('url') or self.url_bar.text()
        self._labels[index] = tab_label(url, payload.get('title'))
        self.schedule_render()

    def _on_tabs_updated(self, active_index):
        if isinstance(active_index, int) and 0 <= active_index < len(self._labels):
            self._active = active_index
        self.schedule_render()

    def _on_tab_opened(self, payload):
        index = payload.get('index') if isinstance(payload, dict) else None
        if not isinstance(index, int) or index < 0:
            return
        while len(self._labels) <= index:
            self._labels.append(DEFAULT_TAB_LABEL)
            self._ids.append(None)
        self._ids[index] = payload.get('id')
        self._active = index
        self.schedule_render()

    def _on_bookmarks_updated(self, bookmarks):
        _clear_layout(self.bookmark_list)
        self._bookmark_rows = []
        for bookmark in bookmarks or []:
            row = BookmarkRow(bookmark, self._open_bookmark, self._remove_bookmark, self._rename_bookmark)
            self.bookmark_list.addWidget(row)
            self._bookmark_rows.append(row)

    # --- Rendering --------------------------------------------------------------------------

    def _render_tabs(self):
        _clear_layout(self.tab_strip)
        self._tab_buttons = []
        for i, label in enumerate(self._labels):
            button = QPushButton(label)
            button.setObjectName("tab")
            button.setCheckable(True)
            button.setChecked(i == self._active)
            button.clicked.connect(lambda _checked=False, i=i: self.switch_tab(i))
            self.tab_strip.addWidget(button)
            self._tab_buttons.append(button)
