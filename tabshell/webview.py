from __future__ import annotations

import logging

from PyQt6.QtCore import Qt, QUrl, pyqtSignal
from PyQt6.QtWebEngineCore import QWebEngineSettings
from PyQt6.QtWebEngineWidgets import QWebEngineView

log = logging.getLogger(__name__)


class ContentView(QWebEngineView):
    """Backing view of one tab.

    Exposes the small surface the shell controller drives: string URLs,
    history capability checks and explicit release.
    """

    address_changed = pyqtSignal(str)
    title_changed = pyqtSignal(str)

    def __init__(self, settings_manager=None, parent=None):
        super().__init__(parent)
        self.settings_manager = settings_manager
        # Set by the controller; returns the view of a freshly opened tab
        self.window_opener = None

        self.urlChanged.connect(lambda qurl: self.address_changed.emit(qurl.toString()))
        self.titleChanged.connect(self.title_changed.emit)
        self._apply_page_settings()

    def _apply_page_settings(self):
        page = self.page()
        settings = page.settings() if page else None
        if settings:
            enable_js = True
            if self.settings_manager is not None:
                enable_js = self.settings_manager.get('enable_javascript', True)
            settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, enable_js)
            settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptCanOpenWindows, True)
            settings.setAttribute(QWebEngineSettings.WebAttribute.ScrollAnimatorEnabled, False)
            settings.setAttribute(QWebEngineSettings.WebAttribute.FocusOnNavigationEnabled, False)

        self.setAttribute(Qt.WidgetAttribute.WA_OpaquePaintEvent, True)

    def load_url(self, url: str):
        self.setUrl(QUrl(url))

    def current_url(self) -> str:
        return self.url().toString()

    def can_go_back(self) -> bool:
        return self.history().canGoBack()

    def can_go_forward(self) -> bool:
        return self.history().canGoForward()

    def go_back(self):
        self.back()

    def go_forward(self):
        self.forward()

    def release(self):
        """Abandon any in-flight load and free the page."""
        self.stop()
        self.window_opener = None
        self.hide()
        self.setParent(None)
        self.deleteLater()

    def createWindow(self, web_window_type):
        if self.window_opener is None:
            return None
        log.debug("Page requested a new window (%s)", web_window_type)
        return self.window_opener()


def create_content_view(settings_manager=None) -> ContentView:
    return ContentView(settings_manager)
