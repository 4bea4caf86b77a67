from __future__ import annotations

import logging

from PyQt6.QtCore import pyqtSignal
from PyQt6.QtWidgets import QMainWindow, QWidget

from .controller import ShellController
from .ipc import Channel
from .panel import Panel

log = logging.getLogger(__name__)


class BrowserWindow(QMainWindow):
    """Top-level window hosting the panel and the tabs' content views.

    The window creates the controller, the panel and the two channels between
    them, and shuts the controller down when it closes.
    """

    resized = pyqtSignal()

    def __init__(self, bookmarks, view_factory, settings_manager=None, queued=True):
        super().__init__()
        self.setWindowTitle("tabshell")
        self.setMinimumSize(640, 480)
        setting = settings_manager.get if settings_manager is not None else (lambda key, default=None: default)
        self.resize(setting('window_width', 1200), setting('window_height', 800))

        self.content_area = QWidget()
        self.setCentralWidget(self.content_area)

        self.requests = Channel("panel->controller", queued=queued, parent=self)
        self.events = Channel("controller->panel", queued=queued, parent=self)

        self.panel = Panel(self.requests, self.events, settings_manager, parent=self.content_area)
        self.panel.move(0, 0)
        self.controller = ShellController(self, self.requests, self.events, bookmarks, view_factory,
                                          settings_manager, parent=self)

    # --- View host --------------------------------------------------------------------------

    def attach_view(self, view):
        if view.parentWidget() is not self.content_area:
            view.setParent(self.content_area)
        view.show()
        view.raise_()

    def detach_view(self, view):
        view.hide()

    def content_size(self) -> tuple[int, int]:
        size = self.content_area.size()
        return size.width(), size.height()

    # --- Qt events --------------------------------------------------------------------------

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.panel.setFixedHeight(self.content_area.height())
        self.resized.emit()

    def closeEvent(self, event):
        log.info("Closing window with %d tab(s)", len(self.controller.tabs))
        self.controller.shutdown()
        super().closeEvent(event)
