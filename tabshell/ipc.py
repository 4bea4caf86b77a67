"""One-way message channels between the shell controller and the panel.

Each side sends on one channel and listens on the other; neither holds a
reference to the other's state. With ``queued=True`` delivery goes through
the Qt event loop, so ``send`` returns immediately and messages arrive in
send order.
"""

from __future__ import annotations

import logging

from PyQt6.QtCore import QObject, Qt, pyqtSignal

log = logging.getLogger(__name__)


class Channel(QObject):
    message = pyqtSignal(str, object)

    def __init__(self, name: str, queued: bool = True, parent=None):
        super().__init__(parent)
        self.name = name
        self._handlers = {}
        connection = Qt.ConnectionType.QueuedConnection if queued else Qt.ConnectionType.DirectConnection
        self.message.connect(self._dispatch, connection)

    def on(self, message: str, handler):
        self._handlers.setdefault(message, []).append(handler)

    def off(self, message: str, handler=None):
        if handler is None:
            self._handlers.pop(message, None)
            return
        handlers = self._handlers.get(message, [])
        if handler in handlers:
            handlers.remove(handler)

    def send(self, message: str, payload=None):
        self.message.emit(message, payload)

    def _dispatch(self, message, payload):
        handlers = self._handlers.get(message)
        if not handlers:
            log.debug("%s: no handler for %r", self.name, message)
            return
        for handler in list(handlers):
            try:
                handler(payload)
            except Exception:
                # An exception escaping a slot would abort the Qt process
                log.exception("%s: handler for %r failed", self.name, message)
