from __future__ import annotations

from PyQt6.QtCore import QObject, QTimer


class Debouncer(QObject):
    """Trailing-edge debounce over a single-shot QTimer.

    Every call replaces the pending arguments and restarts the window; the
    callback runs once with the last arguments after ``window_ms`` of quiet.
    """

    def __init__(self, window_ms: int, callback, parent=None):
        super().__init__(parent)
        self.window_ms = max(0, int(window_ms))
        self._callback = callback
        self._args = ()
        self._pending = False
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)

    def __call__(self, *args):
        self._args = args
        self._pending = True
        self._timer.start(self.window_ms)

    @property
    def pending(self) -> bool:
        return self._pending

    def flush(self):
        """Run a pending call now instead of waiting for the timer."""
        if self._pending:
            self._timer.stop()
            self._fire()

    def cancel(self):
        self._timer.stop()
        self._pending = False
        self._args = ()

    def _fire(self):
        if not self._pending:
            return
        args, self._args = self._args, ()
        self._pending = False
        self._callback(*args)
