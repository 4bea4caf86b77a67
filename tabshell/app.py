#!/usr/bin/env python3

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
import traceback

from PyQt6.QtCore import QtMsgType, qInstallMessageHandler
from PyQt6.QtWidgets import QApplication

from . import __version__
from .bookmarks import BookmarkStore
from .settings import SettingsManager, default_data_dir
from .store import KeyValueStore
from .urls import normalize, search_url_for
from .window import BrowserWindow

log = logging.getLogger("tabshell")

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def configure_logging(data_dir: str, verbose: bool = False) -> None:
    """Log to <data_dir>/tabshell.log and stdout, and route Qt messages there too."""
    handlers = [logging.StreamHandler(sys.stdout)]
    try:
        os.makedirs(data_dir, exist_ok=True)
        handlers.append(logging.FileHandler(os.path.join(data_dir, "tabshell.log"), encoding="utf-8"))
    except OSError as e:
        print(f"[WARN] File logging unavailable: {e}", file=sys.stderr, flush=True)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )

    qt_log = logging.getLogger("tabshell.qt")
    levels = {
        QtMsgType.QtDebugMsg: logging.DEBUG,
        QtMsgType.QtInfoMsg: logging.INFO,
        QtMsgType.QtWarningMsg: logging.WARNING,
        QtMsgType.QtCriticalMsg: logging.ERROR,
        QtMsgType.QtFatalMsg: logging.CRITICAL,
    }

    def _qt_handler(msg_type, context, message):
        qt_log.log(levels.get(msg_type, logging.INFO), "%s", message)

    qInstallMessageHandler(_qt_handler)

    def _excepthook(etype, value, tb):
        log.error("UNCAUGHT: %s: %s\n%s", etype.__name__, value, "".join(traceback.format_tb(tb)))

    sys.excepthook = _excepthook


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tabshell", description="Minimal multi-tab browser shell")
    parser.add_argument("url", nargs="?", help="Address or search query to open in the first tab")
    parser.add_argument("--data-dir", default=None,
                        help="Directory for settings, bookmarks and logs (default: $TABSHELL_DATA_DIR or ~/.tabshell)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def startup_url(url, settings_manager) -> str:
    """Address for the first tab: the command-line URL, else the homepage."""
    search_url = search_url_for(settings_manager.get('default_search_engine'))
    return normalize(url or settings_manager.get('homepage', ''), search_url)


def main(argv=None) -> int:
    argv = list(sys.argv if argv is None else argv)
    args, unknown = build_parser().parse_known_args(argv[1:])

    data_dir = os.path.expanduser(args.data_dir) if args.data_dir else default_data_dir()
    configure_logging(data_dir, args.verbose)
    log.info("tabshell %s starting at %s (data: %s)", __version__, time.strftime("%Y-%m-%d %H:%M:%S"), data_dir)

    # QtWebEngineWidgets must be imported before the QApplication exists
    from .webview import create_content_view

    settings_manager = SettingsManager(data_dir)
    bookmarks = BookmarkStore(KeyValueStore(os.path.join(data_dir, "store.json")))

    # Trim our own args for Qt
    app = QApplication([argv[0]] + unknown)
    app.setApplicationName("tabshell")

    window = BrowserWindow(bookmarks, lambda: create_content_view(settings_manager), settings_manager)

    window.controller.start(startup_url(args.url, settings_manager) or None)
    window.show()

    exit_code = app.exec()
    log.info("tabshell exited with code %s", exit_code)
    return exit_code


if __name__ == "__main__":
    raise SystemExit(main())
