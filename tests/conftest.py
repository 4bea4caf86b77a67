from __future__ import annotations

import os

import pytest

# Qt widgets need a platform plugin; tests never open a real display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qapp():
    pytest.importorskip("PyQt6")
    try:
        from PyQt6.QtWidgets import QApplication
    except ImportError as exc:
        pytest.skip(f"PyQt6 QtWidgets unavailable in this environment: {exc}")
    return QApplication.instance() or QApplication([])
