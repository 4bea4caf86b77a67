"""tabshell - a minimal multi-tab browser shell on Qt WebEngine."""

__version__ = "0.1.0"
