from __future__ import annotations

import json
import logging
import os

log = logging.getLogger(__name__)

DATA_DIR_ENV = "TABSHELL_DATA_DIR"


def default_data_dir() -> str:
    """Resolve the data directory: environment override, else ~/.tabshell."""
    env_dir = os.environ.get(DATA_DIR_ENV)
    if env_dir:
        return os.path.expanduser(env_dir)
    if os.name == 'nt' and os.getenv("USERPROFILE"):
        return os.path.join(os.getenv("USERPROFILE"), ".tabshell")
    return os.path.expanduser("~/.tabshell")


# --- Settings management --------------------------------------------------------------------

class SettingsManager:
    def __init__(self, data_dir):
        self.data_dir = data_dir
        self.settings_file = os.path.join(data_dir, "settings.json")
        self._settings = self._load_default_settings()
        self.load_settings()

    def _load_default_settings(self):
        return {
            # General
            'homepage': '',
            'default_search_engine': 'google',
            'enable_javascript': True,

            # Layout
            'window_width': 1200,
            'window_height': 800,
            'sidebar_width': 250,

            # Coalescing windows (milliseconds)
            'debounce': {
                'navigation_ms': 100,
                'bookmarks_ms': 100,
                'resize_ms': 100,
                'render_ms': 16,
            },

            # Keyboard shortcuts
            'shortcuts': {
                'new_tab': 'Ctrl+T',
                'close_tab': 'Ctrl+W',
                'bookmark': 'Ctrl+D',
                'focus_address': 'Ctrl+L',
            },
        }

    def get(self, key, default=None):
        keys = key.split('.')
        value = self._settings
        for k in keys:
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                return default
        return value

    def set(self, key, value):
        if not self._validate_setting(key, value):
            log.warning("Invalid value for setting '%s': %r", key, value)
            return False

        keys = key.split('.')
        target = self._settings
        for k in keys[:-1]:
            if k not in target:
                target[k] = {}
            target = target[k]
        target[keys[-1]] = value
        return True

    def _validate_setting(self, key, value):
        """Validate setting values before storing them"""
        validators = {
            'homepage': self._validate_url,
            'window_width': lambda v: isinstance(v, int) and 400 <= v <= 10000,
            'window_height': lambda v: isinstance(v, int) and 300 <= v <= 10000,
            'sidebar_width': lambda v: isinstance(v, int) and 120 <= v <= 800,
            'debounce': self._validate_window,
            'shortcuts': lambda v: isinstance(v, (str, dict)),
        }

        base_key = key.split('.')[0]
        if base_key in validators:
            try:
                return validators[base_key](value)
            except Exception as e:
                log.warning("Validation error for %s: %s", key, e)
                return False

        if key.startswith('enable_'):
            return isinstance(value, bool)

        if key == 'default_search_engine':
            return isinstance(value, str) and len(value) > 0

        return True

    def _validate_url(self, url):
        """Validate URL format"""
        if not isinstance(url, str):
            return False
        if url == '' or url.startswith(('http://', 'https://', 'about:', 'file://')):
            return True
        return not any(char in url for char in ['<', '>', '"', "'", ' '])

    def _validate_window(self, value):
        if isinstance(value, dict):
            return all(self._validate_window(v) for v in value.values())
        return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 5000

    def save_settings(self):
        try:
            os.makedirs(self.data_dir, exist_ok=True)
            with open(self.settings_file, 'w', encoding='utf-8') as f:
                json.dump(self._settings, f, indent=4)
        except Exception as e:
            log.warning("Failed to save settings: %s", e)

    def load_settings(self):
        try:
            if os.path.exists(self.settings_file):
                with open(self.settings_file, 'r', encoding='utf-8') as f:
                    loaded_settings = json.load(f)
                if isinstance(loaded_settings, dict):
                    self._merge_settings(loaded_settings)
        except Exception as e:
            log.warning("Failed to load settings: %s", e)

    def _merge_settings(self, loaded_settings):
        def merge_dict(default, loaded):
            for key, value in loaded.items():
                if key in default and isinstance(default[key], dict) and isinstance(value, dict):
                    merge_dict(default[key], value)
                else:
                    default[key] = value
        merge_dict(self._settings, loaded_settings)

    def reset_to_defaults(self):
        self._settings = self._load_default_settings()
        self.save_settings()
