"""Address-bar input handling and tab label derivation."""

from __future__ import annotations

import re
from urllib.parse import quote, urlsplit

DEFAULT_TAB_LABEL = "New Tab"

SEARCH_ENGINES = {
    'google': 'https://www.google.com/search?q={}',
    'duckduckgo': 'https://html.duckduckgo.com/html?q={}',
    'bing': 'https://www.bing.com/search?q={}',
    'yahoo': 'https://search.yahoo.com/search?p={}',
    'startpage': 'https://www.startpage.com/sp/search?query={}',
}
DEFAULT_SEARCH_ENGINE = 'google'
DEFAULT_SEARCH_URL = SEARCH_ENGINES[DEFAULT_SEARCH_ENGINE]

_BARE_DOMAIN = re.compile(r"^[\w-]+(\.[\w-]+)+$", re.ASCII)
_HAS_SCHEME = re.compile(r"^[a-zA-Z]+://")
_TITLE_SPLIT = re.compile(r"[\s-]+")


def search_url_for(engine: str | None) -> str:
    return SEARCH_ENGINES.get((engine or '').lower(), DEFAULT_SEARCH_URL)


def encode_query(text: str) -> str:
    # Same unreserved set as JavaScript's encodeURIComponent
    return quote(text, safe="!~*'()")


def normalize(text: str, search_url: str = DEFAULT_SEARCH_URL) -> str:
    """Turn address-bar input into a loadable URL.

    Rules are tried in order and the first match wins: anything with a space
    is a search query, a bare ``host.tld`` or ``www.`` prefix gets https, and
    anything else without an explicit ``scheme://`` gets https as well.
    """
    if not text:
        return ''
    if ' ' in text:
        return search_url.format(encode_query(text))
    if _BARE_DOMAIN.match(text):
        return f"https://{text}"
    if text.startswith('www.'):
        return f"https://{text}"
    if not _HAS_SCHEME.match(text):
        return f"https://{text}"
    return text


def _domain_label(url: str) -> str | None:
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        return None
    if not parts.scheme or not host:
        return None
    domain = host.replace('www.', '', 1).split('.')[0]
    if not domain:
        return None
    return domain[:1].upper() + domain[1:]


def tab_label(url: str | None, title: str | None) -> str:
    """Short tab label: domain name first, then the title's first word."""
    if not url and not title:
        return DEFAULT_TAB_LABEL
    if url:
        label = _domain_label(url)
        if label:
            return label
    if title:
        words = [w for w in _TITLE_SPLIT.split(title.strip()) if w]
        if words:
            return words[0]
    return DEFAULT_TAB_LABEL
