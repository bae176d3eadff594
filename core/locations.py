"""
Location normalization and display labels.

A location key is the URL with its fragment removed, so hash-only route
changes collapse onto one node. Anything that does not parse as an
absolute URL is kept verbatim; normalization never raises.
"""
from typing import Mapping, Optional
from urllib.parse import urlsplit, urlunsplit

MAX_LABEL_LENGTH = 80
ELLIPSIS = "..."
UNTITLED = "Untitled Page"


def _canonical_netloc(netloc: str) -> str:
    # Host names are case-insensitive, credentials are not
    userinfo, sep, host = netloc.rpartition("@")
    return f"{userinfo}{sep}{host.lower()}"


def normalize_url(url: Optional[str]) -> str:
    """
    Canonicalize a raw location string into a graph key.

    >>> normalize_url("https://App.example.com/reports?id=4#section-2")
    'https://app.example.com/reports?id=4'
    """
    if not url:
        return ""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if not parts.scheme or not parts.netloc:
        return url

    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), _canonical_netloc(parts.netloc), path, parts.query, ""))


def truncate(text: Optional[str], limit: int = MAX_LABEL_LENGTH) -> str:
    """Cut `text` to `limit` characters, marking the cut with an ellipsis."""
    if not text:
        return ""
    if len(text) <= limit:
        return text
    return text[: max(0, limit - len(ELLIPSIS))] + ELLIPSIS


def _path_and_query(url: str) -> str:
    try:
        parts = urlsplit(url)
    except ValueError:
        parts = None

    if parts is not None and parts.scheme and parts.netloc:
        path = parts.path or "/"
        return f"{path}?{parts.query}" if parts.query else path

    # Not an absolute URL: keep whatever follows the first slash past "scheme://"
    index = url.find("/", 8)
    return url[index:] if index >= 0 else url


def display_path(url: Optional[str], limit: int = MAX_LABEL_LENGTH) -> str:
    """Path plus query string of the normalized location, bounded in length."""
    return truncate(_path_and_query(normalize_url(url)), limit)


def label_for(url: str, nodes: Mapping[str, object], limit: int = MAX_LABEL_LENGTH) -> str:
    """
    Human-readable label for a tree entry: "<title> - <path>".

    Args:
        url: Raw or normalized location
        nodes: Node lookup keyed by normalized url (PageNode values)
        limit: Maximum length of the path part
    """
    clean = normalize_url(url)
    node = nodes.get(url) or nodes.get(clean)
    title = (getattr(node, "title", "") or "").strip() or UNTITLED
    return f"{title} - {display_path(clean, limit)}"
