"""
Title policy: which page title a node keeps.

The most descriptive title ever observed wins, with placeholder titles
("Home", "Dashboard", blank) always replaceable.
"""
import re
from typing import Optional

GENERIC_TITLES = frozenset({"home", "dashboard"})

# "Brand | Page" -> "Page"
_BRAND_PREFIX = re.compile(r"^[^|]{2,}\|\s*")


def strip_branding(raw_title: Optional[str]) -> str:
    """Remove a leading "Brand | " prefix so product names stay out of stored titles."""
    title = str(raw_title or "").strip()
    if not title:
        return ""
    return _BRAND_PREFIX.sub("", title, count=1).strip()


def is_generic(title: Optional[str]) -> bool:
    """True for blank titles and known placeholders."""
    normalized = str(title or "").strip().lower()
    return not normalized or normalized in GENERIC_TITLES


def should_replace(existing: Optional[str], candidate: Optional[str]) -> bool:
    """
    Decide whether `candidate` should overwrite the stored `existing` title.

    >>> should_replace("Home", "Pricing Plans")
    True
    >>> should_replace("Detailed Report", "Report")
    False
    """
    current = str(existing or "").strip()
    proposed = str(candidate or "").strip()
    return not current or is_generic(current) or len(proposed) > len(current)
