# core/utils.py

import re
from typing import Iterable, Optional


def sanitize(data: dict, allowed: Optional[Iterable[str]] = None) -> dict:
    """
    Clean a request payload before it is written:
    - Keep only `allowed` keys when given
    - Strip string whitespace
    - Empty strings → None
    - Everything else is kept as-is (license plates and VINs stay strings)
    """
    allowed_keys = set(allowed) if allowed is not None else None
    clean = {}

    for k, v in data.items():
        if allowed_keys is not None and k not in allowed_keys:
            continue

        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped if stripped else None
            continue

        clean[k] = v

    return clean


def parse_int(value) -> Optional[int]:
    """int(value), or None when the value is missing or not an integer."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# Characters PostgREST reserves inside or=(...) filter lists
_FILTER_RESERVED = re.compile(r'[,()"\\:]')


def search_term(q: Optional[str]) -> Optional[str]:
    """
    User search text made safe to embed in an or_() filter string.
    Returns None when nothing searchable is left.
    """
    if not q:
        return None
    term = _FILTER_RESERVED.sub(" ", q).strip()
    return term or None
