"""Tag codec: converts stored tag lists to and from the comma-separated form
users type into an edit dialog."""
from __future__ import annotations

from collections.abc import Iterable


def encode(tags: Iterable[str] | None) -> str:
    """Join tags with ``", "``; an empty or missing list yields ``""``."""
    if not tags:
        return ""
    return ", ".join(tags)


def decode(text: str | None) -> list[str]:
    """Split on commas, trim each token and drop the empty ones.

    Not a strict inverse of :func:`encode`: blank or whitespace-only
    segments disappear.
    """
    if not text:
        return []
    return [t.strip() for t in text.split(",") if t.strip()]


def normalize(value: str | Iterable[str] | None) -> list[str]:
    """Decode either the comma string or an already-split list."""
    if value is None or isinstance(value, str):
        return decode(value)
    return [t.strip() for t in value if t and t.strip()]
