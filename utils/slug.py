"""Slug helpers shared by categories and products."""

import re
import unicodedata
from typing import Awaitable, Callable

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify(value: str) -> str:
    """
    Lower-case ASCII slug, non-alphanumerics collapsed to '-'.

    >>> slugify("  Café & Bar  ")
    'cafe-bar'
    """
    normalized = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    slug = _NON_ALNUM.sub("-", normalized.lower()).strip("-")
    return slug or "item"


async def unique_slug(base: str, exists: Callable[[str], Awaitable[bool]]) -> str:
    """
    Append -1, -2, ... to `base` until `exists` reports the slug as free.

    Args:
        base: Already slugified candidate
        exists: Coroutine returning True if the slug is taken
    """
    candidate = base
    counter = 1
    while await exists(candidate):
        candidate = f"{base}-{counter}"
        counter += 1
    return candidate
