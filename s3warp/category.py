"""Request categories and the bit set that holds several of them."""

from __future__ import annotations

from enum import IntEnum


class Category(IntEnum):
    """A category that a request can be placed in."""

    CACHE_MISS = 0
    """Caching was detected, but the object missed the cache."""

    CACHE_HIT = 1
    """Caching was detected and the object was cached."""

    def __str__(self) -> str:
        return _CATEGORY_NAMES[self]


_CATEGORY_NAMES = {
    Category.CACHE_MISS: "CacheMiss",
    Category.CACHE_HIT: "CacheHit",
}


class Categories(int):
    """A bit field holding any number of categories."""

    def split(self) -> list[Category]:
        """Return the categories set in this bit field, lowest first."""
        value = int(self)
        found: list[Category] = []
        for category in Category:
            if value == 0:
                break
            if value & 1:
                found.append(category)
            value >>= 1
        return found

    def __str__(self) -> str:
        return ",".join(str(category) for category in self.split())

    def __repr__(self) -> str:
        return f"Categories({int(self)})"


def new_categories(*args: Category) -> Categories:
    """Build a bit field holding the given categories."""
    value = 0
    for category in args:
        value |= 1 << int(category)
    return Categories(value)