"""
Tag and brand name normalization.

Stored names are always lowercase ASCII alphanumerics, so "Men's Wear",
"mens wear" and "MENSWEAR" all resolve to the same `menswear` row.
"""

from __future__ import annotations

import re
from typing import Iterable

_DISALLOWED = re.compile(r"[^a-z0-9]")


def normalize_name(value: str) -> str:
    return _DISALLOWED.sub("", (value or "").strip().lower())


def normalize_names(values: Iterable[str]) -> list[str]:
    """
    Normalize every value, drop the ones that end up empty and keep the first
    occurrence of duplicates.
    """
    seen: set[str] = set()
    names: list[str] = []
    for value in values:
        name = normalize_name(value)
        if not name or name in seen:
            continue
        seen.add(name)
        names.append(name)
    return names
