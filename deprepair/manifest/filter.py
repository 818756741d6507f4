"""Include/exclude filtering of coordinates before repair."""

from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Set, Union

from deprepair.manifest.coordinate import Coordinate

logger = logging.getLogger("deprepair.manifest.filter")

PatternSource = Union[str, Sequence[str], None]


def split_patterns(source: PatternSource) -> List[str]:
    """Normalize a comma-separated string or a sequence into patterns."""
    if source is None:
        return []
    items = source.split(",") if isinstance(source, str) else list(source)
    return [item.strip() for item in items if item and item.strip()]


class CoordinateFilter:
    """Select coordinates by substring patterns.

    A coordinate is kept when no exclude pattern occurs in its string form
    and, if include patterns are given, at least one of them does. Exclusion
    has higher precedence than inclusion.
    """

    def __init__(self, include: PatternSource = None, exclude: PatternSource = None) -> None:
        self.include = split_patterns(include)
        self.exclude = split_patterns(exclude)

    def accepts(self, coordinate: Coordinate) -> bool:
        text = str(coordinate)
        if any(pattern in text for pattern in self.exclude):
            return False
        if not self.include:
            return True
        return any(pattern in text for pattern in self.include)

    def filter(self, coordinates: Iterable[Coordinate]) -> Set[Coordinate]:
        kept: Set[Coordinate] = set()
        for coordinate in coordinates:
            if self.accepts(coordinate):
                kept.add(coordinate)
            else:
                logger.info("x %s", coordinate)
        return kept


__all__ = ["CoordinateFilter", "split_patterns"]
