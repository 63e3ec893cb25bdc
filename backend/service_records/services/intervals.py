from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from service_records.models.enums import BoundaryMode

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True)
class Interval:
    """A closed date range. A missing start sorts before every date, a missing end after every date."""

    start: date | None
    end: date | None

    @property
    def is_open(self) -> bool:
        return self.end is None

    @property
    def is_degenerate(self) -> bool:
        return self.start is not None and self.start == self.end

    def lower(self) -> date:
        return self.start if self.start is not None else date.min

    def upper(self) -> date:
        return self.end if self.end is not None else date.max


def overlaps(a: Interval, b: Interval, mode: BoundaryMode) -> bool:
    """Decide whether two intervals overlap.

    TOUCHING_ALLOWED: intervals sharing only an endpoint do not overlap.
    TOUCHING_OVERLAPS: a shared endpoint is already an overlap.
    """
    latest_start = max(a.lower(), b.lower())
    earliest_end = min(a.upper(), b.upper())
    if mode == BoundaryMode.TOUCHING_ALLOWED:
        return latest_start < earliest_end
    return latest_start <= earliest_end


def find_all_overlapping_pairs(
    intervals: Sequence[Interval | None],
    mode: BoundaryMode,
) -> list[tuple[int, int]]:
    """Return every (i, j) index pair with i < j whose intervals overlap.

    ``None`` entries (rows without a usable start) keep their index but are skipped.
    """
    pairs: list[tuple[int, int]] = []
    for i, first in enumerate(intervals):
        if first is None:
            continue
        for j in range(i + 1, len(intervals)):
            second = intervals[j]
            if second is not None and overlaps(first, second, mode):
                pairs.append((i, j))
    return pairs


def falls_strictly_inside(point: date, interval: Interval) -> bool:
    """True when ``point`` lies inside ``interval`` without touching either boundary."""
    return interval.lower() < point < interval.upper()
