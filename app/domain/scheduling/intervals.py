"""
Interval algebra over half-open [start, end) ranges.

Values are integer minutes from midnight. Nothing here knows about dates.
"""

from typing import Iterable, NamedTuple


class Interval(NamedTuple):
    start: int
    end: int

    @classmethod
    def of(cls, start: int, end: int) -> "Interval":
        """Build an interval, rejecting end < start"""
        if end < start:
            raise ValueError(f"Interval end {end} is before start {start}")
        return cls(start, end)

    @property
    def length(self) -> int:
        return self.end - self.start

    def contains(self, other: "Interval") -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(a: Interval, b: Interval) -> bool:
    """Half-open overlap test; touching intervals do not overlap"""
    return a.start < b.end and b.start < a.end


def merge(intervals: Iterable[Interval]) -> list[Interval]:
    """Union of intervals, joining overlapping and touching ones, ordered by start"""
    merged: list[Interval] = []
    for current in sorted(i for i in intervals if i.length > 0):
        if merged and current.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Interval(last.start, max(last.end, current.end))
        else:
            merged.append(current)
    return merged


def subtract(base: Interval, cuts: Iterable[Interval]) -> list[Interval]:
    """
    Remove every cut from base.

    Returns the remaining fragments ordered by start. A cut strictly inside
    base splits it in two; empty fragments are never returned.
    """
    fragments: list[Interval] = []
    cursor = base.start

    for cut in merge(cuts):
        if cut.end <= cursor:
            continue
        if cut.start >= base.end:
            break
        if cut.start > cursor:
            fragments.append(Interval(cursor, cut.start))
        cursor = max(cursor, cut.end)
        if cursor >= base.end:
            break

    if cursor < base.end:
        fragments.append(Interval(cursor, base.end))
    return fragments


def subtract_all(bases: Iterable[Interval], cuts: Iterable[Interval]) -> list[Interval]:
    """Apply subtract to every base interval and flatten the fragments in order"""
    cut_list = merge(cuts)
    fragments: list[Interval] = []
    for base in sorted(bases):
        fragments.extend(subtract(base, cut_list))
    return fragments
