"""Half-open time interval helpers."""

from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Iterable


@dataclass(frozen=True, order=True)
class Interval:
    """A half-open span ``[start, end)``."""

    start: datetime
    end: datetime

    @classmethod
    def on_date(cls, target_date: date, start_time: time, end_time: time) -> 'Interval':
        return cls(datetime.combine(target_date, start_time), datetime.combine(target_date, end_time))

    def overlaps(self, other: 'Interval') -> bool:
        return overlaps(self.start, self.end, other.start, other.end)

    def contains(self, other: 'Interval') -> bool:
        return self.start <= other.start and other.end <= self.end


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # Touching endpoints do not overlap.
    return start_a < end_b and start_b < end_a


def subtract(interval: Interval, block: Interval) -> list[Interval]:
    """Remove ``block`` from ``interval``, leaving zero, one or two pieces."""
    if not interval.overlaps(block):
        return [interval]

    remaining = []
    if interval.start < block.start:
        remaining.append(Interval(interval.start, block.start))
    if block.end < interval.end:
        remaining.append(Interval(block.end, interval.end))
    return remaining


def subtract_all(intervals: Iterable[Interval], blocks: Iterable[Interval]) -> list[Interval]:
    result = sorted(intervals)
    for block in blocks:
        pieces: list[Interval] = []
        for interval in result:
            pieces.extend(subtract(interval, block))
        result = pieces
    return sorted(result)
