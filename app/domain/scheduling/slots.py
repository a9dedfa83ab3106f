"""Slot generation: free time of a working day cut into bookable windows"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ...shared.validators import format_hhmm
from .intervals import Interval, subtract_all
from .resolver import DayPlan, resolve_day
from .weekly_schedule import WeeklySchedule


@dataclass(frozen=True)
class Slot:
    """Advisory, unreserved window. Must be re-validated when booking."""

    resource_id: int
    date: date
    start: int
    end: int

    @property
    def start_time(self) -> str:
        return format_hhmm(self.start)

    @property
    def end_time(self) -> str:
        return format_hhmm(self.end)


def free_fragments(plan: DayPlan, busy: Iterable[Interval]) -> list[Interval]:
    """Working intervals minus breaks minus busy intervals"""
    return subtract_all(plan.working, list(plan.breaks) + list(busy))


def discretize(
    fragment: Interval, granularity: int, step: int, not_before: Optional[int] = None
) -> list[Interval]:
    """
    Cut a fragment into windows of ``granularity`` minutes starting every
    ``step`` minutes. A window starting exactly at end - granularity is kept;
    a shorter remainder is dropped.
    """
    windows = []
    start = fragment.start
    while start + granularity <= fragment.end:
        if not_before is None or start >= not_before:
            windows.append(Interval(start, start + granularity))
        start += step
    return windows


def generate_slots(
    resource_id: int,
    schedule: WeeklySchedule,
    day: date,
    busy: Iterable[Interval],
    granularity: int,
    step: Optional[int] = None,
    not_before: Optional[int] = None,
) -> list[Slot]:
    """
    Args:
        busy: intervals of the non-cancelled commitments for (resource, day)
        granularity: slot length in minutes
        step: distance between consecutive slot starts, defaults to granularity
        not_before: drop slots that start earlier than this minute of the day

    Returns:
        Slots ordered by start time
    """
    if granularity <= 0:
        raise ValueError("granularity must be positive")
    step = step or granularity
    if step <= 0:
        raise ValueError("step must be positive")

    plan = resolve_day(schedule, day)
    if plan.is_closed:
        return []

    slots = []
    for fragment in free_fragments(plan, busy):
        for window in discretize(fragment, granularity, step, not_before):
            slots.append(Slot(resource_id=resource_id, date=day, start=window.start, end=window.end))
    return slots
