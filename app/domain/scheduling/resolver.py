"""Resolve the working and break intervals of a professional for one date"""

from dataclasses import dataclass
from datetime import date

from .intervals import Interval, merge
from .weekly_schedule import Weekday, WeeklySchedule


@dataclass(frozen=True)
class DayPlan:
    working: tuple[Interval, ...] = ()
    breaks: tuple[Interval, ...] = ()

    @property
    def is_closed(self) -> bool:
        return not self.working


CLOSED = DayPlan()


def resolve_day(schedule: WeeklySchedule, day: date) -> DayPlan:
    """
    A date override replaces the weekly entry wholesale, hours and breaks.
    Closed overrides and disabled weekdays both produce an empty plan.
    """
    override = schedule.override_for(day)
    if override is not None:
        if override.closed or not override.intervals:
            return CLOSED
        return DayPlan(working=tuple(merge(override.intervals)), breaks=tuple(merge(override.breaks)))

    entry = schedule.day(Weekday.of(day))
    if not entry.enabled or entry.hours is None:
        return CLOSED
    return DayPlan(working=(entry.hours,), breaks=tuple(merge(entry.breaks)))
