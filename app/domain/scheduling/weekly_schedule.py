"""
Weekly schedule value types.

Stored schedules are JSON keyed by English weekday names. They are converted
once into a WeeklySchedule keyed by the Weekday enum; date-specific overrides
live in their own map keyed by calendar date.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import IntEnum
from typing import Any, Iterable, Mapping, Optional

from ...exceptions import ValidationError
from ...shared.validators import parse_hhmm
from .intervals import Interval


class Weekday(IntEnum):
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @property
    def storage_key(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class DaySchedule:
    """Regular hours for one weekday"""

    enabled: bool = False
    hours: Optional[Interval] = None
    breaks: tuple[Interval, ...] = ()


@dataclass(frozen=True)
class DayOverride:
    """Special day. closed=True suppresses the whole date."""

    closed: bool = False
    intervals: tuple[Interval, ...] = ()
    breaks: tuple[Interval, ...] = ()


@dataclass(frozen=True)
class WeeklySchedule:
    days: Mapping[Weekday, DaySchedule] = field(default_factory=dict)
    overrides: Mapping[date, DayOverride] = field(default_factory=dict)

    def day(self, weekday: Weekday) -> DaySchedule:
        return self.days.get(weekday, DaySchedule())

    def override_for(self, day: date) -> Optional[DayOverride]:
        return self.overrides.get(day)

    @classmethod
    def from_storage(
        cls, weekly: Optional[Mapping[str, Any]], overrides: Iterable[Any] = ()
    ) -> "WeeklySchedule":
        """
        Build a schedule from the stored JSON and ScheduleOverride rows.

        Unknown weekday keys are rejected rather than silently ignored so a
        localized key ("lunes") never turns into a closed day.
        """
        days: dict[Weekday, DaySchedule] = {}
        for key, entry in (weekly or {}).items():
            try:
                weekday = Weekday[str(key).strip().upper()]
            except KeyError:
                raise ValidationError(f"Unknown weekday key '{key}' in schedule") from None
            days[weekday] = _parse_day(entry or {}, weekday.storage_key)

        override_map: dict[date, DayOverride] = {}
        for row in overrides:
            override_map[row.date] = DayOverride(
                closed=bool(row.closed),
                intervals=tuple(_parse_intervals(row.intervals, f"override {row.date}")),
                breaks=tuple(_parse_intervals(row.breaks, f"override {row.date} break")),
            )

        return cls(days=days, overrides=override_map)


def _parse_interval(entry: Mapping[str, Any], label: str) -> Interval:
    start = parse_hhmm(entry.get("start"), f"{label} start")
    end = parse_hhmm(entry.get("end"), f"{label} end")
    if end <= start:
        raise ValidationError(f"{label}: end must be after start")
    return Interval.of(start, end)


def _parse_intervals(entries: Optional[Iterable[Mapping[str, Any]]], label: str) -> list[Interval]:
    return [_parse_interval(entry, label) for entry in (entries or [])]


def _parse_day(entry: Mapping[str, Any], label: str) -> DaySchedule:
    enabled = bool(entry.get("enabled", False))
    if not enabled:
        return DaySchedule(enabled=False)
    return DaySchedule(
        enabled=True,
        hours=_parse_interval(entry, label),
        breaks=tuple(_parse_intervals(entry.get("breaks"), f"{label} break")),
    )
