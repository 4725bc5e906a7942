# src/trainsched/models.py
from datetime import date, time
from dataclasses import dataclass
from typing import Optional, FrozenSet
from collections import defaultdict

# Weekday indices follow the calendar convention 0=Sunday..6=Saturday
WEEKDAY_NAMES = ["sun", "mon", "tue", "wed", "thu", "fri", "sat"]

DEFAULT_START_TIME = time(9, 0)
MAX_SESSIONS = 5000


@dataclass
class CourseInfo:
    """Names shown on the schedule header and in export file names"""
    name: str = ""
    trainee: str = ""

    def __str__(self) -> str:
        return f"{self.name or 'Course'} - {self.trainee or 'Trainee'}"


@dataclass(frozen=True)
class ScheduleInput:
    """Parameters the generator works from"""
    start_date: Optional[date]
    hours_per_day: float = 2.0
    total_hours: float = 20.0
    weekdays: FrozenSet[int] = frozenset({1, 3})
    excluded_dates: FrozenSet[str] = frozenset()
    start_time: time = DEFAULT_START_TIME

    def __post_init__(self):
        object.__setattr__(self, "hours_per_day", float(self.hours_per_day))
        object.__setattr__(self, "total_hours", float(self.total_hours))
        # Accept any iterable for the sets so callers can pass lists
        object.__setattr__(self, "weekdays", frozenset(self.weekdays))
        object.__setattr__(self, "excluded_dates", frozenset(self.excluded_dates))

    @property
    def can_generate(self) -> bool:
        """Generation is skipped without a start date or any allowed weekday"""
        return self.start_date is not None and len(self.weekdays) > 0

    def __str__(self) -> str:
        days = ", ".join(WEEKDAY_NAMES[d].capitalize() for d in sorted(self.weekdays))
        start = self.start_date.isoformat() if self.start_date else "unset"
        return f"{self.total_hours:g}h from {start} at {self.hours_per_day:g}h/day ({days or 'no days'})"


@dataclass(frozen=True)
class Session:
    """One scheduled training block"""
    number: int
    date: date
    start_time: time
    end_time: time
    hours: float
    remaining: float = 0.0
    uid: int = 0  # stable across renumbering

    def __str__(self) -> str:
        return (
            f"#{self.number} {self.date.isoformat()} "
            f"{self.start_time.strftime('%H:%M')}-{self.end_time.strftime('%H:%M')} "
            f"({self.hours:g}h, {self.remaining:g}h left)"
        )


class ValidationResult:
    def __init__(self):
        self.messages = []

    def add(self, check: str, level: str, message: str):
        """
        Add a message to the result.
        :param check: Identifier for the check (e.g., "input_hours").
        :param level: The level of the message (error or warning).
        :param message: The message to display.
        """

        self.messages.append({
            "check": check,
            "level": level,
            "message": message
        })

    def merge(self, other: 'ValidationResult'):
        """
        Merge another ValidationResult into this one.
        :param other: The other ValidationResult to merge.
        """

        self.messages.extend(other.messages)

    @property
    def errors(self) -> dict:
        errors = defaultdict(list)
        for msg in self.messages:
            if msg["level"] == "error":
                errors[msg["check"]].append(msg["message"])

        return errors

    @property
    def warnings(self) -> dict:
        warnings = defaultdict(list)
        for msg in self.messages:
            if msg["level"] == "warning":
                warnings[msg["check"]].append(msg["message"])

        return warnings

    @property
    def passed(self) -> bool:
        """Validation is considered passed if there are no errors"""
        return len(self.errors) == 0

    @property
    def failed(self) -> bool:
        """Validation is considered failed if there are any errors"""
        return len(self.errors) > 0


def weekday_index(day: date) -> int:
    """Weekday of a date with Sunday as 0"""
    return day.isoweekday() % 7
