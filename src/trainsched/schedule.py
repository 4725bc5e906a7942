# schedule.py
import re
import math
import tomli
import logging
from pathlib import Path
from dataclasses import replace
from datetime import datetime, time, date, timedelta
from typing import Optional, Dict, Any, List, Tuple, Iterable, Union

from trainsched.models import (
    Session, ScheduleInput, CourseInfo,
    WEEKDAY_NAMES, MAX_SESSIONS, weekday_index
)
from trainsched.validate import ScheduleValidator

logger = logging.getLogger(__name__)

# Decimal places kept when rounding hour values
HOURS_PRECISION = 6

EDITABLE_FIELDS = ("date", "start_time", "end_time", "hours")

# Changing any of these replaces the whole session list
GENERATION_FIELDS = frozenset({"start_date", "hours_per_day", "total_hours", "weekdays", "excluded_dates"})

WEEKDAY_ALIASES = {name: i for i, name in enumerate(WEEKDAY_NAMES)}
WEEKDAY_ALIASES.update({
    "sunday": 0, "monday": 1, "tuesday": 2, "wednesday": 3,
    "thursday": 4, "friday": 5, "saturday": 6,
    "tues": 2, "wednes": 3, "thur": 4, "thurs": 4,
})

AMPM_REGEX = re.compile(r"^(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<ampm>am|pm)$")


class ScheduleInputError(ValueError):
    """Raised when the inputs can never produce a finished schedule"""


class SessionNotFoundError(LookupError):
    """Raised when an edit targets a session that is not in the list"""


# --- Value parsing ---

def parse_clock_time(spec: Union[str, time]) -> time:
    """Parse a wall-clock time in 24-hour ("09:00", "12 : 15") or AM/PM ("9:30 AM") form"""
    if isinstance(spec, time):
        return spec

    spec_orig = spec
    spec = str(spec).strip().lower()
    spec = re.sub(r"\s*:\s*", ":", spec)

    if spec.endswith("am") or spec.endswith("pm"):
        match = AMPM_REGEX.fullmatch(spec)
        if not match:
            raise ValueError(f"Invalid time format: {spec_orig}")
        hour = int(match["hour"])
        minute = int(match["minute"] or 0)
        if not 1 <= hour <= 12 or minute > 59:
            raise ValueError(f"Invalid time format: {spec_orig}")
        hour = hour % 12 + (12 if match["ampm"] == "pm" else 0)
        return time(hour, minute)

    try:
        hour_part, _, rest = spec.partition(":")
        # time.fromisoformat wants two-digit hours
        return time.fromisoformat(f"{int(hour_part):02d}:{rest}" if rest else "")
    except ValueError:
        raise ValueError(f"Invalid time format: {spec_orig}")


def parse_iso_date(value: Union[str, date]) -> date:
    """Parse a YYYY-MM-DD date"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value}")


def parse_hours(value: Union[str, int, float]) -> float:
    """Parse a non-negative number of hours"""
    if isinstance(value, bool):
        raise ValueError(f"Invalid number of hours: {value}")
    try:
        hours = float(str(value).strip()) if isinstance(value, str) else float(value)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid number of hours: {value!r}")
    if math.isnan(hours) or math.isinf(hours):
        raise ValueError(f"Invalid number of hours: {value!r}")
    if hours < 0:
        raise ValueError(f"Hours cannot be negative: {value}")
    return hours


def parse_weekday(value: Union[str, int]) -> int:
    """Parse a weekday index (0=Sunday) or name ("mon", "Monday")"""
    if isinstance(value, bool):
        raise ValueError(f"Invalid weekday: {value}")
    if isinstance(value, int):
        index = value
    else:
        text = str(value).strip().lower()
        if text.isdigit():
            index = int(text)
        elif text in WEEKDAY_ALIASES:
            return WEEKDAY_ALIASES[text]
        else:
            raise ValueError(f"Invalid weekday: {value}")
    if not 0 <= index <= 6:
        raise ValueError(f"Weekday index must be between 0 (Sunday) and 6 (Saturday): {value}")
    return index


# --- Core ---

def generate(schedule_input: ScheduleInput) -> List[Session]:
    """Walk forward from the start date allocating hours to allowed days

    Returns an empty list when there is no start date or no allowed weekday.
    Raises ScheduleInputError when hours_per_day cannot make progress or
    no weekday in 0..6 is selected.
    """
    if not schedule_input.can_generate:
        logger.debug("Generation skipped: start date or weekdays missing")
        return []

    if schedule_input.hours_per_day <= 0:
        raise ScheduleInputError(f"Hours per day must be positive (got {schedule_input.hours_per_day:g})")

    weekdays = schedule_input.weekdays
    if not weekdays & set(range(7)):
        raise ScheduleInputError(
            f"No valid weekday selected (got {sorted(map(str, weekdays))}); use 0 (Sunday) to 6 (Saturday)"
        )

    excluded = schedule_input.excluded_dates
    hours_per_day = schedule_input.hours_per_day
    total_hours = float(schedule_input.total_hours)

    sessions = []
    allocated = 0.0
    cursor = schedule_input.start_date

    while round(total_hours - allocated, HOURS_PRECISION) > 0:
        if weekday_index(cursor) in weekdays and cursor.isoformat() not in excluded:
            hours_remaining = total_hours - allocated
            planned = min(hours_per_day, hours_remaining)
            # Nothing below the rounding step is left for a further session
            if hours_remaining - planned < 10 ** -HOURS_PRECISION:
                planned = hours_remaining
            start = datetime.combine(cursor, schedule_input.start_time)
            end = start + timedelta(hours=planned)

            number = len(sessions) + 1
            sessions.append(Session(
                number=number,
                date=cursor,
                start_time=start.time(),
                end_time=end.time(),
                hours=planned,
                uid=number,
            ))
            allocated += planned

        cursor += timedelta(days=1)

        if len(sessions) >= MAX_SESSIONS:
            logger.warning(f"Stopped after {MAX_SESSIONS} sessions with {total_hours - allocated:g}h still unallocated")
            break

    logger.debug(f"Generated {len(sessions)} sessions from {schedule_input}")
    return recompute(sessions, total_hours)


def recompute(sessions: Iterable[Session], total_hours: float) -> List[Session]:
    """Set each session's remaining hours from a running sum in list order"""
    cumulative = 0.0
    result = []
    for session in sessions:
        cumulative += session.hours
        remaining = round(max(0.0, total_hours - cumulative), HOURS_PRECISION)
        result.append(replace(session, remaining=remaining))
    return result


def renumber(sessions: Iterable[Session]) -> List[Session]:
    """Reassign positions 1..N; uids are left alone"""
    return [replace(session, number=i) for i, session in enumerate(sessions, start=1)]


def _index_of(sessions: List[Session], uid: int) -> int:
    for i, session in enumerate(sessions):
        if session.uid == uid:
            return i
    raise SessionNotFoundError(f"No session with id {uid}")


def update_session(sessions: List[Session], uid: int, field: str, value: Any, total_hours: float) -> List[Session]:
    """Edit one field of a session and recompute remaining hours"""
    if field == "hours":
        parsed = parse_hours(value)
    elif field == "date":
        parsed = parse_iso_date(value)
    elif field in ("start_time", "end_time"):
        parsed = parse_clock_time(value)
    else:
        raise ValueError(f"Field '{field}' cannot be edited. Choose one of: {', '.join(EDITABLE_FIELDS)}")

    index = _index_of(sessions, uid)
    updated = list(sessions)
    updated[index] = replace(updated[index], **{field: parsed})
    return recompute(updated, total_hours)


def insert_session_above(sessions: List[Session], uid: int, total_hours: float) -> List[Session]:
    """Insert a zero-hour copy of a session's date and times right before it"""
    index = _index_of(sessions, uid)
    target = sessions[index]
    new_session = Session(
        number=target.number,
        date=target.date,
        start_time=target.start_time,
        end_time=target.end_time,
        hours=0.0,
        uid=max(s.uid for s in sessions) + 1,
    )
    updated = list(sessions[:index]) + [new_session] + list(sessions[index:])
    return recompute(renumber(updated), total_hours)


def remove_session(sessions: List[Session], uid: int, total_hours: float) -> List[Session]:
    """Drop a session, renumber the rest and recompute remaining hours"""
    index = _index_of(sessions, uid)
    updated = list(sessions[:index]) + list(sessions[index + 1:])
    return recompute(renumber(updated), total_hours)


class ScheduleManager:
    """Holds the current course inputs and session list between user actions"""

    def __init__(
        self,
        schedule_input: Optional[ScheduleInput] = None,
        course: Optional[CourseInfo] = None
    ):
        self.logger = logging.getLogger(__name__)
        self.validator = ScheduleValidator()
        self.course = course or CourseInfo()
        self.schedule_input = schedule_input or ScheduleInput(start_date=None)
        self.sessions: List[Session] = []
        self.regenerate()

    @property
    def total_hours(self) -> float:
        return self.schedule_input.total_hours

    def regenerate(self) -> List[Session]:
        """Replace the session list from the current inputs"""
        if not self.schedule_input.can_generate:
            self.logger.debug("Inputs incomplete, keeping the current sessions")
            return self.sessions
        self.sessions = generate(self.schedule_input)
        return self.sessions

    def update_input(self, **changes) -> List[Session]:
        """Change one or more inputs, regenerating when a generation input changed"""
        unknown = set(changes) - set(ScheduleInput.__dataclass_fields__)
        if unknown:
            raise ValueError(f"Unknown input field(s): {', '.join(sorted(unknown))}")

        previous = self.schedule_input
        candidate = replace(previous, **changes)
        changed = {name for name in changes if getattr(candidate, name) != getattr(previous, name)}

        if changed & GENERATION_FIELDS and candidate.can_generate:
            # A rejected input raises here and leaves the state untouched
            self.sessions = generate(candidate)
        self.schedule_input = candidate

        self.logger.debug(f"Inputs changed: {', '.join(sorted(changed)) or 'none'}")
        return self.sessions

    def set_input_value(self, name: str, raw: str) -> List[Session]:
        """Parse a text value for a single input and apply it"""
        name = name.strip().lower().replace("-", "_")
        if name == "start_date":
            value = parse_iso_date(raw)
        elif name == "start_time":
            value = parse_clock_time(raw)
        elif name in ("hours_per_day", "total_hours"):
            value = parse_hours(raw)
        elif name == "weekdays":
            value = frozenset(parse_weekday(d) for d in re.split(r"[,\s]+", raw.strip()) if d)
        elif name == "excluded_dates":
            value = frozenset(parse_iso_date(d).isoformat() for d in re.split(r"[,\s]+", raw.strip()) if d)
        else:
            raise ValueError(f"Unknown input field: {name}")
        return self.update_input(**{name: value})

    def toggle_weekday(self, day: Union[str, int]) -> List[Session]:
        weekday = parse_weekday(day)
        return self.update_input(weekdays=self.schedule_input.weekdays ^ {weekday})

    def add_excluded_date(self, day: Union[str, date]) -> List[Session]:
        day_str = parse_iso_date(day).isoformat()
        if day_str in self.schedule_input.excluded_dates:
            return self.sessions
        return self.update_input(excluded_dates=self.schedule_input.excluded_dates | {day_str})

    def remove_excluded_date(self, day: Union[str, date]) -> List[Session]:
        day_str = parse_iso_date(day).isoformat()
        return self.update_input(excluded_dates=self.schedule_input.excluded_dates - {day_str})

    def session_at(self, number: int) -> Session:
        """Get a session by its displayed position"""
        for session in self.sessions:
            if session.number == number:
                return session
        raise SessionNotFoundError(f"No session #{number}")

    def edit_session(self, number: int, field: str, value: Any) -> List[Session]:
        uid = self.session_at(number).uid
        self.sessions = update_session(self.sessions, uid, field, value, self.total_hours)
        self.logger.debug(f"Edited session #{number}: {field} = {value}")
        return self.sessions

    def add_session_above(self, number: int) -> List[Session]:
        uid = self.session_at(number).uid
        self.sessions = insert_session_above(self.sessions, uid, self.total_hours)
        self.logger.debug(f"Inserted session above #{number}")
        return self.sessions

    def remove_session(self, number: int) -> List[Session]:
        uid = self.session_at(number).uid
        self.sessions = remove_session(self.sessions, uid, self.total_hours)
        self.logger.debug(f"Removed session #{number}")
        return self.sessions

    def load_course(self, path: Path, defaults: Optional[ScheduleInput] = None) -> Tuple[CourseInfo, ScheduleInput]:
        """Load a course file, replacing the course, inputs and sessions"""
        self.logger.debug(f"Loading course from {path}")
        course, schedule_input = self._parse_file(path, defaults)
        self.course = course
        self.schedule_input = schedule_input
        self.sessions = []
        self.regenerate()
        return course, schedule_input

    def _parse_file(self, path: Path, defaults: Optional[ScheduleInput] = None) -> Tuple[CourseInfo, ScheduleInput]:
        """Parse a course file into course info and schedule inputs"""
        try:
            with open(path, "rb") as f:
                data = tomli.load(f)
            self.logger.debug(f"Loaded course file from {path}")
        except (OSError, tomli.TOMLDecodeError) as e:
            self.logger.error(f"Failed to load course file from {path}: {e}")
            raise ValueError(f"Failed to load course file: {e}")

        return self._parse_course(data, defaults)

    def _parse_course(self, data: Dict[str, Any], defaults: Optional[ScheduleInput] = None) -> Tuple[CourseInfo, ScheduleInput]:
        defaults = defaults or ScheduleInput(start_date=None)

        course_data = data.get("course", {})
        if not isinstance(course_data, dict):
            raise ValueError("The [course] section must be a table")
        course = CourseInfo(
            name=str(course_data.get("name", "")),
            trainee=str(course_data.get("trainee", ""))
        )

        sched = data.get("schedule", {})
        if not isinstance(sched, dict):
            raise ValueError("The [schedule] section must be a table")

        try:
            start_date = parse_iso_date(sched["start_date"]) if sched.get("start_date") else defaults.start_date
            start_time = parse_clock_time(sched["start_time"]) if "start_time" in sched else defaults.start_time
            hours_per_day = parse_hours(sched["hours_per_day"]) if "hours_per_day" in sched else defaults.hours_per_day
            total_hours = parse_hours(sched["total_hours"]) if "total_hours" in sched else defaults.total_hours
            if "weekdays" in sched:
                weekdays = frozenset(parse_weekday(d) for d in sched["weekdays"])
            else:
                weekdays = defaults.weekdays
            excluded = frozenset(parse_iso_date(d).isoformat() for d in sched.get("excluded_dates", []))
        except (TypeError, ValueError) as e:
            self.logger.error(f"Invalid value in [schedule] section: {e}")
            raise ValueError(f"Invalid value in [schedule] section: {e}")

        schedule_input = ScheduleInput(
            start_date=start_date,
            hours_per_day=hours_per_day,
            total_hours=total_hours,
            weekdays=weekdays,
            excluded_dates=excluded,
            start_time=start_time,
        )
        self.logger.debug("Course file parsed successfully")
        return course, schedule_input

    def dump_inputs(self) -> Dict[str, Any]:
        """The current inputs as plain data, shaped like a course file"""
        si = self.schedule_input
        schedule = {
            "start_time": si.start_time.strftime("%H:%M"),
            "hours_per_day": si.hours_per_day,
            "total_hours": si.total_hours,
            "weekdays": [WEEKDAY_NAMES[d] for d in sorted(si.weekdays)],
            "excluded_dates": sorted(si.excluded_dates),
        }
        if si.start_date:
            schedule = {"start_date": si.start_date.isoformat(), **schedule}
        return {
            "course": {"name": self.course.name, "trainee": self.course.trainee},
            "schedule": schedule,
        }

    def validate(self):
        """Validate the inputs and the current sessions together"""
        result = self.validator.validate_input(self.schedule_input)
        result.merge(self.validator.validate_sessions(self.sessions, self.schedule_input))
        return result
