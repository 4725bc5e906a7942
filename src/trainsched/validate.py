# validate.py
import logging
from datetime import datetime, timedelta, date, time
from typing import List, Dict, Any, Optional
from difflib import get_close_matches

from trainsched.models import (
    ScheduleInput, Session, ValidationResult,
    WEEKDAY_NAMES, weekday_index
)

CONFIG_DEFAULT_KEYS = {"start_time", "hours_per_day", "total_hours", "weekdays"}
CONFIG_SECTIONS = {"defaults", "export"}


def _format_hours(hours: float) -> str:
    """Format an hour count without trailing zeros"""
    return f"{hours:g}h"


class ScheduleValidator:
    """Validator for course inputs and edited session lists"""

    def __init__(self):
        self.logger = logging.getLogger(__name__)

    def validate_input(self, schedule_input: ScheduleInput) -> ValidationResult:
        """Check the inputs before generating"""
        result = ValidationResult()

        if schedule_input.start_date is None:
            result.add("input_start_date", "error", "Start date is not set")

        if schedule_input.hours_per_day <= 0:
            result.add("input_hours_per_day", "error", "Hours per day must be greater than zero")
        elif schedule_input.hours_per_day > 24:
            result.add("input_hours_per_day", "warning", f"{_format_hours(schedule_input.hours_per_day)} per day is more than a full day")

        if schedule_input.total_hours <= 0:
            result.add("input_total_hours", "error", "Total hours must be greater than zero")

        if not schedule_input.weekdays:
            result.add("input_weekdays", "error", "Select at least one weekday")
        for day in schedule_input.weekdays:
            if not isinstance(day, int) or not 0 <= day <= 6:
                result.add("input_weekdays", "error", f"Invalid weekday index: {day}")

        for excluded in sorted(schedule_input.excluded_dates):
            try:
                excluded_date = date.fromisoformat(excluded)
            except ValueError:
                result.add("input_excluded_dates", "error", f"Invalid excluded date: {excluded}")
                continue
            if schedule_input.start_date and excluded_date < schedule_input.start_date:
                result.add("input_excluded_dates", "warning", f"Excluded date {excluded} is before the start date")

        # A session longer than what is left of the day wraps past midnight
        if 0 < schedule_input.hours_per_day <= 24:
            start = datetime.combine(date.min, schedule_input.start_time)
            end = start + timedelta(hours=schedule_input.hours_per_day)
            if end.date() != start.date() and end.time() != time(0, 0):
                result.add("input_start_time", "warning", "Sessions will end after midnight")

        self.logger.debug(f"Input validation: {len(result.errors)} error(s), {len(result.warnings)} warning(s)")
        return result

    def validate_sessions(self, sessions: List[Session], schedule_input: ScheduleInput) -> ValidationResult:
        """Report where edited sessions no longer match the generation constraints

        Edits are allowed to break these rules, so everything here is a warning.
        """
        result = ValidationResult()
        previous: Optional[Session] = None

        for session in sessions:
            label = f"Session #{session.number} ({session.date.isoformat()})"
            if weekday_index(session.date) not in schedule_input.weekdays:
                day_name = WEEKDAY_NAMES[weekday_index(session.date)].capitalize()
                result.add("session_weekday", "warning", f"{label} falls on {day_name}, which is not a selected weekday")
            if session.date.isoformat() in schedule_input.excluded_dates:
                result.add("session_excluded", "warning", f"{label} is on an excluded date")
            if session.end_time <= session.start_time and session.hours > 0:
                result.add("session_times", "warning", f"{label} ends at or before its start time")
            if previous is not None and session.date < previous.date:
                result.add("session_order", "warning", f"{label} is earlier than session #{previous.number}")
            previous = session

        allocated = round(sum(s.hours for s in sessions), 6)
        if sessions and allocated != round(schedule_input.total_hours, 6):
            result.add(
                "session_total", "warning",
                f"Sessions add up to {_format_hours(allocated)} but the course needs {_format_hours(schedule_input.total_hours)}"
            )

        return result


class Validator:
    """Validates the config file contents"""

    def __init__(self):
        self.logger = logging.getLogger("trainsched.validate")
        self.logger.debug("🔧 Initializing Validator")

    def validate_config(self, config: Dict[str, Any]) -> ValidationResult:
        """Validate config.toml contents"""
        result = ValidationResult()

        for section in config:
            if section not in CONFIG_SECTIONS:
                close_matches = get_close_matches(section, CONFIG_SECTIONS, n=1, cutoff=0.6)
                if close_matches:
                    result.add("config_section", "warning", f"Unknown section [{section}]. Did you mean [{close_matches[0]}]?")
                else:
                    result.add("config_section", "warning", f"Unknown section [{section}]")

        defaults = config.get("defaults", {})
        if not isinstance(defaults, dict):
            result.add("config_defaults", "error", "[defaults] must be a table")
            return result

        for key in defaults:
            if key not in CONFIG_DEFAULT_KEYS:
                result.add("config_defaults", "warning", f"Unknown key in [defaults]: {key}")

        for key in ("hours_per_day", "total_hours"):
            if key in defaults:
                value = defaults[key]
                if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                    result.add("config_defaults", "error", f"'{key}' must be a positive number")

        if "start_time" in defaults:
            try:
                time.fromisoformat(str(defaults["start_time"]))
            except ValueError:
                result.add("config_defaults", "error", f"'start_time' must be HH:MM (got {defaults['start_time']!r})")

        if "weekdays" in defaults:
            weekdays = defaults["weekdays"]
            if not isinstance(weekdays, list) or not weekdays:
                result.add("config_defaults", "error", "'weekdays' must be a non-empty list")
            else:
                for day in weekdays:
                    if isinstance(day, bool) or not isinstance(day, int) or not 0 <= day <= 6:
                        result.add("config_defaults", "error", f"Invalid weekday in defaults: {day!r} (use 0=Sunday..6=Saturday)")

        export = config.get("export", {})
        if not isinstance(export, dict):
            result.add("config_export", "error", "[export] must be a table")
        elif "directory" in export and not isinstance(export["directory"], str):
            result.add("config_export", "error", "'directory' must be a string path")

        return result
