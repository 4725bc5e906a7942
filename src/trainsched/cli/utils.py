"""
Utility functions for the CLI.
"""

import sys
import logging
from pathlib import Path
from datetime import date
from typing import List, Optional, Sequence
from rich.console import Console
from rich.table import Table
from rich.box import ROUNDED
from rich.markup import escape

from trainsched.config import ConfigManager
from trainsched.export import SpreadsheetExporter, DocumentExporter, ExportUnavailableError, format_hours
from trainsched.models import CourseInfo, Session, ValidationResult
from trainsched.schedule import ScheduleManager, parse_iso_date, parse_clock_time, parse_weekday


def get_app_state(verbose: bool) -> dict:
    """
    Get the current state of the application
    """

    console = Console()

    logger = logging.getLogger("trainsched")
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = logging.INFO
    logging.basicConfig(
        level=log_level,
        format="(%(name)s) %(message)s",
    )

    # Initialize configuration
    try:
        config_manager = ConfigManager()
    except (OSError, ValueError) as e:
        console.print(f"[red]Error loading configuration:[/] {str(e)}")
        sys.exit(1)

    return {
        "console": console,
        "logger": logger,
        "config_manager": config_manager,
        "spreadsheet": SpreadsheetExporter(),
        "document": DocumentExporter(),
    }


def build_manager(
    config_manager: ConfigManager,
    course_file: Optional[Path] = None,
    start: Optional[str] = None,
    start_time: Optional[str] = None,
    hours_per_day: Optional[float] = None,
    total_hours: Optional[float] = None,
    weekdays: Optional[List[str]] = None,
    excluded: Optional[List[str]] = None,
    course_name: Optional[str] = None,
    trainee: Optional[str] = None,
) -> ScheduleManager:
    """Resolve inputs from config defaults, then the course file, then command-line options"""

    defaults = config_manager.get_defaults()
    manager = ScheduleManager(schedule_input=defaults)
    if course_file is not None:
        manager.load_course(course_file, defaults)

    changes = {}
    if start is not None:
        changes["start_date"] = parse_iso_date(start)
    if start_time is not None:
        changes["start_time"] = parse_clock_time(start_time)
    if hours_per_day is not None:
        changes["hours_per_day"] = hours_per_day
    if total_hours is not None:
        changes["total_hours"] = total_hours
    if weekdays:
        changes["weekdays"] = frozenset(parse_weekday(d) for d in weekdays)
    if excluded:
        changes["excluded_dates"] = manager.schedule_input.excluded_dates | {parse_iso_date(d).isoformat() for d in excluded}
    if changes:
        manager.update_input(**changes)

    if course_name is not None:
        manager.course.name = course_name
    if trainee is not None:
        manager.course.trainee = trainee

    return manager


def render_schedule(course: CourseInfo, sessions: Sequence[Session]) -> Table:
    """Build the rich table shown for a schedule"""

    table = Table(
        title=f"{escape(course.name or 'Course Name')} [dim]· {escape(course.trainee or 'Trainee Name')}[/]",
        caption=f"Generated: {date.today().isoformat()}",
        header_style="bold",
        box=ROUNDED,
        show_header=True,
        border_style="dim"
    )
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Date", justify="left")
    table.add_column("Day", style="dim", justify="left")
    table.add_column("Start", justify="left")
    table.add_column("End", justify="left")
    table.add_column("Hours", style="yellow", justify="right")
    table.add_column("Remaining", style="green", justify="right")

    for s in sessions:
        table.add_row(
            str(s.number),
            s.date.isoformat(),
            s.date.strftime("%a"),
            s.start_time.strftime("%H:%M"),
            s.end_time.strftime("%H:%M"),
            format_hours(s.hours),
            format_hours(s.remaining),
        )

    return table


def print_validation(console: Console, result: ValidationResult) -> None:
    """Print validation errors and warnings"""

    for key, messages in result.errors.items():
        for item in messages:
            console.print(f"  ❗ [red]{key.upper()}:[/] {escape(item)}")
    for key, messages in result.warnings.items():
        for item in messages:
            console.print(f"  ⚠️ [yellow]{key.upper()}:[/] {escape(item)}")


def run_export(state: dict, kind: str, manager: ScheduleManager, output_dir: Optional[Path] = None) -> Optional[Path]:
    """Export to xlsx or pdf; a missing library is reported, not raised"""

    console = state["console"]
    exporter = state["spreadsheet"] if kind == "xlsx" else state["document"]
    directory = output_dir or state["config_manager"].get_export_dir()

    if not manager.sessions:
        console.print("[yellow]Nothing to export, the schedule is empty[/]")
        return None

    try:
        path = exporter.export(manager.course, manager.sessions, directory)
    except ExportUnavailableError as e:
        console.print(f"[yellow]⚠️ {e}[/]")
        return None
    except OSError as e:
        console.print(f"[red]Error writing {kind} file:[/] {str(e)}")
        return None

    console.print(f"✅ Exported to [green]{path}[/]")
    return path
