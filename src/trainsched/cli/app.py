"""
Main application entry point for the trainsched CLI
"""

import json
import shlex
import typer
import tomli_w
from pathlib import Path
from typing import List, Optional
from rich.console import Console
from rich.prompt import Prompt
from rich.markup import escape
from typing_extensions import Annotated

from trainsched.cli import config
from trainsched.cli.utils import get_app_state, build_manager, render_schedule, print_validation, run_export
from trainsched.schedule import ScheduleManager, SessionNotFoundError, EDITABLE_FIELDS


console = Console()

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Generate, edit and export training course schedules",
)

app.add_typer(config.app, name="config", help="Manage trainsched configuration", rich_help_panel="⚙️ Settings")


CourseFileArg = Annotated[Optional[Path], typer.Argument(help="Course file (TOML) with [course] and [schedule] sections", show_default=False, exists=True, dir_okay=False)]
StartOpt = Annotated[Optional[str], typer.Option("--start", "-s", help="Start date (YYYY-MM-DD)", show_default=False)]
StartTimeOpt = Annotated[Optional[str], typer.Option("--start-time", "-t", help="Daily start time, e.g. 09:00 or 9:30 AM", show_default=False)]
HoursPerDayOpt = Annotated[Optional[float], typer.Option("--hours-per-day", "-d", help="Hours scheduled on each training day", show_default=False)]
TotalHoursOpt = Annotated[Optional[float], typer.Option("--total-hours", "-T", help="Total course hours", show_default=False)]
WeekdayOpt = Annotated[Optional[List[str]], typer.Option("--weekday", "-w", help="Allowed weekday (mon, tue, ... or 0=Sunday..6); repeatable", show_default=False)]
ExcludeOpt = Annotated[Optional[List[str]], typer.Option("--exclude", "-x", help="Date to skip (YYYY-MM-DD); repeatable", show_default=False)]
CourseOpt = Annotated[Optional[str], typer.Option("--course", help="Course name", show_default=False)]
TraineeOpt = Annotated[Optional[str], typer.Option("--trainee", help="Trainee name", show_default=False)]


def _load(ctx: typer.Context, course_file, start, start_time, hours_per_day, total_hours, weekday, exclude, course, trainee) -> ScheduleManager:
    """Build the schedule manager or exit with the error shown"""
    try:
        return build_manager(
            ctx.obj["config_manager"], course_file,
            start=start, start_time=start_time,
            hours_per_day=hours_per_day, total_hours=total_hours,
            weekdays=weekday, excluded=exclude,
            course_name=course, trainee=trainee,
        )
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        raise typer.Exit(code=1)


def _show(manager: ScheduleManager) -> None:
    if not manager.sessions:
        if not manager.schedule_input.can_generate:
            console.print("🚫 No schedule yet. Set a start date and at least one weekday.")
        else:
            console.print("🚫 The schedule is empty")
        return
    console.print(render_schedule(manager.course, manager.sessions))


@app.command(rich_help_panel="📋 Main Commands")
def generate(
    ctx: typer.Context,
    course_file: CourseFileArg = None,
    start: StartOpt = None,
    start_time: StartTimeOpt = None,
    hours_per_day: HoursPerDayOpt = None,
    total_hours: TotalHoursOpt = None,
    weekday: WeekdayOpt = None,
    exclude: ExcludeOpt = None,
    course: CourseOpt = None,
    trainee: TraineeOpt = None,
    xlsx: bool = typer.Option(False, "--xlsx", help="Export the schedule to Excel"),
    pdf: bool = typer.Option(False, "--pdf", help="Export the schedule to PDF"),
    output_dir: Optional[Path] = typer.Option(None, "--output-dir", "-o", help="Directory for exported files", show_default=False, file_okay=False),
):
    """Generates a session schedule and prints it"""

    manager = _load(ctx, course_file, start, start_time, hours_per_day, total_hours, weekday, exclude, course, trainee)

    validation = manager.validator.validate_input(manager.schedule_input)
    if validation.failed or validation.warnings:
        print_validation(console, validation)
        if validation.failed:
            raise typer.Exit(code=1)

    _show(manager)

    if xlsx:
        run_export(ctx.obj, "xlsx", manager, output_dir)
    if pdf:
        run_export(ctx.obj, "pdf", manager, output_dir)


EDIT_HELP = """[bold]Commands[/]
  [cyan]show[/]                       print the schedule
  [cyan]set N FIELD VALUE[/]          edit session N ({fields})
  [cyan]add N[/]                      insert an empty session above session N
  [cyan]remove N[/]                   remove session N
  [cyan]input FIELD VALUE[/]          change an input (start_date, start_time, hours_per_day,
                             total_hours, weekdays, excluded_dates); regenerates
  [cyan]day DAY[/]                    toggle an allowed weekday
  [cyan]exclude DATE[/] / [cyan]include DATE[/]  add or remove an excluded date
  [cyan]regen[/]                      regenerate from the inputs, discarding edits
  [cyan]check[/]                      list sessions that break the inputs' rules
  [cyan]xlsx[/] / [cyan]pdf[/]                 export
  [cyan]inputs[/]                     print the inputs as TOML
  [cyan]quit[/]                       leave""".format(fields=", ".join(EDITABLE_FIELDS))


def _session_number(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"Session number must be an integer: {raw}")


def handle_edit_command(state: dict, manager: ScheduleManager, line: str) -> bool:
    """Apply one interactive command; returns False when the loop should end"""

    args = shlex.split(line)
    if not args:
        return True
    command, rest = args[0].lower(), args[1:]

    if command in ("quit", "exit", "q"):
        return False
    elif command == "help":
        console.print(EDIT_HELP)
        return True
    elif command == "show":
        _show(manager)
        return True
    elif command == "inputs":
        console.print(tomli_w.dumps(manager.dump_inputs()), markup=False, highlight=False)
        return True
    elif command == "check":
        result = manager.validate()
        if result.messages:
            print_validation(console, result)
        else:
            console.print("✅ No issues found")
        return True
    elif command in ("xlsx", "pdf"):
        run_export(state, command, manager)
        return True

    if command == "set" and len(rest) >= 3:
        manager.edit_session(_session_number(rest[0]), rest[1].lower(), " ".join(rest[2:]))
    elif command == "add" and len(rest) == 1:
        manager.add_session_above(_session_number(rest[0]))
    elif command == "remove" and len(rest) == 1:
        manager.remove_session(_session_number(rest[0]))
    elif command == "input" and len(rest) >= 2:
        manager.set_input_value(rest[0], " ".join(rest[1:]))
    elif command == "day" and len(rest) == 1:
        manager.toggle_weekday(rest[0])
    elif command == "exclude" and len(rest) == 1:
        manager.add_excluded_date(rest[0])
    elif command == "include" and len(rest) == 1:
        manager.remove_excluded_date(rest[0])
    elif command == "regen":
        manager.regenerate()
    else:
        console.print(f"🚫 Unknown command or wrong arguments: {escape(line)}  [dim](type 'help')[/]")
        return True

    _show(manager)
    return True


@app.command(rich_help_panel="📋 Main Commands")
def edit(
    ctx: typer.Context,
    course_file: CourseFileArg = None,
    start: StartOpt = None,
    start_time: StartTimeOpt = None,
    hours_per_day: HoursPerDayOpt = None,
    total_hours: TotalHoursOpt = None,
    weekday: WeekdayOpt = None,
    exclude: ExcludeOpt = None,
    course: CourseOpt = None,
    trainee: TraineeOpt = None,
):
    """Generates a schedule and opens an interactive editor for it"""

    manager = _load(ctx, course_file, start, start_time, hours_per_day, total_hours, weekday, exclude, course, trainee)

    _show(manager)
    console.print("\n✨ Type [cyan]help[/] for commands, [cyan]quit[/] to leave\n")

    while True:
        try:
            line = Prompt.ask("[bold]trainsched[/]", console=console, default="", show_default=False)
        except EOFError:
            break
        try:
            if not handle_edit_command(ctx.obj, manager, line):
                break
        except (ValueError, SessionNotFoundError) as e:
            console.print(f"[red]Error:[/] {str(e)}")


@app.command(rich_help_panel="📋 Main Commands")
def inputs(
    ctx: typer.Context,
    course_file: CourseFileArg = None,
    start: StartOpt = None,
    start_time: StartTimeOpt = None,
    hours_per_day: HoursPerDayOpt = None,
    total_hours: TotalHoursOpt = None,
    weekday: WeekdayOpt = None,
    exclude: ExcludeOpt = None,
    course: CourseOpt = None,
    trainee: TraineeOpt = None,
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of TOML"),
):
    """Prints the resolved inputs (usable as a course file)"""

    manager = _load(ctx, course_file, start, start_time, hours_per_day, total_hours, weekday, exclude, course, trainee)
    data = manager.dump_inputs()

    if as_json:
        typer.echo(json.dumps(data, indent=2))
    else:
        typer.echo(tomli_w.dumps(data))


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-V", help="Enable verbose output"),
    version: bool = typer.Option(False, "--version", "-v", help="Show version information"),
):

    if version:
        from importlib.metadata import version as pkg_version
        console.print(f"trainsched v{pkg_version('trainsched')}")
        raise typer.Exit()

    # Initialize the application state
    ctx.obj = get_app_state(verbose=verbose)


if __name__ == "__main__":
    app()
