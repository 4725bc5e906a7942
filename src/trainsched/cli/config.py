"""
Command group of config-related commands for the trainsched CLI
"""

import typer
from pathlib import Path
from rich.console import Console
from typing_extensions import Annotated

from trainsched.cli.utils import print_validation
from trainsched.models import WEEKDAY_NAMES
from trainsched.schedule import parse_clock_time, parse_hours, parse_weekday


console = Console()
app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Manage trainsched configuration",
)

SETTABLE_KEYS = ("start_time", "hours_per_day", "total_hours", "weekdays", "export_dir")


@app.command(
    rich_help_panel="📋 View & Edit"
)
def show(
    ctx: typer.Context
):
    """Prints the config in a human-readable format"""

    config_manager = ctx.obj.get("config_manager")
    defaults = config_manager.get_defaults()

    console.print("\n[bold cyan]Defaults[/]\n")
    console.print(f"  🕒 Start time: [yellow]{defaults.start_time.strftime('%H:%M')}[/]")
    console.print(f"  ⏱️ Hours per day: [yellow]{defaults.hours_per_day:g}[/]")
    console.print(f"  📚 Total hours: [yellow]{defaults.total_hours:g}[/]")
    days = ", ".join(WEEKDAY_NAMES[d].capitalize() for d in sorted(defaults.weekdays))
    console.print(f"  📅 Weekdays: [yellow]{days or 'none'}[/]")

    console.print("\n[bold cyan]Export[/]\n")
    console.print(f"  📂 Directory: [dim]{config_manager.get_export_dir()}[/]\n")

    # Validate and show any issues
    validation = config_manager.validate_config()
    if validation.failed or validation.warnings:
        console.print("[bold yellow]Configuration Issues:[/]")
        print_validation(console, validation)


@app.command(
    name="set",
    rich_help_panel="📋 View & Edit",
    no_args_is_help=True,
)
def set_value(
    ctx: typer.Context,
    key: Annotated[str, typer.Argument(help=f"One of: {', '.join(SETTABLE_KEYS)}", show_default=False)],
    value: Annotated[str, typer.Argument(help="New value (weekdays as a comma-separated list)", show_default=False)],
):
    """Sets a default input value or the export directory"""

    config_manager = ctx.obj.get("config_manager")
    key = key.strip().lower().replace("-", "_")

    try:
        if key == "start_time":
            saved = config_manager.set_default(key, parse_clock_time(value))
        elif key in ("hours_per_day", "total_hours"):
            hours = parse_hours(value)
            if hours <= 0:
                raise ValueError(f"{key} must be greater than zero")
            saved = config_manager.set_default(key, hours)
        elif key == "weekdays":
            days = {parse_weekday(d) for d in value.replace(",", " ").split()}
            if not days:
                raise ValueError("Give at least one weekday")
            saved = config_manager.set_default(key, days)
        elif key == "export_dir":
            saved = config_manager.set_export_dir(Path(value).expanduser())
        else:
            console.print(f"🚫 Unknown key '{key}'. Choose one of: {', '.join(SETTABLE_KEYS)}")
            raise typer.Exit(code=1)
    except ValueError as e:
        console.print(f"[red]Error:[/] {str(e)}")
        raise typer.Exit(code=1)

    if saved:
        console.print(f"✅ Saved [cyan]{key}[/] = [yellow]{value}[/]")
    else:
        console.print("🚫 Could not save the configuration (run with --verbose for details)")
        raise typer.Exit(code=1)


@app.command(
    rich_help_panel="📋 View & Edit"
)
def path(
    ctx: typer.Context
):
    """Prints the location of the config file"""

    config_manager = ctx.obj.get("config_manager")
    typer.echo(str(config_manager.config_file_path))
