"""Main CLI application."""

import json
import re
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any, Iterator, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from timetree import __version__
from timetree.analysis.reports import ReportGenerator, format_time_value
from timetree.cli.api_commands import api
from timetree.cli.config_commands import config
from timetree.core.config import ConfigManager
from timetree.core.logs import setup_logging
from timetree.core.models import RGBColor, TrackingState
from timetree.core.persistence import DEFAULT_STORE_FILE
from timetree.core.storage import StorageManager
from timetree.core.store import NameConflictError
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Project, Trackable
from timetree.core.tracker import TimeTracker

console = Console()
error_console = Console(stderr=True)

_DURATION_RE = re.compile(r"^(?:(?P<hours>\d+)h)?(?:(?P<mins>\d+)m)?(?:(?P<seconds>\d+)s)?$")


def get_tracker(data_dir: Optional[str] = None, store_file: str = DEFAULT_STORE_FILE) -> TimeTracker:
    """Get a TimeTracker with its store loaded from disk."""
    storage = StorageManager(Path(data_dir) if data_dir else None, store_file=store_file)
    tracker = TimeTracker(storage)
    tracker.load_store()
    return tracker


@contextmanager
def open_tracker(ctx: click.Context) -> Iterator[TimeTracker]:
    """Load the tracker for a command and wait for its saves on exit."""
    tracker = get_tracker(ctx.obj.get("data_dir"), ctx.obj.get("store_file", DEFAULT_STORE_FILE))
    try:
        yield tracker
    finally:
        tracker.close()


def fail(message: str) -> None:
    error_console.print(f"[red]Error:[/red] {message}")
    sys.exit(1)


def parse_duration(text: str) -> dict[str, int]:
    """Parse a duration like ``2h30m``, ``45m`` or ``90s``.

    Returns:
        ``{hours, mins, seconds}`` dictionary

    Raises:
        click.BadParameter: If the text is not a duration
    """
    match = _DURATION_RE.match(text.strip().lower())
    if not text.strip() or match is None:
        raise click.BadParameter(f"Invalid duration '{text}'. Use e.g. 2h30m, 45m or 90s")
    return {unit: int(value or 0) for unit, value in match.groupdict().items()}


def parse_color(text: str) -> RGBColor:
    """Parse an ``R,G,B`` color."""
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise click.BadParameter(f"Invalid color '{text}'. Use R,G,B (e.g. 255,128,0)")
    return RGBColor(int(parts[0]), int(parts[1]), int(parts[2]))


def build_window(since: Optional[str], until: Optional[str]) -> Optional[TimeWindow]:
    if since is None and until is None:
        return None
    return TimeWindow.from_dict(
        {
            "since": parse_duration(since) if since else None,
            "until": parse_duration(until) if until else None,
        }
    )


def format_timestamp(seconds: Optional[float]) -> str:
    """Format epoch seconds for display."""
    if seconds is None:
        return "-"
    return datetime.fromtimestamp(seconds).strftime("%Y-%m-%d %H:%M:%S")


def require(tracker: TimeTracker, name_or_id: str) -> Trackable:
    trackable = tracker.resolve(name_or_id)
    if trackable is None:
        fail(f"No trackable named '{name_or_id}'")
    return trackable  # type: ignore[return-value]


@click.group()
@click.version_option(version=__version__)
@click.option("--data-dir", help="Custom data directory", type=click.Path())
@click.option("--no-color", is_flag=True, help="Disable colored output")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Log level (default: from config)",
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[str], no_color: bool, log_level: Optional[str]) -> None:
    """Timetree - hierarchical time tracking.

    Track time against activities, group them into projects, and see how
    the time adds up over any window.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir

    if data_dir is None:
        config_mgr = ConfigManager()
        ctx.obj["data_dir"] = str(config_mgr.data_dir)
        ctx.obj["store_file"] = config_mgr.get("general.store_file", DEFAULT_STORE_FILE)
        ctx.obj["time_format"] = config_mgr.get("display.time_format", "HMS")
        setup_logging(config_mgr, level=log_level)
    elif log_level:
        setup_logging(level=log_level)

    if no_color:
        console.no_color = True


cli.add_command(config)
cli.add_command(api)


def _time_format(ctx: click.Context) -> TimeFormat:
    return TimeFormat(ctx.obj.get("time_format", "HMS"))


# Creation


@cli.command()
@click.argument("name")
@click.option("--color", help="Color as R,G,B")
@click.pass_context
def activity(ctx: click.Context, name: str, color: Optional[str]) -> None:
    """Create a new activity.

    Example:
        timetree activity "Writing" --color 255,128,0
    """
    rgb = parse_color(color) if color else None
    with open_tracker(ctx) as tracker:
        try:
            trackable_id = tracker.create_activity(name, rgb)
        except NameConflictError as e:
            fail(str(e))
        console.print(f"[green]✓[/green] Created activity: {name}")
        console.print(f"  ID: {trackable_id}")


@cli.command()
@click.argument("name")
@click.option("--color", help="Color as R,G,B")
@click.pass_context
def project(ctx: click.Context, name: str, color: Optional[str]) -> None:
    """Create a new project.

    Example:
        timetree project "Thesis"
    """
    rgb = parse_color(color) if color else None
    with open_tracker(ctx) as tracker:
        try:
            trackable_id = tracker.create_project(name, rgb)
        except NameConflictError as e:
            fail(str(e))
        console.print(f"[green]✓[/green] Created project: {name}")
        console.print(f"  ID: {trackable_id}")


# Tracking


@cli.command()
@click.argument("name_or_id")
@click.pass_context
def start(ctx: click.Context, name_or_id: str) -> None:
    """Start tracking an activity or project.

    Whatever was being tracked before is stopped.

    Example:
        timetree start Writing
    """
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, name_or_id)
        result = tracker.start_trackable(trackable.id)
        if result.get("status") == "success":
            console.print(f"[green]▶[/green]  Started tracking: {trackable.name}")
            current = trackable.get_current_interval()
            if current is not None:
                console.print(f"  Started: {format_timestamp(current.start_time)}")
        else:
            console.print(f"[yellow]Already tracking:[/yellow] {trackable.name}")


@cli.command()
@click.argument("name_or_id", required=False)
@click.pass_context
def stop(ctx: click.Context, name_or_id: Optional[str]) -> None:
    """Stop tracking (the current activity by default).

    Example:
        timetree stop
        timetree stop Writing
    """
    with open_tracker(ctx) as tracker:
        if name_or_id is None:
            trackable = tracker.get_trackable(tracker.currently_active_trackable_id or "")
            if trackable is None:
                fail("Nothing is currently being tracked")
        else:
            trackable = require(tracker, name_or_id)

        result = tracker.stop_trackable(trackable.id)  # type: ignore[union-attr]
        duration = result.get("currentIntervalTime")
        console.print(f"[yellow]⏹[/yellow]  Stopped tracking: {trackable.name}")  # type: ignore[union-attr]
        if duration:
            value = TimeValue.from_dict(duration, _time_format(ctx))
            console.print(f"  Duration: {format_time_value(value)}")


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show what is currently being tracked.

    Example:
        timetree status
    """
    with open_tracker(ctx) as tracker:
        trackable = tracker.get_trackable(tracker.currently_active_trackable_id or "")
        if trackable is None or trackable.tracking_state is not TrackingState.ACTIVE:
            console.print("[yellow]Nothing is currently being tracked[/yellow]")
            console.print("\nStart tracking with: [cyan]timetree start NAME[/cyan]")
            return

        time_format = _time_format(ctx)
        current = trackable.get_current_interval()
        content = f"[bold]{trackable.name}[/bold]\n"
        if current is not None:
            content += f"\n[dim]Started:[/dim] {format_timestamp(current.start_time)}"
            content += f"\n[dim]Running:[/dim] {format_time_value(current.duration(time_format))}"
        total = trackable.get_total_tracked_time(time_format)
        content += f"\n[dim]Total:[/dim] {format_time_value(total)}"
        if trackable.observers:
            parents = [tracker.get_trackable(i) for i in sorted(trackable.observers)]
            names = ", ".join(p.name for p in parents if p is not None)
            content += f"\n[dim]Projects:[/dim] {names}"

        console.print(Panel(content, title="Currently Tracking", border_style="green"))


@cli.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def list_trackables(ctx: click.Context, as_json: bool) -> None:
    """List every activity and project.

    Example:
        timetree list
        timetree list --json
    """
    with open_tracker(ctx) as tracker:
        if as_json:
            data = {
                "activities": tracker.get_activity_objects(),
                "projects": tracker.get_project_objects(),
            }
            print(json.dumps(data, indent=2))
            return

        trackables: list[Trackable] = list(tracker.store.activities.values())
        trackables.extend(tracker.store.projects.values())
        if not trackables:
            console.print("[yellow]No trackables yet[/yellow]")
            return

        time_format = _time_format(ctx)
        table = Table(title=f"Trackables ({len(trackables)})")
        table.add_column("Name", style="bold")
        table.add_column("Type", style="dim")
        table.add_column("State")
        table.add_column("Total", style="magenta", justify="right")
        table.add_column("Members", style="blue")

        for trackable in sorted(trackables, key=lambda t: t.name.lower()):
            active = trackable.tracking_state is TrackingState.ACTIVE
            members = "-"
            if isinstance(trackable, Project):
                members = ", ".join(m.name for m in trackable.get_trackables()) or "-"
            table.add_row(
                trackable.name,
                trackable.trackable_type.value,
                "[green]▶ tracking[/green]" if active else "■",
                format_time_value(trackable.get_total_tracked_time(time_format)),
                members,
            )

        console.print(table)


# Structure


@cli.command()
@click.argument("project_name")
@click.argument("member_name")
@click.pass_context
def add(ctx: click.Context, project_name: str, member_name: str) -> None:
    """Add a trackable to a project.

    Example:
        timetree add Thesis Writing
    """
    with open_tracker(ctx) as tracker:
        parent = require(tracker, project_name)
        member = require(tracker, member_name)
        if not isinstance(parent, Project):
            fail(f"'{parent.name}' is not a project")
        if not tracker.add_trackable_to_project(parent.id, member.id):
            fail(f"Cannot add '{member.name}' to '{parent.name}'")
        console.print(f"[green]✓[/green] Added {member.name} to {parent.name}")


@cli.command()
@click.argument("project_name")
@click.argument("member_name")
@click.pass_context
def remove(ctx: click.Context, project_name: str, member_name: str) -> None:
    """Remove a trackable from a project.

    Example:
        timetree remove Thesis Writing
    """
    with open_tracker(ctx) as tracker:
        parent = require(tracker, project_name)
        member = require(tracker, member_name)
        if not isinstance(parent, Project) or member.id not in parent.members:
            fail(f"'{member.name}' is not a member of '{parent.name}'")
        tracker.remove_trackables_from_project(parent.id, [member.id])
        console.print(f"[green]✓[/green] Removed {member.name} from {parent.name}")


@cli.command()
@click.argument("old_name")
@click.argument("new_name")
@click.pass_context
def rename(ctx: click.Context, old_name: str, new_name: str) -> None:
    """Rename a trackable.

    Example:
        timetree rename Writing Drafting
    """
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, old_name)
        result = tracker.rename_trackable(trackable.id, new_name)
        if "error" in result:
            fail(result["error"])
        console.print(f"[green]✓[/green] Renamed {old_name} to {new_name}")


@cli.command()
@click.argument("name")
@click.argument("color")
@click.pass_context
def recolor(ctx: click.Context, name: str, color: str) -> None:
    """Change the color of a trackable.

    Example:
        timetree recolor Writing 0,128,255
    """
    rgb = parse_color(color)
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, name)
        tracker.recolor_trackable(trackable.id, rgb)
        console.print(f"[green]✓[/green] Recolored {trackable.name}")


@cli.command()
@click.argument("name")
@click.option("--keep-intervals", is_flag=True, help="Keep the recorded intervals in the store")
@click.pass_context
def delete(ctx: click.Context, name: str, keep_intervals: bool) -> None:
    """Delete a trackable.

    Example:
        timetree delete Writing
    """
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, name)
        tracker.delete_trackable(trackable.id, delete_tracking_intervals=not keep_intervals)
        console.print(f"[green]✓[/green] Deleted {trackable.name}")


@cli.command()
@click.argument("new_name")
@click.argument("names", nargs=-1, required=True)
@click.option("--color", help="Color as R,G,B (default: first trackable's)")
@click.option("--forget-observers", is_flag=True, help="Do not add the result to the old projects")
@click.pass_context
def join(
    ctx: click.Context,
    new_name: str,
    names: tuple[str, ...],
    color: Optional[str],
    forget_observers: bool,
) -> None:
    """Merge trackables into one activity holding all their time.

    Example:
        timetree join Reading Books Papers Articles
    """
    rgb = parse_color(color) if color else None
    with open_tracker(ctx) as tracker:
        ids = [require(tracker, name).id for name in names]
        joined = tracker.join_trackables(new_name, ids, rgb, forget_observers)
        if joined is None:
            fail(f"Could not join {', '.join(names)}")
        console.print(f"[green]✓[/green] Joined {len(ids)} trackables into {new_name}")


@cli.command()
@click.argument("name")
@click.pass_context
def convert(ctx: click.Context, name: str) -> None:
    """Turn an activity into a project, or a project into an activity.

    Example:
        timetree convert Writing
    """
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, name)
        if isinstance(trackable, Project):
            result = tracker.convert_project_to_activity(trackable.id)
            target = "an activity"
        else:
            result = tracker.convert_activity_to_project(trackable.id)
            target = "a project"
        if result is None:
            fail(f"Could not convert '{name}'")
        console.print(f"[green]✓[/green] Converted {name} to {target}")


# Queries


@cli.command()
@click.argument("name")
@click.option("--since", help="Only count time since this long ago (e.g. 8h)")
@click.option("--until", help="Only count time until this long ago (e.g. 1h)")
@click.pass_context
def total(ctx: click.Context, name: str, since: Optional[str], until: Optional[str]) -> None:
    """Show the total tracked time of a trackable.

    Example:
        timetree total Thesis
        timetree total Thesis --since 24h
    """
    window = build_window(since, until)
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, name)
        value = trackable.get_total_tracked_time(_time_format(ctx), window)
        console.print(f"[bold]{trackable.name}[/bold]: {format_time_value(value)}")


@cli.command()
@click.option("--since", help="Window start, as a duration ago (e.g. 8h)")
@click.option("--until", help="Window end, as a duration ago (e.g. 1h)")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def span(ctx: click.Context, since: Optional[str], until: Optional[str], as_json: bool) -> None:
    """List the trackables that recorded time in a window.

    Example:
        timetree span --since 6h
        timetree span --since 6h --until 3h
    """
    window: dict[str, Any] = {
        "since": parse_duration(since) if since else None,
        "until": parse_duration(until) if until else None,
    }
    with open_tracker(ctx) as tracker:
        selection = tracker.get_trackables_within_time_span(window)
        if as_json:
            print(json.dumps(selection, indent=2))
            return
        ReportGenerator(console, _time_format(ctx)).span_report(selection)


@cli.command()
@click.argument("name")
@click.pass_context
def intervals(ctx: click.Context, name: str) -> None:
    """List the intervals recorded against a trackable.

    Example:
        timetree intervals Writing
    """
    with open_tracker(ctx) as tracker:
        trackable = require(tracker, name)
        history = trackable.get_tracking_history()
        if not history:
            console.print(f"[yellow]No intervals recorded for {trackable.name}[/yellow]")
            return

        time_format = _time_format(ctx)
        table = Table(title=f"Intervals of {trackable.name} ({len(history)})")
        table.add_column("ID", style="dim")
        table.add_column("Start", style="cyan")
        table.add_column("End", style="cyan")
        table.add_column("Duration", style="magenta", justify="right")

        for interval in history:
            end = "ongoing" if interval.is_active else format_timestamp(interval.end_time)
            table.add_row(
                interval.id[:8],
                format_timestamp(interval.start_time),
                end,
                format_time_value(interval.duration(time_format)),
            )

        console.print(table)


@cli.command()
@click.option("--since", help="Only count time since this long ago (e.g. 168h)")
@click.option("--until", help="Only count time until this long ago")
@click.pass_context
def report(ctx: click.Context, since: Optional[str], until: Optional[str]) -> None:
    """Show the trackable hierarchy with total times.

    Example:
        timetree report
        timetree report --since 24h
    """
    window = build_window(since, until)
    with open_tracker(ctx) as tracker:
        ReportGenerator(console, _time_format(ctx)).tree_report(tracker.store, window)


if __name__ == "__main__":
    cli(obj={})
