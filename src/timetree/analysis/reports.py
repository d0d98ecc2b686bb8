"""Report generation for the trackable hierarchy."""

from typing import Any, Optional

from rich.console import Console  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]
from rich.text import Text  # type: ignore[import-not-found]
from rich.tree import Tree  # type: ignore[import-not-found]

from timetree.core.models import RGBColor, TrackingState
from timetree.core.store import TrackablesStore
from timetree.core.timevalue import TimeFormat, TimeValue
from timetree.core.timewindow import TimeWindow
from timetree.core.trackables import Project, Trackable


def format_time_value(value: Optional[TimeValue]) -> str:
    """Format a duration for display.

    Args:
        value: Duration, or None for a running interval without an end

    Returns:
        Formatted duration string, in the value's own format
    """
    if value is None:
        return "ongoing"

    hours, minutes, secs = value.components()
    if value.time_format is TimeFormat.S:
        return f"{secs:.0f}s"
    if hours > 0:
        return f"{hours}h {minutes}m {int(secs)}s"
    if minutes > 0:
        return f"{minutes}m {int(secs)}s"
    return f"{int(secs)}s"


def color_style(color: RGBColor) -> str:
    """Rich style string for a trackable color. Black maps to the default."""
    if color.red == color.green == color.blue == 0:
        return "bold"
    return f"bold rgb({color.red},{color.green},{color.blue})"


class ReportGenerator:
    """Generate reports from the trackable hierarchy."""

    def __init__(self, console: Optional[Console] = None, time_format: TimeFormat = TimeFormat.HMS):
        """Initialize report generator.

        Args:
            console: Rich console for output. Creates default if None.
            time_format: Granularity used when printing durations
        """
        self.console = console or Console()
        self.time_format = time_format

    def _label(
        self, trackable: Trackable, window: Optional[TimeWindow], now: Optional[float]
    ) -> Text:
        total = trackable.get_total_tracked_time(self.time_format, window, now)
        label = Text()
        if trackable.tracking_state is TrackingState.ACTIVE:
            label.append("▶ ", style="green")
        label.append(trackable.name, style=color_style(trackable.color))
        label.append(f"  {format_time_value(total)}", style="magenta")
        if isinstance(trackable, Project):
            label.append("  (project)", style="dim")
        return label

    def build_tree(
        self,
        store: TrackablesStore,
        window: Optional[TimeWindow] = None,
        now: Optional[float] = None,
    ) -> Tree:
        """Build a rich Tree of every top-level trackable and its members.

        Top-level means not contained in any project.
        """
        root = Tree("[bold cyan]Trackables[/bold cyan]")
        top_level = [
            trackable
            for trackable in list(store.projects.values()) + list(store.activities.values())
            if not trackable.observers
        ]
        for trackable in sorted(top_level, key=lambda t: t.name.lower()):
            self._add_branch(root, trackable, window, now, set())
        return root

    def _add_branch(
        self,
        parent: Tree,
        trackable: Trackable,
        window: Optional[TimeWindow],
        now: Optional[float],
        seen: set[str],
    ) -> None:
        branch = parent.add(self._label(trackable, window, now))
        if not isinstance(trackable, Project) or trackable.id in seen:
            return
        seen = seen | {trackable.id}
        for member in sorted(trackable.get_trackables(), key=lambda t: t.name.lower()):
            self._add_branch(branch, member, window, now, seen)

    def tree_report(
        self,
        store: TrackablesStore,
        window: Optional[TimeWindow] = None,
        now: Optional[float] = None,
    ) -> None:
        """Display the hierarchy with the total time of every trackable.

        Args:
            store: Store to report on
            window: Optional window applied to every total
            now: Reference time (defaults to the clock)
        """
        if not store.activities and not store.projects:
            self.console.print("[yellow]No trackables yet[/yellow]")
            return
        self.console.print(self.build_tree(store, window, now))

    def span_report(self, selection: list[dict[str, Any]], label: str = "Time span") -> None:
        """Display the result of a time-span query.

        Args:
            selection: Output of ``TimeTracker.get_trackables_within_time_span``
            label: Title of the table
        """
        if not selection:
            self.console.print("[yellow]No tracked time in this span[/yellow]")
            return

        totals = [
            (item, TimeValue.from_dict(item.get("selectedTime"), self.time_format))
            for item in selection
        ]
        grand_total = sum(value.total_seconds for _, value in totals)

        table = Table(title=label)
        table.add_column("Trackable", style="cyan")
        table.add_column("Type", style="dim")
        table.add_column("Intervals", justify="right")
        table.add_column("Time", style="magenta", justify="right")
        table.add_column("% Total", style="green", justify="right")
        table.add_column("Bar", style="blue")

        for item, value in sorted(totals, key=lambda x: x[1].total_seconds, reverse=True):
            pct = (value.total_seconds / grand_total) * 100 if grand_total > 0 else 0
            table.add_row(
                item["name"],
                item["trackableType"],
                str(len(item.get("selectedIntervals", []))),
                format_time_value(value),
                f"{pct:.1f}%",
                self._create_bar(pct),
            )

        self.console.print(table)

    def _create_bar(self, percentage: float, width: int = 25) -> Text:
        """Create a visual bar for percentage display.

        Args:
            percentage: Percentage value (0-100)
            width: Width of the bar in characters

        Returns:
            Rich Text object with colored bar
        """
        filled = int((percentage / 100) * width)
        empty = width - filled

        bar = Text()
        bar.append("█" * filled, style="blue")
        bar.append("░" * empty, style="dim")

        return bar
