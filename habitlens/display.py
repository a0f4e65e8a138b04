"""Rich terminal formatting helpers."""

from __future__ import annotations

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from habitlens.insights import focus_areas, quit_performance_label, trigger_risk_label
from habitlens.models import Habit, PeriodRange, ReportPeriod
from habitlens.report import PeriodReportData, classify_habit

console = Console()


def format_range(period: PeriodRange) -> str:
    """Human-readable range title, e.g. ``Oct 13 - Oct 19, 2026``."""
    start, end = period.start, period.end
    if period.period == ReportPeriod.DAY or start == end:
        return f"{start:%A}, {start:%b} {start.day}, {start.year}"
    if period.period == ReportPeriod.MONTH:
        return f"{start:%B %Y}"
    return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"


def format_delta(delta: float, unit: str = "%") -> str:
    """Signed change; rates (0-1) are shown as percentage points."""
    value = delta * 100 if unit == "%" else delta
    return f"{'+' if value >= 0 else ''}{value:.1f}{unit}"


def _pct(rate: float) -> str:
    return f"{rate * 100:.0f}%"


def _signed(value: int) -> str:
    return f"{'+' if value >= 0 else ''}{value}"


def print_report(report: PeriodReportData) -> None:
    """Print the full period report."""
    title = "Quit Report" if report.is_quit_mode else "Habit Report"
    if report.selected_quit_habit is not None:
        title = f"{title}: {report.selected_quit_habit.title}"
    console.print(Panel(format_range(report.current_range), title=title, border_style="blue"))

    print_stats(report)
    print_focus_areas(report)
    if report.is_quit_mode or report.temptation_total:
        print_trigger_table(report)
        print_temptation_days(report)
    print_completion_types(report)


def print_stats(report: PeriodReportData) -> None:
    """Print the headline numbers with their change against the previous period."""
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("metric", style="dim")
    table.add_column("value", style="bold")
    table.add_column("change")

    best = report.best_day
    best_label = "N/A" if best is None else f"{best.date:%a} {_pct(best.completion_rate)}"

    table.add_row("Completion", _pct(report.completion_rate), format_delta(report.completion_delta))
    table.add_row("Done / due", f"{report.completed}/{report.total_due}", "")
    table.add_row("Skipped", str(report.skipped), "")
    table.add_row("Missed", str(report.missed), "")
    table.add_row("Pending", str(report.pending), "")
    table.add_row(
        "Net points",
        _signed(report.net_points),
        _signed(report.net_points - report.previous_net_points),
    )
    table.add_row("Best day", best_label, "")
    table.add_row("Habits completed", str(report.unique_completed_habits), "")

    if report.is_quit_mode:
        score = report.quit_performance_score
        table.add_row(
            "Quit performance",
            f"{score:.0f} ({quit_performance_label(score)})",
            format_delta(report.quit_performance_delta, unit=" pts"),
        )
        table.add_row("Urges", str(report.temptation_total), "")
        table.add_row(
            "Resisted",
            f"{report.temptation_resisted} ({_pct(report.resistance_rate)})",
            format_delta(report.resistance_rate_delta),
        )

    console.print(Panel(table, title="Summary", border_style="green"))


def print_focus_areas(report: PeriodReportData) -> None:
    """Print the insight cards."""
    lines = [f"[bold]{card.title}[/bold]: {card.description}" for card in focus_areas(report)]
    title = "Recovery Insights" if report.is_quit_mode else "Actionable Insights"
    console.print(Panel("\n".join(lines), title=title, border_style="magenta"))


def print_trigger_table(report: PeriodReportData) -> None:
    """Print per-trigger urge / slip counts."""
    insights = report.temptation_trigger_insights
    if not insights:
        console.print(Panel("No temptation logs in this period.", title="Triggers", border_style="dim"))
        return

    table = Table(box=None, pad_edge=False)
    table.add_column("Trigger")
    table.add_column("Urges", justify="right")
    table.add_column("Resisted", justify="right")
    table.add_column("Slipped", justify="right")
    table.add_column("Risk")
    for item in insights:
        table.add_row(
            item.trigger,
            str(item.total),
            str(item.resisted),
            str(item.slipped),
            f"{trigger_risk_label(item.slip_rate)} ({_pct(item.slip_rate)})",
        )

    footer: list[str] = [f"Trigger control: {_pct(report.trigger_control_score)}"]
    risky = report.highest_risk_trigger
    if risky is not None:
        footer.append(f'Highest risk: "{risky.trigger}"')
    strongest = report.strongest_resisted_trigger
    if strongest is not None:
        footer.append(f'Best resisted: "{strongest.trigger}"')
    intensity = report.peak_temptation_intensity
    if intensity is not None:
        footer.append(f"Typical intensity: {intensity[0]}")
    table.caption = " | ".join(footer)

    console.print(Panel(table, title="Triggers", border_style="yellow"))


def print_temptation_days(report: PeriodReportData) -> None:
    """Print days with temptation activity, busiest first marked."""
    days = report.temptation_days_with_events
    if not days:
        return
    peak = report.peak_temptation_day
    lines: list[str] = []
    for day in days:
        marker = " (peak)" if peak is not None and day.date == peak.date else ""
        lines.append(
            f"{day.date:%a, %b %d}: {day.temptation_total} urges | "
            f"{_pct(day.temptation_resistance_rate)} resisted{marker}"
        )
    lines.append(
        f"Active days: {len(days)}/{len(report.current_days)} | "
        f"Avg/day: {report.average_temptations_per_day:.1f}"
    )
    console.print(Panel("\n".join(lines), title="Temptation Days", border_style="yellow"))


def print_completion_types(report: PeriodReportData) -> None:
    """Print the completion-type breakdown."""
    stats = report.completion_type_breakdown
    if not stats:
        return
    table = Table(box=None, pad_edge=False)
    table.add_column("Type")
    table.add_column("Habits", justify="right")
    table.add_column("Done / due days", justify="right")
    table.add_column("Rate", justify="right")
    for entry in stats:
        table.add_row(
            entry.label,
            f"{entry.active_habit_count}/{entry.total_habit_count}",
            f"{entry.completed_days}/{entry.due_days}",
            _pct(entry.completion_rate),
        )
    console.print(Panel(table, title="Habit Type Breakdown", border_style="blue"))


def print_habits(habits: list[Habit]) -> None:
    """Print habits with their completion-type bucket."""
    if not habits:
        console.print(Panel("No habits.", title="Habits", border_style="dim"))
        return

    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("id")
    table.add_column("title")
    table.add_column("type")
    for habit in habits:
        style = "dim" if habit.is_archived else ""
        table.add_row(habit.id, habit.title, classify_habit(habit).label, style=style)

    console.print(Panel(table, title="Habits", border_style="blue"))


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]{message}[/green]")


def print_info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[blue]{message}[/blue]")


def print_warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]{message}[/yellow]")
