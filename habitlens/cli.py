"""habitlens CLI -- period reports for your habits and quit goals."""

from __future__ import annotations

import logging
from datetime import date, timedelta
from enum import Enum
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler

from habitlens import charts, config as cfg, display
from habitlens.collect import build_report, custom_range, shift_anchor
from habitlens.dataset import HabitDataset, load_dataset
from habitlens.models import ReportPeriod
from habitlens.report import PeriodReportData

log = logging.getLogger(__name__)

app = typer.Typer(
    name="habitlens",
    help="Look back on your habits: completion, slips and temptation triggers.",
    no_args_is_help=True,
)


class ChartKind(str, Enum):
    COMPLETION = "completion"
    QUIT = "quit"
    BARS = "bars"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    """Configure logging for every command."""
    level = "DEBUG" if verbose else cfg.load_config().log_level
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load(data: Optional[Path]) -> HabitDataset:
    """Load the dataset, turning failures into a friendly exit."""
    path = data or cfg.get_data_path()
    try:
        return load_dataset(path)
    except OSError:
        display.print_warning(f"Could not read habit data at {path}.")
        raise typer.Exit(1)
    except ValidationError as exc:
        log.debug("Dataset validation failed", exc_info=True)
        display.print_warning(f"Not a valid habit export: {path} ({exc.error_count()} errors).")
        raise typer.Exit(1)


def _parse_date(raw: Optional[str], option: str) -> Optional[date]:
    if raw is None:
        return None
    try:
        return date.fromisoformat(raw)
    except ValueError:
        display.print_warning(f"{option} must be a date like 2026-10-17, got '{raw}'.")
        raise typer.Exit(1)


def _build(
    data: Optional[Path],
    period: Optional[ReportPeriod],
    on: Optional[str],
    start: Optional[str],
    end: Optional[str],
    offset: int,
    quit_mode: bool,
    habit_id: Optional[str],
) -> PeriodReportData:
    """Shared option handling for the report-style commands."""
    dataset = _load(data)
    today = date.today()

    if habit_id is not None:
        habit = dataset.habit(habit_id)
        if habit is None or not habit.is_quit_habit:
            display.print_warning(f"Quit habit '{habit_id}' not found.")
            raise typer.Exit(1)
        quit_mode = True

    start_day = _parse_date(start, "--start")
    end_day = _parse_date(end, "--end")
    current = None
    if start_day is not None or end_day is not None:
        if start_day is None or end_day is None:
            display.print_warning("--start and --end must be given together.")
            raise typer.Exit(1)
        if end_day < start_day:
            display.print_warning("--end must not be before --start.")
            raise typer.Exit(1)
        # --offset moves a custom range by its own length.
        shift = timedelta(days=offset * ((end_day - start_day).days + 1))
        current = custom_range(start_day + shift, end_day + shift)
        period = ReportPeriod.CUSTOM

    period = period or cfg.load_config().default_period
    if period == ReportPeriod.CUSTOM and current is None:
        display.print_warning("A custom period needs --start and --end.")
        raise typer.Exit(1)

    anchor = shift_anchor(_parse_date(on, "--date") or today, period, offset)
    return build_report(
        dataset,
        anchor,
        period,
        quit_mode=quit_mode,
        selected_quit_habit_id=habit_id,
        today=today,
        current=current,
    )


_DATA_OPTION = typer.Option(None, "--data", help="Habit export to read (default from config)")
_PERIOD_OPTION = typer.Option(None, "--period", "-p", help="day, week or month")
_DATE_OPTION = typer.Option(None, "--date", "-d", help="Any day inside the period (YYYY-MM-DD)")
_START_OPTION = typer.Option(None, "--start", help="Custom range start (YYYY-MM-DD)")
_END_OPTION = typer.Option(None, "--end", help="Custom range end (YYYY-MM-DD)")
_OFFSET_OPTION = typer.Option(
    0, "--offset", "-o",
    help="Shift by whole periods (custom ranges by their own length), e.g. -1 for the last one",
)
_QUIT_OPTION = typer.Option(False, "--quit", "-q", help="Report on quit habits only")
_HABIT_OPTION = typer.Option(None, "--habit", help="Drill into a single quit habit by ID")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@app.command()
def report(
    data: Optional[Path] = _DATA_OPTION,
    period: Optional[ReportPeriod] = _PERIOD_OPTION,
    on: Optional[str] = _DATE_OPTION,
    start: Optional[str] = _START_OPTION,
    end: Optional[str] = _END_OPTION,
    offset: int = _OFFSET_OPTION,
    quit_mode: bool = _QUIT_OPTION,
    habit_id: Optional[str] = _HABIT_OPTION,
) -> None:
    """Show the report for a day, week, month or custom range."""
    result = _build(data, period, on, start, end, offset, quit_mode, habit_id)
    display.print_report(result)


@app.command()
def triggers(
    data: Optional[Path] = _DATA_OPTION,
    period: Optional[ReportPeriod] = _PERIOD_OPTION,
    on: Optional[str] = _DATE_OPTION,
    start: Optional[str] = _START_OPTION,
    end: Optional[str] = _END_OPTION,
    offset: int = _OFFSET_OPTION,
    habit_id: Optional[str] = _HABIT_OPTION,
) -> None:
    """Show which temptation triggers lead to slips."""
    result = _build(data, period, on, start, end, offset, True, habit_id)
    display.print_trigger_table(result)
    display.print_temptation_days(result)


@app.command()
def chart(
    output: Path = typer.Argument(..., help="PNG file to write"),
    kind: ChartKind = typer.Option(ChartKind.COMPLETION, "--kind", "-k", help="completion, quit or bars"),
    data: Optional[Path] = _DATA_OPTION,
    period: Optional[ReportPeriod] = _PERIOD_OPTION,
    on: Optional[str] = _DATE_OPTION,
    start: Optional[str] = _START_OPTION,
    end: Optional[str] = _END_OPTION,
    offset: int = _OFFSET_OPTION,
    quit_mode: bool = _QUIT_OPTION,
    habit_id: Optional[str] = _HABIT_OPTION,
) -> None:
    """Render a report chart to a PNG file."""
    if kind == ChartKind.QUIT:
        quit_mode = True
    result = _build(data, period, on, start, end, offset, quit_mode, habit_id)

    renderers = {
        ChartKind.COMPLETION: charts.completion_rate_trend,
        ChartKind.QUIT: charts.quit_performance_trend,
        ChartKind.BARS: charts.daily_completion_bars,
    }
    image = renderers[kind](result.current_days)
    if image is None:
        display.print_warning("Nothing to chart for this period.")
        raise typer.Exit(1)
    charts.save_chart(image, output)
    display.print_success(f"Chart saved to {output}")


@app.command()
def habits(
    data: Optional[Path] = _DATA_OPTION,
    show_archived: bool = typer.Option(False, "--all", "-a", help="Include archived habits"),
) -> None:
    """List habits and how they are classified."""
    dataset = _load(data)
    shown = [h for h in dataset.habits if show_archived or not h.is_archived]
    display.print_habits(sorted(shown, key=lambda h: h.title))


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@app.command()
def config(
    data_path: Optional[str] = typer.Option(
        None, "--data-path",
        help="Set the habit export file to report on",
    ),
    period: Optional[ReportPeriod] = typer.Option(
        None, "--period",
        help="Default report period: day, week or month",
    ),
    reset: bool = typer.Option(False, "--reset", help="Reset to the default data path"),
    show: bool = typer.Option(False, "--show", help="Show current config"),
) -> None:
    """Configure where habit data is read from and the default period."""
    if data_path:
        result = cfg.set_data_path(data_path)
        display.print_success(f"Data path set to: {result.data_path}")
    elif period:
        try:
            cfg.set_default_period(period)
        except ValueError as exc:
            display.print_warning(str(exc))
            raise typer.Exit(1)
        display.print_success(f"Default period set to: {period.value}")
    elif reset:
        cfg.reset_data_path()
        display.print_success("Reset to default data path.")
    elif show:
        current = cfg.load_config()
        resolved = cfg.get_data_path()
        if current.data_path:
            display.print_info(f"Data: {current.data_path}")
        else:
            display.print_info(f"Data: {resolved} (default)")
        display.print_info(f"Default period: {current.default_period.value}")
    else:
        display.print_info("Use --data-path, --period, --reset, or --show.")
