"""Turn raw habit / completion / temptation logs into day buckets.

The habit schedule ("is this habit due on that day?") belongs to the caller;
every collector takes an ``is_due`` predicate and only falls back to
:meth:`Habit.is_due_on` when none is given.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Callable, Iterable, Mapping, Optional, Sequence

from habitlens.dataset import HabitDataset
from habitlens.models import (
    CompletionType,
    DayReport,
    Habit,
    HabitCompletion,
    PeriodRange,
    ReportPeriod,
    TemptationDayData,
    TemptationLog,
)
from habitlens.report import PeriodReportData, normalize_completion_type

log = logging.getLogger(__name__)

DueCheck = Callable[[Habit, date], bool]

NO_REASON_LABEL = "No reason provided"


def _default_is_due(habit: Habit, day: date) -> bool:
    return habit.is_due_on(day)


# ---------------------------------------------------------------------------
# Ranges
# ---------------------------------------------------------------------------


def add_months(day: date, delta: int) -> date:
    """Shift *day* by whole months, clamping to the target month's length."""
    total = day.year * 12 + (day.month - 1) + delta
    year, month = divmod(total, 12)
    month += 1
    last = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last))


def range_for(
    anchor: date, period: ReportPeriod, today: Optional[date] = None
) -> PeriodRange:
    """Return the day / week / month range containing *anchor*.

    Week and month ranges that are still running end at *today*.
    """
    today = today or date.today()
    if period == ReportPeriod.DAY:
        return PeriodRange(start=anchor, end=anchor, period=period)
    if period == ReportPeriod.WEEK:
        start = anchor - timedelta(days=anchor.weekday())
        nominal_end = start + timedelta(days=6)
    elif period == ReportPeriod.MONTH:
        start = anchor.replace(day=1)
        nominal_end = anchor.replace(day=calendar.monthrange(anchor.year, anchor.month)[1])
    else:
        raise ValueError("custom periods need an explicit start and end; use custom_range()")

    end = today if start <= today < nominal_end else nominal_end
    return PeriodRange(start=start, end=end, period=period)


def custom_range(start: date, end: date) -> PeriodRange:
    """An arbitrary inclusive range."""
    return PeriodRange(start=start, end=end, period=ReportPeriod.CUSTOM)


def previous_range(current: PeriodRange) -> PeriodRange:
    """The equally long range that ends the day before *current* starts."""
    prev_end = current.start - timedelta(days=1)
    prev_start = prev_end - timedelta(days=current.day_count - 1)
    return PeriodRange(start=prev_start, end=prev_end, period=current.period)


def shift_anchor(anchor: date, period: ReportPeriod, delta: int) -> date:
    """Move *anchor* by *delta* periods (days for day and custom reports)."""
    if period == ReportPeriod.WEEK:
        return anchor + timedelta(days=7 * delta)
    if period == ReportPeriod.MONTH:
        return add_months(anchor, delta)
    return anchor + timedelta(days=delta)


# ---------------------------------------------------------------------------
# Log interpretation
# ---------------------------------------------------------------------------


def reason_label(reason: Optional[str]) -> str:
    value = (reason or "").strip()
    return value or NO_REASON_LABEL


def is_successful_completion(completion: HabitCompletion, habit: Habit) -> bool:
    """Whether a log entry counts as the habit being done."""
    if completion.is_skipped or completion.is_postponed:
        return False

    kind = normalize_completion_type(habit.completion_type)
    if kind == CompletionType.NUMERIC and completion.actual_value is not None:
        target = habit.target_value if habit.target_value is not None else 1
        return completion.actual_value >= target
    if kind == CompletionType.TIMER and completion.actual_duration_minutes is not None:
        target = habit.target_duration_minutes if habit.target_duration_minutes is not None else 1
        return completion.actual_duration_minutes >= target
    if kind == CompletionType.CHECKLIST:
        items = habit.checklist_size if habit.checklist_size is not None else 1
        return completion.answer is True or completion.count >= items
    if kind == CompletionType.QUIT and completion.answer is not None:
        return completion.answer
    return completion.answer is True or completion.count > 0


# ---------------------------------------------------------------------------
# Temptation buckets
# ---------------------------------------------------------------------------


@dataclass
class _TemptationBucket:
    """Mutable accumulator for one day of temptation logs."""

    total: int = 0
    resisted: int = 0
    slipped: int = 0
    reason_counts: dict[str, int] = field(default_factory=dict)
    slip_reason_counts: dict[str, int] = field(default_factory=dict)
    intensity_counts: dict[str, int] = field(default_factory=dict)

    def add(self, entry: TemptationLog) -> None:
        count = entry.effective_count
        self.total += count
        if entry.did_resist:
            self.resisted += count
        else:
            self.slipped += count

        reason = reason_label(entry.reason_text)
        self.reason_counts[reason] = self.reason_counts.get(reason, 0) + count
        if not entry.did_resist:
            self.slip_reason_counts[reason] = self.slip_reason_counts.get(reason, 0) + count

        intensity = entry.intensity.label
        self.intensity_counts[intensity] = self.intensity_counts.get(intensity, 0) + count

    def build(self) -> TemptationDayData:
        return TemptationDayData(
            total=self.total,
            resisted=self.resisted,
            slipped=self.slipped,
            reason_counts=dict(self.reason_counts),
            slip_reason_counts=dict(self.slip_reason_counts),
            intensity_counts=dict(self.intensity_counts),
        )


def collect_temptation_days(
    habits: Iterable[Habit],
    logs: Iterable[TemptationLog],
    period: PeriodRange,
) -> dict[date, TemptationDayData]:
    """Bucket the temptation logs of tracked quit habits by calendar day."""
    tracked = {h.id for h in habits if h.is_quit_habit and h.enable_temptation_tracking}
    if not tracked:
        return {}

    buckets: dict[date, _TemptationBucket] = {}
    for entry in logs:
        day = entry.occurred_at.date()
        if entry.habit_id not in tracked or not period.contains(day):
            continue
        buckets.setdefault(day, _TemptationBucket()).add(entry)

    return {day: bucket.build() for day, bucket in buckets.items()}


# ---------------------------------------------------------------------------
# Day buckets
# ---------------------------------------------------------------------------


def collect_day_report(
    habits: Sequence[Habit],
    completions_by_habit: Mapping[str, Sequence[HabitCompletion]],
    day: date,
    temptation: Optional[TemptationDayData] = None,
    *,
    today: Optional[date] = None,
    is_due: Optional[DueCheck] = None,
) -> DayReport:
    """Summarise one calendar day for the given habits."""
    today = today or date.today()
    is_due = is_due or _default_is_due
    is_past = day < today
    is_future = day > today

    due = completed = skipped = missed = pending = 0
    points_earned = points_lost = 0
    due_ids: set[str] = set()
    completed_ids: set[str] = set()
    reasons_by_key: dict[str, int] = {}
    reason_display: dict[str, str] = {}
    skip_by_habit: dict[str, int] = {}

    for habit in habits:
        if not is_due(habit, day):
            continue
        due += 1
        due_ids.add(habit.id)

        completions = completions_by_habit.get(habit.id, ())
        has_skipped = any(c.is_skipped for c in completions)

        if habit.is_quit_habit:
            # Quit habits resolve to a win unless a slip was logged.
            if is_future:
                pending += 1
            elif has_skipped:
                skipped += 1
                skip_by_habit[habit.id] = skip_by_habit.get(habit.id, 0) + 1
            else:
                completed += 1
                completed_ids.add(habit.id)
                if not completions:
                    points_earned += habit.daily_reward
        elif any(is_successful_completion(c, habit) for c in completions):
            completed += 1
            completed_ids.add(habit.id)
        elif has_skipped:
            skipped += 1
            skip_by_habit[habit.id] = skip_by_habit.get(habit.id, 0) + 1
        elif is_past:
            missed += 1
        else:
            pending += 1

        for completion in completions:
            if completion.is_skipped:
                display = reason_label(completion.skip_reason)
                key = display.lower()
                reason_display.setdefault(key, display)
                reasons_by_key[key] = reasons_by_key.get(key, 0) + 1

        if completions:
            latest = max(completions, key=lambda c: c.completed_at)
            if latest.points_earned > 0:
                points_earned += latest.points_earned
            elif latest.points_earned < 0:
                points_lost += -latest.points_earned

    temptation = temptation or TemptationDayData()
    return DayReport(
        date=day,
        due=due,
        completed=completed,
        skipped=skipped,
        missed=missed,
        pending=pending,
        points_earned=points_earned,
        points_lost=points_lost,
        due_habit_ids=frozenset(due_ids),
        completed_habit_ids=frozenset(completed_ids),
        reason_counts={reason_display[k]: v for k, v in reasons_by_key.items()},
        skip_count_by_habit=skip_by_habit,
        temptation_total=temptation.total,
        temptation_resisted=temptation.resisted,
        temptation_slipped=temptation.slipped,
        temptation_reason_counts=dict(temptation.reason_counts),
        temptation_slip_reason_counts=dict(temptation.slip_reason_counts),
        temptation_intensity_counts=dict(temptation.intensity_counts),
    )


def collect_range(
    habits: Sequence[Habit],
    completions_by_day: Mapping[date, Mapping[str, Sequence[HabitCompletion]]],
    period: PeriodRange,
    temptation_by_day: Optional[Mapping[date, TemptationDayData]] = None,
    *,
    today: Optional[date] = None,
    is_due: Optional[DueCheck] = None,
) -> list[DayReport]:
    """One :class:`DayReport` per day of *period*, quiet days included."""
    temptation_by_day = temptation_by_day or {}
    return [
        collect_day_report(
            habits,
            completions_by_day.get(day, {}),
            day,
            temptation_by_day.get(day),
            today=today,
            is_due=is_due,
        )
        for day in period.days()
    ]


# ---------------------------------------------------------------------------
# Whole report
# ---------------------------------------------------------------------------


def build_report(
    dataset: HabitDataset,
    anchor: Optional[date] = None,
    period: ReportPeriod = ReportPeriod.WEEK,
    *,
    quit_mode: bool = False,
    selected_quit_habit_id: Optional[str] = None,
    today: Optional[date] = None,
    is_due: Optional[DueCheck] = None,
    current: Optional[PeriodRange] = None,
) -> PeriodReportData:
    """Collect both windows from *dataset* and wrap them in a report.

    *current* overrides the range derived from *anchor* and *period*.
    """
    today = today or date.today()
    anchor = anchor or today

    available_quit = sorted(
        (h for h in dataset.habits if h.is_quit_habit and not h.is_archived),
        key=lambda h: h.title,
    )
    active = [
        h
        for h in dataset.habits
        if not h.is_archived and (h.is_quit_habit if quit_mode else not h.is_hidden)
    ]

    selected_id: Optional[str] = None
    if quit_mode and selected_quit_habit_id is not None:
        if any(h.id == selected_quit_habit_id for h in active):
            selected_id = selected_quit_habit_id
            active = [h for h in active if h.id == selected_id]
        else:
            log.warning("Quit habit %r not found; reporting on all quit habits.", selected_quit_habit_id)

    current = current or range_for(anchor, period, today=today)
    previous = previous_range(current)
    completions_by_day = dataset.completions_by_day()

    def _days(window: PeriodRange) -> list[DayReport]:
        temptations = collect_temptation_days(
            active,
            dataset.temptation_logs_between(window.start, window.end),
            window,
        )
        return collect_range(
            active, completions_by_day, window, temptations, today=today, is_due=is_due
        )

    report = PeriodReportData(
        current_range=current,
        previous_range=previous,
        current_days=_days(current),
        previous_days=_days(previous),
        habits_by_id={h.id: h for h in active},
        is_quit_mode=quit_mode,
        available_quit_habits=available_quit,
        selected_quit_habit_id=selected_id,
    )
    log.debug(
        "Built %s report %s..%s over %d habit(s).",
        current.period.value,
        current.start,
        current.end,
        len(active),
    )
    return report
