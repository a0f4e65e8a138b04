"""Period report aggregation.

A :class:`PeriodReportData` pairs the day buckets of a reporting window with
those of the equally long window right before it, and derives every summary,
delta and ranking the report shows. Nothing is cached: each property is
recomputed from the day lists, which hold at most a few hundred entries.

Division by zero never raises. Rates fall back to ``0.0`` (or to the stated
fallback signal for the quit performance score), and an empty previous
period simply makes every delta equal to the current value.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from habitlens.models import (
    CompletionType,
    CompletionTypeStats,
    DayReport,
    Habit,
    PeriodRange,
    TemptationTriggerInsight,
)

# Weights of the quit performance score (win rate, resistance, points).
QUIT_SCORE_WEIGHTS: tuple[float, float, float] = (0.55, 0.25, 0.20)

# Triggers seen fewer times than this are ignored when picking the riskiest
# one, unless no trigger reaches it.
RISK_MIN_TOTAL = 2

_TYPE_SEPARATORS = re.compile(r"[\s_\-/]")

_NORMALIZED_TYPES: dict[str, CompletionType] = {
    "yesno": CompletionType.YES_NO,
    "numeric": CompletionType.NUMERIC,
    "timer": CompletionType.TIMER,
    "checklist": CompletionType.CHECKLIST,
    "quit": CompletionType.QUIT,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _sum(days: Iterable[DayReport], getter: Callable[[DayReport], int]) -> int:
    return sum(getter(day) for day in days)


def merge_counts(maps: Iterable[Mapping[str, int]]) -> dict[str, int]:
    """Sum the values of identical keys across *maps*."""
    merged: dict[str, int] = {}
    for counts in maps:
        for key, value in counts.items():
            merged[key] = merged.get(key, 0) + value
    return merged


def top_entry(counts: Mapping[str, int]) -> Optional[tuple[str, int]]:
    """Return the ``(key, count)`` pair with the highest count.

    Equal counts are resolved alphabetically so the result does not depend
    on insertion order.
    """
    if not counts:
        return None
    return min(counts.items(), key=lambda item: (-item[1], item[0]))


def normalize_completion_type(raw: Optional[str]) -> CompletionType:
    """Map a stored completion-type string onto a :class:`CompletionType`.

    Stored values come from several schema versions (``yesNo``, ``yes_no``,
    ``Yes/No`` ...), so case and separators are ignored.
    """
    normalized = _TYPE_SEPARATORS.sub("", (raw or "").lower())
    return _NORMALIZED_TYPES.get(normalized, CompletionType.OTHER)


def classify_habit(habit: Habit) -> CompletionType:
    """Quit habits are always ``quit``, whatever their nominal type says."""
    if habit.is_quit_habit:
        return CompletionType.QUIT
    return normalize_completion_type(habit.completion_type)


def quit_performance_score_for_day(day: DayReport) -> float:
    """Composite 0-100 score for one day of a quit-mode report.

    Days without a signal fall back to the win rate, and a day with nothing
    due counts as a perfect day.
    """
    win_rate = 1.0 if day.due == 0 else _clamp(day.completed / day.due)
    if day.temptation_total > 0:
        resistance_rate = _clamp(day.temptation_resisted / day.temptation_total)
    else:
        resistance_rate = win_rate
    points_total = day.points_earned + day.points_lost
    if points_total > 0:
        points_signal = _clamp(day.points_earned / points_total)
    else:
        points_signal = win_rate

    w_win, w_resist, w_points = QUIT_SCORE_WEIGHTS
    weighted = win_rate * w_win + resistance_rate * w_resist + points_signal * w_points
    return _clamp(weighted * 100, 0.0, 100.0)


def average_quit_performance(days: list[DayReport]) -> float:
    """Mean daily quit score, 0.0 for an empty list."""
    if not days:
        return 0.0
    return sum(quit_performance_score_for_day(d) for d in days) / len(days)


# ---------------------------------------------------------------------------
# Aggregate
# ---------------------------------------------------------------------------


class PeriodReportData(BaseModel):
    """Current and previous reporting windows with all derived statistics."""

    model_config = ConfigDict(frozen=True)

    current_range: PeriodRange
    previous_range: PeriodRange
    current_days: list[DayReport] = Field(default_factory=list)
    previous_days: list[DayReport] = Field(default_factory=list)
    habits_by_id: dict[str, Habit] = Field(default_factory=dict)
    is_quit_mode: bool = False
    available_quit_habits: list[Habit] = Field(default_factory=list)
    selected_quit_habit_id: Optional[str] = None

    # -- totals ------------------------------------------------------------

    @property
    def total_due(self) -> int:
        return _sum(self.current_days, lambda d: d.due)

    @property
    def completed(self) -> int:
        return _sum(self.current_days, lambda d: d.completed)

    @property
    def skipped(self) -> int:
        return _sum(self.current_days, lambda d: d.skipped)

    @property
    def missed(self) -> int:
        return _sum(self.current_days, lambda d: d.missed)

    @property
    def pending(self) -> int:
        return _sum(self.current_days, lambda d: d.pending)

    @property
    def points_earned(self) -> int:
        return _sum(self.current_days, lambda d: d.points_earned)

    @property
    def points_lost(self) -> int:
        return _sum(self.current_days, lambda d: d.points_lost)

    @property
    def net_points(self) -> int:
        return self.points_earned - self.points_lost

    @property
    def previous_total_due(self) -> int:
        return _sum(self.previous_days, lambda d: d.due)

    @property
    def previous_completed(self) -> int:
        return _sum(self.previous_days, lambda d: d.completed)

    @property
    def previous_skipped(self) -> int:
        return _sum(self.previous_days, lambda d: d.skipped)

    @property
    def previous_missed(self) -> int:
        return _sum(self.previous_days, lambda d: d.missed)

    @property
    def previous_pending(self) -> int:
        return _sum(self.previous_days, lambda d: d.pending)

    @property
    def previous_points_earned(self) -> int:
        return _sum(self.previous_days, lambda d: d.points_earned)

    @property
    def previous_points_lost(self) -> int:
        return _sum(self.previous_days, lambda d: d.points_lost)

    @property
    def previous_net_points(self) -> int:
        return self.previous_points_earned - self.previous_points_lost

    # -- rates & deltas ----------------------------------------------------

    @property
    def completion_rate(self) -> float:
        return self.completed / self.total_due if self.total_due else 0.0

    @property
    def previous_completion_rate(self) -> float:
        if self.previous_total_due == 0:
            return 0.0
        return self.previous_completed / self.previous_total_due

    @property
    def completion_delta(self) -> float:
        return self.completion_rate - self.previous_completion_rate

    @property
    def temptation_total(self) -> int:
        return _sum(self.current_days, lambda d: d.temptation_total)

    @property
    def temptation_resisted(self) -> int:
        return _sum(self.current_days, lambda d: d.temptation_resisted)

    @property
    def temptation_slipped(self) -> int:
        return _sum(self.current_days, lambda d: d.temptation_slipped)

    @property
    def previous_temptation_total(self) -> int:
        return _sum(self.previous_days, lambda d: d.temptation_total)

    @property
    def previous_temptation_resisted(self) -> int:
        return _sum(self.previous_days, lambda d: d.temptation_resisted)

    @property
    def previous_temptation_slipped(self) -> int:
        return _sum(self.previous_days, lambda d: d.temptation_slipped)

    @property
    def resistance_rate(self) -> float:
        if self.temptation_total == 0:
            return 0.0
        return self.temptation_resisted / self.temptation_total

    @property
    def previous_resistance_rate(self) -> float:
        if self.previous_temptation_total == 0:
            return 0.0
        return self.previous_temptation_resisted / self.previous_temptation_total

    @property
    def resistance_rate_delta(self) -> float:
        return self.resistance_rate - self.previous_resistance_rate

    @property
    def quit_performance_score(self) -> float:
        return average_quit_performance(self.current_days)

    @property
    def previous_quit_performance_score(self) -> float:
        return average_quit_performance(self.previous_days)

    @property
    def quit_performance_delta(self) -> float:
        return self.quit_performance_score - self.previous_quit_performance_score

    # -- merged maps -------------------------------------------------------

    @property
    def skip_reason_counts(self) -> dict[str, int]:
        return merge_counts(d.reason_counts for d in self.current_days)

    @property
    def temptation_reason_counts(self) -> dict[str, int]:
        return merge_counts(d.temptation_reason_counts for d in self.current_days)

    @property
    def temptation_slip_reason_counts(self) -> dict[str, int]:
        return merge_counts(d.temptation_slip_reason_counts for d in self.current_days)

    @property
    def temptation_intensity_counts(self) -> dict[str, int]:
        return merge_counts(d.temptation_intensity_counts for d in self.current_days)

    @property
    def blocker_reason_counts(self) -> dict[str, int]:
        if self.is_quit_mode:
            return merge_counts([self.skip_reason_counts, self.temptation_slip_reason_counts])
        return self.skip_reason_counts

    @property
    def skip_count_by_habit(self) -> dict[str, int]:
        return merge_counts(d.skip_count_by_habit for d in self.current_days)

    @property
    def total_reason_entries(self) -> int:
        return sum(self.blocker_reason_counts.values())

    @property
    def completed_habit_ids(self) -> set[str]:
        ids: set[str] = set()
        for day in self.current_days:
            ids.update(day.completed_habit_ids)
        return ids

    @property
    def unique_completed_habits(self) -> int:
        return len(self.completed_habit_ids)

    @property
    def selected_quit_habit(self) -> Optional[Habit]:
        selected_id = self.selected_quit_habit_id
        if selected_id is None:
            return None
        if selected_id in self.habits_by_id:
            return self.habits_by_id[selected_id]
        for habit in self.available_quit_habits:
            if habit.id == selected_id:
                return habit
        return None

    # -- chart series ------------------------------------------------------

    @property
    def daily_completion_rates(self) -> list[tuple[date, float]]:
        return [(d.date, d.completion_rate) for d in self.current_days]

    @property
    def daily_quit_scores(self) -> list[tuple[date, float]]:
        return [(d.date, quit_performance_score_for_day(d)) for d in self.current_days]

    # -- rankings ----------------------------------------------------------

    @property
    def best_day(self) -> Optional[DayReport]:
        best: Optional[DayReport] = None
        best_rate = -1.0
        for day in self.current_days:
            if day.due == 0:
                continue
            rate = day.completed / day.due
            if rate > best_rate:
                best_rate = rate
                best = day
        return best

    @property
    def top_reason(self) -> Optional[tuple[str, int]]:
        return top_entry(self.blocker_reason_counts)

    @property
    def top_skipped_habit(self) -> Optional[tuple[str, int]]:
        return top_entry(self.skip_count_by_habit)

    @property
    def top_temptation_reason(self) -> Optional[tuple[str, int]]:
        return top_entry(self.temptation_reason_counts)

    @property
    def top_slip_temptation_trigger(self) -> Optional[tuple[str, int]]:
        return top_entry(self.temptation_slip_reason_counts)

    @property
    def peak_temptation_intensity(self) -> Optional[tuple[str, int]]:
        return top_entry(self.temptation_intensity_counts)

    @property
    def temptation_days_with_events(self) -> list[DayReport]:
        return sorted(
            (d for d in self.current_days if d.temptation_total > 0),
            key=lambda d: d.date,
        )

    @property
    def peak_temptation_day(self) -> Optional[DayReport]:
        days = self.temptation_days_with_events
        if not days:
            return None
        # Dates sort ascending by ordinal so they can share one key tuple.
        return min(
            days,
            key=lambda d: (-d.temptation_total, -d.temptation_slipped, d.date.toordinal()),
        )

    @property
    def average_temptations_per_day(self) -> float:
        if not self.current_days:
            return 0.0
        return self.temptation_total / len(self.current_days)

    @property
    def temptation_trigger_insights(self) -> list[TemptationTriggerInsight]:
        all_counts = self.temptation_reason_counts
        slip_counts = self.temptation_slip_reason_counts
        insights: list[TemptationTriggerInsight] = []
        for trigger in set(all_counts) | set(slip_counts):
            raw_total = all_counts.get(trigger, 0)
            raw_slipped = slip_counts.get(trigger, 0)
            # Triggers logged only through slip events still count.
            total = raw_total if raw_total > 0 else raw_slipped
            if total <= 0:
                continue
            slipped = min(raw_slipped, total)
            insights.append(
                TemptationTriggerInsight(
                    trigger=trigger,
                    total=total,
                    resisted=max(0, total - slipped),
                    slipped=slipped,
                )
            )
        insights.sort(key=lambda i: (-i.total, -i.slipped, i.trigger))
        return insights

    @property
    def highest_risk_trigger(self) -> Optional[TemptationTriggerInsight]:
        insights = self.temptation_trigger_insights
        if not insights:
            return None
        candidates = [i for i in insights if i.total >= RISK_MIN_TOTAL] or insights
        return min(candidates, key=lambda i: (-i.slip_rate, -i.total, -i.slipped))

    @property
    def strongest_resisted_trigger(self) -> Optional[TemptationTriggerInsight]:
        candidates = [i for i in self.temptation_trigger_insights if i.resisted > 0]
        if not candidates:
            return None
        return min(candidates, key=lambda i: (-i.resisted, -i.total, i.trigger))

    @property
    def trigger_control_score(self) -> float:
        insights = self.temptation_trigger_insights
        total = sum(i.total for i in insights)
        if total == 0:
            return self.resistance_rate
        return sum(i.resisted for i in insights) / total

    @property
    def completion_type_breakdown(self) -> list[CompletionTypeStats]:
        buckets: dict[CompletionType, CompletionTypeStats] = {}
        for habit in self.habits_by_id.values():
            key = classify_habit(habit)
            due_days = 0
            completed_days = 0
            for day in self.current_days:
                if habit.id in day.due_habit_ids:
                    due_days += 1
                    if habit.id in day.completed_habit_ids:
                        completed_days += 1

            stats = buckets.setdefault(key, CompletionTypeStats(key=key))
            stats.total_habit_count += 1
            if due_days > 0:
                stats.active_habit_count += 1
                stats.due_days += due_days
                stats.completed_days += completed_days

        order = list(CompletionType)
        return sorted(
            buckets.values(),
            key=lambda s: (-s.due_days, -s.active_habit_count, order.index(s.key)),
        )
