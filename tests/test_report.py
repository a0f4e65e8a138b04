"""Tests for the period report aggregator."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from habitlens.models import CompletionType, DayReport, Habit, PeriodRange, ReportPeriod
from habitlens.report import (
    PeriodReportData,
    average_quit_performance,
    classify_habit,
    merge_counts,
    normalize_completion_type,
    quit_performance_score_for_day,
    top_entry,
)

BASE = date(2026, 3, 2)


def _day(offset: int = 0, **fields) -> DayReport:
    return DayReport(date=BASE + timedelta(days=offset), **fields)


def _range(days: list[DayReport], start: date = BASE) -> PeriodRange:
    end = start + timedelta(days=max(len(days), 1) - 1)
    return PeriodRange(start=start, end=end, period=ReportPeriod.CUSTOM)


def _report(
    current: list[DayReport],
    previous: list[DayReport] | None = None,
    **kwargs,
) -> PeriodReportData:
    previous = previous or []
    prev_start = BASE - timedelta(days=max(len(current), 1))
    return PeriodReportData(
        current_range=_range(current),
        previous_range=_range(previous, start=prev_start),
        current_days=current,
        previous_days=previous,
        **kwargs,
    )


class TestTotals:
    def test_sums_every_counter(self) -> None:
        days = [
            _day(0, due=3, completed=1, skipped=1, missed=1, points_earned=10, points_lost=2),
            _day(1, due=2, completed=1, pending=1, points_earned=5, points_lost=4),
        ]
        report = _report(days)
        assert report.total_due == sum(d.due for d in days)
        assert report.completed == 2
        assert report.skipped == 1
        assert report.missed == 1
        assert report.pending == 1
        assert report.points_earned == 15
        assert report.points_lost == 6
        assert report.net_points == report.points_earned - report.points_lost == 9

    def test_previous_totals(self) -> None:
        prev = [_day(-1, due=4, completed=3, skipped=1, points_earned=2, points_lost=7)]
        report = _report([_day(0)], prev)
        assert report.previous_total_due == 4
        assert report.previous_completed == 3
        assert report.previous_skipped == 1
        assert report.previous_net_points == -5

    def test_completion_rate_zero_when_nothing_due(self) -> None:
        report = _report([_day(0, completed=0), _day(1)])
        assert report.total_due == 0
        assert report.completion_rate == 0.0


class TestDeltas:
    def test_week_over_week(self) -> None:
        current = [_day(i, due=2, completed=2) for i in range(7)]
        previous = [_day(i - 7, due=2, completed=1) for i in range(7)]
        report = _report(current, previous)
        assert report.completion_rate == 1.0
        assert report.previous_completion_rate == 0.5
        assert report.completion_delta == 0.5

    def test_empty_previous_delta_equals_current(self) -> None:
        report = _report(
            [_day(0, due=4, completed=3, temptation_total=4, temptation_resisted=1)]
        )
        assert report.previous_completion_rate == 0.0
        assert report.completion_delta == report.completion_rate == 0.75
        assert report.resistance_rate_delta == report.resistance_rate == 0.25
        assert report.quit_performance_delta == report.quit_performance_score

    def test_resistance_rate(self) -> None:
        report = _report(
            [_day(0, temptation_total=4, temptation_resisted=3, temptation_slipped=1)],
            [_day(-1, temptation_total=2, temptation_resisted=1, temptation_slipped=1)],
        )
        assert report.resistance_rate == 0.75
        assert report.previous_resistance_rate == 0.5
        assert report.resistance_rate_delta == pytest.approx(0.25)

    def test_empty_current_period(self) -> None:
        report = _report([])
        assert report.total_due == 0
        assert report.completion_rate == 0.0
        assert report.resistance_rate == 0.0
        assert report.quit_performance_score == 0.0
        assert report.average_temptations_per_day == 0.0
        assert report.best_day is None
        assert report.peak_temptation_day is None
        assert report.top_reason is None
        assert report.temptation_trigger_insights == []
        assert report.completion_type_breakdown == []


class TestQuitPerformance:
    def test_quiet_day_scores_exactly_100(self) -> None:
        assert quit_performance_score_for_day(_day(0)) == 100.0

    def test_weighted_components(self) -> None:
        day = _day(
            0,
            due=4,
            completed=2,
            temptation_total=4,
            temptation_resisted=1,
            points_earned=3,
            points_lost=1,
        )
        # 0.5 * 0.55 + 0.25 * 0.25 + 0.75 * 0.20
        assert quit_performance_score_for_day(day) == pytest.approx(48.75)

    def test_missing_signals_fall_back_to_win_rate(self) -> None:
        day = _day(0, due=2, completed=1)
        assert quit_performance_score_for_day(day) == pytest.approx(50.0)

    def test_rates_are_clamped(self) -> None:
        # Inconsistent counts from the caller must not push past 100.
        day = _day(0, due=1, completed=3, temptation_total=1, temptation_resisted=2)
        assert quit_performance_score_for_day(day) == pytest.approx(100.0)

    def test_average_is_order_independent(self) -> None:
        days = [
            _day(0, due=2, completed=0),
            _day(1, due=2, completed=2, temptation_total=3, temptation_resisted=1),
            _day(2, points_earned=1, points_lost=3),
        ]
        forward = average_quit_performance(days)
        backward = average_quit_performance(list(reversed(days)))
        assert forward == pytest.approx(backward)
        assert _report(days).quit_performance_score == pytest.approx(forward)

    def test_daily_series(self) -> None:
        report = _report([_day(0), _day(1, due=2, completed=1)])
        assert report.daily_quit_scores[0] == (BASE, 100.0)
        assert report.daily_completion_rates == [(BASE, 0.0), (BASE + timedelta(days=1), 0.5)]


class TestMergedMaps:
    def test_merge_empty(self) -> None:
        assert merge_counts([]) == {}

    def test_merge_sums_identical_keys(self) -> None:
        assert merge_counts([{"a": 1}, {"a": 2, "b": 3}]) == {"a": 3, "b": 3}

    def test_report_maps(self) -> None:
        report = _report(
            [
                _day(0, reason_counts={"Tired": 1}, skip_count_by_habit={"h1": 1},
                     temptation_intensity_counts={"Mild": 2}),
                _day(1, reason_counts={"Tired": 2, "Busy": 1}, skip_count_by_habit={"h1": 1, "h2": 1},
                     temptation_intensity_counts={"Mild": 1, "Strong": 4}),
            ]
        )
        assert report.skip_reason_counts == {"Tired": 3, "Busy": 1}
        assert report.skip_count_by_habit == {"h1": 2, "h2": 1}
        assert report.temptation_intensity_counts == {"Mild": 3, "Strong": 4}
        assert report.peak_temptation_intensity == ("Strong", 4)
        assert report.total_reason_entries == 4

    def test_blockers_include_slips_in_quit_mode(self) -> None:
        days = [
            _day(0, reason_counts={"Party": 1}, temptation_slip_reason_counts={"Party": 2, "Stress": 1}),
        ]
        assert _report(days).blocker_reason_counts == {"Party": 1}
        quit_report = _report(days, is_quit_mode=True)
        assert quit_report.blocker_reason_counts == {"Party": 3, "Stress": 1}
        assert quit_report.top_reason == ("Party", 3)

    def test_completed_habit_ids_union(self) -> None:
        report = _report(
            [
                _day(0, completed_habit_ids={"a", "b"}),
                _day(1, completed_habit_ids={"b", "c"}),
            ]
        )
        assert report.completed_habit_ids == {"a", "b", "c"}
        assert report.unique_completed_habits == 3


class TestTopEntries:
    def test_top_entry_none_for_empty(self) -> None:
        assert top_entry({}) is None

    def test_top_entry_picks_highest(self) -> None:
        assert top_entry({"a": 1, "b": 5, "c": 2}) == ("b", 5)

    def test_top_entry_ties_are_alphabetical(self) -> None:
        assert top_entry({"zeta": 2, "alpha": 2}) == ("alpha", 2)

    def test_top_skipped_habit(self) -> None:
        report = _report([_day(0, skip_count_by_habit={"h1": 1, "h2": 3})])
        assert report.top_skipped_habit == ("h2", 3)

    def test_top_temptation_reasons(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"Stress": 4, "Boredom": 1},
                  temptation_slip_reason_counts={"Boredom": 1})]
        )
        assert report.top_temptation_reason == ("Stress", 4)
        assert report.top_slip_temptation_trigger == ("Boredom", 1)

    def test_best_day(self) -> None:
        report = _report(
            [
                _day(0, due=0),
                _day(1, due=4, completed=2),
                _day(2, due=3, completed=3),
                _day(3, due=1, completed=1),
            ]
        )
        best = report.best_day
        assert best is not None
        assert best.date == BASE + timedelta(days=2)  # earliest perfect day


class TestTriggerInsights:
    def test_counts_from_both_maps(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"noise": 5}, temptation_slip_reason_counts={"noise": 2})]
        )
        (insight,) = report.temptation_trigger_insights
        assert insight.trigger == "noise"
        assert (insight.total, insight.slipped, insight.resisted) == (5, 2, 3)
        assert insight.slip_rate == pytest.approx(0.4)

    def test_slip_only_trigger(self) -> None:
        report = _report([_day(0, temptation_slip_reason_counts={"boredom": 3})])
        (insight,) = report.temptation_trigger_insights
        assert (insight.total, insight.slipped, insight.resisted) == (3, 3, 0)

    def test_slipped_capped_at_total(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"x": 2}, temptation_slip_reason_counts={"x": 5})]
        )
        (insight,) = report.temptation_trigger_insights
        assert (insight.total, insight.slipped, insight.resisted) == (2, 2, 0)

    def test_zero_totals_dropped(self) -> None:
        report = _report([_day(0, temptation_reason_counts={"ghost": 0})])
        assert report.temptation_trigger_insights == []

    def test_sort_order(self) -> None:
        report = _report(
            [
                _day(
                    0,
                    temptation_reason_counts={"b": 4, "a": 4, "c": 4, "d": 9},
                    temptation_slip_reason_counts={"c": 2},
                )
            ]
        )
        assert [i.trigger for i in report.temptation_trigger_insights] == ["d", "c", "a", "b"]

    def test_highest_risk_ignores_one_off_triggers(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"A": 10, "B": 1},
                  temptation_slip_reason_counts={"A": 8, "B": 1})]
        )
        risky = report.highest_risk_trigger
        assert risky is not None and risky.trigger == "A"

    def test_highest_risk_falls_back_to_all(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"A": 1, "B": 1},
                  temptation_slip_reason_counts={"B": 1})]
        )
        risky = report.highest_risk_trigger
        assert risky is not None and risky.trigger == "B"

    def test_highest_risk_none_without_triggers(self) -> None:
        assert _report([_day(0)]).highest_risk_trigger is None

    def test_strongest_resisted(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"x": 6, "y": 4, "z": 4},
                  temptation_slip_reason_counts={"x": 4})]
        )
        strongest = report.strongest_resisted_trigger
        assert strongest is not None
        # y and z both resisted 4 with equal totals: alphabetical wins.
        assert strongest.trigger == "y"

    def test_strongest_resisted_none_when_all_slipped(self) -> None:
        report = _report([_day(0, temptation_slip_reason_counts={"x": 2})])
        assert report.strongest_resisted_trigger is None

    def test_trigger_control_score(self) -> None:
        report = _report(
            [_day(0, temptation_reason_counts={"x": 6, "y": 4},
                  temptation_slip_reason_counts={"x": 1, "y": 4})]
        )
        assert report.trigger_control_score == pytest.approx(5 / 10)

    def test_trigger_control_score_falls_back_to_resistance(self) -> None:
        report = _report([_day(0, temptation_total=4, temptation_resisted=3)])
        assert report.trigger_control_score == 0.75


class TestPeakTemptationDay:
    def test_highest_total_wins(self) -> None:
        days = [
            _day(0, temptation_total=3, temptation_slipped=1),
            _day(1, temptation_total=3, temptation_slipped=2),
            _day(2, temptation_total=5),
            _day(3),
        ]
        peak = _report(days).peak_temptation_day
        assert peak is not None and peak.date == BASE + timedelta(days=2)

    def test_tie_broken_by_slips(self) -> None:
        days = [
            _day(0, temptation_total=3, temptation_slipped=1),
            _day(1, temptation_total=3, temptation_slipped=2),
        ]
        peak = _report(days).peak_temptation_day
        assert peak is not None and peak.date == BASE + timedelta(days=1)

    def test_full_tie_takes_earliest(self) -> None:
        days = [
            _day(0, temptation_total=2, temptation_slipped=1),
            _day(1, temptation_total=2, temptation_slipped=1),
        ]
        peak = _report(days).peak_temptation_day
        assert peak is not None and peak.date == BASE

    def test_days_with_events(self) -> None:
        report = _report([_day(0), _day(1, temptation_total=2), _day(2, temptation_total=1)])
        assert [d.date for d in report.temptation_days_with_events] == [
            BASE + timedelta(days=1),
            BASE + timedelta(days=2),
        ]
        assert report.average_temptations_per_day == 1.0


class TestCompletionTypes:
    @pytest.mark.parametrize("raw", ["Yes/No", "yes-no", "YES_NO", "yesNo", " yes no "])
    def test_yes_no_spellings(self, raw: str) -> None:
        assert normalize_completion_type(raw) == CompletionType.YES_NO

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Numeric", CompletionType.NUMERIC),
            ("TIMER", CompletionType.TIMER),
            ("check-list", CompletionType.CHECKLIST),
            ("quit", CompletionType.QUIT),
            ("rating", CompletionType.OTHER),
            ("", CompletionType.OTHER),
            (None, CompletionType.OTHER),
        ],
    )
    def test_other_spellings(self, raw, expected: CompletionType) -> None:
        assert normalize_completion_type(raw) == expected

    def test_quit_flag_wins(self) -> None:
        habit = Habit(id="q", completion_type="numeric", is_quit_habit=True)
        assert classify_habit(habit) == CompletionType.QUIT

    def test_breakdown(self) -> None:
        habits = [
            Habit(id="h1", completion_type="yesNo"),
            Habit(id="h2", completion_type="numeric"),
            Habit(id="h3", completion_type="timer"),
            Habit(id="q1", completion_type="numeric", is_quit_habit=True),
        ]
        days = [
            _day(0, due_habit_ids={"h1", "h2", "q1"}, completed_habit_ids={"h1", "q1"}),
            _day(1, due_habit_ids={"h1", "q1"}, completed_habit_ids={"q1"}),
        ]
        report = _report(days, habits_by_id={h.id: h for h in habits})
        breakdown = report.completion_type_breakdown

        assert [s.key for s in breakdown] == [
            CompletionType.YES_NO,
            CompletionType.QUIT,
            CompletionType.NUMERIC,
            CompletionType.TIMER,
        ]
        yes_no = breakdown[0]
        assert (yes_no.due_days, yes_no.completed_days) == (2, 1)
        assert yes_no.completion_rate == 0.5
        assert yes_no.label == "Yes/No"
        timer = breakdown[-1]
        assert (timer.total_habit_count, timer.active_habit_count) == (1, 0)
        assert timer.completion_rate == 0.0

    def test_breakdown_sorts_by_active_habits_on_equal_due_days(self) -> None:
        habits = [
            Habit(id="t1", completion_type="timer"),
            Habit(id="c1", completion_type="checklist"),
            Habit(id="c2", completion_type="checklist"),
        ]
        days = [
            _day(0, due_habit_ids={"t1", "c1"}),
            _day(1, due_habit_ids={"t1", "c2"}),
        ]
        report = _report(days, habits_by_id={h.id: h for h in habits})
        assert [s.key for s in report.completion_type_breakdown] == [
            CompletionType.CHECKLIST,
            CompletionType.TIMER,
        ]

    def test_breakdown_full_ties_follow_type_order(self) -> None:
        habits = [
            Habit(id="c1", completion_type="checklist"),
            Habit(id="n1", completion_type="numeric"),
            Habit(id="y1", completion_type="yesNo"),
        ]
        days = [_day(0, due_habit_ids={"c1", "n1", "y1"})]
        report = _report(days, habits_by_id={h.id: h for h in habits})
        assert [s.key for s in report.completion_type_breakdown] == [
            CompletionType.YES_NO,
            CompletionType.NUMERIC,
            CompletionType.CHECKLIST,
        ]


class TestSelectedQuitHabit:
    def test_none_without_selection(self) -> None:
        assert _report([_day(0)]).selected_quit_habit is None

    def test_found_among_active(self) -> None:
        habit = Habit(id="q", title="Smoking", is_quit_habit=True)
        report = _report([_day(0)], habits_by_id={"q": habit}, selected_quit_habit_id="q")
        assert report.selected_quit_habit == habit

    def test_found_among_available(self) -> None:
        habit = Habit(id="q", title="Smoking", is_quit_habit=True)
        report = _report([_day(0)], available_quit_habits=[habit], selected_quit_habit_id="q")
        assert report.selected_quit_habit == habit

    def test_unknown_id(self) -> None:
        report = _report([_day(0)], selected_quit_habit_id="missing")
        assert report.selected_quit_habit is None
