"""Plain-language takeaways derived from a period report.

Wording differs between the regular report and the quit-habit report: for
quit habits a "skip" is a slip and completions are wins.
"""

from __future__ import annotations

from habitlens.models import DayReport, Insight
from habitlens.report import PeriodReportData, quit_performance_score_for_day

# Completion-rate change that counts as a real movement rather than noise.
TREND_THRESHOLD = 0.02


def quit_performance_label(score: float) -> str:
    """Describe a 0-100 quit performance score."""
    if score >= 80:
        return "Excellent"
    if score >= 65:
        return "Good"
    if score >= 50:
        return "Fair"
    return "At Risk"


def trigger_risk_label(slip_rate: float) -> str:
    """Describe how often a trigger ends in a slip."""
    if slip_rate >= 0.6:
        return "Critical"
    if slip_rate >= 0.35:
        return "High"
    if slip_rate >= 0.15:
        return "Moderate"
    return "Low"


def momentum_message(report: PeriodReportData) -> str:
    """One sentence on how this period compares with the previous one."""
    delta = report.completion_delta
    if report.is_quit_mode:
        if delta > TREND_THRESHOLD:
            return "Recovery momentum is improving. Keep protecting your trigger windows."
        if delta < -TREND_THRESHOLD:
            return "Recovery momentum dropped. Strengthen your temptation response plan."
        return "Recovery is stable. Focus on your highest-risk triggers."
    if delta > TREND_THRESHOLD:
        return "Momentum is positive. Your recovery strategy is working!"
    if delta < -TREND_THRESHOLD:
        return "Momentum is dropping. Consider reducing habit difficulty."
    return "Momentum is stable. Focus on your most frequent blocker."


def focus_areas(report: PeriodReportData) -> list[Insight]:
    """Build the focus-area cards for *report*."""
    quit_mode = report.is_quit_mode

    top_reason = report.top_reason
    if top_reason is None:
        blocker = (
            "No repeated slip trigger detected. Strong control this period."
            if quit_mode
            else "No repeated blockers detected. Great consistency!"
        )
    else:
        blocker = f'"{top_reason[0]}" was cited {top_reason[1]} times.'

    top_habit = report.top_skipped_habit
    if top_habit is None:
        impacted = (
            "No recurring slip pressure across your quit habits."
            if quit_mode
            else "All habits are performing equally well."
        )
    else:
        habit = report.habits_by_id.get(top_habit[0])
        name = habit.title if habit is not None and habit.title else "Unknown habit"
        impacted = (
            f'"{name}" has the highest slip frequency.'
            if quit_mode
            else f'"{name}" has the highest skip rate.'
        )

    cards = [
        Insight(title="Top Slip Trigger" if quit_mode else "Primary Blocker", description=blocker),
        Insight(title="Most Slipped Habit" if quit_mode else "Most Impacted", description=impacted),
    ]

    if quit_mode:
        top_temptation = report.top_temptation_reason
        driver = (
            "No temptation logs yet in this period."
            if top_temptation is None
            else f'"{top_temptation[0]}" appeared {top_temptation[1]} times.'
        )
        cards.append(Insight(title="Temptation Driver", description=driver))
    cards.append(Insight(title="Momentum", description=momentum_message(report)))
    return cards


def completion_trend_declining(days: list[DayReport]) -> bool:
    """True when the second half of *days* completes noticeably less."""
    midpoint = len(days) // 2
    first, second = days[:midpoint], days[midpoint:]

    def _rate(chunk: list[DayReport]) -> float:
        due = sum(d.due for d in chunk)
        return sum(d.completed for d in chunk) / due if due else 0.0

    return _rate(second) < _rate(first) - TREND_THRESHOLD


def quit_trend_improving(days: list[DayReport]) -> bool:
    """True when the second half of *days* scores at least as well as the first."""
    if not days:
        return True
    scores = [quit_performance_score_for_day(d) for d in days]
    midpoint = len(scores) // 2
    first = scores[:midpoint] or scores[:1]
    second = scores[midpoint:] or scores[-1:]
    return sum(second) / len(second) >= sum(first) / len(first)
