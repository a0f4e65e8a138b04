"""Pydantic models -- single source of truth for all data types."""

from __future__ import annotations

import enum
from datetime import date, datetime, timedelta
from typing import Iterator, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _local_naive(value: datetime) -> datetime:
    """Aware timestamps become naive local time so all log times compare."""
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value


class ReportPeriod(str, enum.Enum):
    """How a reporting window is classified."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    CUSTOM = "custom"


class CompletionType(str, enum.Enum):
    """Buckets used by the completion-type breakdown."""

    YES_NO = "yes_no"
    NUMERIC = "numeric"
    TIMER = "timer"
    CHECKLIST = "checklist"
    QUIT = "quit"
    OTHER = "other"

    @property
    def label(self) -> str:
        return _COMPLETION_TYPE_LABELS[self]


_COMPLETION_TYPE_LABELS: dict[CompletionType, str] = {
    CompletionType.YES_NO: "Yes/No",
    CompletionType.NUMERIC: "Numeric",
    CompletionType.TIMER: "Timer",
    CompletionType.CHECKLIST: "Checklist",
    CompletionType.QUIT: "Quit",
    CompletionType.OTHER: "Other",
}


class TemptationIntensity(str, enum.Enum):
    """How hard an urge was to resist."""

    MILD = "mild"  # easy to resist
    MODERATE = "moderate"
    STRONG = "strong"
    EXTREME = "extreme"  # almost gave in

    @classmethod
    def from_index(cls, index: int) -> TemptationIntensity:
        members = list(cls)
        if 0 <= index < len(members):
            return members[index]
        return cls.MODERATE

    @property
    def label(self) -> str:
        return self.value.capitalize()


# ---------------------------------------------------------------------------
# Source records (handed over by the habit / log repositories)
# ---------------------------------------------------------------------------


class Habit(BaseModel):
    """A habit definition, as far as reporting is concerned."""

    id: str
    title: str = ""
    completion_type: str = "yesNo"
    is_quit_habit: bool = False
    is_archived: bool = False
    is_hidden: bool = False  # quit habit hidden from the general report
    enable_temptation_tracking: bool = True
    target_value: Optional[float] = None
    target_duration_minutes: Optional[int] = None
    checklist_size: Optional[int] = Field(default=None, ge=0)
    daily_reward: int = Field(default=0, ge=0)
    weekdays: list[int] = Field(default_factory=list)  # ISO 1-7, empty = daily
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    def is_due_on(self, day: date) -> bool:
        """Default schedule check; callers may substitute their own."""
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        if self.weekdays:
            return day.isoweekday() in self.weekdays
        return True


class HabitCompletion(BaseModel):
    """One completion / skip / postpone log entry."""

    habit_id: str
    completed_at: datetime
    count: int = Field(default=0, ge=0)
    answer: Optional[bool] = None
    actual_value: Optional[float] = None
    actual_duration_minutes: Optional[int] = None
    is_skipped: bool = False
    skip_reason: Optional[str] = None
    is_postponed: bool = False
    points_earned: int = 0  # signed; negative means points were lost

    @field_validator("completed_at")
    @classmethod
    def _normalise_time(cls, value: datetime) -> datetime:
        return _local_naive(value)

    @property
    def day(self) -> date:
        return self.completed_at.date()


class TemptationLog(BaseModel):
    """A logged urge against a quit habit."""

    habit_id: str
    occurred_at: datetime
    count: int = 1
    reason_text: Optional[str] = None
    intensity_index: int = 1
    did_resist: bool = True

    @field_validator("occurred_at")
    @classmethod
    def _normalise_time(cls, value: datetime) -> datetime:
        return _local_naive(value)

    @property
    def effective_count(self) -> int:
        return self.count if self.count >= 1 else 1

    @property
    def intensity(self) -> TemptationIntensity:
        return TemptationIntensity.from_index(self.intensity_index)


# ---------------------------------------------------------------------------
# Report building blocks
# ---------------------------------------------------------------------------


class PeriodRange(BaseModel):
    """An inclusive span of calendar days."""

    model_config = ConfigDict(frozen=True)

    start: date
    end: date
    period: ReportPeriod = ReportPeriod.CUSTOM

    @model_validator(mode="after")
    def _check_order(self) -> PeriodRange:
        if self.end < self.start:
            raise ValueError("range end must not be before its start")
        return self

    @property
    def day_count(self) -> int:
        return (self.end - self.start).days + 1

    def days(self) -> Iterator[date]:
        for offset in range(self.day_count):
            yield self.start + timedelta(days=offset)

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class TemptationDayData(BaseModel):
    """Temptation activity for one calendar day."""

    total: int = Field(default=0, ge=0)
    resisted: int = Field(default=0, ge=0)
    slipped: int = Field(default=0, ge=0)
    reason_counts: dict[str, int] = Field(default_factory=dict)
    slip_reason_counts: dict[str, int] = Field(default_factory=dict)
    intensity_counts: dict[str, int] = Field(default_factory=dict)


class DayReport(BaseModel):
    """Everything that happened on one calendar day of a reporting window."""

    model_config = ConfigDict(frozen=True)

    date: date
    due: int = Field(default=0, ge=0)
    completed: int = Field(default=0, ge=0)
    skipped: int = Field(default=0, ge=0)
    missed: int = Field(default=0, ge=0)
    pending: int = Field(default=0, ge=0)
    points_earned: int = Field(default=0, ge=0)
    points_lost: int = Field(default=0, ge=0)  # magnitude of the deduction
    due_habit_ids: frozenset[str] = frozenset()
    completed_habit_ids: frozenset[str] = frozenset()
    reason_counts: dict[str, int] = Field(default_factory=dict)
    skip_count_by_habit: dict[str, int] = Field(default_factory=dict)
    temptation_total: int = Field(default=0, ge=0)
    temptation_resisted: int = Field(default=0, ge=0)
    temptation_slipped: int = Field(default=0, ge=0)
    temptation_reason_counts: dict[str, int] = Field(default_factory=dict)
    temptation_slip_reason_counts: dict[str, int] = Field(default_factory=dict)
    temptation_intensity_counts: dict[str, int] = Field(default_factory=dict)

    @property
    def completion_rate(self) -> float:
        return self.completed / self.due if self.due else 0.0

    @property
    def temptation_resistance_rate(self) -> float:
        if self.temptation_total == 0:
            return 0.0
        return self.temptation_resisted / self.temptation_total


class TemptationTriggerInsight(BaseModel):
    """How a single trigger played out across a period."""

    model_config = ConfigDict(frozen=True)

    trigger: str
    total: int = Field(ge=0)
    resisted: int = Field(ge=0)
    slipped: int = Field(ge=0)

    @property
    def slip_rate(self) -> float:
        return self.slipped / self.total if self.total else 0.0


class CompletionTypeStats(BaseModel):
    """Due / completed day counts for one completion type."""

    key: CompletionType
    total_habit_count: int = Field(default=0, ge=0)
    active_habit_count: int = Field(default=0, ge=0)
    due_days: int = Field(default=0, ge=0)
    completed_days: int = Field(default=0, ge=0)

    @property
    def label(self) -> str:
        return self.key.label

    @property
    def completion_rate(self) -> float:
        return self.completed_days / self.due_days if self.due_days else 0.0


class Insight(BaseModel):
    """A short, human-readable takeaway shown alongside the numbers."""

    title: str
    description: str


class AppConfig(BaseModel):
    """Application configuration (persisted to ~/.config/habitlens/config.json)."""

    data_path: Optional[str] = None  # None = use default (~/.local/share/habitlens/)
    default_period: ReportPeriod = ReportPeriod.WEEK
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value
