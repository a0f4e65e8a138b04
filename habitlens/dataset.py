"""JSON export of habits and their logs -- the report's only data source."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from habitlens.models import Habit, HabitCompletion, TemptationLog

log = logging.getLogger(__name__)


class HabitDataset(BaseModel):
    """Habits plus every completion and temptation log known for them."""

    habits: list[Habit] = Field(default_factory=list)
    completions: list[HabitCompletion] = Field(default_factory=list)
    temptation_logs: list[TemptationLog] = Field(default_factory=list)

    def habit(self, habit_id: str) -> Optional[Habit]:
        """Look up a habit by ID."""
        for habit in self.habits:
            if habit.id == habit_id:
                return habit
        return None

    def completions_by_day(self) -> dict[date, dict[str, list[HabitCompletion]]]:
        """Index completions by calendar day, then by habit ID."""
        index: dict[date, dict[str, list[HabitCompletion]]] = defaultdict(
            lambda: defaultdict(list)
        )
        for completion in self.completions:
            index[completion.day][completion.habit_id].append(completion)
        return {day: dict(by_habit) for day, by_habit in index.items()}

    def temptation_logs_between(self, start: date, end: date) -> list[TemptationLog]:
        """Temptation logs that happened on a day within [start, end]."""
        return [
            entry
            for entry in self.temptation_logs
            if start <= entry.occurred_at.date() <= end
        ]


def load_dataset(path: Path) -> HabitDataset:
    """Read a dataset from a JSON file.

    Raises ``OSError`` when the file cannot be read and pydantic's
    ``ValidationError`` when its contents do not describe a dataset.
    """
    dataset = HabitDataset.model_validate_json(path.read_text(encoding="utf-8"))
    log.info(
        "Loaded %d habit(s), %d completion(s), %d temptation log(s) from %s",
        len(dataset.habits),
        len(dataset.completions),
        len(dataset.temptation_logs),
        path,
    )
    return dataset


def save_dataset(dataset: HabitDataset, path: Path) -> Path:
    """Write a dataset to disk. Returns the file path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dataset.model_dump_json(indent=2), encoding="utf-8")
    return path
