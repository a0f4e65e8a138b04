"""Matplotlib charts for period reports.

All figures use the same dark palette and are returned as PIL images so
callers can display them or write them out with :func:`save_chart`.
"""

from __future__ import annotations

import io
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")  # non-interactive backend -- render to image buffers
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.axes import Axes
from matplotlib.figure import Figure
from PIL import Image

from habitlens.insights import completion_trend_declining, quit_trend_improving
from habitlens.models import DayReport
from habitlens.report import quit_performance_score_for_day

# -- Palette -------------------------------------------------------------
_BG = "#2b2b2b"
_FG = "#e0e0e0"
_GRID = "#444444"
_BLUE = "#448aff"
_RED = "#ff5252"
_GREEN = "#00c853"
_GOLD = "#cdaf56"


# -----------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------

def _fig_to_pil(fig: Figure, dpi: int = 100) -> Image.Image:
    """Render a matplotlib Figure to a PIL Image and close it."""
    buf = io.BytesIO()
    fig.savefig(buf, format="png", dpi=dpi, bbox_inches="tight",
                facecolor=fig.get_facecolor(), edgecolor="none")
    plt.close(fig)
    buf.seek(0)
    return Image.open(buf)


def _new_axes(size: tuple[int, int], dpi: int) -> tuple[Figure, Axes]:
    fig = Figure(figsize=(size[0] / dpi, size[1] / dpi), dpi=dpi, facecolor=_BG)
    ax = fig.add_subplot(111)
    ax.set_facecolor(_BG)
    return fig, ax


def _style_percent_axes(ax: Axes, days: list[DayReport], title: str) -> None:
    """Shared 0-100 y axis, dashed grid and day labels."""
    ax.set_ylim(0, 100)
    ax.set_yticks(range(0, 101, 25))
    ax.set_title(title, color=_FG, fontsize=11, fontweight="bold")
    ax.tick_params(colors=_FG, labelsize=8)
    ax.spines["bottom"].set_color(_GRID)
    ax.spines["left"].set_color(_GRID)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.yaxis.grid(color=_GRID, linewidth=0.5, linestyle="--")

    # Thin out labels on long (month) ranges.
    step = max(1, len(days) // 10)
    ticks = np.arange(0, len(days), step)
    ax.set_xticks(ticks)
    fmt = "%a" if len(days) <= 7 else "%d %b"
    ax.set_xticklabels([days[i].date.strftime(fmt) for i in ticks])


def _completion_percentages(days: list[DayReport]) -> np.ndarray:
    return np.array([d.completion_rate * 100 for d in days], dtype=float)


# -----------------------------------------------------------------------
# Charts
# -----------------------------------------------------------------------

def completion_rate_trend(
    days: list[DayReport],
    *,
    title: str = "Completion Rate",
    size: tuple[int, int] = (560, 240),
    dpi: int = 100,
) -> Optional[Image.Image]:
    """Line chart of the daily completion rate.

    Drawn in red when the second half of the period is declining.
    Returns *None* when there are no days.
    """
    if not days:
        return None

    x = np.arange(len(days))
    rates = _completion_percentages(days)
    colour = _RED if completion_trend_declining(days) else _BLUE

    fig, ax = _new_axes(size, dpi)
    ax.plot(x, rates, color=colour, linewidth=2, marker="o", markersize=4,
            markeredgecolor="white", markeredgewidth=0.5)
    ax.fill_between(x, rates, alpha=0.15, color=colour)
    ax.set_ylabel("Completed %", color=_FG, fontsize=9)
    _style_percent_axes(ax, days, title)

    return _fig_to_pil(fig, dpi=dpi)


def quit_performance_trend(
    days: list[DayReport],
    *,
    title: str = "Quit Performance",
    size: tuple[int, int] = (560, 240),
    dpi: int = 100,
) -> Optional[Image.Image]:
    """Line chart of the daily quit performance score (0-100).

    Green while the second half holds up against the first, red otherwise.
    Returns *None* when there are no days.
    """
    if not days:
        return None

    x = np.arange(len(days))
    scores = np.array([quit_performance_score_for_day(d) for d in days], dtype=float)
    colour = _GREEN if quit_trend_improving(days) else _RED

    fig, ax = _new_axes(size, dpi)
    ax.plot(x, scores, color=colour, linewidth=2)
    ax.fill_between(x, scores, alpha=0.15, color=colour)
    ax.axhline(float(np.mean(scores)), color=_GOLD, linewidth=1, linestyle=":")
    ax.set_ylabel("Score", color=_FG, fontsize=9)
    _style_percent_axes(ax, days, title)

    return _fig_to_pil(fig, dpi=dpi)


def daily_completion_bars(
    days: list[DayReport],
    *,
    title: str = "Daily Completion",
    size: tuple[int, int] = (560, 240),
    dpi: int = 100,
) -> Optional[Image.Image]:
    """Bar chart of each day's completion rate. *None* when there are no days."""
    if not days:
        return None

    x = np.arange(len(days))
    rates = _completion_percentages(days)

    fig, ax = _new_axes(size, dpi)
    ax.bar(x, rates, color=_GOLD, width=0.6)
    _style_percent_axes(ax, days, title)

    return _fig_to_pil(fig, dpi=dpi)


def save_chart(image: Image.Image, path: Path) -> Path:
    """Write a rendered chart as PNG. Returns the path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    image.save(path, format="PNG")
    return path
