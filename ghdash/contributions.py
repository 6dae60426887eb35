"""Contribution calendar statistics and cell colouring helpers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable

from .models import ContributionCalendar, ContributionDay


@dataclass(frozen=True)
class WindowTotal:
    """Sum and number of counted days for one window."""

    total: int = 0
    days: int = 0

    @property
    def average(self) -> float:
        return self.total / self.days if self.days else 0.0

    def add(self, count: int) -> WindowTotal:
        return WindowTotal(self.total + count, self.days + 1)


@dataclass(frozen=True)
class ContributionTotals:
    year: WindowTotal
    month: WindowTotal
    week: WindowTotal


def week_start(today: date) -> date:
    """Most recent Sunday on or before ``today``."""
    days_since_sunday = (today.weekday() + 1) % 7
    return today - timedelta(days=days_since_sunday)


def compute_totals(cells: Iterable[tuple[str, int]], today: date) -> ContributionTotals:
    """Year-, month- and week-to-date totals relative to ``today``.

    Cells dated after ``today`` are calendar padding and never counted.
    Cells whose date cannot be parsed are skipped.
    """
    year = month = week = WindowTotal()
    sunday = week_start(today)
    for raw_date, count in cells:
        try:
            day = date.fromisoformat(raw_date)
        except (TypeError, ValueError):
            continue
        if day > today or day.year != today.year:
            continue
        year = year.add(count)
        if day.month == today.month:
            month = month.add(count)
        if day >= sunday:
            week = week.add(count)
    return ContributionTotals(year=year, month=month, week=week)


def format_totals(totals: ContributionTotals) -> str:
    """``YTD 120 (2.1/d) · MTD 30 (2.0/d) · WTD 8 (4.0/d)``"""
    parts = []
    for label, window in (("YTD", totals.year), ("MTD", totals.month), ("WTD", totals.week)):
        parts.append(f"{label} {window.total} ({window.average:.1f}/d)")
    return " · ".join(parts)


# ---------------------------------------------------------------------------
# Calendar grid
# ---------------------------------------------------------------------------

def weekday_rows(calendar: ContributionCalendar) -> list[list[ContributionDay | None]]:
    """Transpose weeks into 7 weekday rows; missing days become None."""
    rows: list[list[ContributionDay | None]] = []
    for weekday in range(7):
        row = []
        for week in calendar.weeks:
            row.append(week.days[weekday] if weekday < len(week.days) else None)
        rows.append(row)
    return rows


def cell_label(count: int) -> str:
    """Two-column cell text; ``++`` once the count has three digits."""
    return "++" if count >= 100 else f"{count:>2}"


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    """``#rrggbb`` to an RGB tuple; anything unparseable is black."""
    hex_part = value.lstrip("#")
    if len(hex_part) < 6:
        return (0, 0, 0)
    out = []
    for i in (0, 2, 4):
        try:
            out.append(int(hex_part[i:i + 2], 16))
        except ValueError:
            out.append(0)
    return (out[0], out[1], out[2])


def contrast_color(r: int, g: int, b: int) -> str:
    """Black text on light cells, white on dark ones."""
    luminance = 0.2126 * r / 255 + 0.7152 * g / 255 + 0.0722 * b / 255
    return "black" if luminance > 0.6 else "white"
