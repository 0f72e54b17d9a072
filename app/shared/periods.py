"""Reporting period arithmetic for dashboard views.

A period is addressed the way the dashboard selectors address it: a view
(``annual``, ``quarterly``, ``monthly``), a year, and a quarter label
(``Q1``..``Q4``) or month number (1..12) depending on the view.
"""

import calendar
from datetime import date
from typing import Literal

PeriodView = Literal["annual", "quarterly", "monthly"]
ComparisonMode = Literal["yoy", "mom"]

QUARTER_START_MONTH: dict[str, int] = {"Q1": 1, "Q2": 4, "Q3": 7, "Q4": 10}


def _quarter_start(period: str | None) -> int:
    if period is None or period.upper() not in QUARTER_START_MONTH:
        msg = f"Quarterly view needs a period of Q1..Q4, got {period!r}"
        raise ValueError(msg)
    return QUARTER_START_MONTH[period.upper()]


def _month(month: int | None) -> int:
    if month is None or not 1 <= month <= 12:
        msg = f"Monthly view needs a month between 1 and 12, got {month!r}"
        raise ValueError(msg)
    return month


def resolve_period_range(
    view: PeriodView,
    year: int,
    period: str | None = None,
    month: int | None = None,
) -> tuple[date, date]:
    """Return the inclusive first and last day of a reporting period.

    Args:
        view: Period granularity.
        year: Calendar year.
        period: Quarter label, required for the quarterly view.
        month: Month number, required for the monthly view.

    Returns:
        Tuple of (start, end) dates, both inclusive.

    Raises:
        ValueError: If the view is unknown or its selector is missing/invalid.
    """
    if view == "annual":
        return date(year, 1, 1), date(year, 12, 31)
    if view == "quarterly":
        first = _quarter_start(period)
        last = first + 2
        return date(year, first, 1), date(year, last, calendar.monthrange(year, last)[1])
    if view == "monthly":
        m = _month(month)
        return date(year, m, 1), date(year, m, calendar.monthrange(year, m)[1])

    msg = f"Unknown view {view!r}"
    raise ValueError(msg)


def days_in_period(
    view: PeriodView,
    year: int,
    period: str | None = None,
    month: int | None = None,
) -> int:
    """Number of calendar days in the period (leap years included)."""
    start, end = resolve_period_range(view, year, period, month)
    return (end - start).days + 1


def days_elapsed(
    view: PeriodView,
    year: int,
    period: str | None = None,
    month: int | None = None,
    today: date | None = None,
) -> int:
    """Days of the period that have started by ``today``, counting today.

    Returns 0 before the period starts and the full length once it is over,
    which is what pacing against a target needs.
    """
    today = today or date.today()
    start, end = resolve_period_range(view, year, period, month)
    if today < start:
        return 0
    if today > end:
        return (end - start).days + 1
    return (today - start).days + 1


def comparison_range(
    mode: ComparisonMode,
    view: PeriodView,
    year: int,
    period: str | None = None,
    month: int | None = None,
) -> tuple[date, date]:
    """Date range to compare the selected period against.

    ``yoy`` is the same period one year earlier. ``mom`` is the previous
    month and only applies to the monthly view; January compares against
    December of the previous year.

    Raises:
        ValueError: If ``mom`` is requested outside the monthly view.
    """
    if mode == "yoy":
        return resolve_period_range(view, year - 1, period, month)
    if mode == "mom":
        if view != "monthly":
            msg = "Month-over-month comparison requires the monthly view"
            raise ValueError(msg)
        m = _month(month)
        if m == 1:
            return resolve_period_range("monthly", year - 1, month=12)
        return resolve_period_range("monthly", year, month=m - 1)

    msg = f"Unknown comparison mode {mode!r}"
    raise ValueError(msg)
