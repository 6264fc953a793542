"""Board period keys and day ranges.

Weekly boards are keyed by ISO week ('2026-W09', %G-W%V), monthly boards by
'YYYY-MM'. All other boards have no period (empty key). Days here are
calendar days in the configured day-boundary zone.
"""

from __future__ import annotations

from datetime import date, timedelta

from habitquest.competition.ranking import BoardType

PERIOD_BOARDS = frozenset({BoardType.WEEKLY, BoardType.MONTHLY})


def get_week_iso(day: date) -> str:
    return day.strftime("%G-W%V")


def get_monday(day: date) -> date:
    return day - timedelta(days=day.weekday())


def first_of_next_month(day: date) -> date:
    if day.month == 12:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)


def build_period_key(board_type: BoardType, day: date) -> str:
    """Period key of the board containing `day`."""
    if board_type is BoardType.WEEKLY:
        return get_week_iso(day)
    if board_type is BoardType.MONTHLY:
        return day.strftime("%Y-%m")
    return ""


def period_days(board_type: BoardType, day: date) -> tuple[date, date] | None:
    """(first day, first day after) of the period containing `day`, or None."""
    if board_type is BoardType.WEEKLY:
        monday = get_monday(day)
        return monday, monday + timedelta(days=7)
    if board_type is BoardType.MONTHLY:
        first = day.replace(day=1)
        return first, first_of_next_month(first)
    return None

