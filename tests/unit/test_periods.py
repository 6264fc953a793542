"""Board period key tests: ISO weeks and months."""

from datetime import date

from habitquest.competition.periods import build_period_key, get_monday, period_days
from habitquest.competition.ranking import BoardType


class TestWeekly:
    def test_monday_starts_week(self):
        assert build_period_key(BoardType.WEEKLY, date(2026, 2, 23)) == "2026-W09"

    def test_sunday_same_week(self):
        assert build_period_key(BoardType.WEEKLY, date(2026, 3, 1)) == "2026-W09"

    def test_year_boundary(self):
        """Dec 29, 2025 is in ISO week 1 of 2026."""
        assert build_period_key(BoardType.WEEKLY, date(2025, 12, 29)) == "2026-W01"

    def test_days(self):
        assert period_days(BoardType.WEEKLY, date(2026, 2, 25)) == (date(2026, 2, 23), date(2026, 3, 2))

    def test_get_monday(self):
        assert get_monday(date(2026, 3, 1)) == date(2026, 2, 23)


class TestMonthly:
    def test_key(self):
        assert build_period_key(BoardType.MONTHLY, date(2026, 3, 31)) == "2026-03"

    def test_days(self):
        assert period_days(BoardType.MONTHLY, date(2026, 2, 14)) == (date(2026, 2, 1), date(2026, 3, 1))

    def test_december(self):
        assert period_days(BoardType.MONTHLY, date(2025, 12, 5)) == (date(2025, 12, 1), date(2026, 1, 1))


def test_unperiodic_boards():
    for board_type in (BoardType.GLOBAL, BoardType.STREAK, BoardType.CATEGORY):
        assert build_period_key(board_type, date(2026, 3, 2)) == ""
        assert period_days(board_type, date(2026, 3, 2)) is None
