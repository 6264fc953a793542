"""Shared FastAPI dependencies."""

from habitquest.config import Settings, get_settings
from habitquest.database import get_session as _get_session
from habitquest.habits.calendar import Clock, DayCalendar, SystemClock

get_db = _get_session

_clock: Clock = SystemClock()


def get_clock() -> Clock:
    """Current-time source. Tests override this with a FrozenClock."""
    return _clock


def get_app_settings() -> Settings:
    return get_settings()


def get_calendar() -> DayCalendar:
    """Calendar bound to the configured day-boundary zone."""
    return DayCalendar(get_settings().day_boundary_timezone)
