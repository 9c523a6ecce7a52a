"""Day-boundary policy.

A game day is the calendar date in ``settings.GAME_TIMEZONE`` (UTC unless
configured otherwise). Request handlers compute it once and pass it down, so
score submission, leaderboard reads and payouts always agree on "today".

The daily reset fires at ``RESET_HOUR:00`` in the same timezone and pays out
the day before the reset instant's date.
"""

from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

from app.config import settings


def _tz(tz: ZoneInfo | None) -> ZoneInfo:
    return tz or settings.get_game_timezone()


def _localize(now: datetime | None, tz: ZoneInfo) -> datetime:
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        raise ValueError('now must be timezone-aware')
    return now.astimezone(tz)


def current_game_day(now: datetime | None = None, tz: ZoneInfo | None = None) -> date:
    return _localize(now, _tz(tz)).date()


def reset_instant(day: date, reset_hour: int, tz: ZoneInfo | None = None) -> datetime:
    return datetime(day.year, day.month, day.day, reset_hour, tzinfo=_tz(tz))


def last_reset_at(now: datetime | None = None, reset_hour: int | None = None, tz: ZoneInfo | None = None) -> datetime:
    tz = _tz(tz)
    hour = settings.RESET_HOUR if reset_hour is None else reset_hour
    local = _localize(now, tz)
    candidate = reset_instant(local.date(), hour, tz)
    if candidate > local:
        candidate = reset_instant(local.date() - timedelta(days=1), hour, tz)
    return candidate


def next_reset_at(now: datetime | None = None, reset_hour: int | None = None, tz: ZoneInfo | None = None) -> datetime:
    tz = _tz(tz)
    hour = settings.RESET_HOUR if reset_hour is None else reset_hour
    local = _localize(now, tz)
    candidate = reset_instant(local.date(), hour, tz)
    if candidate <= local:
        candidate = reset_instant(local.date() + timedelta(days=1), hour, tz)
    return candidate


def closed_game_day(now: datetime | None = None, reset_hour: int | None = None, tz: ZoneInfo | None = None) -> date:
    """The most recent game day whose payout is due at or before ``now``."""
    return last_reset_at(now, reset_hour, tz).date() - timedelta(days=1)
