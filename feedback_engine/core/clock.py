"""Clock abstraction injected into the engine services."""

from datetime import datetime, timedelta, timezone


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite hands them back without tzinfo)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock:
    """Source of the current time."""

    def now(self) -> datetime:
        raise NotImplementedError


class SystemClock(Clock):
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FrozenClock(Clock):
    """Clock pinned to a fixed instant. Used by tests and replays."""

    def __init__(self, at: datetime):
        self._at = ensure_utc(at)

    def now(self) -> datetime:
        return self._at

    def advance(self, **kwargs: float) -> None:
        """Move the clock forward, e.g. ``clock.advance(days=3)``."""
        self._at = self._at + timedelta(**kwargs)
