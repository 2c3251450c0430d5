"""
Injectable clock.

Stores and the sweeper take a Clock at construction so tests can pin
"now" and "today" instead of patching datetime.
"""
from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):

    @abstractmethod
    def now(self) -> datetime:
        """Timezone-aware current time."""

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """Returns the same instant until moved with advance() or set()."""

    def __init__(self, fixed: datetime):
        if fixed.tzinfo is None:
            fixed = fixed.replace(tzinfo=timezone.utc)
        self._now = fixed

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        self._now = value

    def advance(self, **kwargs) -> None:
        self._now = self._now + timedelta(**kwargs)
