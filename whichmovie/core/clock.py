from datetime import date, datetime, timezone
from typing import Protocol


class Clock(Protocol):
    """Source of "now" for TTLs and calendar-day logic."""

    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """Wall clock in UTC. Calendar days are UTC days."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def today(self) -> date:
        return self.now().date()
