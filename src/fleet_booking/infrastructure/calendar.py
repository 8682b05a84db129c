"""Business-day calendar backed by configured closures."""

from datetime import date
from typing import Iterable

from src.fleet_booking.application.ports.repositories import BusinessCalendar


class ConfiguredBusinessCalendar(BusinessCalendar):
    """Closed on fixed weekdays (0 = Monday) and on listed dates."""

    def __init__(self, closed_weekdays: Iterable[int] = (5, 6), closed_dates: Iterable[date] = ()):
        self._closed_weekdays = frozenset(closed_weekdays)
        self._closed_dates = frozenset(closed_dates)

        if any(weekday < 0 or weekday > 6 for weekday in self._closed_weekdays):
            raise ValueError("Weekdays must be between 0 (Monday) and 6 (Sunday)")

    def is_business_day(self, day: date) -> bool:
        """Check if slots can be offered on the given date."""
        return day.weekday() not in self._closed_weekdays and day not in self._closed_dates
