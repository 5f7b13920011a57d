from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Callable

from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.application.utils.locale_es import format_long_date
from schuleagent.domain.entities.availability import DayAvailability

SCAN_DAYS = 14
SLOT_MINUTES = 30

# (open_hour, close_hour), slots in [open, close). Keyed by date.weekday(); sunday is closed.
WEEKDAY_HOURS = (7, 18)
SATURDAY_HOURS = (8, 12)


def opening_hours_for(day: date) -> tuple[int, int] | None:
    weekday = day.weekday()
    if weekday == 6:
        return None
    if weekday == 5:
        return SATURDAY_HOURS
    return WEEKDAY_HOURS


def generate_slots(open_hour: int, close_hour: int) -> list[str]:
    return [
        f"{minutes // 60:02d}:{minutes % 60:02d}"
        for minutes in range(open_hour * 60, close_hour * 60, SLOT_MINUTES)
    ]


class AvailabilityUseCase:
    def __init__(self, store: ClinicStorePort, clock: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def compute(self, start: date | None = None, service: str | None = None) -> list[DayAvailability]:
        """
        Open slots for the 14 days starting at ``start`` (today when omitted).
        Closed days and fully booked days are left out. Bookings of every service
        share one slot grid, so ``service`` does not filter anything.
        """
        anchor = start or self._clock().date()
        days: list[DayAvailability] = []
        for offset in range(SCAN_DAYS):
            availability = self.for_day(anchor + timedelta(days=offset))
            if availability is not None:
                days.append(availability)

        self._logger.debug(
            "Availability computed",
            extra={"service": service, "reason": f"{len(days)} open days from {anchor.isoformat()}"},
        )
        return days

    def for_day(self, day: date) -> DayAvailability | None:
        hours = opening_hours_for(day)
        if hours is None:
            return None

        booked = self._store.list_booked_times(day)
        free = tuple(slot for slot in generate_slots(*hours) if slot not in booked)
        if not free:
            return None
        return DayAvailability(date=day, label=format_long_date(day), slots=free)
