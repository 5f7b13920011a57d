from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum


class Service(str, Enum):
    MAMMOGRAPHY = "mammography"
    DENSITOMETRY = "densitometry"

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def duration_minutes(self) -> int:
        """Nominal exam length. Slots stay on the 30-minute grid regardless."""
        return _DURATIONS[self]


_DISPLAY_NAMES = {
    Service.MAMMOGRAPHY: "Mamografía",
    Service.DENSITOMETRY: "Densitometría",
}

_DURATIONS = {
    Service.MAMMOGRAPHY: 30,
    Service.DENSITOMETRY: 20,
}


class AppointmentStatus(str, Enum):
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


class BookingChannel(str, Enum):
    MANUAL = "manual"
    WHATSAPP = "whatsapp"


@dataclass(frozen=True)
class Appointment:
    service: Service
    date: date
    time: str  # HH:MM slot start
    patient_id: int
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    channel: BookingChannel = BookingChannel.MANUAL
    id: int | None = None
    created_at: datetime | None = None

    @property
    def occupies_slot(self) -> bool:
        return self.status != AppointmentStatus.CANCELLED
