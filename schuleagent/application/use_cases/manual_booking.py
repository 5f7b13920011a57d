from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Callable

from schuleagent.application.exceptions import InvalidBookingRequest
from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.application.use_cases.availability import generate_slots, opening_hours_for
from schuleagent.domain.entities.appointment import Appointment, AppointmentStatus, BookingChannel, Service
from schuleagent.domain.entities.patient import Patient


class ManualBookingUseCase:
    """Front-desk bookings made through the REST API, outside the chat flow."""

    def __init__(self, store: ClinicStorePort, clock: Callable[[], datetime] = datetime.now) -> None:
        self._store = store
        self._clock = clock
        self._logger = logging.getLogger(__name__)

    def create(self, service: Service, day: date, time: str, patient: Patient) -> tuple[Appointment, Patient]:
        """
        Book ``time`` on ``day`` for the patient with this document number.
        The time must sit on the clinic's slot grid for that day. Whether the slot is
        already taken is not checked.
        """
        hours = opening_hours_for(day)
        if hours is None:
            raise InvalidBookingRequest(f"The clinic is closed on {day.isoformat()}")
        if time not in generate_slots(*hours):
            raise InvalidBookingRequest(f"{time} is not a bookable slot on {day.isoformat()}")

        missing = [
            name
            for name in ("full_name", "document_number", "phone", "insurer", "address", "email")
            if not str(getattr(patient, name) or "").strip()
        ]
        if missing:
            raise InvalidBookingRequest(f"Missing patient data: {', '.join(missing)}")

        stored_patient, appointment, created = self._store.commit_booking(
            patient,
            Appointment(
                service=service,
                date=day,
                time=time,
                patient_id=0,
                status=AppointmentStatus.CONFIRMED,
                channel=BookingChannel.MANUAL,
                created_at=self._clock(),
            ),
        )
        self._logger.info(
            "Manual booking created",
            extra={
                "service": service.value,
                "patient_id": stored_patient.id,
                "appointment_id": appointment.id,
                "reason": "patient_created" if created else "patient_reused",
            },
        )
        return appointment, stored_patient

    def list_day(self, day: date) -> list[tuple[Appointment, Patient]]:
        return self._store.list_appointments(day)

    def cancel(self, appointment_id: int) -> Appointment:
        appointment = self._store.set_appointment_status(appointment_id, AppointmentStatus.CANCELLED)
        self._logger.info("Appointment cancelled", extra={"appointment_id": appointment_id})
        return appointment
