from __future__ import annotations

import threading
from dataclasses import replace
from datetime import date, datetime
from itertools import count

from schuleagent.application.exceptions import AppointmentNotFound
from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.domain.entities.appointment import Appointment, AppointmentStatus
from schuleagent.domain.entities.conversation import Conversation
from schuleagent.domain.entities.patient import Patient


class MemoryClinicStore(ClinicStorePort):
    def __init__(self) -> None:
        self._conversations: dict[int, Conversation] = {}
        self._patients: dict[int, Patient] = {}
        self._appointments: dict[int, Appointment] = {}
        self._conversation_ids = count(1)
        self._patient_ids = count(1)
        self._appointment_ids = count(1)
        self._lock = threading.RLock()

    def get_latest_conversation(self, identity: str) -> Conversation | None:
        with self._lock:
            matches = [c for c in self._conversations.values() if c.identity == identity]
        if not matches:
            return None
        return max(matches, key=lambda c: (c.updated_at or datetime.min, c.id))

    def create_conversation(self, identity: str, now: datetime) -> Conversation:
        with self._lock:
            conversation = Conversation(
                id=next(self._conversation_ids),
                identity=identity,
                created_at=now,
                updated_at=now,
            )
            self._conversations[conversation.id] = conversation
            return conversation

    def update_conversation(self, conversation: Conversation) -> None:
        with self._lock:
            self._conversations[conversation.id] = conversation

    def list_booked_times(self, day: date) -> set[str]:
        with self._lock:
            return {a.time for a in self._appointments.values() if a.date == day and a.occupies_slot}

    def list_appointments(self, day: date) -> list[tuple[Appointment, Patient]]:
        with self._lock:
            appointments = [a for a in self._appointments.values() if a.date == day and a.occupies_slot]
            appointments.sort(key=lambda a: (a.time, a.id))
            return [(a, self._patients[a.patient_id]) for a in appointments]

    def get_patient_by_document(self, document_number: str) -> Patient | None:
        with self._lock:
            for patient in self._patients.values():
                if patient.document_number == document_number:
                    return patient
        return None

    def create_patient(self, patient: Patient) -> Patient:
        with self._lock:
            stored = replace(patient, id=next(self._patient_ids))
            self._patients[stored.id] = stored
            return stored

    def find_or_create_patient(self, patient: Patient) -> tuple[Patient, bool]:
        with self._lock:
            existing = self.get_patient_by_document(patient.document_number)
            if existing is not None:
                return existing, False
            return self.create_patient(patient), True

    def create_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock:
            stored = replace(appointment, id=next(self._appointment_ids))
            self._appointments[stored.id] = stored
            return stored

    def commit_booking(self, patient: Patient, appointment: Appointment) -> tuple[Patient, Appointment, bool]:
        with self._lock:
            stored_patient, created = self.find_or_create_patient(patient)
            stored_appointment = self.create_appointment(replace(appointment, patient_id=stored_patient.id))
            return stored_patient, stored_appointment, created

    def set_appointment_status(self, appointment_id: int, status: AppointmentStatus) -> Appointment:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
            if appointment is None:
                raise AppointmentNotFound(f"Appointment {appointment_id} does not exist")
            updated = replace(appointment, status=status)
            self._appointments[appointment_id] = updated
            return updated
