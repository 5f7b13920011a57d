from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from schuleagent.domain.entities.appointment import Appointment, AppointmentStatus
from schuleagent.domain.entities.conversation import Conversation
from schuleagent.domain.entities.patient import Patient


class ClinicStorePort(ABC):
    @abstractmethod
    def get_latest_conversation(self, identity: str) -> Conversation | None:
        """Most recently updated conversation for this sender, if any."""
        raise NotImplementedError

    @abstractmethod
    def create_conversation(self, identity: str, now: datetime) -> Conversation:
        raise NotImplementedError

    @abstractmethod
    def update_conversation(self, conversation: Conversation) -> None:
        """Overwrite the stored conversation with the same id. Last write wins."""
        raise NotImplementedError

    @abstractmethod
    def list_booked_times(self, day: date) -> set[str]:
        """HH:MM start times of every non-cancelled appointment on ``day``, any service."""
        raise NotImplementedError

    @abstractmethod
    def list_appointments(self, day: date) -> list[tuple[Appointment, Patient]]:
        """Non-cancelled appointments on ``day`` with their patient, ordered by time."""
        raise NotImplementedError

    @abstractmethod
    def get_patient_by_document(self, document_number: str) -> Patient | None:
        raise NotImplementedError

    @abstractmethod
    def create_patient(self, patient: Patient) -> Patient:
        raise NotImplementedError

    @abstractmethod
    def find_or_create_patient(self, patient: Patient) -> tuple[Patient, bool]:
        """
        Return the patient stored under ``patient.document_number``, creating it if absent.
        An existing record is returned unchanged. The flag is True when a record was created.
        """
        raise NotImplementedError

    @abstractmethod
    def create_appointment(self, appointment: Appointment) -> Appointment:
        """Assigns the id. ``created_at`` is stored as supplied by the caller."""
        raise NotImplementedError

    @abstractmethod
    def commit_booking(self, patient: Patient, appointment: Appointment) -> tuple[Patient, Appointment, bool]:
        """
        Find-or-create the patient and create the appointment for it as one atomic step.
        ``appointment.patient_id`` is ignored and replaced by the stored patient's id.
        """
        raise NotImplementedError

    @abstractmethod
    def set_appointment_status(self, appointment_id: int, status: AppointmentStatus) -> Appointment:
        """Raises AppointmentNotFound for unknown ids."""
        raise NotImplementedError
