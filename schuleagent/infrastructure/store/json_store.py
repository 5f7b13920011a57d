from __future__ import annotations

import json
import logging
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Iterator

from schuleagent.application.exceptions import AppointmentNotFound, StoreError
from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.domain.entities.appointment import Appointment, AppointmentStatus, BookingChannel, Service
from schuleagent.domain.entities.conversation import Conversation, ConversationStep
from schuleagent.domain.entities.patient import DocumentType, Patient, Sex


class JsonClinicStore(ClinicStorePort):
    """File-backed store. Conversations, patients and appointments share one JSON document,
    so a booking commit is a single atomic file replace."""

    def __init__(self, data_dir: str = "./data", filename: str = "clinic.json") -> None:
        self._data_dir = Path(data_dir)
        self._data_dir.mkdir(parents=True, exist_ok=True)
        self._file_path = self._data_dir / filename
        self._lock = threading.RLock()
        self._logger = logging.getLogger(__name__)

    def get_latest_conversation(self, identity: str) -> Conversation | None:
        with self._lock, self._decoding():
            data = self._load()
            matches = [
                self._deserialize_conversation(item)
                for item in data["conversations"]
                if item.get("identity") == identity
            ]
        if not matches:
            return None
        return max(matches, key=lambda c: (c.updated_at or datetime.min, c.id))

    def create_conversation(self, identity: str, now: datetime) -> Conversation:
        with self._lock, self._decoding():
            data = self._load()
            conversation = Conversation(
                id=self._next_id(data["conversations"]),
                identity=identity,
                created_at=now,
                updated_at=now,
            )
            data["conversations"].append(self._serialize_conversation(conversation))
            self._save(data)
            return conversation

    def update_conversation(self, conversation: Conversation) -> None:
        with self._lock, self._decoding():
            data = self._load()
            serialized = self._serialize_conversation(conversation)
            for index, item in enumerate(data["conversations"]):
                if item.get("id") == conversation.id:
                    data["conversations"][index] = serialized
                    break
            else:
                data["conversations"].append(serialized)
            self._save(data)

    def list_booked_times(self, day: date) -> set[str]:
        day_iso = day.isoformat()
        with self._lock, self._decoding():
            data = self._load()
            return {
                item["time"]
                for item in data["appointments"]
                if item.get("date") == day_iso and item.get("status") != AppointmentStatus.CANCELLED.value
            }

    def list_appointments(self, day: date) -> list[tuple[Appointment, Patient]]:
        with self._lock, self._decoding():
            data = self._load()
            patients = {item["id"]: self._deserialize_patient(item) for item in data["patients"]}
            appointments = [
                self._deserialize_appointment(item)
                for item in data["appointments"]
                if item.get("date") == day.isoformat()
            ]
            appointments = [a for a in appointments if a.occupies_slot]
            appointments.sort(key=lambda a: (a.time, a.id))
            # An appointment pointing at a missing patient is a malformed document
            return [(a, patients[a.patient_id]) for a in appointments]

    def get_patient_by_document(self, document_number: str) -> Patient | None:
        with self._lock, self._decoding():
            data = self._load()
            item = self._find_patient_item(data, document_number)
            return self._deserialize_patient(item) if item else None

    def create_patient(self, patient: Patient) -> Patient:
        with self._lock, self._decoding():
            data = self._load()
            stored = self._insert_patient(data, patient)
            self._save(data)
            return stored

    def find_or_create_patient(self, patient: Patient) -> tuple[Patient, bool]:
        with self._lock, self._decoding():
            data = self._load()
            existing = self._find_patient_item(data, patient.document_number)
            if existing:
                return self._deserialize_patient(existing), False
            stored = self._insert_patient(data, patient)
            self._save(data)
            return stored, True

    def create_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock, self._decoding():
            data = self._load()
            stored = self._insert_appointment(data, appointment)
            self._save(data)
            return stored

    def commit_booking(self, patient: Patient, appointment: Appointment) -> tuple[Patient, Appointment, bool]:
        with self._lock, self._decoding():
            data = self._load()
            existing = self._find_patient_item(data, patient.document_number)
            if existing:
                stored_patient = self._deserialize_patient(existing)
                created = False
            else:
                stored_patient = self._insert_patient(data, patient)
                created = True
            stored_appointment = self._insert_appointment(
                data,
                Appointment(
                    service=appointment.service,
                    date=appointment.date,
                    time=appointment.time,
                    patient_id=stored_patient.id,
                    status=appointment.status,
                    channel=appointment.channel,
                    created_at=appointment.created_at,
                ),
            )
            self._save(data)
            return stored_patient, stored_appointment, created

    def set_appointment_status(self, appointment_id: int, status: AppointmentStatus) -> Appointment:
        with self._lock, self._decoding():
            data = self._load()
            for item in data["appointments"]:
                if item.get("id") == appointment_id:
                    item["status"] = status.value
                    self._save(data)
                    return self._deserialize_appointment(item)
        raise AppointmentNotFound(f"Appointment {appointment_id} does not exist")

    def _load(self) -> dict[str, Any]:
        """Load the document, or an empty one if the file does not exist yet."""
        if not self._file_path.exists():
            return {"conversations": [], "patients": [], "appointments": [], "version": 1}

        try:
            with open(self._file_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            self._logger.error("Clinic store unreadable", extra={"reason": str(e)})
            raise StoreError(f"Cannot read {self._file_path}: {e}") from e

        if not isinstance(data, dict):
            raise StoreError(f"Malformed document in {self._file_path}: expected an object")
        for key in ("conversations", "patients", "appointments"):
            data.setdefault(key, [])
            if not isinstance(data[key], list) or not all(isinstance(item, dict) for item in data[key]):
                raise StoreError(f"Malformed document in {self._file_path}: {key!r} must be a list of objects")
        data.setdefault("version", 1)
        return data

    @contextmanager
    def _decoding(self) -> Iterator[None]:
        """Turn records with missing or mistyped fields into StoreError."""
        try:
            yield
        except (KeyError, TypeError, ValueError) as e:
            self._logger.error("Clinic store record malformed", extra={"reason": repr(e)})
            raise StoreError(f"Malformed record in {self._file_path}: {e!r}") from e

    def _save(self, data: dict[str, Any]) -> None:
        """Save the document atomically via a temp file."""
        temp_path = self._file_path.with_suffix(".json.tmp")
        try:
            with open(temp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            temp_path.replace(self._file_path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StoreError(f"Cannot write {self._file_path}: {e}") from e

    def _next_id(self, items: list[dict[str, Any]]) -> int:
        return max((item.get("id", 0) for item in items), default=0) + 1

    def _find_patient_item(self, data: dict[str, Any], document_number: str) -> dict[str, Any] | None:
        for item in data["patients"]:
            if item.get("document_number") == document_number:
                return item
        return None

    def _insert_patient(self, data: dict[str, Any], patient: Patient) -> Patient:
        stored = Patient(
            full_name=patient.full_name,
            document_type=patient.document_type,
            document_number=patient.document_number,
            birth_date=patient.birth_date,
            sex=patient.sex,
            phone=patient.phone,
            insurer=patient.insurer,
            address=patient.address,
            email=patient.email,
            id=self._next_id(data["patients"]),
        )
        data["patients"].append(self._serialize_patient(stored))
        return stored

    def _insert_appointment(self, data: dict[str, Any], appointment: Appointment) -> Appointment:
        stored = Appointment(
            service=appointment.service,
            date=appointment.date,
            time=appointment.time,
            patient_id=appointment.patient_id,
            status=appointment.status,
            channel=appointment.channel,
            id=self._next_id(data["appointments"]),
            created_at=appointment.created_at,
        )
        data["appointments"].append(self._serialize_appointment(stored))
        return stored

    def _serialize_conversation(self, conversation: Conversation) -> dict[str, Any]:
        return {
            "id": conversation.id,
            "identity": conversation.identity,
            "step": conversation.step.value,
            "service": conversation.service.value if conversation.service else None,
            "appointment_date": conversation.appointment_date.isoformat() if conversation.appointment_date else None,
            "appointment_time": conversation.appointment_time,
            "data": dict(conversation.data),
            "created_at": conversation.created_at.isoformat() if conversation.created_at else None,
            "updated_at": conversation.updated_at.isoformat() if conversation.updated_at else None,
        }

    def _deserialize_conversation(self, data: dict[str, Any]) -> Conversation:
        return Conversation(
            id=data["id"],
            identity=data["identity"],
            step=ConversationStep(data.get("step", ConversationStep.INICIO.value)),
            service=Service(data["service"]) if data.get("service") else None,
            appointment_date=date.fromisoformat(data["appointment_date"]) if data.get("appointment_date") else None,
            appointment_time=data.get("appointment_time"),
            data=dict(data.get("data") or {}),
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None,
            updated_at=datetime.fromisoformat(data["updated_at"]) if data.get("updated_at") else None,
        )

    def _serialize_patient(self, patient: Patient) -> dict[str, Any]:
        return {
            "id": patient.id,
            "full_name": patient.full_name,
            "document_type": patient.document_type.value,
            "document_number": patient.document_number,
            "birth_date": patient.birth_date.isoformat(),
            "sex": patient.sex.value,
            "phone": patient.phone,
            "insurer": patient.insurer,
            "address": patient.address,
            "email": patient.email,
        }

    def _deserialize_patient(self, data: dict[str, Any]) -> Patient:
        return Patient(
            id=data["id"],
            full_name=data["full_name"],
            document_type=DocumentType(data["document_type"]),
            document_number=data["document_number"],
            birth_date=date.fromisoformat(data["birth_date"]),
            sex=Sex(data["sex"]),
            phone=data["phone"],
            insurer=data["insurer"],
            address=data["address"],
            email=data["email"],
        )

    def _serialize_appointment(self, appointment: Appointment) -> dict[str, Any]:
        return {
            "id": appointment.id,
            "service": appointment.service.value,
            "date": appointment.date.isoformat(),
            "time": appointment.time,
            "status": appointment.status.value,
            "channel": appointment.channel.value,
            "patient_id": appointment.patient_id,
            "created_at": appointment.created_at.isoformat() if appointment.created_at else None,
        }

    def _deserialize_appointment(self, data: dict[str, Any]) -> Appointment:
        return Appointment(
            id=data["id"],
            service=Service(data["service"]),
            date=date.fromisoformat(data["date"]),
            time=data["time"],
            status=AppointmentStatus(data["status"]),
            channel=BookingChannel(data["channel"]),
            patient_id=data["patient_id"],
            created_at=datetime.fromisoformat(data["created_at"]) if data.get("created_at") else None,
        )
