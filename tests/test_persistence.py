"""
Tests for the JSON-backed clinic store.
"""

from __future__ import annotations

import json
import tempfile
from dataclasses import replace
from datetime import date, datetime
from pathlib import Path

import pytest

from schuleagent.application.exceptions import AppointmentNotFound, StoreError
from schuleagent.domain.entities.appointment import Appointment, AppointmentStatus, BookingChannel, Service
from schuleagent.domain.entities.conversation import ConversationStep
from schuleagent.domain.entities.patient import DocumentType, Patient, Sex
from schuleagent.infrastructure.store.json_store import JsonClinicStore

NOW = datetime(2026, 10, 19, 10, 0)


def _patient(document_number: str = "1234567890", full_name: str = "Ana Pérez") -> Patient:
    return Patient(
        full_name=full_name,
        document_type=DocumentType.CC,
        document_number=document_number,
        birth_date=date(1985, 3, 15),
        sex=Sex.F,
        phone="573001234567",
        insurer="Sura",
        address="Calle 10 # 20-30",
        email="ana@example.com",
    )


def _appointment(day: date = date(2026, 10, 20), time: str = "07:00") -> Appointment:
    return Appointment(
        service=Service.MAMMOGRAPHY,
        date=day,
        time=time,
        patient_id=0,
        channel=BookingChannel.WHATSAPP,
        created_at=NOW,
    )


def test_conversation_survives_restart():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)
        conversation = store.create_conversation("573001234567", NOW)
        store.update_conversation(
            replace(
                conversation,
                step=ConversationStep.NOMBRE,
                service=Service.DENSITOMETRY,
                appointment_date=date(2026, 10, 20),
                appointment_time="07:00",
                data={"full_name": "Ana Pérez"},
            )
        )

        reloaded = JsonClinicStore(data_dir=tmpdir).get_latest_conversation("573001234567")

        assert reloaded is not None
        assert reloaded.id == conversation.id
        assert reloaded.step == ConversationStep.NOMBRE
        assert reloaded.service == Service.DENSITOMETRY
        assert reloaded.appointment_date == date(2026, 10, 20)
        assert reloaded.appointment_time == "07:00"
        assert reloaded.data == {"full_name": "Ana Pérez"}
        assert reloaded.updated_at == NOW


def test_latest_conversation_wins():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)
        store.create_conversation("573001234567", datetime(2026, 10, 17, 9, 0))
        newer = store.create_conversation("573001234567", NOW)
        store.create_conversation("573009999999", datetime(2026, 10, 20, 9, 0))

        assert store.get_latest_conversation("573001234567").id == newer.id
        assert store.get_latest_conversation("570000000000") is None


def test_find_or_create_patient_keeps_existing_record():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)

        created, was_created = store.find_or_create_patient(_patient())
        found, found_created = store.find_or_create_patient(_patient(full_name="Otro Nombre"))

        assert was_created is True
        assert found_created is False
        assert found.id == created.id
        assert found.full_name == "Ana Pérez"
        assert store.get_patient_by_document("1234567890").full_name == "Ana Pérez"


def test_commit_booking_links_patient_and_appointment():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)

        patient, appointment, created = store.commit_booking(_patient(), _appointment())
        _, second, second_created = store.commit_booking(_patient(), _appointment(time="07:30"))

        assert created is True
        assert second_created is False
        assert appointment.patient_id == patient.id
        assert second.patient_id == patient.id
        assert appointment.id != second.id

        reloaded = JsonClinicStore(data_dir=tmpdir)
        booked = reloaded.list_appointments(date(2026, 10, 20))
        assert [a.time for a, _ in booked] == ["07:00", "07:30"]
        assert booked[0][1].document_number == "1234567890"
        assert booked[0][0].channel == BookingChannel.WHATSAPP
        assert booked[0][0].created_at == NOW
        assert reloaded.list_booked_times(date(2026, 10, 20)) == {"07:00", "07:30"}
        assert not (Path(tmpdir) / "clinic.json.tmp").exists()


def test_cancelled_appointment_releases_slot():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)
        _, appointment, _ = store.commit_booking(_patient(), _appointment())

        cancelled = store.set_appointment_status(appointment.id, AppointmentStatus.CANCELLED)

        assert cancelled.status == AppointmentStatus.CANCELLED
        assert store.list_booked_times(date(2026, 10, 20)) == set()
        assert store.list_appointments(date(2026, 10, 20)) == []


def test_unknown_appointment_status_change():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)

        with pytest.raises(AppointmentNotFound):
            store.set_appointment_status(42, AppointmentStatus.CANCELLED)


def test_corrupt_document_raises_store_error():
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "clinic.json").write_text("{not json", encoding="utf-8")
        store = JsonClinicStore(data_dir=tmpdir)

        with pytest.raises(StoreError):
            store.get_latest_conversation("573001234567")


def test_malformed_document_raises_store_error():
    appointment = {
        "id": 1,
        "service": "mammography",
        "date": "2026-10-20",
        "time": "07:00",
        "status": "confirmed",
        "channel": "manual",
        "patient_id": 9,
    }
    documents = [
        ([], lambda s: s.get_latest_conversation("573001234567")),
        ({"appointments": {}}, lambda s: s.list_booked_times(date(2026, 10, 20))),
        ({"conversations": [{"identity": "573001234567"}]}, lambda s: s.get_latest_conversation("573001234567")),
        ({"appointments": [{"id": 1, "date": "2026-10-20"}]}, lambda s: s.list_booked_times(date(2026, 10, 20))),
        ({"appointments": [appointment]}, lambda s: s.list_appointments(date(2026, 10, 20))),
        ({"patients": [{"id": 1, "document_number": "1234567890"}]}, lambda s: s.find_or_create_patient(_patient())),
    ]

    for document, read in documents:
        with tempfile.TemporaryDirectory() as tmpdir:
            (Path(tmpdir) / "clinic.json").write_text(json.dumps(document), encoding="utf-8")
            store = JsonClinicStore(data_dir=tmpdir)

            with pytest.raises(StoreError):
                read(store)


def test_appointment_timestamp_is_the_callers():
    with tempfile.TemporaryDirectory() as tmpdir:
        store = JsonClinicStore(data_dir=tmpdir)

        stamped = store.create_appointment(_appointment())
        unstamped = store.create_appointment(replace(_appointment(time="07:30"), created_at=None))

        assert stamped.created_at == NOW
        assert unstamped.created_at is None
