"""
HTTP surface tests: WhatsApp webhook and the REST endpoints, with the
collaborators overridden to use an in-memory store and a pinned clock.
"""

from __future__ import annotations

import tempfile
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from schuleagent.application.use_cases.availability import AvailabilityUseCase
from schuleagent.application.use_cases.conversation_flow import ConversationFlow
from schuleagent.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from schuleagent.application.use_cases.manual_booking import ManualBookingUseCase
from schuleagent.application.dto.inbound_message import normalize_sender
from schuleagent.infrastructure.store.json_store import JsonClinicStore
from schuleagent.infrastructure.store.memory_store import MemoryClinicStore
from schuleagent.infrastructure.twilio.twiml import build_message_response
from schuleagent.main import app
from schuleagent.wiring.dependencies import (
    get_availability_use_case,
    get_handle_incoming_message_use_case,
    get_manual_booking_use_case,
)

# Monday
NOW = datetime(2026, 10, 19, 10, 0)


class FailingUseCase:
    def handle(self, identity: str, text: str) -> str:
        raise RuntimeError("store down")


@pytest.fixture
def store() -> MemoryClinicStore:
    return MemoryClinicStore()


@pytest.fixture
def client(store: MemoryClinicStore):
    clock = lambda: NOW
    availability = AvailabilityUseCase(store, clock=clock)
    flow = ConversationFlow(availability, store, clinic_name="Clínica DIMA", clock=clock)

    app.dependency_overrides[get_availability_use_case] = lambda: availability
    app.dependency_overrides[get_handle_incoming_message_use_case] = (
        lambda: HandleIncomingMessageUseCase(store, flow, clock=clock)
    )
    app.dependency_overrides[get_manual_booking_use_case] = lambda: ManualBookingUseCase(store, clock=clock)
    yield TestClient(app)
    app.dependency_overrides.clear()


def _booking_payload(**overrides) -> dict:
    payload = {
        "service": "mammography",
        "date": "2026-10-26",
        "time": "08:00",
        "patient": {
            "full_name": "Ana Pérez",
            "document_type": "CC",
            "document_number": "1234567890",
            "birth_date": "1985-03-15",
            "sex": "F",
            "phone": "3001234567",
            "insurer": "Sura",
            "address": "Calle 10 # 20-30",
            "email": "Ana@Example.com",
        },
    }
    payload.update(overrides)
    return payload


def test_index_and_health(client: TestClient):
    index = client.get("/").json()

    assert index["status"] == "ok"
    assert index["service"] == "SchuleAgent - Clínica DIMA"
    assert index["version"] == "1.0.0"
    assert client.get("/health").json() == {"status": "ok"}


def test_normalize_sender():
    assert normalize_sender("whatsapp:+573001234567") == "573001234567"
    assert normalize_sender("573001234567") == "573001234567"


def test_twiml_escapes_reply():
    xml = build_message_response("Fecha < hoy & más")

    assert xml.startswith('<?xml version="1.0" encoding="UTF-8"?><Response><Message>')
    assert "Fecha &lt; hoy &amp; más" in xml


def test_whatsapp_webhook_replies_with_twiml(client: TestClient, store: MemoryClinicStore):
    response = client.post("/webhook/whatsapp", data={"From": "whatsapp:+573001234567", "Body": "1"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/xml")
    assert "<Response><Message>" in response.text
    assert "Mamografía" in response.text
    assert store.get_latest_conversation("573001234567").step.value == "servicio"


def test_whatsapp_webhook_apologizes_on_failure(client: TestClient):
    app.dependency_overrides[get_handle_incoming_message_use_case] = lambda: FailingUseCase()

    response = client.post("/webhook/whatsapp", data={"From": "whatsapp:+573001234567", "Body": "hola"})

    assert response.status_code == 200
    assert "Lo siento" in response.text


def test_whatsapp_webhook_requires_sender(client: TestClient):
    response = client.post("/webhook/whatsapp", data={"Body": "hola"})

    assert response.status_code == 422


def test_availability_endpoint(client: TestClient):
    body = client.get("/api/availability", params={"date": "2026-10-24", "service": "mammography"}).json()

    first = body["slots"][0]
    assert first["date"] == "2026-10-24"
    assert first["label"] == "sábado 24 de octubre"
    assert first["slots"][0] == "08:00"
    assert body["slots"][1]["date"] == "2026-10-26"


def test_manual_booking_lifecycle(client: TestClient):
    created = client.post("/api/appointments", json=_booking_payload())

    assert created.status_code == 200
    body = created.json()
    assert body["success"] is True
    appointment = body["appointment"]
    assert appointment["status"] == "confirmed"
    assert appointment["channel"] == "manual"
    assert appointment["patient"]["email"] == "ana@example.com"

    listed = client.get("/api/appointments", params={"date": "2026-10-26"}).json()["appointments"]
    assert [a["time"] for a in listed] == ["08:00"]
    assert listed[0]["patient"]["document_number"] == "1234567890"

    slots = client.get("/api/availability", params={"date": "2026-10-26"}).json()["slots"][0]["slots"]
    assert "08:00" not in slots

    cancelled = client.post(f"/api/appointments/{appointment['id']}/cancel")
    assert cancelled.json()["appointment"]["status"] == "cancelled"
    assert client.get("/api/appointments", params={"date": "2026-10-26"}).json()["appointments"] == []


def test_manual_booking_rejections(client: TestClient):
    assert client.post("/api/appointments", json=_booking_payload(date="2026-10-25")).status_code == 400
    assert client.post("/api/appointments", json=_booking_payload(time="07:15")).status_code == 400
    assert client.post("/api/appointments", json=_booking_payload(time="8am")).status_code == 422
    assert client.post("/api/appointments", json=_booking_payload(service="xray")).status_code == 422


def test_cancel_unknown_appointment(client: TestClient):
    assert client.post("/api/appointments/999/cancel").status_code == 404


def test_malformed_store_document_is_service_unavailable(client: TestClient):
    with tempfile.TemporaryDirectory() as tmpdir:
        (Path(tmpdir) / "clinic.json").write_text("[]", encoding="utf-8")
        store = JsonClinicStore(data_dir=tmpdir)
        app.dependency_overrides[get_manual_booking_use_case] = lambda: ManualBookingUseCase(store, clock=lambda: NOW)
        app.dependency_overrides[get_availability_use_case] = lambda: AvailabilityUseCase(store, clock=lambda: NOW)

        assert client.get("/api/appointments", params={"date": "2026-10-26"}).status_code == 503
        assert client.get("/api/availability", params={"date": "2026-10-26"}).status_code == 503
