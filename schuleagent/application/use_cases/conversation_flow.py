from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.application.use_cases.availability import AvailabilityUseCase
from schuleagent.application.utils.date_parser import parse_birth_date, parse_colloquial_date
from schuleagent.application.utils.locale_es import format_long_date
from schuleagent.application.utils.message_rules import (
    BOOKING_INTENT_RULES,
    CONFIRMATION_RULES,
    DOCUMENT_TYPE_RULES,
    MIN_DOCUMENT_DIGITS,
    MIN_PHONE_DIGITS,
    SAME_PHONE_RULES,
    SERVICE_RULES,
    SEX_RULES,
    digits_only,
    first_match,
    has_full_name,
    last_match,
    looks_like_email,
    normalize_message,
)
from schuleagent.domain.entities.appointment import Appointment, AppointmentStatus, BookingChannel, Service
from schuleagent.domain.entities.availability import DayAvailability
from schuleagent.domain.entities.conversation import Conversation, ConversationStep
from schuleagent.domain.entities.patient import DocumentType, Patient, Sex

DATE_OPTIONS_SHOWN = 3

DATE_PROMPT = (
    "¿Para qué fecha te gustaría agendar?\n\n"
    "Puedes decirme:\n"
    "• \"Mañana\"\n"
    "• \"El viernes\"\n"
    "• \"La próxima semana\"\n"
    "• O una fecha específica"
)

SERVICE_MENU = "🩺 *Mamografía*\n🦴 *Densitometría*"

SERVICE_ICONS = {
    Service.MAMMOGRAPHY: "🩺",
    Service.DENSITOMETRY: "🦴",
}


@dataclass(frozen=True)
class TurnResult:
    """Outcome of one message. ``None`` fields mean "leave the stored value as is"."""

    next_step: ConversationStep
    reply: str
    data: dict[str, Any] | None = None
    service: Service | None = None
    appointment_date: date | None = None
    appointment_time: str | None = None


class ConversationFlow:
    """
    Guided booking dialogue: service, date, then patient data one field at a time,
    then confirmation. Invalid input repeats the current step with a corrective prompt.
    Only an affirmative answer at CONFIRMACION writes to the store.
    """

    def __init__(
        self,
        availability: AvailabilityUseCase,
        store: ClinicStorePort,
        clinic_name: str = "Clínica DIMA",
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._availability = availability
        self._store = store
        self._clinic_name = clinic_name
        self._clock = clock
        self._logger = logging.getLogger(__name__)
        self._handlers: dict[ConversationStep, Callable[[Conversation, str, str], TurnResult]] = {
            ConversationStep.INICIO: self._handle_start,
            ConversationStep.SERVICIO: self._handle_service,
            ConversationStep.FECHA: self._handle_date,
            ConversationStep.NOMBRE: self._handle_name,
            ConversationStep.TIPO_DOC: self._handle_document_type,
            ConversationStep.NUM_DOC: self._handle_document_number,
            ConversationStep.NACIMIENTO: self._handle_birth_date,
            ConversationStep.SEXO: self._handle_sex,
            ConversationStep.TELEFONO: self._handle_phone,
            ConversationStep.EPS: self._handle_insurer,
            ConversationStep.DIRECCION: self._handle_address,
            ConversationStep.EMAIL: self._handle_email,
            ConversationStep.CONFIRMACION: self._handle_confirmation,
        }

    def step(self, conversation: Conversation, text: str) -> TurnResult:
        raw = (text or "").strip()
        message = normalize_message(raw)
        handler = self._handlers.get(conversation.step, self._handle_start)
        return handler(conversation, message, raw)

    def main_menu(self) -> str:
        return (
            f"¡Hola! Soy el asistente virtual de *{self._clinic_name}* 🏥\n\n"
            "¿En qué puedo ayudarte?\n\n"
            "1️⃣ Agendar una cita\n"
            "2️⃣ Consultar una cita\n"
            "3️⃣ Cancelar una cita"
        )

    def _handle_start(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        if first_match(BOOKING_INTENT_RULES, message):
            return TurnResult(
                next_step=ConversationStep.SERVICIO,
                reply=f"¿Qué examen necesitas agendar?\n\n{SERVICE_MENU}\n\nResponde con el nombre del examen.",
            )
        return TurnResult(next_step=ConversationStep.INICIO, reply=self.main_menu())

    def _handle_service(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        matched = first_match(SERVICE_RULES, message)
        if not matched:
            return TurnResult(
                next_step=ConversationStep.SERVICIO,
                reply=f"No entendí. Por favor elige:\n\n{SERVICE_MENU}",
            )

        service = Service(matched)
        return TurnResult(
            next_step=ConversationStep.FECHA,
            service=service,
            reply=(
                f"Perfecto, *{service.display_name}* {SERVICE_ICONS[service]} "
                f"(duración aproximada: {service.duration_minutes} minutos)\n\n{DATE_PROMPT}"
            ),
        )

    def _handle_date(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        service = conversation.service.value if conversation.service else None
        requested = parse_colloquial_date(message, self._clock())

        if requested is None:
            options = self._availability.compute(None, service)[:DATE_OPTIONS_SHOWN]
            return TurnResult(
                next_step=ConversationStep.FECHA,
                reply=f"No entendí la fecha. Próximas disponibles:\n\n{_format_options(options)}\n\n¿Cuál prefieres?",
            )

        window = self._availability.compute(requested, service)
        day = next((d for d in window if d.date == requested), None)
        if day is None or not day.slots:
            options = window[:DATE_OPTIONS_SHOWN]
            return TurnResult(
                next_step=ConversationStep.FECHA,
                reply=f"No hay disponibilidad para esa fecha 😕\n\nPróximas opciones:\n\n{_format_options(options)}\n\n¿Cuál prefieres?",
            )

        # No slot-choice step: the earliest free slot of the day is taken.
        slot = day.slots[0]
        return TurnResult(
            next_step=ConversationStep.NOMBRE,
            appointment_date=day.date,
            appointment_time=slot,
            reply=(
                f"✅ *{day.label}* a las *{slot}*\n\n"
                "Para completar tu cita, necesito algunos datos.\n\n"
                "¿Cuál es tu *nombre completo*?"
            ),
        )

    def _handle_name(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        if not has_full_name(raw):
            return TurnResult(
                next_step=ConversationStep.NOMBRE,
                reply="Por favor ingresa tu nombre completo (nombre y apellido).",
            )

        return TurnResult(
            next_step=ConversationStep.TIPO_DOC,
            data=_collect(conversation, full_name=raw),
            reply=(
                f"Gracias, *{raw}* 👋\n\n"
                "¿Cuál es tu tipo de documento?\n\n"
                "• CC - Cédula de Ciudadanía\n"
                "• CE - Cédula de Extranjería\n"
                "• PP - Pasaporte\n"
                "• TI - Tarjeta de Identidad"
            ),
        )

    def _handle_document_type(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        matched = first_match(DOCUMENT_TYPE_RULES, message)
        if not matched:
            return TurnResult(next_step=ConversationStep.TIPO_DOC, reply="Por favor elige: CC, CE, PP o TI")

        return TurnResult(
            next_step=ConversationStep.NUM_DOC,
            data=_collect(conversation, document_type=matched),
            reply=f"¿Cuál es tu número de *{matched}*?",
        )

    def _handle_document_number(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        number = digits_only(message)
        if len(number) < MIN_DOCUMENT_DIGITS:
            return TurnResult(
                next_step=ConversationStep.NUM_DOC,
                reply="El número de documento parece muy corto. Por favor verifica.",
            )

        return TurnResult(
            next_step=ConversationStep.NACIMIENTO,
            data=_collect(conversation, document_number=number),
            reply="¿Cuál es tu *fecha de nacimiento*?\n\n(Ejemplo: 15 de marzo de 1985)",
        )

    def _handle_birth_date(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        birth_date = parse_birth_date(message, self._clock())
        if birth_date is None:
            return TurnResult(
                next_step=ConversationStep.NACIMIENTO,
                reply="No entendí la fecha. Intenta con formato: día/mes/año (ej: 15/03/1985)",
            )

        return TurnResult(
            next_step=ConversationStep.SEXO,
            data=_collect(conversation, birth_date=birth_date.isoformat()),
            reply="¿Cuál es tu *sexo biológico*?\n\n• Femenino\n• Masculino",
        )

    def _handle_sex(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        sex = last_match(SEX_RULES, message)
        if not sex:
            return TurnResult(next_step=ConversationStep.SEXO, reply="Por favor responde: Femenino o Masculino")

        return TurnResult(
            next_step=ConversationStep.TELEFONO,
            data=_collect(conversation, sex=sex),
            reply="¿A qué *número de teléfono* podemos contactarte?\n\n(Si es el mismo de WhatsApp, escribe \"este\")",
        )

    def _handle_phone(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        phone = digits_only(message)
        if first_match(SAME_PHONE_RULES, message):
            phone = conversation.identity

        if len(phone) < MIN_PHONE_DIGITS:
            return TurnResult(
                next_step=ConversationStep.TELEFONO,
                reply="El número parece incompleto. Ingresa los 10 dígitos.",
            )

        return TurnResult(
            next_step=ConversationStep.EPS,
            data=_collect(conversation, phone=phone),
            reply="¿Cuál es tu *EPS o aseguradora*?\n\n(Si no tienes, escribe \"Particular\")",
        )

    def _handle_insurer(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        return TurnResult(
            next_step=ConversationStep.DIRECCION,
            data=_collect(conversation, insurer=raw),
            reply="¿Cuál es tu *dirección de residencia*?",
        )

    def _handle_address(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        return TurnResult(
            next_step=ConversationStep.EMAIL,
            data=_collect(conversation, address=raw),
            reply="Por último, ¿cuál es tu *correo electrónico*?\n\n(Ahí te enviaremos la confirmación)",
        )

    def _handle_email(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        if not looks_like_email(message):
            return TurnResult(
                next_step=ConversationStep.EMAIL,
                reply="Ese email no parece válido. Por favor verifica.",
            )

        data = _collect(conversation, email=message)
        service_name = conversation.service.display_name if conversation.service else ""
        date_label = format_long_date(conversation.appointment_date) if conversation.appointment_date else ""
        return TurnResult(
            next_step=ConversationStep.CONFIRMACION,
            data=data,
            reply=(
                "✅ *Resumen de tu cita:*\n\n"
                f"📋 Servicio: *{service_name}*\n"
                f"📅 Fecha: *{date_label}*\n"
                f"🕐 Hora: *{conversation.appointment_time or ''}*\n\n"
                f"👤 {data.get('full_name', '')}\n"
                f"🪪 {data.get('document_type', '')} {data.get('document_number', '')}\n"
                f"📧 {data['email']}\n\n"
                "¿Confirmas esta cita? (Sí/No)"
            ),
        )

    def _handle_confirmation(self, conversation: Conversation, message: str, raw: str) -> TurnResult:
        intent = first_match(CONFIRMATION_RULES, message)

        if intent == "confirm":
            return self._commit(conversation)

        if intent == "cancel":
            return TurnResult(
                next_step=ConversationStep.INICIO,
                reply="Entendido, la cita no fue agendada.\n\n¿En qué más puedo ayudarte?",
            )

        return TurnResult(
            next_step=ConversationStep.CONFIRMACION,
            reply="Por favor responde *Sí* para confirmar o *No* para cancelar.",
        )

    def _commit(self, conversation: Conversation) -> TurnResult:
        patient = _patient_from_data(conversation.data)
        if (
            patient is None
            or conversation.service is None
            or conversation.appointment_date is None
            or not conversation.appointment_time
        ):
            self._logger.warning(
                "Confirmation with incomplete booking data",
                extra={"identity": conversation.identity, "reason": "incomplete_data"},
            )
            return TurnResult(
                next_step=ConversationStep.INICIO,
                reply=f"Lo siento, me faltan datos para agendar tu cita. Empecemos de nuevo.\n\n{self.main_menu()}",
            )

        stored_patient, appointment, created = self._store.commit_booking(
            patient,
            Appointment(
                service=conversation.service,
                date=conversation.appointment_date,
                time=conversation.appointment_time,
                patient_id=0,
                status=AppointmentStatus.CONFIRMED,
                channel=BookingChannel.WHATSAPP,
                created_at=self._clock(),
            ),
        )
        self._logger.info(
            "Booking committed",
            extra={
                "identity": conversation.identity,
                "patient_id": stored_patient.id,
                "appointment_id": appointment.id,
                "reason": "patient_created" if created else "patient_reused",
            },
        )
        return TurnResult(
            next_step=ConversationStep.INICIO,
            reply=(
                "🎉 *¡Tu cita ha sido confirmada!*\n\n"
                f"Recibirás un correo de confirmación en {conversation.data.get('email', '')}\n\n"
                f"📍 *{self._clinic_name}*\n"
                "⏰ Recuerda llegar 15 minutos antes.\n\n"
                "¿Necesitas algo más?"
            ),
        )


def _collect(conversation: Conversation, **fields: Any) -> dict[str, Any]:
    data = dict(conversation.data or {})
    data.update(fields)
    return data


def _format_options(options: list[DayAvailability]) -> str:
    return "\n".join(f"📅 {day.label}" for day in options)


def _patient_from_data(data: dict[str, Any]) -> Patient | None:
    try:
        return Patient(
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
    except (KeyError, TypeError, ValueError):
        return None
