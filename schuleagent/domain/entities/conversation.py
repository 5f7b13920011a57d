from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any

from schuleagent.domain.entities.appointment import Service


class ConversationStep(str, Enum):
    INICIO = "inicio"
    SERVICIO = "servicio"
    FECHA = "fecha"
    NOMBRE = "datos_nombre"
    TIPO_DOC = "datos_tipo_doc"
    NUM_DOC = "datos_num_doc"
    NACIMIENTO = "datos_nacimiento"
    SEXO = "datos_sexo"
    TELEFONO = "datos_telefono"
    EPS = "datos_eps"
    DIRECCION = "datos_direccion"
    EMAIL = "datos_email"
    CONFIRMACION = "confirmacion"


@dataclass(frozen=True)
class Conversation:
    id: int
    identity: str  # normalized sender phone, e.g. "573001234567"
    step: ConversationStep = ConversationStep.INICIO
    service: Service | None = None
    appointment_date: date | None = None
    appointment_time: str | None = None  # HH:MM
    # Patient fields collected so far, keyed by Patient attribute name
    data: dict[str, Any] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None
