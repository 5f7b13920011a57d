from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum


class DocumentType(str, Enum):
    CC = "CC"  # Cédula de Ciudadanía
    CE = "CE"  # Cédula de Extranjería
    PP = "PP"  # Pasaporte
    TI = "TI"  # Tarjeta de Identidad


class Sex(str, Enum):
    F = "F"
    M = "M"


@dataclass(frozen=True)
class Patient:
    full_name: str
    document_type: DocumentType
    document_number: str
    birth_date: date
    sex: Sex
    phone: str
    insurer: str
    address: str
    email: str
    id: int | None = None
