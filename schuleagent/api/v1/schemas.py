from datetime import date, datetime

from pydantic import BaseModel, Field

from schuleagent.domain.entities.appointment import AppointmentStatus, BookingChannel, Service
from schuleagent.domain.entities.patient import DocumentType, Sex

TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class DayAvailabilitySchema(BaseModel):
    date: date
    label: str
    slots: list[str]


class AvailabilityResponseSchema(BaseModel):
    slots: list[DayAvailabilitySchema]


class PatientSchema(BaseModel):
    id: int | None = None
    full_name: str = Field(min_length=1)
    document_type: DocumentType
    document_number: str = Field(min_length=1)
    birth_date: date
    sex: Sex
    phone: str
    insurer: str
    address: str
    email: str


class CreateAppointmentRequestSchema(BaseModel):
    service: Service
    date: date
    time: str = Field(pattern=TIME_PATTERN)
    patient: PatientSchema


class AppointmentSchema(BaseModel):
    id: int
    service: Service
    date: date
    time: str
    status: AppointmentStatus
    channel: BookingChannel
    patient_id: int
    created_at: datetime | None = None
    patient: PatientSchema | None = None


class CreateAppointmentResponseSchema(BaseModel):
    success: bool = True
    appointment: AppointmentSchema


class AppointmentListResponseSchema(BaseModel):
    appointments: list[AppointmentSchema]
