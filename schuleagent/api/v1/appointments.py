from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query

from schuleagent.api.v1.schemas import (
    AppointmentListResponseSchema, AppointmentSchema,
    AvailabilityResponseSchema, CreateAppointmentRequestSchema,
    CreateAppointmentResponseSchema, DayAvailabilitySchema, PatientSchema,
)
from schuleagent.wiring.dependencies import get_availability_use_case, get_manual_booking_use_case
from schuleagent.application.use_cases.availability import AvailabilityUseCase
from schuleagent.application.use_cases.manual_booking import ManualBookingUseCase
from schuleagent.application.exceptions import AppointmentNotFound, InvalidBookingRequest, StoreError
from schuleagent.domain.entities.appointment import Appointment
from schuleagent.domain.entities.patient import Patient

router = APIRouter()


@router.get("/availability", response_model=AvailabilityResponseSchema)
def availability(
    day: date | None = Query(None, alias="date"),
    service: str | None = Query(None),
    uc: AvailabilityUseCase = Depends(get_availability_use_case),
):
    try:
        days = uc.compute(day, service)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return AvailabilityResponseSchema(
        slots=[DayAvailabilitySchema(date=d.date, label=d.label, slots=list(d.slots)) for d in days]
    )


@router.get("/appointments", response_model=AppointmentListResponseSchema)
def list_appointments(
    day: date = Query(..., alias="date"),
    uc: ManualBookingUseCase = Depends(get_manual_booking_use_case),
):
    try:
        booked = uc.list_day(day)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return AppointmentListResponseSchema(
        appointments=[_appointment_schema(appointment, patient) for appointment, patient in booked]
    )


@router.post("/appointments", response_model=CreateAppointmentResponseSchema)
def create_appointment(
    req: CreateAppointmentRequestSchema,
    uc: ManualBookingUseCase = Depends(get_manual_booking_use_case),
):
    p = req.patient
    try:
        appointment, patient = uc.create(
            service=req.service,
            day=req.date,
            time=req.time,
            patient=Patient(
                full_name=p.full_name.strip(),
                document_type=p.document_type,
                document_number=p.document_number.strip(),
                birth_date=p.birth_date,
                sex=p.sex,
                phone=p.phone.strip(),
                insurer=p.insurer.strip(),
                address=p.address.strip(),
                email=p.email.strip().lower(),
            ),
        )
    except InvalidBookingRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return CreateAppointmentResponseSchema(appointment=_appointment_schema(appointment, patient))


@router.post("/appointments/{appointment_id}/cancel", response_model=CreateAppointmentResponseSchema)
def cancel_appointment(
    appointment_id: int,
    uc: ManualBookingUseCase = Depends(get_manual_booking_use_case),
):
    try:
        appointment = uc.cancel(appointment_id)
    except AppointmentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    return CreateAppointmentResponseSchema(appointment=_appointment_schema(appointment))


def _appointment_schema(appointment: Appointment, patient: Patient | None = None) -> AppointmentSchema:
    return AppointmentSchema(
        id=appointment.id,
        service=appointment.service,
        date=appointment.date,
        time=appointment.time,
        status=appointment.status,
        channel=appointment.channel,
        patient_id=appointment.patient_id,
        created_at=appointment.created_at,
        patient=(
            PatientSchema(
                id=patient.id,
                full_name=patient.full_name,
                document_type=patient.document_type,
                document_number=patient.document_number,
                birth_date=patient.birth_date,
                sex=patient.sex,
                phone=patient.phone,
                insurer=patient.insurer,
                address=patient.address,
                email=patient.email,
            )
            if patient else None
        ),
    )
