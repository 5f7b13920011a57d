from functools import lru_cache
import logging
from datetime import datetime
from typing import Callable
from zoneinfo import ZoneInfo

from schuleagent.core.config import settings
from schuleagent.application.ports.clinic_store import ClinicStorePort
from schuleagent.application.use_cases.availability import AvailabilityUseCase
from schuleagent.application.use_cases.conversation_flow import ConversationFlow
from schuleagent.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from schuleagent.application.use_cases.manual_booking import ManualBookingUseCase
from schuleagent.infrastructure.store.json_store import JsonClinicStore
from schuleagent.infrastructure.store.memory_store import MemoryClinicStore


@lru_cache
def get_store() -> ClinicStorePort:
    logger = logging.getLogger(__name__)
    provider = settings.STORE_PROVIDER.lower()
    if provider == "json":
        logger.info("Using JsonClinicStore", extra={"reason": settings.DATA_DIR})
        return JsonClinicStore(data_dir=settings.DATA_DIR)
    if provider == "memory":
        logger.info("Using MemoryClinicStore")
        return MemoryClinicStore()
    raise ValueError(f"Unknown STORE_PROVIDER: {settings.STORE_PROVIDER!r}")


@lru_cache
def get_clock() -> Callable[[], datetime]:
    """Naive wall-clock time in the clinic's timezone."""
    tz = ZoneInfo(settings.CLINIC_TIMEZONE)

    def clinic_now() -> datetime:
        return datetime.now(tz).replace(tzinfo=None)

    return clinic_now


def get_availability_use_case() -> AvailabilityUseCase:
    return AvailabilityUseCase(store=get_store(), clock=get_clock())


def get_conversation_flow() -> ConversationFlow:
    return ConversationFlow(
        availability=get_availability_use_case(),
        store=get_store(),
        clinic_name=settings.CLINIC_NAME,
        clock=get_clock(),
    )


def get_handle_incoming_message_use_case() -> HandleIncomingMessageUseCase:
    return HandleIncomingMessageUseCase(
        store=get_store(),
        flow=get_conversation_flow(),
        clock=get_clock(),
    )


def get_manual_booking_use_case() -> ManualBookingUseCase:
    return ManualBookingUseCase(store=get_store(), clock=get_clock())
