from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Form, Response

from schuleagent.application.dto.inbound_message import InboundMessageDTO
from schuleagent.application.use_cases.handle_incoming_message import HandleIncomingMessageUseCase
from schuleagent.infrastructure.twilio.twiml import TWIML_CONTENT_TYPE, build_message_response
from schuleagent.wiring.dependencies import get_handle_incoming_message_use_case

ERROR_REPLY = "Lo siento, ocurrió un error. Por favor intenta de nuevo en unos minutos."

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/webhook/whatsapp")
def whatsapp_webhook(
    From: str = Form(...),
    Body: str = Form(""),
    use_case: HandleIncomingMessageUseCase = Depends(get_handle_incoming_message_use_case),
) -> Response:
    message = InboundMessageDTO(From=From, Body=Body)
    try:
        reply = use_case.handle(message.identity, message.text)
    except Exception as e:
        logger.exception(
            "Failed to handle incoming message",
            extra={"identity": message.identity, "reason": type(e).__name__},
        )
        reply = ERROR_REPLY

    return Response(content=build_message_response(reply), media_type=TWIML_CONTENT_TYPE)
